"""HTTP client for the admin variants API, used when the wizard runs against
a remote CloudShop instance."""
import logging
import httpx
from flask import current_app

from cloudshop.services.variant_wizard import VariantCreateError

logger = logging.getLogger(__name__)

VARIANTS_PATH = "/api/admin/products/variants"


def _url(path):
    return current_app.config["APP_URL"].rstrip("/") + path


def _headers():
    headers = {"Content-Type": "application/json"}
    token = current_app.config.get("ADMIN_API_TOKEN")
    if token:
        headers["X-Admin-Token"] = token
    return headers


def create_variant(record):
    """POST one variant record; raise VariantCreateError with the server message."""
    try:
        resp = httpx.post(
            _url(VARIANTS_PATH),
            json=record,
            headers=_headers(),
            timeout=current_app.config["VARIANT_CLIENT_TIMEOUT"],
        )
    except httpx.HTTPError as e:
        logger.error("Variant API unreachable: %s", e)
        raise VariantCreateError(f"Variant API unreachable: {e}")

    if resp.is_success:
        return resp.json().get("data")

    try:
        data = resp.json()
    except ValueError:
        data = {}
    logger.error("Variant API error %s: %s", resp.status_code, data)
    raise VariantCreateError(data.get("message") or "Could not create variant")
