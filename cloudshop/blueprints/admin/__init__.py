import hmac
import logging
from flask import Blueprint, current_app, request, jsonify

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__)


@admin_bp.before_request
def require_admin_token():
    """X-Admin-Token must match ADMIN_API_TOKEN when one is configured."""
    expected = current_app.config.get("ADMIN_API_TOKEN")
    if not expected:
        return None
    token = request.headers.get("X-Admin-Token", "")
    if not hmac.compare_digest(token, expected):
        logger.warning("Rejected admin API call to %s", request.path)
        return jsonify(success=False, message="Unauthorized"), 401
    return None


def current_actor():
    return request.headers.get("X-Admin-User") or "api"


def json_object():
    """Request body as a dict; an empty body reads as {}."""
    from cloudshop.services.variant_service import VariantError

    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise VariantError("Request body must be a JSON object")
    return payload


from cloudshop.blueprints.admin import variants, templates  # noqa: F401, E402
