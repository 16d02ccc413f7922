"""Tests for the HTTP variant client."""
import httpx
import pytest

from cloudshop.services import variant_client
from cloudshop.services.variant_wizard import VariantCreateError

RECORD = {
    "product_id": "p1",
    "variant_name": "Size",
    "variant_value": "Size S",
    "price_adjustment": 0,
    "stock_quantity": 50,
    "is_active": True,
}


def _fake_post(status_code, body, seen=None):
    def fake_post(url, **kwargs):
        if seen is not None:
            seen.append((url, kwargs))
        return httpx.Response(
            status_code, json=body, request=httpx.Request("POST", url)
        )

    return fake_post


def test_create_variant_posts_record(app, monkeypatch):
    seen = []
    monkeypatch.setattr(
        variant_client.httpx,
        "post",
        _fake_post(201, {"success": True, "data": {"variant_id": "v1"}}, seen),
    )

    assert variant_client.create_variant(RECORD) == {"variant_id": "v1"}
    url, kwargs = seen[0]
    assert url == "http://cloudshop.test/api/admin/products/variants"
    assert kwargs["json"] == RECORD
    assert "X-Admin-Token" not in kwargs["headers"]


def test_create_variant_sends_token(app, monkeypatch):
    seen = []
    monkeypatch.setitem(app.config, "ADMIN_API_TOKEN", "s3cret")
    monkeypatch.setattr(
        variant_client.httpx, "post", _fake_post(201, {"data": {}}, seen)
    )

    variant_client.create_variant(RECORD)
    assert seen[0][1]["headers"]["X-Admin-Token"] == "s3cret"


def test_create_variant_surfaces_server_message(app, monkeypatch):
    monkeypatch.setattr(
        variant_client.httpx,
        "post",
        _fake_post(409, {"success": False, "message": "Variant already exists"}),
    )

    with pytest.raises(VariantCreateError) as exc:
        variant_client.create_variant(RECORD)
    assert exc.value.message == "Variant already exists"


def test_create_variant_generic_message(app, monkeypatch):
    monkeypatch.setattr(variant_client.httpx, "post", _fake_post(500, {}))

    with pytest.raises(VariantCreateError) as exc:
        variant_client.create_variant(RECORD)
    assert exc.value.message == "Could not create variant"


def test_create_variant_transport_error(app, monkeypatch):
    def refuse(url, **kwargs):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(variant_client.httpx, "post", refuse)

    with pytest.raises(VariantCreateError) as exc:
        variant_client.create_variant(RECORD)
    assert "unreachable" in exc.value.message
