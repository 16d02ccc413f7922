"""Tests for the admin JSON API."""
from rq import Retry

import cloudshop.extensions as ext


def _create(client, product_id, value="Size M", **extra):
    body = {
        "product_id": product_id,
        "variant_name": "Size",
        "variant_value": value,
        "price_adjustment": 5000,
        "stock_quantity": 100,
    }
    body.update(extra)
    return client.post("/api/admin/products/variants", json=body)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code in (200, 503)
    data = resp.get_json()
    assert "status" in data
    assert data["redis"] == "not configured"
    assert data["variant_templates"] == 7


def test_health_does_not_leak_internal_errors(client, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("database password leaked")

    monkeypatch.setattr(ext.db.session, "execute", boom)

    resp = client.get("/health")
    assert resp.status_code == 503
    data = resp.get_json()
    assert data["db"] == "error"
    assert "password" not in str(data).lower()


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def test_list_templates(client):
    resp = client.get("/api/admin/variant-templates")
    data = resp.get_json()
    assert resp.status_code == 200
    assert data["total"] == 7
    assert data["data"][0]["id"] == "size-standard"


def test_list_templates_by_category(client):
    resp = client.get("/api/admin/variant-templates?category=color")
    ids = [t["id"] for t in resp.get_json()["data"]]
    assert ids == ["color-basic", "color-premium"]


def test_list_templates_unknown_category(client):
    resp = client.get("/api/admin/variant-templates?category=flavour")
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_get_template(client):
    resp = client.get("/api/admin/variant-templates/topping-drink")
    assert resp.status_code == 200
    assert len(resp.get_json()["data"]["default_values"]) == 6

    assert client.get("/api/admin/variant-templates/nope").status_code == 404


def test_validate_template_endpoint(client):
    resp = client.post("/api/admin/variant-templates/validate", json={})
    data = resp.get_json()["data"]
    assert data["is_valid"] is False
    assert len(data["errors"]) == 2


def test_validate_template_malformed_bodies(client):
    resp = client.post(
        "/api/admin/variant-templates/validate",
        json={"name": "X", "default_values": [1]},
    )
    assert resp.status_code == 200
    assert resp.get_json()["data"]["errors"] == ["Value 1 is malformed"]

    resp = client.post("/api/admin/variant-templates/validate", json=[1])
    assert resp.status_code == 200
    assert resp.get_json()["data"]["is_valid"] is False


def test_preview_template(client):
    resp = client.post(
        "/api/admin/variant-templates/size-standard/preview",
        json={"product_id": "p1"},
    )
    data = resp.get_json()
    assert resp.status_code == 200
    assert data["total"] == 4
    assert data["data"][3] == {
        "product_id": "p1",
        "variant_name": "Kích cỡ tiêu chuẩn",
        "variant_value": "Size XL",
        "price_adjustment": 15000,
        "stock_quantity": 25,
        "is_active": True,
    }


def test_preview_requires_product(client):
    resp = client.post("/api/admin/variant-templates/size-standard/preview", json={})
    assert resp.status_code == 400


def test_preview_rejects_non_string_name(client):
    resp = client.post(
        "/api/admin/variant-templates/size-standard/preview",
        json={"product_id": "p1", "variant_name": 5},
    )
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------

def test_create_and_list_variants(client, product):
    resp = _create(client, product.id)
    assert resp.status_code == 201
    assert resp.get_json()["data"]["variant_id"]

    resp = client.get(f"/api/admin/products/{product.id}/variants")
    data = resp.get_json()["data"]
    assert data["total"] == 1
    assert data["product"]["name"] == product.name
    assert data["variants"][0]["variant_value"] == "Size M"


def test_create_variant_validation_error(client, product):
    resp = _create(client, product.id, value="", stock_quantity=-1)
    data = resp.get_json()
    assert resp.status_code == 400
    assert data["message"] == "Validation failed"
    assert len(data["errors"]) == 2


def test_create_variant_unknown_product(client, db):
    resp = _create(client, "missing-product")
    assert resp.status_code == 404


def test_create_variant_rejects_non_string_name(client, product):
    resp = _create(client, product.id, variant_name=5)
    assert resp.status_code == 400
    assert resp.get_json()["errors"] == ["Variant name is required"]


def test_create_variant_rejects_array_body(client, product):
    resp = client.post("/api/admin/products/variants", json=[{"variant_name": "Size"}])
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Request body must be a JSON object"


def test_create_duplicate_variant(client, product):
    assert _create(client, product.id).status_code == 201
    resp = _create(client, product.id)
    assert resp.status_code == 409
    assert resp.get_json()["message"] == "Variant already exists"


def test_update_variant(client, product):
    variant_id = _create(client, product.id).get_json()["data"]["variant_id"]
    resp = client.put(
        f"/api/admin/products/variants/{variant_id}",
        json={"price_adjustment": 7000, "is_active": False},
    )
    data = resp.get_json()["data"]
    assert resp.status_code == 200
    assert data["price_adjustment"] == 7000
    assert data["is_active"] is False

    resp = client.get(f"/api/admin/products/{product.id}/variants?active_only=1")
    assert resp.get_json()["data"]["total"] == 0


def test_delete_variant(client, product):
    variant_id = _create(client, product.id).get_json()["data"]["variant_id"]
    resp = client.delete(f"/api/admin/products/variants/{variant_id}")
    assert resp.status_code == 200

    resp = client.delete(f"/api/admin/products/variants/{variant_id}")
    assert resp.status_code == 404


def test_list_options(client, product):
    _create(client, product.id, value="Size S", price_adjustment=0)
    _create(client, product.id, value="Size L", price_adjustment=10000)
    resp = client.get(f"/api/admin/products/{product.id}/options")
    options = resp.get_json()["data"]
    assert [o["name"] for o in options] == ["Size"]
    assert [v["label"] for v in options[0]["values"]] == ["Size L", "Size S"]


def test_list_variants_unknown_product(client, db):
    resp = client.get("/api/admin/products/missing/variants")
    assert resp.status_code == 404


def test_sync_runs_inline_without_redis(client, product):
    _create(client, product.id)
    resp = client.post(
        f"/api/admin/products/{product.id}/sync-variants",
        json={"direction": "variants-to-options"},
    )
    data = resp.get_json()
    assert resp.status_code == 200
    assert data["message"] == "Synced 1 option groups"
    assert data["direction"] == "variants-to-options"


def test_sync_is_queued_with_redis(client, product, monkeypatch):
    class FakeQueue:
        def __init__(self):
            self.jobs = []

        def enqueue(self, func, **kwargs):
            self.jobs.append((func, kwargs))
            return object()

    queue = FakeQueue()
    monkeypatch.setattr(ext, "task_queue", queue)

    resp = client.post(
        f"/api/admin/products/{product.id}/sync-variants",
        json={"direction": "options-to-variants"},
    )
    assert resp.status_code == 202
    func, kwargs = queue.jobs[0]
    assert func == "cloudshop.workers.variant_sync.sync_product_variants"
    assert kwargs["product_id"] == product.id
    assert isinstance(kwargs["retry"], Retry)
    assert kwargs["retry"].max == 3


def test_sync_rejects_bad_direction(client, product):
    resp = client.post(
        f"/api/admin/products/{product.id}/sync-variants", json={"direction": "up"}
    )
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Admin token
# ---------------------------------------------------------------------------

def test_admin_token_required_when_configured(client, app, monkeypatch):
    monkeypatch.setitem(app.config, "ADMIN_API_TOKEN", "s3cret")

    resp = client.get("/api/admin/variant-templates")
    assert resp.status_code == 401

    resp = client.get(
        "/api/admin/variant-templates", headers={"X-Admin-Token": "wrong"}
    )
    assert resp.status_code == 401

    resp = client.get(
        "/api/admin/variant-templates", headers={"X-Admin-Token": "s3cret"}
    )
    assert resp.status_code == 200


def test_actor_header_recorded(client, product):
    from cloudshop.models.audit_log import AuditLog

    client.post(
        "/api/admin/products/variants",
        json={"product_id": product.id, "variant_name": "Size", "variant_value": "XL"},
        headers={"X-Admin-User": "lan"},
    )
    log = AuditLog.query.filter_by(product_id=product.id, action="CREATE_VARIANT").first()
    assert log.actor == "lan"
