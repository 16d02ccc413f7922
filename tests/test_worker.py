"""Tests for worker job logic (mocked)."""
from unittest.mock import MagicMock, patch

import pytest

from cloudshop.services import variant_service
from cloudshop.services.variant_service import ProductNotFound
from cloudshop.workers.variant_sync import sync_product_variants


def test_sync_job_runs_without_redis(app, db, product):
    variant_service.create_variant(
        {"product_id": product.id, "variant_name": "Size", "variant_value": "Size S"},
        actor="test",
    )
    product.options = []
    db.session.commit()

    message = sync_product_variants(product.id, "variants-to-options")

    assert message == "Synced 1 option groups"
    assert product.options[0]["values"][0]["label"] == "Size S"


def test_sync_job_skips_when_locked(app, db, product):
    redis_client = MagicMock()
    redis_client.lock.return_value.acquire.return_value = False

    with patch("cloudshop.extensions.redis_client", redis_client), patch(
        "cloudshop.workers.variant_sync.variant_service"
    ) as mock_service:
        assert sync_product_variants(product.id, "variants-to-options") is None
        mock_service.sync_product.assert_not_called()


def test_sync_job_releases_lock_and_reraises(app, db):
    redis_client = MagicMock()
    redis_client.lock.return_value.acquire.return_value = True

    with patch("cloudshop.extensions.redis_client", redis_client):
        with pytest.raises(ProductNotFound):
            sync_product_variants("missing", "variants-to-options")

    redis_client.lock.return_value.release.assert_called_once()
