"""RQ worker job: sync a product's variant rows and its options column."""
import logging
from flask import current_app, has_app_context
from cloudshop import create_app, extensions
from cloudshop.services import variant_service

logger = logging.getLogger(__name__)

_worker_app = None


def _get_app():
    """Return an app instance for worker execution.

    Reuse the current app when already inside an app context (tests/CLI),
    otherwise lazily create the worker app once.
    """
    global _worker_app
    if has_app_context():
        return current_app._get_current_object()
    if _worker_app is None:
        _worker_app = create_app()
    return _worker_app


def sync_product_variants(product_id, direction, actor="worker"):
    """Run one sync direction for a product.

    A Redis lock keeps two syncs of the same product from interleaving;
    without Redis the job just runs.
    """
    app = _get_app()
    with app.app_context():
        lock = None
        if extensions.redis_client is not None:
            lock = extensions.redis_client.lock(
                f"variant_sync:{product_id}",
                timeout=app.config.get("VARIANT_SYNC_LOCK_SECONDS", 120),
            )
            if not lock.acquire(blocking=False):
                logger.info("Lock held for product %s, skipping sync", product_id)
                return None

        try:
            message = variant_service.sync_product(product_id, direction, actor)
            logger.info("Variant sync %s for %s: %s", direction, product_id, message)
            return message
        except Exception:
            logger.exception("Variant sync %s failed for %s", direction, product_id)
            raise  # let RQ handle retry
        finally:
            if lock is not None:
                try:
                    lock.release()
                except Exception:
                    logger.warning("Sync lock for %s already expired", product_id)
