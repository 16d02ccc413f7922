import os
from flask import Flask
from dotenv import load_dotenv

load_dotenv()


def create_app(config_name=None, template_catalog=None):
    flask_app = Flask(__name__)

    if config_name is None:
        config_name = os.environ.get("CLOUDSHOP_ENV", "development")

    from cloudshop.config import config_map

    config_cls = config_map.get(config_name, config_map["development"])
    flask_app.config.from_object(config_cls)

    if hasattr(config_cls, "init_app"):
        config_cls.init_app(flask_app)

    # Initialize extensions
    from cloudshop.extensions import db, migrate, init_redis

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    init_redis(flask_app)

    # Import models so Alembic sees them
    from cloudshop.models import Product, ProductVariant, AuditLog  # noqa: F401

    # Variant template registry, injectable for tests
    from cloudshop.services.variant_templates import TemplateCatalog

    if template_catalog is None:
        template_catalog = TemplateCatalog()
    flask_app.extensions["variant_templates"] = template_catalog

    # Register blueprints
    from cloudshop.blueprints.admin import admin_bp

    flask_app.register_blueprint(admin_bp, url_prefix="/api/admin")

    # Register CLI commands
    from cloudshop.cli import register_cli

    register_cli(flask_app)

    # Health check
    @flask_app.route("/health")
    def health():
        from cloudshop.extensions import redis_client

        checks = {"status": "ok"}
        try:
            db.session.execute(db.text("SELECT 1"))
            checks["db"] = "ok"
        except Exception:
            flask_app.logger.exception("Health check DB probe failed")
            checks["db"] = "error"
            checks["status"] = "degraded"
        try:
            if redis_client:
                redis_client.ping()
                checks["redis"] = "ok"
            else:
                checks["redis"] = "not configured"
        except Exception:
            flask_app.logger.exception("Health check Redis probe failed")
            checks["redis"] = "error"
            checks["status"] = "degraded"
        checks["variant_templates"] = len(flask_app.extensions["variant_templates"])
        status_code = 200 if checks["status"] == "ok" else 503
        return checks, status_code

    return flask_app
