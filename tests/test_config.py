"""Tests for config selection."""
from cloudshop import create_app
from cloudshop.config import Config, TestingConfig


def test_database_url_used_as_given():
    assert not hasattr(Config, "SQLALCHEMY_ENGINE_OPTIONS")
    assert TestingConfig.SQLALCHEMY_DATABASE_URI == "sqlite:///:memory:"


def test_env_selects_config(monkeypatch):
    monkeypatch.setenv("CLOUDSHOP_ENV", "testing")
    app = create_app()
    assert app.config["TESTING"] is True
    assert app.config["VARIANT_SYNC_QUEUE"] == "variant-sync"
    assert app.config["VARIANT_SYNC_LOCK_SECONDS"] == 120
