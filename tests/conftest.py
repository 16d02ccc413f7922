import pytest
from cloudshop import create_app
from cloudshop.extensions import db as _db
from cloudshop.models.product import Product


@pytest.fixture(scope="session")
def app():
    """Create application for testing."""
    app = create_app("testing")
    with app.app_context():
        _db.create_all()
        yield app
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    """Per-test database session with rollback."""
    with app.app_context():
        _db.session.begin_nested()
        yield _db
        _db.session.rollback()


@pytest.fixture
def product(db):
    p = Product(name="Cà phê sữa", price=29000)
    db.session.add(p)
    db.session.commit()
    return p
