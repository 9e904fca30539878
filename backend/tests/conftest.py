"""
Pytest fixtures for retailpos backend tests.

Provides the test application (in-memory SQLite), a clean database per test,
store/catalog/user factories, and a file-backed application for the
threaded concurrency tests.
"""

import bcrypt
import pytest

from retailpos import create_app
from retailpos.extensions import db
from retailpos.models import Store, User
from retailpos.services import session_service
from retailpos.services.catalog_service import create_category, create_product

PASSWORD = "Password123!"
# Low bcrypt cost keeps fixtures fast; verify_password accepts any cost
PASSWORD_HASH = bcrypt.hashpw(PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    "ISSUANCE_MAX_ATTEMPTS": 3,
    "ISSUANCE_BACKOFF_BASE": 0,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        db.session.expunge_all()


def make_store(name="Store A", **kwargs):
    store = Store(name=name, owner_name=kwargs.pop("owner_name", "Owner"), **kwargs)
    db.session.add(store)
    db.session.commit()
    return store


def make_user(username, role, store_id=None):
    user = User(username=username, password_hash=PASSWORD_HASH, role=role, store_id=store_id)
    db.session.add(user)
    db.session.commit()
    return user


def make_product(store, category, name="Notebook", price_cents=10000, stock_qty=10, **kwargs):
    patch = {"category_id": category.id, "name": name, "price_cents": price_cents, "stock_qty": stock_qty}
    patch.update(kwargs)
    return create_product(store.id, patch)


@pytest.fixture(scope='function')
def store_a(db_session):
    return make_store("Store A")


@pytest.fixture(scope='function')
def store_b(db_session):
    return make_store("Store B")


@pytest.fixture(scope='function')
def category_a(store_a):
    """GST 18%, no default discount."""
    return create_category(store_a.id, {"name": "Stationery", "default_gst_bps": 1800})


@pytest.fixture(scope='function')
def category_b(store_b):
    return create_category(store_b.id, {"name": "Grocery", "default_gst_bps": 500})


@pytest.fixture(scope='function')
def product_a(store_a, category_a):
    """Price 100.00, one unit on hand."""
    return make_product(store_a, category_a, name="Notebook", sku="NB-001", price_cents=10000, stock_qty=1)


@pytest.fixture(scope='function')
def product_b(store_b, category_b):
    return make_product(store_b, category_b, name="Rice 1kg", sku="RC-001", price_cents=6000, stock_qty=20)


@pytest.fixture(scope='function')
def super_admin(db_session):
    return make_user("root", "SUPER_ADMIN")


@pytest.fixture(scope='function')
def admin_a(store_a):
    return make_user("admin_a", "STORE_ADMIN", store_a.id)


@pytest.fixture(scope='function')
def cashier_a(store_a):
    return make_user("cashier_a", "CASHIER", store_a.id)


@pytest.fixture(scope='function')
def cashier_b(store_b):
    return make_user("cashier_b", "CASHIER", store_b.id)


def auth_headers(user) -> dict:
    """Create a session for `user` and return the Authorization header."""
    _, token = session_service.create_session(user.id)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def file_app(tmp_path):
    """
    Application on a file-backed SQLite database.

    Threads each get their own connection, so BEGIN IMMEDIATE and the stock
    constraint are exercised the way concurrent registers would hit them.
    """
    app = create_app({
        **TEST_CONFIG,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'retailpos.sqlite3'}",
        "ISSUANCE_MAX_ATTEMPTS": 5,
        "ISSUANCE_BACKOFF_BASE": 0.01,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture(scope='function')
def product_factory(db_session):
    """make_product(store, category, name=..., sku=..., price_cents=..., stock_qty=...)"""
    return make_product


@pytest.fixture(scope='function')
def headers_for(db_session):
    """headers_for(user) -> Authorization header with a fresh session token."""
    return auth_headers
