"""
Pytest fixtures for bazaar backend tests.

Provides test database setup, a fixed clock, builders for users, stores,
products and cart lines, and a test client.
"""

from datetime import datetime

import pytest

from bazaar import create_app
from bazaar.extensions import db
from bazaar.models import CartItem, Product, SecurityEvent, User
from bazaar.services import store_service
from bazaar.time_utils import CLOCK_EXTENSION_KEY, FixedClock


BASE_TIME = datetime(2026, 1, 15, 12, 0, 0)

ADDRESS = {
    "name": "Test Buyer",
    "line1": "1 Market Street",
    "city": "Springfield",
    "postal_code": "12345",
    "country": "US",
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(
        {
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
            'SQLALCHEMY_TRACK_MODIFICATIONS': False,
            'CHECKOUT_RETRY_BACKOFF': 0.0,
        },
        clock=FixedClock(BASE_TIME),
    )

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
    app.extensions[CLOCK_EXTENSION_KEY].set(BASE_TIME)
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def clock(app):
    """The app's fixed clock, reset to BASE_TIME."""
    fixed = app.extensions[CLOCK_EXTENSION_KEY]
    fixed.set(BASE_TIME)
    return fixed


def make_user(db_session, email: str, *, is_active: bool = True) -> User:
    user = User(email=email, full_name=email.split("@")[0].title(), is_active=is_active)
    db_session.add(user)
    db_session.commit()
    return user


def make_store(owner: User, slug: str, *, visibility: str = "PUBLIC", tax_rate_bps: int = 0):
    return store_service.create_store(
        owner.id,
        slug.replace("-", " ").title(),
        slug,
        visibility=visibility,
        tax_rate_bps=tax_rate_bps,
    )


def make_product(db_session, store, sku: str, *, price_cents: int = 1000, stock: int = 10) -> Product:
    product = Product(
        store_id=store.id,
        sku=sku,
        name=f"Product {sku}",
        price_cents=price_cents,
        stock_quantity=stock,
    )
    db_session.add(product)
    db_session.commit()
    return product


def put_in_cart(db_session, user: User, product: Product, quantity: int) -> CartItem:
    """Insert a cart line directly, bypassing add-time stock checks."""
    item = CartItem(user_id=user.id, product_id=product.id, quantity=quantity)
    db_session.add(item)
    db_session.commit()
    return item


def security_events(db_session, event_type: str | None = None) -> list[SecurityEvent]:
    query = db_session.query(SecurityEvent)
    if event_type:
        query = query.filter_by(event_type=event_type)
    return query.order_by(SecurityEvent.occurred_at.asc()).all()


def identity(user: User) -> dict:
    """Headers the upstream identity provider would attach."""
    return {'X-User-Id': str(user.id)}


@pytest.fixture(scope='function')
def owner(db_session):
    return make_user(db_session, "owner@bazaar.test")


@pytest.fixture(scope='function')
def buyer(db_session):
    return make_user(db_session, "buyer@bazaar.test")


@pytest.fixture(scope='function')
def stranger(db_session):
    return make_user(db_session, "stranger@bazaar.test")


@pytest.fixture(scope='function')
def public_store(db_session, owner):
    return make_store(owner, "public-store")


@pytest.fixture(scope='function')
def private_store(db_session, owner):
    return make_store(owner, "private-store", visibility="PRIVATE")
