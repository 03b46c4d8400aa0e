"""
Pytest fixtures for stockledger backend tests.

Provides test database setup, two isolated owners, and the test client.
"""

import pytest

from stockledger import create_app
from stockledger.extensions import db
from stockledger.services import session_service
from stockledger.services.auth_service import create_user

PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SEED_STOCK_ON_CREATE': False,
    })

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


@pytest.fixture(scope='function')
def seed_on_create(app):
    """Switch stock seeding on product creation on for one test."""
    app.config['SEED_STOCK_ON_CREATE'] = True
    yield
    app.config['SEED_STOCK_ON_CREATE'] = False


@pytest.fixture(scope='function')
def user_a(db_session):
    """Owner A."""
    return create_user(full_name="Ana Owner", email="ana@shop.test", password=PASSWORD)


@pytest.fixture(scope='function')
def user_b(db_session):
    """Owner B, whose data must stay invisible to A."""
    return create_user(full_name="Ben Owner", email="ben@shop.test", password=PASSWORD)


@pytest.fixture(scope='function')
def token_a(user_a):
    _, token = session_service.create_session(user_a.id)
    return token


@pytest.fixture(scope='function')
def token_b(user_b):
    _, token = session_service.create_session(user_b.id)
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


PACK_PAYLOAD = {
    "name": "Cookies",
    "pack_quantity": 5,
    "products_per_pack": 8,
    "buy_price_per_pack": 10.00,
    "sell_price_per_unit": 1.50,
}

WEIGHT_PAYLOAD = {
    "name": "Rice",
    "weight_unit": "kg",
    "total_weight": 12.75,
    "buy_price_per_unit": 2.50,
    "sell_price_per_unit": 5.00,
}
