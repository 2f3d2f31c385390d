"""
Pytest fixtures for storefront backend tests.

Provides an in-memory database, test client, catalog row factories and a
fake payment gateway.
"""

import pytest
from storefront import create_app
from storefront.extensions import db
from storefront.models import Product, ProductDependency, Variant

from fakes import FakeGateway


WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'PAYMENTS_WEBHOOK_SECRET': WEBHOOK_SECRET,
        'PAYMENTS_API_KEY': 'sk_test',
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
def gateway(app):
    """Swap the payment gateway for a recording fake."""
    original = app.extensions["payment_gateway"]
    fake = FakeGateway()
    app.extensions["payment_gateway"] = fake
    yield fake
    app.extensions["payment_gateway"] = original


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory for released, for-sale products."""
    def _make(product_id, **overrides):
        values = {
            "id": product_id,
            "name": product_id.replace("-", " ").title(),
            "category": "modules",
            "base_price_cents": 10000,
            "sell_status": "for-sale",
            "dev_status": 5,
            "is_live": True,
        }
        values.update(overrides)
        product = Product(**values)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def make_variant(db_session):
    def _make(variant_id, product_id, **overrides):
        values = {
            "id": variant_id,
            "product_id": product_id,
            "variant_type": "color",
            "variant_value": variant_id.upper(),
        }
        values.update(overrides)
        variant = Variant(**values)
        db_session.add(variant)
        db_session.commit()
        return variant
    return _make


@pytest.fixture(scope='function')
def make_dependency(db_session):
    def _make(product_id, depends_on_product_id, dependency_type, message=None):
        edge = ProductDependency(
            product_id=product_id,
            depends_on_product_id=depends_on_product_id,
            dependency_type=dependency_type,
            message=message,
        )
        db_session.add(edge)
        db_session.commit()
        return edge
    return _make
