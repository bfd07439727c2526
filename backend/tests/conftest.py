"""
Pytest fixtures for posledger backend tests.

Each test gets a fresh in-memory database, a test client and small factories
for catalog and chart-of-accounts rows.
"""

import pytest

from posledger import create_app
from posledger.extensions import db
from posledger.models import Product
from posledger.services import ledger_service


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'POST_CANCELLATION_REVERSALS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    yield db.session
    db.session.rollback()


@pytest.fixture(scope='function')
def default_accounts(db_session):
    """Seed the default chart of accounts."""
    accounts = ledger_service.ensure_default_accounts()
    db_session.commit()
    return {a.code: a for a in accounts}


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(name="Widget", price_cents=1000, stock=10, ...)."""
    counter = {"n": 0}

    def _make(name="Widget", price_cents=1000, cost_cents=0, stock=10, min_stock=2, **kwargs):
        counter["n"] += 1
        product = Product(
            sku=kwargs.pop("sku", f"TEST-{counter['n']:04d}"),
            name=name,
            price_cents=price_cents,
            cost_cents=cost_cents,
            stock=stock,
            min_stock=min_stock,
            **kwargs,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def fresh(db_session):
    """Reload a row from the database, bypassing the identity map."""
    def _fresh(model, obj_id):
        db_session.expire_all()
        return db_session.get(model, obj_id)

    return _fresh


@pytest.fixture(scope='function')
def balance_of(db_session):
    """Running balance of an account, in cents."""
    def _balance(code):
        db_session.expire_all()
        return ledger_service.get_account(code).balance_cents

    return _balance
