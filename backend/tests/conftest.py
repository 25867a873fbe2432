"""
Pytest fixtures for bizledger backend tests.

Provides test database setup, two tenants for isolation checks, item and
customer factories, and a test client with tenant headers.
"""

import pytest

from bizledger import create_app
from bizledger.extensions import db
from bizledger.services import customer_service, inventory_service, site_service
from bizledger.services.tenant_service import create_tenant


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LEDGER_RETRY_BASE_DELAY': 0,
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
def tenant_a(db_session):
    """Create Tenant A (first tenant)."""
    return create_tenant(name="Tenant A - Acme Hardware", code="ACME")


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """Create Tenant B (second tenant)."""
    return create_tenant(name="Tenant B - Beta Builders", code="BETA")


@pytest.fixture(scope='function')
def make_item(db_session):
    """Factory: catalog item with an opening balance."""
    counter = {"n": 0}

    def _make(tenant, *, quantity=10, min_stock_level=5, price_cents=1000, cost_price_cents=600, **kwargs):
        counter["n"] += 1
        kwargs.setdefault("sku", f"SKU-{counter['n']:03d}")
        kwargs.setdefault("name", f"Item {counter['n']}")
        return inventory_service.create_item(
            tenant_id=tenant.id,
            quantity=quantity,
            min_stock_level=min_stock_level,
            price_cents=price_cents,
            cost_price_cents=cost_price_cents,
            **kwargs,
        )

    return _make


@pytest.fixture(scope='function')
def item_a(make_item, tenant_a):
    """quantity=10, min_stock_level=5 (in-stock) in Tenant A."""
    return make_item(tenant_a, sku="CEM-50KG", name="Cement 50kg")


@pytest.fixture(scope='function')
def customer_a(db_session, tenant_a):
    return customer_service.create_customer(tenant_id=tenant_a.id, name="Jane Builder", email="jane@example.com")


@pytest.fixture(scope='function')
def site_a(db_session, tenant_a):
    return site_service.create_site(
        tenant_id=tenant_a.id, name="Riverside Block", project_code="RS-01", budget_cents=500_000
    )


@pytest.fixture(scope='function')
def tenant_headers():
    """Helper to build the gateway headers for a tenant."""
    def _headers(tenant, user_id=None) -> dict:
        headers = {'X-Tenant-Id': str(tenant.id)}
        if user_id is not None:
            headers['X-User-Id'] = str(user_id)
        return headers

    return _headers
