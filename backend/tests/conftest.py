"""
Pytest fixtures for stockroom backend tests.

Provides test database setup, two-tenant fixtures, and test client.

Tenant layout:
    org_a: branch_a1 (user_a, warehouse_a, warehouse_a_extra), branch_a2 (user_a2),
           shared_warehouse_a (branch NULL), category_a, product_a, product_a2,
           customer_a, supplier_a
    org_b: branch_b1 (user_b, warehouse_b), category_b, product_b, customer_b
    super_admin: no organization/branch
"""

import pytest
from stockroom import create_app
from stockroom.extensions import db
from stockroom.models import (
    Branch, Category, Customer, Organization, Product, ProductStock, Supplier,
    User, Warehouse,
)
from stockroom.services.tenant_service import resolve_tenant_context


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'INVENTORY_WRITE_MODE': 'atomic',
        'COMPENSATION_BACKOFF_SECONDS': 0,
        'LOW_STOCK_THRESHOLD': 0,
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
def compensating_mode(app, monkeypatch):
    """Run the test with header-first writes and compensating deletes."""
    monkeypatch.setitem(app.config, 'INVENTORY_WRITE_MODE', 'compensating')


@pytest.fixture(scope='function')
def low_stock_alerts(app, monkeypatch):
    """Alert when a decrement takes a stock record below 5 units."""
    monkeypatch.setitem(app.config, 'LOW_STOCK_THRESHOLD', 5)


def _add(session, row):
    session.add(row)
    session.commit()
    return row


# ---------------------------------------------------------------------------
# Tenants
# ---------------------------------------------------------------------------

@pytest.fixture(scope='function')
def org_a(db_session):
    """Create Organization A (first tenant)."""
    return _add(db_session, Organization(name="Org A - Acme Corp", is_active=True))


@pytest.fixture(scope='function')
def org_b(db_session):
    """Create Organization B (second tenant)."""
    return _add(db_session, Organization(name="Org B - Beta Inc", is_active=True))


@pytest.fixture(scope='function')
def branch_a1(db_session, org_a):
    return _add(db_session, Branch(organization_id=org_a.id, name="A1 Downtown"))


@pytest.fixture(scope='function')
def branch_a2(db_session, org_a):
    return _add(db_session, Branch(organization_id=org_a.id, name="A2 Airport"))


@pytest.fixture(scope='function')
def branch_b1(db_session, org_b):
    return _add(db_session, Branch(organization_id=org_b.id, name="B1 Harbour"))


@pytest.fixture(scope='function')
def user_a(db_session, org_a, branch_a1):
    """User in Organization A, branch A1."""
    return _add(db_session, User(
        username="user_a", full_name="Alex Acme",
        organization_id=org_a.id, branch_id=branch_a1.id,
    ))


@pytest.fixture(scope='function')
def user_a2(db_session, org_a, branch_a2):
    """User in Organization A, branch A2."""
    return _add(db_session, User(
        username="user_a2", full_name="Sam Airport",
        organization_id=org_a.id, branch_id=branch_a2.id,
    ))


@pytest.fixture(scope='function')
def user_b(db_session, org_b, branch_b1):
    """User in Organization B, branch B1."""
    return _add(db_session, User(
        username="user_b", full_name="Blake Beta",
        organization_id=org_b.id, branch_id=branch_b1.id,
    ))


@pytest.fixture(scope='function')
def super_admin(db_session):
    return _add(db_session, User(username="root", full_name="Root", is_super_admin=True))


@pytest.fixture(scope='function')
def ctx_a(user_a):
    return resolve_tenant_context(user_a.id)


@pytest.fixture(scope='function')
def ctx_a2(user_a2):
    return resolve_tenant_context(user_a2.id)


@pytest.fixture(scope='function')
def ctx_b(user_b):
    return resolve_tenant_context(user_b.id)


@pytest.fixture(scope='function')
def ctx_admin(super_admin):
    return resolve_tenant_context(super_admin.id)


# ---------------------------------------------------------------------------
# Catalog + warehouses
# ---------------------------------------------------------------------------

@pytest.fixture(scope='function')
def category_a(db_session, org_a):
    return _add(db_session, Category(organization_id=org_a.id, name="Beverages"))


@pytest.fixture(scope='function')
def category_b(db_session, org_b):
    return _add(db_session, Category(organization_id=org_b.id, name="Hardware"))


@pytest.fixture(scope='function')
def product_a(db_session, org_a, category_a):
    """Cost 60, sells for 100."""
    return _add(db_session, Product(
        organization_id=org_a.id, category_id=category_a.id,
        name="Cold Brew", barcode="A-00001",
        cost_price_cents=60, selling_price_cents=100,
    ))


@pytest.fixture(scope='function')
def product_a2(db_session, org_a, category_a):
    """Cost 50, sells for 50."""
    return _add(db_session, Product(
        organization_id=org_a.id, category_id=category_a.id,
        name="Sparkling Water", barcode="A-00002",
        cost_price_cents=50, selling_price_cents=50,
    ))


@pytest.fixture(scope='function')
def product_b(db_session, org_b, category_b):
    return _add(db_session, Product(
        organization_id=org_b.id, category_id=category_b.id,
        name="Hex Bolt", barcode="B-00001",
        cost_price_cents=10, selling_price_cents=25,
    ))


@pytest.fixture(scope='function')
def warehouse_a(db_session, org_a, branch_a1):
    return _add(db_session, Warehouse(organization_id=org_a.id, branch_id=branch_a1.id, name="A1 Backroom"))


@pytest.fixture(scope='function')
def warehouse_a_extra(db_session, org_a, branch_a1):
    return _add(db_session, Warehouse(organization_id=org_a.id, branch_id=branch_a1.id, name="A1 Cellar"))


@pytest.fixture(scope='function')
def shared_warehouse_a(db_session, org_a):
    return _add(db_session, Warehouse(organization_id=org_a.id, branch_id=None, name="A Central"))


@pytest.fixture(scope='function')
def warehouse_b(db_session, org_b, branch_b1):
    return _add(db_session, Warehouse(organization_id=org_b.id, branch_id=branch_b1.id, name="B1 Yard"))


@pytest.fixture(scope='function')
def customer_a(db_session, org_a):
    return _add(db_session, Customer(organization_id=org_a.id, name="Walk-in Customer"))


@pytest.fixture(scope='function')
def customer_b(db_session, org_b):
    return _add(db_session, Customer(organization_id=org_b.id, name="Beta Builder"))


@pytest.fixture(scope='function')
def supplier_a(db_session, org_a):
    return _add(db_session, Supplier(organization_id=org_a.id, name="Acme Wholesale"))


@pytest.fixture(scope='function')
def put_stock(db_session):
    """Seed a ProductStock row directly (bypasses the services)."""
    def _put(product, warehouse, quantity):
        return _add(db_session, ProductStock(
            organization_id=warehouse.organization_id,
            branch_id=warehouse.branch_id,
            product_id=product.id,
            warehouse_id=warehouse.id,
            quantity=quantity,
        ))
    return _put


def quantity_of(product_id, warehouse_id):
    """Current on-hand quantity read straight from the table (None if no record)."""
    return (
        db.session.query(ProductStock.quantity)
        .filter_by(product_id=product_id, warehouse_id=warehouse_id)
        .scalar()
    )


def identity(user) -> dict:
    """Headers the upstream auth proxy would set for this user."""
    return {'X-User-Id': str(user.id)}
