# Overview: Pytest coverage for the scope filter library and scope policies.

"""
Scope filter tests.

The filter functions are pure: they take a query and return a new one, and
only raise when a non-super-admin lacks the id the filter needs. Super admins
are unrestricted unless they ask for a specific organization/branch.
"""

import pytest
from stockroom.errors import ConfigurationError
from stockroom.models import Category, Customer, Product, Sale, SaleItem, Warehouse
from stockroom.services import sales_service
from stockroom.services.scope_service import (
    ScopeFilter, apply_branch_filter, apply_organization_filter,
    effective_scope, get_branch_defaults, get_organization_defaults,
    new_scoped, policy_for, scoped_query,
)
from stockroom.services.tenant_service import TenantContext


def make_ctx(organization_id=None, branch_id=None, super_admin=False):
    return TenantContext(
        user_id=1,
        is_super_admin=super_admin,
        organization_id=organization_id,
        branch_id=branch_id,
    )


class TestFilterLibrary:
    """apply_*_filter and *_defaults helpers."""

    def test_organization_filter_restricts(self, db_session, org_a, org_b, category_a, category_b):
        query = db_session.query(Category)
        filtered = apply_organization_filter(query, make_ctx(org_a.id, None))

        assert [c.id for c in filtered.all()] == [category_a.id]
        # the input query is left untouched
        assert query.count() == 2

    def test_super_admin_filter_is_noop(self, db_session, category_a, category_b):
        query = db_session.query(Category)
        assert apply_organization_filter(query, make_ctx(super_admin=True)) is query
        assert apply_branch_filter(query, make_ctx(super_admin=True)) is query

    def test_missing_organization_raises(self, db_session):
        with pytest.raises(ConfigurationError):
            apply_organization_filter(db_session.query(Category), make_ctx(None, None))

    def test_missing_branch_raises(self, db_session):
        with pytest.raises(ConfigurationError):
            apply_branch_filter(db_session.query(Sale), make_ctx(1, None))

    def test_defaults(self):
        assert get_organization_defaults(make_ctx(7, 3)) == {"organization_id": 7}
        assert get_branch_defaults(make_ctx(7, 3)) == {"branch_id": 3}

    def test_defaults_require_assignment(self):
        with pytest.raises(ConfigurationError):
            get_organization_defaults(make_ctx(None, None))
        with pytest.raises(ConfigurationError):
            get_branch_defaults(make_ctx(7, None))


class TestScopePolicies:
    """Registry lookups and row construction."""

    def test_unregistered_model_is_refused(self):
        from stockroom.models import ReconciliationEvent

        with pytest.raises(LookupError):
            policy_for(ReconciliationEvent)

    def test_new_scoped_stamps_tenant_columns(self, ctx_a, org_a, branch_a1):
        customer = new_scoped(Customer, ctx_a, name="Jordan")
        sale = new_scoped(Sale, ctx_a, total_amount_cents=0)

        assert customer.organization_id == org_a.id
        assert sale.branch_id == branch_a1.id

    def test_new_scoped_overrides_caller_values(self, ctx_a, org_a, org_b):
        product = new_scoped(Product, ctx_a, name="Spoofed", organization_id=org_b.id)
        assert product.organization_id == org_a.id

    def test_parent_scope_follows_header(
        self, db_session, ctx_a, ctx_b, customer_a, product_a, warehouse_a, put_stock
    ):
        put_stock(product_a, warehouse_a, 5)
        sales_service.create_sale(ctx_a, {
            "customer_id": customer_a.id,
            "items": [{"product_id": product_a.id, "warehouse_id": warehouse_a.id,
                       "quantity": 2, "unit_price_cents": 100}],
        })

        assert scoped_query(SaleItem, ctx_a).count() == 1
        assert scoped_query(SaleItem, ctx_b).count() == 0


class TestSuperAdminScopeFilter:
    """Explicit organization/branch requests are honoured for super admins only."""

    def test_unfiltered_super_admin_sees_everything(
        self, db_session, ctx_admin, category_a, category_b
    ):
        assert scoped_query(Category, ctx_admin).count() == 2

    def test_super_admin_can_narrow_to_organization(
        self, db_session, ctx_admin, org_b, category_a, category_b
    ):
        rows = scoped_query(Category, ctx_admin, ScopeFilter(organization_id=org_b.id)).all()
        assert [c.id for c in rows] == [category_b.id]

    def test_super_admin_branch_filter_includes_shared(
        self, db_session, ctx_admin, branch_a1, warehouse_a, shared_warehouse_a, warehouse_b
    ):
        rows = scoped_query(Warehouse, ctx_admin, ScopeFilter(branch_id=branch_a1.id)).all()
        assert {w.id for w in rows} == {warehouse_a.id, shared_warehouse_a.id}

    def test_super_admin_branch_filter_on_organization_table(
        self, db_session, ctx_admin, branch_b1, category_a, category_b
    ):
        rows = scoped_query(Category, ctx_admin, ScopeFilter(branch_id=branch_b1.id)).all()
        assert [c.id for c in rows] == [category_b.id]

    def test_requested_scope_ignored_for_regular_user(
        self, db_session, ctx_a, org_b, category_a, category_b
    ):
        rows = scoped_query(Category, ctx_a, ScopeFilter(organization_id=org_b.id)).all()
        assert [c.id for c in rows] == [category_a.id]

    def test_effective_scope(self, ctx_a, ctx_admin, org_a, branch_a1):
        requested = ScopeFilter(organization_id=999)
        assert effective_scope(ctx_admin, requested) == requested
        assert effective_scope(ctx_a, requested) == ScopeFilter(organization_id=org_a.id, branch_id=branch_a1.id)

    def test_scope_filter_from_query_args(self):
        assert ScopeFilter.from_mapping({"organization_id": "4", "branch_id": "all"}) == ScopeFilter(4, None)
        assert ScopeFilter.from_mapping({"branch_id": "x"}).is_empty
        assert ScopeFilter.from_mapping(None).is_empty
