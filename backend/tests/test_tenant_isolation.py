# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that cross-tenant access is denied for every
tenant-scoped resource.

These tests create two organizations (Org A with two branches, Org B with
one) and verify that:
1. A caller without a resolvable profile gets no tenant context at all
2. Rows of another organization, or of a sibling branch, are indistinguishable
   from rows that do not exist
3. Shared (branch NULL) warehouses are visible to every branch of their
   organization and to nobody else
4. Writes referencing foreign rows fail with not-found, never with a hint
"""

from dataclasses import FrozenInstanceError

import pytest
from stockroom import actions
from stockroom.errors import (
    ConfigurationError, ForbiddenError, NotFoundInScopeError, UnauthorizedError,
)
from stockroom.models import Sale, User
from stockroom.services import (
    movement_service, purchase_service, sales_service, warehouse_service,
)
from stockroom.services.tenant_service import (
    require_super_admin, require_tenant_context, resolve_tenant_context,
)

from conftest import identity


def sale_payload(customer, *lines):
    return {
        "customer_id": customer.id,
        "items": [
            {"product_id": p.id, "warehouse_id": w.id, "quantity": q, "unit_price_cents": price}
            for p, w, q, price in lines
        ],
    }


class TestTenantContextResolution:
    """Test resolve/require helpers in tenant_service."""

    def test_resolves_assignment_from_profile(self, db_session, user_a, org_a, branch_a1):
        ctx = resolve_tenant_context(user_a.id)

        assert ctx.user_id == user_a.id
        assert ctx.organization_id == org_a.id
        assert ctx.branch_id == branch_a1.id
        assert ctx.is_super_admin is False
        assert ctx.branch_name == "A1 Downtown"

    def test_missing_identity_resolves_to_none(self, db_session):
        assert resolve_tenant_context(None) is None

    def test_unknown_user_resolves_to_none(self, db_session):
        assert resolve_tenant_context(99999) is None

    def test_deactivated_user_resolves_to_none(self, db_session, user_a):
        user_a.is_active = False
        db_session.commit()

        assert resolve_tenant_context(user_a.id) is None

    def test_require_raises_unauthorized(self, db_session):
        with pytest.raises(UnauthorizedError) as excinfo:
            require_tenant_context(None)
        assert excinfo.value.status_code == 401

    def test_context_is_immutable(self, db_session, user_a):
        ctx = resolve_tenant_context(user_a.id)
        with pytest.raises(FrozenInstanceError):
            ctx.organization_id = 12345

    def test_require_super_admin(self, db_session, ctx_a, ctx_admin):
        assert require_super_admin(ctx_admin) is ctx_admin
        with pytest.raises(ForbiddenError):
            require_super_admin(ctx_a)


class TestScopedNotFound:
    """Foreign rows and missing rows must look exactly the same."""

    def test_sale_of_other_org_is_not_found(
        self, db_session, ctx_a, ctx_b, customer_a, product_a, warehouse_a, put_stock
    ):
        put_stock(product_a, warehouse_a, 10)
        sale = sales_service.create_sale(ctx_a, sale_payload(customer_a, (product_a, warehouse_a, 1, 100)))

        with pytest.raises(NotFoundInScopeError) as foreign:
            sales_service.get_sale(ctx_b, sale.id)
        with pytest.raises(NotFoundInScopeError) as missing:
            sales_service.get_sale(ctx_b, 99999)

        assert foreign.value.to_result() == missing.value.to_result()
        assert foreign.value.message == "Sale not found."

    def test_sale_of_sibling_branch_is_not_found(
        self, db_session, ctx_a, ctx_a2, customer_a, product_a, warehouse_a, put_stock
    ):
        put_stock(product_a, warehouse_a, 10)
        sale = sales_service.create_sale(ctx_a, sale_payload(customer_a, (product_a, warehouse_a, 1, 100)))

        with pytest.raises(NotFoundInScopeError):
            sales_service.get_sale(ctx_a2, sale.id)
        assert sales_service.list_sales(ctx_a2) == []
        assert [s.id for s in sales_service.list_sales(ctx_a)] == [sale.id]

    def test_foreign_sale_cannot_be_deleted(
        self, db_session, ctx_a, ctx_b, customer_a, product_a, warehouse_a, put_stock
    ):
        put_stock(product_a, warehouse_a, 10)
        sale = sales_service.create_sale(ctx_a, sale_payload(customer_a, (product_a, warehouse_a, 1, 100)))

        with pytest.raises(NotFoundInScopeError):
            sales_service.delete_sale(ctx_b, sale.id)
        assert db_session.get(Sale, sale.id) is not None

    def test_foreign_movement_is_not_found(self, db_session, ctx_a, ctx_b, product_a, warehouse_a):
        movement = movement_service.create_movement(ctx_a, {
            "product_id": product_a.id, "to_warehouse_id": warehouse_a.id, "quantity": 4,
        })

        with pytest.raises(NotFoundInScopeError) as excinfo:
            movement_service.delete_movement(ctx_b, movement.id)
        assert excinfo.value.message == "Movement not found."

    def test_foreign_purchase_order_is_not_found(self, db_session, ctx_a, ctx_b, product_a, warehouse_a):
        order = purchase_service.create_purchase_order(ctx_a, {
            "items": [{"product_id": product_a.id, "warehouse_id": warehouse_a.id,
                       "quantity": 3, "unit_price_cents": 60}],
        })

        with pytest.raises(NotFoundInScopeError) as excinfo:
            purchase_service.get_purchase_order(ctx_b, order.id)
        assert excinfo.value.message == "Purchase order not found."

        item_id = order.items[0].id
        with pytest.raises(NotFoundInScopeError):
            purchase_service.delete_purchase_item(ctx_b, item_id)


class TestWarehouseVisibility:
    """Branch-owned warehouses, shared warehouses and foreign warehouses."""

    def test_branch_sees_own_and_shared(
        self, db_session, ctx_a, ctx_a2, warehouse_a, shared_warehouse_a, warehouse_b
    ):
        seen_a1 = {w.id for w in warehouse_service.list_warehouses(ctx_a)}
        seen_a2 = {w.id for w in warehouse_service.list_warehouses(ctx_a2)}

        assert seen_a1 == {warehouse_a.id, shared_warehouse_a.id}
        assert seen_a2 == {shared_warehouse_a.id}

    def test_foreign_warehouse_is_not_found(self, db_session, ctx_a, warehouse_b):
        with pytest.raises(NotFoundInScopeError) as excinfo:
            warehouse_service.get_warehouse(ctx_a, warehouse_b.id)
        assert excinfo.value.message == "Warehouse not found."


class TestCrossTenantReferences:
    """Writes that reference another tenant's rows fail as not found."""

    def test_sale_with_foreign_customer(
        self, db_session, ctx_a, customer_b, product_a, warehouse_a, put_stock
    ):
        put_stock(product_a, warehouse_a, 10)

        with pytest.raises(NotFoundInScopeError) as excinfo:
            sales_service.create_sale(ctx_a, sale_payload(customer_b, (product_a, warehouse_a, 1, 100)))
        assert excinfo.value.message == "Customer not found."
        assert db_session.query(Sale).count() == 0

    def test_sale_with_foreign_product(
        self, db_session, ctx_a, customer_a, product_b, warehouse_a
    ):
        with pytest.raises(NotFoundInScopeError) as excinfo:
            sales_service.create_sale(ctx_a, sale_payload(customer_a, (product_b, warehouse_a, 1, 100)))
        assert excinfo.value.message == "Product not found."

    def test_sale_from_foreign_warehouse(
        self, db_session, ctx_a, customer_a, product_a, warehouse_b
    ):
        with pytest.raises(NotFoundInScopeError) as excinfo:
            sales_service.create_sale(ctx_a, sale_payload(customer_a, (product_a, warehouse_b, 1, 100)))
        assert excinfo.value.message == "Warehouse not found."

    def test_movement_into_foreign_warehouse(self, db_session, ctx_a, product_a, warehouse_b):
        with pytest.raises(NotFoundInScopeError):
            movement_service.create_movement(ctx_a, {
                "product_id": product_a.id, "to_warehouse_id": warehouse_b.id, "quantity": 1,
            })


class TestUnassignedUsers:
    """Non-super-admin profiles missing organization/branch."""

    def test_branchless_user_cannot_list_sales(self, db_session, org_a):
        floater = User(username="floater", organization_id=org_a.id, branch_id=None)
        db_session.add(floater)
        db_session.commit()
        ctx = resolve_tenant_context(floater.id)

        with pytest.raises(ConfigurationError):
            sales_service.list_sales(ctx)

    def test_branchless_user_sees_only_shared_warehouses(
        self, db_session, org_a, warehouse_a, shared_warehouse_a
    ):
        floater = User(username="floater", organization_id=org_a.id, branch_id=None)
        db_session.add(floater)
        db_session.commit()
        ctx = resolve_tenant_context(floater.id)

        assert [w.id for w in warehouse_service.list_warehouses(ctx)] == [shared_warehouse_a.id]

    def test_branchless_user_cannot_create_branch_warehouse(self, db_session, org_a):
        floater = User(username="floater", organization_id=org_a.id, branch_id=None)
        db_session.add(floater)
        db_session.commit()
        ctx = resolve_tenant_context(floater.id)

        with pytest.raises(ConfigurationError):
            warehouse_service.create_warehouse(ctx, {"name": "Loading dock"})

    def test_configuration_error_is_generic_to_caller(self, db_session, org_a, caplog):
        """The setup problem is logged; the caller only sees a generic failure."""
        floater = User(username="floater", organization_id=org_a.id, branch_id=None)
        db_session.add(floater)
        db_session.commit()

        result = actions.create_warehouse_action(floater.id, {"name": "Loading dock"})

        assert result.status_code == 500
        assert result == {"error": ConfigurationError.public_message}
        assert "branch" not in result["error"]
        assert "User must belong to a branch to create entities" in caplog.text

    def test_configuration_error_on_read_route(self, client, db_session, org_a, caplog):
        floater = User(username="floater", organization_id=org_a.id, branch_id=None)
        db_session.add(floater)
        db_session.commit()

        response = client.get("/api/sales", headers=identity(floater))

        assert response.status_code == 500
        assert response.get_json() == {"error": ConfigurationError.public_message}
        assert "User must belong to a branch" in caplog.text
