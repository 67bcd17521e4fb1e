# Overview: Pytest coverage for referential delete guards and catalog/warehouse CRUD.

import pytest
from stockroom import actions
from stockroom.errors import DeleteBlockedError, NotFoundInScopeError, ValidationError
from stockroom.models import Category, Product, ProductStock, Warehouse
from stockroom.services import catalog_service, movement_service, warehouse_service
from stockroom.services.guard_service import has_dependents


class TestGuardHelpers:
    def test_has_dependents(self, db_session, category_a, product_a):
        assert has_dependents(db_session.query(Product.id).filter(Product.category_id == category_a.id))
        assert not has_dependents(db_session.query(Product.id).filter(Product.category_id == -1))


class TestCategoryDelete:
    """Categories with products cannot be deleted."""

    def test_blocked_while_products_exist(self, db_session, ctx_a, category_a, product_a):
        with pytest.raises(DeleteBlockedError) as excinfo:
            catalog_service.delete_category(ctx_a, category_a.id)

        assert excinfo.value.status_code == 409
        assert excinfo.value.reason == (
            "Cannot delete category that has products. Please reassign or delete the products first."
        )
        assert db_session.get(Category, category_a.id) is not None

    def test_empty_category_is_deleted(self, db_session, ctx_a, category_a):
        catalog_service.delete_category(ctx_a, category_a.id)
        assert db_session.query(Category).count() == 0

    def test_foreign_category_is_not_found(self, db_session, ctx_b, category_a):
        with pytest.raises(NotFoundInScopeError) as excinfo:
            catalog_service.delete_category(ctx_b, category_a.id)
        assert excinfo.value.message == "Category not found."

    def test_action_reports_reason(self, db_session, user_a, category_a, product_a):
        result = actions.delete_category_action(user_a.id, category_a.id)

        assert result.status_code == 409
        assert result["error"].startswith("Cannot delete category that has products.")


class TestProductDelete:
    """Products with history cannot be deleted."""

    def test_blocked_by_stock(self, db_session, ctx_a, product_a, warehouse_a, put_stock):
        put_stock(product_a, warehouse_a, 0)

        with pytest.raises(DeleteBlockedError):
            catalog_service.delete_product(ctx_a, product_a.id)

    def test_unused_product_is_deleted(self, db_session, ctx_a, product_a):
        catalog_service.delete_product(ctx_a, product_a.id)
        assert db_session.query(Product).count() == 0


class TestWarehouseDelete:
    """Warehouses holding stock or history cannot be deleted."""

    def test_blocked_by_stock(self, db_session, ctx_a, product_a, warehouse_a, put_stock):
        put_stock(product_a, warehouse_a, 3)

        with pytest.raises(DeleteBlockedError) as excinfo:
            warehouse_service.delete_warehouse(ctx_a, warehouse_a.id)
        assert excinfo.value.reason == (
            "Cannot delete warehouse that has stock. Please transfer or remove the stock first."
        )

    def test_blocked_by_movement_history(self, db_session, ctx_a, product_a, warehouse_a, shared_warehouse_a):
        # movement created in the shared warehouse, then its stock record removed by hand
        movement_service.create_movement(ctx_a, {
            "product_id": product_a.id, "from_warehouse_id": "none",
            "to_warehouse_id": shared_warehouse_a.id, "quantity": 1,
        })
        db_session.query(ProductStock).delete()
        db_session.commit()

        with pytest.raises(DeleteBlockedError) as excinfo:
            warehouse_service.delete_warehouse(ctx_a, shared_warehouse_a.id)
        assert excinfo.value.reason == (
            "Cannot delete warehouse that is referenced by movements, sales or purchases."
        )

    def test_empty_warehouse_is_deleted(self, db_session, ctx_a, warehouse_a):
        warehouse_service.delete_warehouse(ctx_a, warehouse_a.id)
        assert db_session.query(Warehouse).count() == 0


class TestCatalogWrites:
    """Create/update paths with validation."""

    def test_create_product(self, db_session, ctx_a, category_a, org_a):
        product = catalog_service.create_product(ctx_a, {
            "name": "Oat Latte",
            "barcode": "A-00077",
            "category_id": category_a.id,
            "cost_price_cents": 120,
            "selling_price_cents": 350,
        })
        assert product.organization_id == org_a.id

    def test_selling_below_cost_rejected(self, db_session, ctx_a, category_a):
        with pytest.raises(ValidationError) as excinfo:
            catalog_service.create_product(ctx_a, {
                "name": "Loss Leader",
                "barcode": "A-00078",
                "category_id": category_a.id,
                "cost_price_cents": 200,
                "selling_price_cents": 100,
            })
        assert excinfo.value.details == ["Selling price cannot be less than cost price"]

    def test_foreign_category_rejected(self, db_session, ctx_a, category_b):
        with pytest.raises(NotFoundInScopeError):
            catalog_service.create_product(ctx_a, {
                "name": "Smuggled",
                "barcode": "A-00079",
                "category_id": category_b.id,
                "cost_price_cents": 1,
                "selling_price_cents": 1,
            })

    def test_inventory_listing(self, db_session, ctx_a, product_a, warehouse_a, shared_warehouse_a, put_stock):
        put_stock(product_a, warehouse_a, 3)
        put_stock(product_a, shared_warehouse_a, 4)

        rows = catalog_service.list_inventory(ctx_a)

        assert rows[0]["category"] == "Beverages"
        assert rows[0]["stock"] == 7

    def test_create_party_validation(self, db_session, user_a):
        result = actions.create_customer_action(user_a.id, {"name": "Al"})
        assert result.status_code == 400
        assert result["details"] == ["Name must be at least 3 characters"]


class TestWarehouseWrites:
    """Branch-owned vs shared warehouses."""

    def test_branch_warehouse(self, db_session, ctx_a, branch_a1):
        warehouse = warehouse_service.create_warehouse(ctx_a, {"name": "Cold room", "location": "Basement"})
        assert warehouse.branch_id == branch_a1.id
        assert warehouse.is_shared is False

    def test_shared_warehouse(self, db_session, ctx_a, org_a):
        warehouse = warehouse_service.create_warehouse(ctx_a, {"name": "Central", "is_shared": True})
        assert warehouse.branch_id is None
        assert warehouse.organization_id == org_a.id

    def test_update_cannot_change_sharing(self, db_session, ctx_a, warehouse_a, branch_a1):
        updated = warehouse_service.update_warehouse(
            ctx_a, warehouse_a.id, {"name": "Renamed", "is_shared": True}
        )
        assert updated.name == "Renamed"
        assert updated.branch_id == branch_a1.id

    def test_page_data(self, db_session, ctx_a, product_a, warehouse_a, shared_warehouse_a, put_stock):
        put_stock(product_a, warehouse_a, 6)
        movement_service.create_movement(ctx_a, {
            "product_id": product_a.id, "from_warehouse_id": warehouse_a.id,
            "to_warehouse_id": shared_warehouse_a.id, "quantity": 2,
        })

        data = warehouse_service.get_warehouse_page_data(ctx_a)

        totals = {row["id"]: row for row in data["warehouse_totals"]}
        assert totals[warehouse_a.id]["total_quantity"] == 4
        assert totals[shared_warehouse_a.id]["total_items"] == 1
        assert data["locked_stocks"] == sorted([
            [product_a.id, warehouse_a.id],
            [product_a.id, shared_warehouse_a.id],
        ])
