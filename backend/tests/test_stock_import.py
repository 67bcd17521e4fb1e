# Overview: Pytest coverage for bulk stock imports by product id or barcode.

import pytest
from stockroom import actions
from stockroom.errors import ValidationError
from stockroom.services import stock_service

from conftest import identity, quantity_of


def row(warehouse, quantity, product=None, barcode=None):
    return {
        "product_id": product.id if product else "",
        "barcode": barcode or "",
        "warehouse_id": warehouse.id,
        "quantity": quantity,
    }


class TestBulkSetStockLevels:
    """Rows are applied one by one; bad rows are reported, not fatal."""

    def test_by_id_and_barcode(self, db_session, ctx_a, product_a, product_a2, warehouse_a, put_stock):
        put_stock(product_a, warehouse_a, 40)

        result = stock_service.bulk_set_stock_levels(ctx_a, [
            row(warehouse_a, 12, product=product_a),
            row(warehouse_a, 7, barcode="A-00002"),
        ])

        assert result == {"count": 2, "errors": []}
        assert quantity_of(product_a.id, warehouse_a.id) == 12
        assert quantity_of(product_a2.id, warehouse_a.id) == 7

    def test_product_id_wins_over_barcode(self, db_session, ctx_a, product_a, product_a2, warehouse_a):
        stock_service.bulk_set_stock_levels(ctx_a, [row(warehouse_a, 3, product=product_a, barcode="A-00002")])

        assert quantity_of(product_a.id, warehouse_a.id) == 3
        assert quantity_of(product_a2.id, warehouse_a.id) is None

    def test_bad_rows_are_reported(self, db_session, ctx_a, product_a, product_b, warehouse_a, warehouse_b):
        result = stock_service.bulk_set_stock_levels(ctx_a, {"rows": [
            row(warehouse_a, 5, product=product_a),
            row(warehouse_a, 5, barcode="B-00001"),
            row(warehouse_b, 5, product=product_a),
            row(warehouse_a, -1, product=product_a),
            {"warehouse_id": warehouse_a.id, "quantity": 1},
            "not a row",
        ]})

        assert result["count"] == 1
        assert result["errors"] == [
            "Row 2: Product not found for barcode B-00001.",
            "Row 3: Warehouse not found.",
            "Row 4: Quantity cannot be negative.",
            "Row 5: product_id or barcode is required",
            "Row 6: Row is invalid",
        ]
        assert quantity_of(product_a.id, warehouse_a.id) == 5
        assert quantity_of(product_a.id, warehouse_b.id) is None

    def test_nothing_applied_fails(self, db_session, ctx_a, warehouse_a):
        with pytest.raises(ValidationError) as excinfo:
            stock_service.bulk_set_stock_levels(ctx_a, [row(warehouse_a, 1, barcode="NOPE-1")])

        assert excinfo.value.message == "Failed to update stock."
        assert excinfo.value.details == ["Row 1: Product not found for barcode NOPE-1."]

    def test_empty_import_rejected(self, db_session, ctx_a):
        with pytest.raises(ValidationError) as excinfo:
            stock_service.bulk_set_stock_levels(ctx_a, [])
        assert excinfo.value.details == ["At least one stock row is required"]


class TestImportAction:
    def test_result_shape(self, db_session, user_a, product_a, warehouse_a):
        result = actions.bulk_update_stock_action(user_a.id, [
            row(warehouse_a, 4, product=product_a),
            row(warehouse_a, 4, barcode="A-99999"),
        ])

        assert result.status_code == 200
        assert result == {
            "success": True,
            "count": 1,
            "errors": ["Row 2: Product not found for barcode A-99999."],
        }

    def test_route(self, client, db_session, user_a, product_a, warehouse_a):
        response = client.post("/api/stock/import", json=[row(warehouse_a, 9, barcode="A-00001")],
                               headers=identity(user_a))

        assert response.status_code == 200
        assert response.get_json()["count"] == 1
        assert quantity_of(product_a.id, warehouse_a.id) == 9

    def test_route_all_rows_failed(self, client, db_session, user_a, warehouse_a):
        response = client.post("/api/stock/import", json=[row(warehouse_a, 9, barcode="A-77777")],
                               headers=identity(user_a))

        assert response.status_code == 400
        assert response.get_json()["details"] == ["Row 1: Product not found for barcode A-77777."]
