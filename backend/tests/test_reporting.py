# Overview: Pytest coverage for valuation and summary reports.

from datetime import timedelta

from stockroom.services import purchase_service, reporting_service, sales_service
from stockroom.services.scope_service import ScopeFilter
from stockroom.time_utils import utcnow


def receive(ctx, product, warehouse, quantity, price):
    return purchase_service.create_purchase_order(ctx, {
        "items": [{"product_id": product.id, "warehouse_id": warehouse.id,
                   "quantity": quantity, "unit_price_cents": price}],
    })


def sell(ctx, customer, product, warehouse, quantity, price):
    return sales_service.create_sale(ctx, {
        "customer_id": customer.id,
        "items": [{"product_id": product.id, "warehouse_id": warehouse.id,
                   "quantity": quantity, "unit_price_cents": price}],
    })


class TestValuation:
    """Current stock valued at current prices."""

    def test_totals(self, db_session, ctx_a, product_a, product_a2, warehouse_a, shared_warehouse_a, put_stock):
        put_stock(product_a, warehouse_a, 3)          # cost 60, sells 100
        put_stock(product_a2, shared_warehouse_a, 2)  # cost 50, sells 50

        totals = reporting_service.stock_valuation_totals(ctx_a)

        assert totals == {"total_cost": 280, "total_revenue": 400, "projected_profit": 120}

    def test_per_warehouse(self, db_session, ctx_a, product_a, product_a2, warehouse_a, shared_warehouse_a, put_stock):
        put_stock(product_a, warehouse_a, 3)
        put_stock(product_a2, shared_warehouse_a, 2)

        rows = {row["warehouse_id"]: row for row in reporting_service.warehouse_valuation(ctx_a)}

        assert rows[warehouse_a.id]["total_cost"] == 180
        assert rows[shared_warehouse_a.id]["projected_profit"] == 0

    def test_other_tenants_excluded(
        self, db_session, ctx_a, ctx_b, product_a, product_b, warehouse_a, warehouse_b, put_stock
    ):
        put_stock(product_a, warehouse_a, 3)
        put_stock(product_b, warehouse_b, 100)

        assert reporting_service.stock_valuation_totals(ctx_b) == {
            "total_cost": 1000, "total_revenue": 2500, "projected_profit": 1500,
        }
        assert reporting_service.stock_valuation_totals(ctx_a)["total_cost"] == 180

    def test_super_admin_scope_filter(
        self, db_session, ctx_admin, org_a, product_a, product_b, warehouse_a, warehouse_b, put_stock
    ):
        put_stock(product_a, warehouse_a, 3)
        put_stock(product_b, warehouse_b, 100)

        assert reporting_service.stock_valuation_totals(ctx_admin)["total_cost"] == 1180
        narrowed = reporting_service.stock_valuation_totals(ctx_admin, ScopeFilter(organization_id=org_a.id))
        assert narrowed["total_cost"] == 180


class TestSummaries:
    """Snapshot amounts from sale and purchase order headers."""

    def test_sales_summary(self, db_session, ctx_a, ctx_a2, customer_a, product_a, warehouse_a, put_stock):
        put_stock(product_a, warehouse_a, 10)
        sell(ctx_a, customer_a, product_a, warehouse_a, 2, 100)
        sell(ctx_a, customer_a, product_a, warehouse_a, 1, 90)

        assert reporting_service.sales_summary(ctx_a) == {
            "sales_count": 2, "total_amount_cents": 290, "profit_amount_cents": 110,
        }
        assert reporting_service.sales_summary(ctx_a2)["sales_count"] == 0

    def test_date_range_excludes_future(self, db_session, ctx_a, product_a, warehouse_a):
        receive(ctx_a, product_a, warehouse_a, 5, 60)

        tomorrow = utcnow() + timedelta(days=1)
        assert reporting_service.purchase_summary(ctx_a, start=tomorrow)["purchase_orders_count"] == 0
        assert reporting_service.purchase_summary(ctx_a) == {
            "purchase_orders_count": 1, "total_amount_cents": 300,
        }

    def test_stock_flow(self, db_session, ctx_a, customer_a, product_a, warehouse_a):
        receive(ctx_a, product_a, warehouse_a, 5, 60)
        sell(ctx_a, customer_a, product_a, warehouse_a, 2, 100)

        flow = reporting_service.get_stock_flow_data(ctx_a)

        assert len(flow) == 1
        assert flow[0]["inbound"] == 5
        assert flow[0]["outbound"] == 2
