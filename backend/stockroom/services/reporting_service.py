# Overview: Read-only aggregates for dashboards and reports.

"""
Reporting.

Valuation uses the current product prices against the current on-hand stock:
    total_cost       = sum(quantity * cost_price_cents)
    total_revenue    = sum(quantity * selling_price_cents)
    projected_profit = total_revenue - total_cost

Sales and purchase summaries use the snapshot amounts stored on the headers,
never current prices.

Every query is restricted through the scope policy of the table it
aggregates, so a report never covers rows the caller could not list.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import (
    Product, ProductStock, PurchaseOrder, PurchaseOrderItem, Sale, SaleItem, Warehouse,
)
from .scope_service import ScopeFilter, restrict
from .tenant_service import TenantContext


def _valuation_columns():
    cost = func.coalesce(func.sum(ProductStock.quantity * Product.cost_price_cents), 0)
    revenue = func.coalesce(func.sum(ProductStock.quantity * Product.selling_price_cents), 0)
    return cost.label("total_cost"), revenue.label("total_revenue")


def _valuation(total_cost, total_revenue) -> dict:
    total_cost = int(total_cost or 0)
    total_revenue = int(total_revenue or 0)
    return {
        "total_cost": total_cost,
        "total_revenue": total_revenue,
        "projected_profit": total_revenue - total_cost,
    }


def warehouse_valuation(ctx: TenantContext, requested: ScopeFilter | None = None) -> list[dict]:
    """Per-warehouse valuation of the stock visible to the caller."""
    cost, revenue = _valuation_columns()
    query = (
        db.session.query(Warehouse.id, Warehouse.name, cost, revenue)
        .select_from(ProductStock)
        .join(Product, Product.id == ProductStock.product_id)
        .join(Warehouse, Warehouse.id == ProductStock.warehouse_id)
    )
    rows = (
        restrict(query, ProductStock, ctx, requested)
        .group_by(Warehouse.id, Warehouse.name)
        .order_by(Warehouse.name)
        .all()
    )
    return [
        {"warehouse_id": row.id, "warehouse_name": row.name, **_valuation(row.total_cost, row.total_revenue)}
        for row in rows
    ]


def stock_valuation_totals(ctx: TenantContext, requested: ScopeFilter | None = None) -> dict:
    """Dashboard totals: the same valuation summed across the whole scope."""
    cost, revenue = _valuation_columns()
    query = (
        db.session.query(cost, revenue)
        .select_from(ProductStock)
        .join(Product, Product.id == ProductStock.product_id)
    )
    row = restrict(query, ProductStock, ctx, requested).one()
    return _valuation(row.total_cost, row.total_revenue)


def _date_range(query, column, start: datetime | None, end: datetime | None):
    if start is not None:
        query = query.filter(column >= start)
    if end is not None:
        query = query.filter(column <= end)
    return query


def sales_summary(
    ctx: TenantContext,
    requested: ScopeFilter | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict:
    query = db.session.query(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total_amount_cents), 0),
        func.coalesce(func.sum(Sale.profit_amount_cents), 0),
    )
    query = _date_range(restrict(query, Sale, ctx, requested), Sale.created_at, start, end)
    count, total, profit = query.one()
    return {
        "sales_count": int(count or 0),
        "total_amount_cents": int(total or 0),
        "profit_amount_cents": int(profit or 0),
    }


def purchase_summary(
    ctx: TenantContext,
    requested: ScopeFilter | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict:
    query = db.session.query(
        func.count(PurchaseOrder.id),
        func.coalesce(func.sum(PurchaseOrder.total_amount_cents), 0),
    )
    query = _date_range(restrict(query, PurchaseOrder, ctx, requested), PurchaseOrder.created_at, start, end)
    count, total = query.one()
    return {"purchase_orders_count": int(count or 0), "total_amount_cents": int(total or 0)}


def get_stock_flow_data(ctx: TenantContext, requested: ScopeFilter | None = None) -> list[dict]:
    """
    Daily inbound (purchased) vs outbound (sold) quantities, oldest day first.

    Grouped in Python on the header's created_at date so the same code runs on
    SQLite and Postgres.
    """
    inbound = restrict(
        db.session.query(PurchaseOrder.created_at, PurchaseOrderItem.quantity)
        .select_from(PurchaseOrderItem)
        .join(PurchaseOrder, PurchaseOrder.id == PurchaseOrderItem.purchase_order_id),
        PurchaseOrder,
        ctx,
        requested,
    ).all()
    outbound = restrict(
        db.session.query(Sale.created_at, SaleItem.quantity)
        .select_from(SaleItem)
        .join(Sale, Sale.id == SaleItem.sale_id),
        Sale,
        ctx,
        requested,
    ).all()

    flow: dict[str, dict] = {}
    for rows, key in ((inbound, "inbound"), (outbound, "outbound")):
        for created_at, quantity in rows:
            day = created_at.date().isoformat()
            entry = flow.setdefault(day, {"date": day, "inbound": 0, "outbound": 0})
            entry[key] += quantity

    return [flow[day] for day in sorted(flow)]
