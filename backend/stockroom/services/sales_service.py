# Overview: Sale pipeline (create/delete) and sale read models.

"""
Sale pipeline.

    validate -> availability per item -> batch cost prices -> header -> items
    + conditional stock decrements -> signal sales/inventory/warehouses

PRICING:
- total_amount_cents  = sum(quantity * unit_price_cents)
- profit_amount_cents = sum(quantity * (unit_price_cents - cost_price_cents))
Cost prices are read once, in a single query restricted to the caller's
organization, and frozen into the sale. Later product price edits never touch
historical sales.

DELETE: removes the sale and its items and puts the sold quantities back into
the warehouses they were taken from.
"""
from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..errors import NotFoundInScopeError
from ..models import Customer, Product, Sale, SaleItem
from ..signals import INVENTORY, SALES, WAREHOUSES, invalidate
from ..validation import SaleInput, validate_sale
from .pipeline import PipelineState, WritePipeline, unit_of_work
from .scope_service import ScopeFilter, get_scoped_or_none, new_scoped, restrict, scoped_query
from .stock_service import apply_stock_delta, check_availability, resolve_warehouse
from .tenant_service import TenantContext


TOP_SELLING_LIMIT = 5


def _cost_prices(product_ids, ctx: TenantContext) -> dict[int, int]:
    rows = (
        scoped_query(Product, ctx)
        .filter(Product.id.in_(set(product_ids)))
        .with_entities(Product.id, Product.cost_price_cents)
        .all()
    )
    return {row.id: row.cost_price_cents for row in rows}


def compute_totals(data: SaleInput, cost_prices: dict[int, int]) -> tuple[int, int]:
    total = 0
    profit = 0
    for line in data.items:
        total += line.quantity * line.unit_price_cents
        profit += line.quantity * (line.unit_price_cents - cost_prices[line.product_id])
    return total, profit


def create_sale(ctx: TenantContext, payload) -> Sale:
    pipeline = WritePipeline(Sale, ctx, "sale")

    with pipeline.stage(PipelineState.VALIDATING):
        data = validate_sale(payload)

    with pipeline.stage(PipelineState.CHECKING):
        if get_scoped_or_none(Customer, ctx, data.customer_id) is None:
            raise NotFoundInScopeError("Customer not found.")

        cost_prices = _cost_prices((line.product_id for line in data.items), ctx)
        warehouses = {}
        for line in data.items:
            if line.product_id not in cost_prices:
                raise NotFoundInScopeError("Product not found.")
            if line.warehouse_id not in warehouses:
                warehouses[line.warehouse_id] = resolve_warehouse(line.warehouse_id, ctx)
            check_availability(line.product_id, line.warehouse_id, line.quantity, ctx)

        total, profit = compute_totals(data, cost_prices)

    def build_header():
        return new_sale(ctx, data, total, profit)

    def write_children(sale: Sale):
        for line in data.items:
            db.session.add(SaleItem(
                sale_id=sale.id,
                product_id=line.product_id,
                warehouse_id=line.warehouse_id,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
            ))
            apply_stock_delta(line.product_id, warehouses[line.warehouse_id], -line.quantity, ctx)
        db.session.flush()

    sale = pipeline.run(build_header, write_children)

    current_app.logger.info(
        "Sale %s created by user %s: %d items, total=%d profit=%d",
        sale.id, ctx.user_id, len(data.items), total, profit,
    )
    invalidate(SALES, INVENTORY, WAREHOUSES)
    return sale


def new_sale(ctx: TenantContext, data: SaleInput, total: int, profit: int) -> Sale:
    return new_scoped(
        Sale,
        ctx,
        customer_id=data.customer_id,
        user_id=ctx.user_id,
        total_amount_cents=total,
        profit_amount_cents=profit,
        notes=data.notes,
    )


def get_sale(ctx: TenantContext, sale_id: int) -> Sale:
    sale = get_scoped_or_none(Sale, ctx, sale_id)
    if sale is None:
        raise NotFoundInScopeError("Sale not found.")
    return sale


def delete_sale(ctx: TenantContext, sale_id: int) -> None:
    sale = get_sale(ctx, sale_id)

    with unit_of_work("delete sale"):
        for item in sale.items:
            apply_stock_delta(item.product_id, item.warehouse, item.quantity, ctx)
        db.session.delete(sale)

    current_app.logger.info("Sale %s deleted by user %s; stock restored", sale_id, ctx.user_id)
    invalidate(SALES, INVENTORY, WAREHOUSES)


def get_sale_for_invoice(ctx: TenantContext, sale_id: int) -> dict:
    sale = get_sale(ctx, sale_id)
    branch = sale.branch
    return {
        "sale": sale.to_dict(include_items=True),
        "customer": sale.customer.to_dict() if sale.customer else None,
        "branch": branch.to_dict() if branch else None,
    }


def list_sales(
    ctx: TenantContext,
    requested: ScopeFilter | None = None,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 200,
) -> list[Sale]:
    query = scoped_query(Sale, ctx, requested).options(
        joinedload(Sale.customer),
        joinedload(Sale.user),
    )
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at <= end)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()


def get_top_selling_products(
    ctx: TenantContext,
    requested: ScopeFilter | None = None,
    limit: int = TOP_SELLING_LIMIT,
) -> list[dict]:
    """Products ranked by quantity sold within the caller's (or requested) scope."""
    quantity = func.sum(SaleItem.quantity).label("total_quantity")
    revenue = func.sum(SaleItem.quantity * SaleItem.unit_price_cents).label("total_revenue_cents")

    query = db.session.query(SaleItem.product_id, Product.name, quantity, revenue).join(
        Product, Product.id == SaleItem.product_id
    )
    query = restrict(query, SaleItem, ctx, requested)

    rows = (
        query.group_by(SaleItem.product_id, Product.name)
        .order_by(quantity.desc(), SaleItem.product_id)
        .limit(limit)
        .all()
    )
    return [
        {
            "product_id": row.product_id,
            "product_name": row.name,
            "total_quantity": int(row.total_quantity or 0),
            "total_revenue_cents": int(row.total_revenue_cents or 0),
        }
        for row in rows
    ]
