# Overview: Purchase order pipeline (receiving stock) and purchase order read models.

"""
Purchase order pipeline.

Same shape as the sale pipeline without the availability check: receiving
goods only ever adds stock. total_amount_cents = sum(quantity * unit_price).

EDITS:
- update_purchase_order replaces header fields and the full item list. The new
  items' stock is added before the old items' stock is taken back out, so
  re-saving an unchanged order never trips the availability rule.
- update_purchase_item / delete_purchase_item correct a single line and
  recompute the header total. Their stock effect is the difference.
- delete_purchase_order removes the order and its items but leaves stock as
  it is: the goods physically arrived and the stock stays for audit.
"""
from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import NotFoundInScopeError
from ..models import Product, PurchaseOrder, PurchaseOrderItem, Supplier
from ..signals import INVENTORY, PURCHASES, WAREHOUSES, invalidate
from ..validation import (
    PurchaseOrderInput, validate_purchase_item_update, validate_purchase_order,
)
from .pipeline import PipelineState, WritePipeline, unit_of_work
from .scope_service import ScopeFilter, get_scoped_or_none, new_scoped, scoped_query
from .stock_service import apply_stock_delta, resolve_warehouse
from .tenant_service import TenantContext


def _check_references(data: PurchaseOrderInput, ctx: TenantContext) -> dict:
    """Resolve supplier, products and warehouses in scope. Returns warehouses by id."""
    if data.supplier_id is not None and get_scoped_or_none(Supplier, ctx, data.supplier_id) is None:
        raise NotFoundInScopeError("Supplier not found.")

    product_ids = {line.product_id for line in data.items}
    found = {
        row.id
        for row in scoped_query(Product, ctx)
        .filter(Product.id.in_(product_ids))
        .with_entities(Product.id)
        .all()
    }
    if product_ids - found:
        raise NotFoundInScopeError("Product not found.")

    warehouses = {}
    for line in data.items:
        if line.warehouse_id not in warehouses:
            warehouses[line.warehouse_id] = resolve_warehouse(line.warehouse_id, ctx)
    return warehouses


def _order_total(data: PurchaseOrderInput) -> int:
    return sum(line.quantity * line.unit_price_cents for line in data.items)


def _add_items(order_id: int, data: PurchaseOrderInput, warehouses: dict, ctx: TenantContext) -> None:
    for line in data.items:
        db.session.add(PurchaseOrderItem(
            purchase_order_id=order_id,
            product_id=line.product_id,
            warehouse_id=line.warehouse_id,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            total_price_cents=line.quantity * line.unit_price_cents,
        ))
        apply_stock_delta(line.product_id, warehouses[line.warehouse_id], line.quantity, ctx)
    db.session.flush()


def create_purchase_order(ctx: TenantContext, payload) -> PurchaseOrder:
    pipeline = WritePipeline(PurchaseOrder, ctx, "purchase order")

    with pipeline.stage(PipelineState.VALIDATING):
        data = validate_purchase_order(payload)

    with pipeline.stage(PipelineState.CHECKING):
        warehouses = _check_references(data, ctx)
        total = _order_total(data)

    order = pipeline.run(
        lambda: new_scoped(
            PurchaseOrder,
            ctx,
            supplier_id=data.supplier_id,
            user_id=ctx.user_id,
            total_amount_cents=total,
            notes=data.notes,
        ),
        lambda header: _add_items(header.id, data, warehouses, ctx),
    )

    current_app.logger.info(
        "Purchase order %s created by user %s: %d items, total=%d",
        order.id, ctx.user_id, len(data.items), total,
    )
    invalidate(PURCHASES, WAREHOUSES, INVENTORY)
    return order


def get_purchase_order(ctx: TenantContext, order_id: int) -> PurchaseOrder:
    order = get_scoped_or_none(PurchaseOrder, ctx, order_id)
    if order is None:
        raise NotFoundInScopeError("Purchase order not found.")
    return order


def update_purchase_order(ctx: TenantContext, order_id: int, payload) -> PurchaseOrder:
    order = get_purchase_order(ctx, order_id)
    data = validate_purchase_order(payload)
    warehouses = _check_references(data, ctx)

    old_items = [(item.product_id, item.warehouse, item.quantity) for item in order.items]

    with unit_of_work("update purchase order"):
        order.items.clear()
        db.session.flush()
        _add_items(order.id, data, warehouses, ctx)

        for product_id, warehouse, quantity in old_items:
            apply_stock_delta(product_id, warehouse, -quantity, ctx)

        order.supplier_id = data.supplier_id
        order.notes = data.notes
        order.total_amount_cents = _order_total(data)

    current_app.logger.info("Purchase order %s updated by user %s", order.id, ctx.user_id)
    invalidate(PURCHASES, WAREHOUSES, INVENTORY)
    return order


def delete_purchase_order(ctx: TenantContext, order_id: int) -> None:
    order = get_purchase_order(ctx, order_id)
    with unit_of_work("delete purchase order"):
        db.session.delete(order)
    current_app.logger.info("Purchase order %s deleted by user %s (stock kept)", order_id, ctx.user_id)
    invalidate(PURCHASES, INVENTORY, WAREHOUSES)


def _get_item(ctx: TenantContext, item_id: int) -> PurchaseOrderItem:
    item = get_scoped_or_none(PurchaseOrderItem, ctx, item_id)
    if item is None:
        raise NotFoundInScopeError("Purchase order item not found.")
    return item


def _recompute_total(order_id: int) -> None:
    total = (
        db.session.query(func.coalesce(func.sum(PurchaseOrderItem.total_price_cents), 0))
        .filter(PurchaseOrderItem.purchase_order_id == order_id)
        .scalar()
    )
    db.session.query(PurchaseOrder).filter(PurchaseOrder.id == order_id).update(
        {PurchaseOrder.total_amount_cents: int(total)},
        synchronize_session="fetch",
    )


def update_purchase_item(ctx: TenantContext, item_id: int, payload) -> PurchaseOrderItem:
    item = _get_item(ctx, item_id)
    data = validate_purchase_item_update(payload)

    old_warehouse = item.warehouse
    old_quantity = item.quantity
    new_warehouse = resolve_warehouse(data.warehouse_id, ctx) if data.warehouse_id is not None else old_warehouse

    with unit_of_work("update purchase order item"):
        apply_stock_delta(item.product_id, new_warehouse, data.quantity, ctx)
        apply_stock_delta(item.product_id, old_warehouse, -old_quantity, ctx)

        item.warehouse_id = new_warehouse.id
        item.quantity = data.quantity
        item.unit_price_cents = data.unit_price_cents
        item.total_price_cents = data.quantity * data.unit_price_cents
        db.session.flush()
        _recompute_total(item.purchase_order_id)

    invalidate(PURCHASES, WAREHOUSES, INVENTORY)
    return item


def delete_purchase_item(ctx: TenantContext, item_id: int) -> None:
    item = _get_item(ctx, item_id)
    order_id = item.purchase_order_id

    with unit_of_work("delete purchase order item"):
        apply_stock_delta(item.product_id, item.warehouse, -item.quantity, ctx)
        db.session.delete(item)
        db.session.flush()
        _recompute_total(order_id)
    invalidate(PURCHASES, WAREHOUSES, INVENTORY)


def list_purchase_orders(
    ctx: TenantContext,
    requested: ScopeFilter | None = None,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    supplier_id: int | None = None,
    notes: str | None = None,
) -> list[PurchaseOrder]:
    query = scoped_query(PurchaseOrder, ctx, requested)
    if start is not None:
        query = query.filter(PurchaseOrder.created_at >= start)
    if end is not None:
        query = query.filter(PurchaseOrder.created_at <= end)
    if supplier_id is not None:
        query = query.filter(PurchaseOrder.supplier_id == supplier_id)
    if notes:
        query = query.filter(PurchaseOrder.notes.ilike(f"%{notes}%"))
    return query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc()).all()
