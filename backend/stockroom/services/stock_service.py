# Overview: Stock availability checks and the stock ledger (quantity mutations) for warehouses.

"""
Stock invariants (authoritative)

- ProductStock.quantity is the on-hand quantity per (product, warehouse) and
  may never be observed or left negative.
- Availability checks read the record through the tenant scope: a warehouse
  outside the caller's branch (or its organization's shared warehouses)
  simply has no stock as far as the caller is concerned.
- Checks give precise errors; they do not guarantee the write. The write is a
  conditional decrement (UPDATE ... WHERE quantity >= n) whose rows-affected
  count decides, so two concurrent sales cannot both spend the same units.
- Quantities are read with column queries so values already loaded in the
  session identity map never mask a decrement issued earlier in the same
  transaction.
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import InsufficientStockError, InventoryError, NotFoundInScopeError, ValidationError
from ..models import Product, ProductStock, StockMovement, Warehouse
from ..signals import INVENTORY, WAREHOUSES, invalidate
from ..validation import (
    StockImportRow, validate_stock_import, validate_stock_import_row, validate_stock_level,
    validate_stock_level_payload,
)
from . import notification_service
from .pipeline import unit_of_work
from .scope_service import get_scoped_or_none, scoped_query
from .tenant_service import TenantContext


def _stock_query(product_id: int, warehouse_id: int, ctx: TenantContext):
    return scoped_query(ProductStock, ctx).filter(
        ProductStock.product_id == product_id,
        ProductStock.warehouse_id == warehouse_id,
    )


def get_quantity_on_hand(product_id: int, warehouse_id: int, ctx: TenantContext) -> int | None:
    """On-hand quantity visible to the caller, or None when no record exists in scope."""
    row = _stock_query(product_id, warehouse_id, ctx).with_entities(ProductStock.quantity).first()
    return None if row is None else int(row.quantity)


def product_label(product_id: int, ctx: TenantContext) -> str:
    row = scoped_query(Product, ctx).filter(Product.id == product_id).with_entities(Product.name).first()
    return row.name if row else "product"


def check_availability(product_id: int, warehouse_id: int, requested_qty: int, ctx: TenantContext) -> int:
    """
    Sale path and movement-create path.

    Fails when no record exists in scope or when the recorded quantity is
    below the request. Returns the available quantity.
    """
    available = get_quantity_on_hand(product_id, warehouse_id, ctx)
    if available is None or available < requested_qty:
        raise InsufficientStockError(
            available=available or 0,
            requested=requested_qty,
            product_ref=product_label(product_id, ctx),
        )
    return available


def check_movement_update(
    old_movement: StockMovement,
    new_from_warehouse_id: int | None,
    product_id: int,
    requested_qty: int,
    ctx: TenantContext,
) -> int | None:
    """
    Movement-update path.

    The old movement's deduction can be credited back only when the source
    warehouse is unchanged; if the source changed, the old deduction landed
    on a different warehouse and must not count here:

        old_released = old.quantity if old.from_warehouse_id == new_from else 0
        effective    = current(new_from) + old_released

    Inbound-only updates (no source) need no check and return None.
    """
    if new_from_warehouse_id is None:
        return None

    current = get_quantity_on_hand(product_id, new_from_warehouse_id, ctx) or 0
    old_released = (
        old_movement.quantity
        if old_movement.from_warehouse_id == new_from_warehouse_id
        else 0
    )
    effective = current + old_released

    if effective < requested_qty:
        raise InsufficientStockError(
            available=effective,
            requested=requested_qty,
            product_ref=product_label(product_id, ctx),
            message=(
                "Insufficient stock in source warehouse for this update. "
                f"Available: {effective}, Requested: {requested_qty}"
            ),
        )
    return effective


def apply_stock_delta(product_id: int, warehouse: Warehouse, delta: int, ctx: TenantContext) -> None:
    """
    Apply a quantity change to one (product, warehouse) record.

    Negative deltas use a conditional decrement and raise
    InsufficientStockError when no row qualifies. Positive deltas increment
    the record, creating it (stamped with the warehouse's tenant) if absent.
    Does not commit: the caller's pipeline owns the transaction.
    """
    if delta == 0:
        return

    query = _stock_query(product_id, warehouse.id, ctx)

    if delta < 0:
        needed = -delta
        updated = query.filter(ProductStock.quantity >= needed).update(
            {ProductStock.quantity: ProductStock.quantity - needed},
            synchronize_session=False,
        )
        if updated == 0:
            available = get_quantity_on_hand(product_id, warehouse.id, ctx) or 0
            current_app.logger.info(
                "Conditional decrement refused: product=%s warehouse=%s available=%s requested=%s",
                product_id, warehouse.id, available, needed,
            )
            raise InsufficientStockError(
                available=available,
                requested=needed,
                product_ref=product_label(product_id, ctx),
            )
        _check_low_stock(product_id, warehouse, needed, ctx)
        return

    updated = query.update(
        {ProductStock.quantity: ProductStock.quantity + delta},
        synchronize_session=False,
    )
    if updated == 0:
        db.session.add(ProductStock(
            organization_id=warehouse.organization_id,
            branch_id=warehouse.branch_id,
            product_id=product_id,
            warehouse_id=warehouse.id,
            quantity=delta,
        ))
        db.session.flush()


def _check_low_stock(product_id: int, warehouse: Warehouse, taken: int, ctx: TenantContext) -> None:
    threshold = notification_service.low_stock_threshold()
    if threshold <= 0:
        return
    remaining = get_quantity_on_hand(product_id, warehouse.id, ctx) or 0
    if notification_service.crossed_low_stock(remaining + taken, remaining, threshold):
        notification_service.record_low_stock(
            ctx, product_id, product_label(product_id, ctx), warehouse, remaining
        )


def resolve_warehouse(warehouse_id: int, ctx: TenantContext) -> Warehouse:
    warehouse = get_scoped_or_none(Warehouse, ctx, warehouse_id)
    if warehouse is None:
        raise NotFoundInScopeError("Warehouse not found.")
    return warehouse


def resolve_product(product_id: int, ctx: TenantContext) -> Product:
    product = get_scoped_or_none(Product, ctx, product_id)
    if product is None:
        raise NotFoundInScopeError("Product not found.")
    return product


def set_stock_level(product_id: int, warehouse_id: int, quantity, ctx: TenantContext) -> ProductStock:
    """
    Set an absolute on-hand quantity (stock count correction).

    Creates the record if it does not exist yet. Commits.
    """
    quantity = validate_stock_level(quantity)
    product = resolve_product(product_id, ctx)
    warehouse = resolve_warehouse(warehouse_id, ctx)

    with unit_of_work("set stock level"):
        record = _stock_query(product.id, warehouse.id, ctx).first()
        if record is None:
            record = ProductStock(
                organization_id=warehouse.organization_id,
                branch_id=warehouse.branch_id,
                product_id=product.id,
                warehouse_id=warehouse.id,
                quantity=quantity,
            )
            db.session.add(record)
        else:
            db.session.refresh(record)
            record.quantity = quantity

    current_app.logger.info(
        "Stock level set: product=%s warehouse=%s quantity=%s by user %s",
        product.id, warehouse.id, quantity, ctx.user_id,
    )
    invalidate(INVENTORY, WAREHOUSES)
    return record


def update_stock_level(ctx: TenantContext, product_id: int, warehouse_id: int, payload) -> ProductStock:
    """Request-body entry point for set_stock_level: {"quantity": int >= 0}."""
    return set_stock_level(product_id, warehouse_id, validate_stock_level_payload(payload), ctx)


def _resolve_import_product(row: StockImportRow, ctx: TenantContext) -> Product:
    if row.product_id is not None:
        return resolve_product(row.product_id, ctx)
    product = scoped_query(Product, ctx).filter(Product.barcode == row.barcode).first()
    if product is None:
        raise NotFoundInScopeError(f"Product not found for barcode {row.barcode}.")
    return product


def bulk_set_stock_levels(ctx: TenantContext, payload) -> dict:
    """
    Spreadsheet stock import: set absolute quantities row by row.

    Rows name the product by product_id or, failing that, by barcode. Each row
    is applied (and committed) through set_stock_level on its own, so a bad row
    is reported and skipped without undoing the good ones:

        {"count": <rows applied>, "errors": ["Row 3: Product not found ...", ...]}

    When no row could be applied the whole import fails with ValidationError
    carrying the row errors.
    """
    rows = validate_stock_import(payload)
    count = 0
    errors = []

    for index, raw in enumerate(rows, start=1):
        try:
            row = validate_stock_import_row(raw)
            product = _resolve_import_product(row, ctx)
            set_stock_level(product.id, row.warehouse_id, row.quantity, ctx)
        except InventoryError as exc:
            reasons = exc.details or [exc.to_result()["error"]]
            errors.extend(f"Row {index}: {reason}" for reason in reasons)
            continue
        count += 1

    current_app.logger.info(
        "Stock import by user %s: %d rows applied, %d errors", ctx.user_id, count, len(errors)
    )
    if count == 0:
        raise ValidationError("Failed to update stock.", details=errors)
    return {"count": count, "errors": errors}


def list_stock(ctx: TenantContext, requested=None) -> list[ProductStock]:
    return (
        scoped_query(ProductStock, ctx, requested)
        .order_by(ProductStock.warehouse_id, ProductStock.product_id)
        .all()
    )
