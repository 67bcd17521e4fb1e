# Overview: Stock movement pipeline (inbound, outbound and transfers between warehouses).

"""
Stock movements.

A movement's stock effect is:
    from_warehouse: -quantity   (if set)
    to_warehouse:   +quantity   (if set)

CREATE: availability check on the source, insert, apply the effect.
UPDATE: credit-rule check (stock_service.check_movement_update), reverse the
old effect, apply the new one, rewrite the row.
DELETE: reverse the effect, delete the row.

All three run in one transaction. Increments are applied before decrements so
a change that nets out (same warehouse, same quantity) never trips the
conditional decrement on an intermediate value.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..errors import NotFoundInScopeError
from ..models import StockMovement
from ..signals import INVENTORY, STOCK_MOVEMENTS, WAREHOUSES, invalidate
from ..validation import MovementInput, validate_stock_movement
from .pipeline import unit_of_work
from .scope_service import ScopeFilter, get_scoped_or_none, new_scoped, scoped_query
from .stock_service import (
    apply_stock_delta, check_availability, check_movement_update,
    resolve_product, resolve_warehouse,
)
from .tenant_service import TenantContext


def _resolve(data: MovementInput, ctx: TenantContext):
    resolve_product(data.product_id, ctx)
    source = resolve_warehouse(data.from_warehouse_id, ctx) if data.from_warehouse_id is not None else None
    destination = resolve_warehouse(data.to_warehouse_id, ctx) if data.to_warehouse_id is not None else None
    return source, destination


def _effects(product_id, source, destination, quantity) -> list[tuple]:
    effects = []
    if source is not None:
        effects.append((product_id, source, -quantity))
    if destination is not None:
        effects.append((product_id, destination, quantity))
    return effects


def _apply(effects, ctx: TenantContext) -> None:
    for product_id, warehouse, delta in sorted(effects, key=lambda e: e[2] < 0):
        apply_stock_delta(product_id, warehouse, delta, ctx)


def get_movement(ctx: TenantContext, movement_id: int) -> StockMovement:
    movement = get_scoped_or_none(StockMovement, ctx, movement_id)
    if movement is None:
        raise NotFoundInScopeError("Movement not found.")
    return movement


def create_movement(ctx: TenantContext, payload) -> StockMovement:
    data = validate_stock_movement(payload)
    source, destination = _resolve(data, ctx)

    if source is not None:
        check_availability(data.product_id, source.id, data.quantity, ctx)

    with unit_of_work("create movement"):
        movement = new_scoped(
            StockMovement,
            ctx,
            product_id=data.product_id,
            from_warehouse_id=data.from_warehouse_id,
            to_warehouse_id=data.to_warehouse_id,
            quantity=data.quantity,
            notes=data.notes,
            created_by=ctx.user_id,
        )
        db.session.add(movement)
        db.session.flush()
        _apply(_effects(data.product_id, source, destination, data.quantity), ctx)

    current_app.logger.info(
        "Stock movement %s (%s) created by user %s: product=%s qty=%s",
        movement.id, movement.kind, ctx.user_id, data.product_id, data.quantity,
    )
    invalidate(STOCK_MOVEMENTS, WAREHOUSES, INVENTORY)
    return movement


def update_movement(ctx: TenantContext, movement_id: int, payload) -> StockMovement:
    movement = get_movement(ctx, movement_id)
    data = validate_stock_movement(payload)
    source, destination = _resolve(data, ctx)

    check_movement_update(movement, data.from_warehouse_id, data.product_id, data.quantity, ctx)

    reversal = [
        (product_id, warehouse, -delta)
        for product_id, warehouse, delta in _effects(
            movement.product_id, movement.from_warehouse, movement.to_warehouse, movement.quantity
        )
    ]

    with unit_of_work("update movement"):
        _apply(reversal + _effects(data.product_id, source, destination, data.quantity), ctx)

        movement.product_id = data.product_id
        movement.from_warehouse_id = data.from_warehouse_id
        movement.to_warehouse_id = data.to_warehouse_id
        movement.quantity = data.quantity
        movement.notes = data.notes

    current_app.logger.info("Stock movement %s updated by user %s", movement.id, ctx.user_id)
    invalidate(STOCK_MOVEMENTS, WAREHOUSES, INVENTORY)
    return movement


def delete_movement(ctx: TenantContext, movement_id: int) -> None:
    movement = get_movement(ctx, movement_id)

    reversal = [
        (product_id, warehouse, -delta)
        for product_id, warehouse, delta in _effects(
            movement.product_id, movement.from_warehouse, movement.to_warehouse, movement.quantity
        )
    ]

    with unit_of_work("delete movement"):
        _apply(reversal, ctx)
        db.session.delete(movement)

    current_app.logger.info("Stock movement %s deleted by user %s; effect reversed", movement_id, ctx.user_id)
    invalidate(STOCK_MOVEMENTS, WAREHOUSES, INVENTORY)


def list_movements(
    ctx: TenantContext,
    requested: ScopeFilter | None = None,
    *,
    product_id: int | None = None,
    warehouse_id: int | None = None,
) -> list[StockMovement]:
    query = scoped_query(StockMovement, ctx, requested).options(
        joinedload(StockMovement.product),
        joinedload(StockMovement.from_warehouse),
        joinedload(StockMovement.to_warehouse),
        joinedload(StockMovement.created_by_user),
    )
    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id)
    if warehouse_id is not None:
        query = query.filter(or_(
            StockMovement.from_warehouse_id == warehouse_id,
            StockMovement.to_warehouse_id == warehouse_id,
        ))
    return query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).all()
