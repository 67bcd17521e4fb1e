# Overview: Warehouse management and the warehouse stock page read model.

"""
Warehouses.

A warehouse belongs to a branch, or (branch_id NULL) is shared by every branch
of its organization. The branch/shared assignment is fixed at creation time:
ProductStock rows mirror it, so moving a warehouse would strand its stock
outside its scope.
"""
from __future__ import annotations

from collections import defaultdict

from flask import current_app

from ..extensions import db
from ..errors import NotFoundInScopeError
from ..models import (
    Product, ProductStock, PurchaseOrderItem, SaleItem, StockMovement, Warehouse,
)
from ..signals import WAREHOUSES, invalidate
from ..validation import validate_warehouse
from .guard_service import guard_delete
from .pipeline import unit_of_work
from .scope_service import (
    ScopeFilter, get_branch_defaults, get_organization_defaults,
    get_scoped_or_none, scoped_query,
)
from .tenant_service import TenantContext


def list_warehouses(ctx: TenantContext, requested: ScopeFilter | None = None) -> list[Warehouse]:
    return scoped_query(Warehouse, ctx, requested).order_by(Warehouse.name).all()


def get_warehouse(ctx: TenantContext, warehouse_id: int) -> Warehouse:
    warehouse = get_scoped_or_none(Warehouse, ctx, warehouse_id)
    if warehouse is None:
        raise NotFoundInScopeError("Warehouse not found.")
    return warehouse


def create_warehouse(ctx: TenantContext, payload) -> Warehouse:
    data = validate_warehouse(payload)
    values = dict(get_organization_defaults(ctx))
    values["branch_id"] = None if data.is_shared else get_branch_defaults(ctx)["branch_id"]

    with unit_of_work("create warehouse"):
        warehouse = Warehouse(name=data.name, location=data.location, **values)
        db.session.add(warehouse)

    current_app.logger.info(
        "Warehouse %s created by user %s (shared=%s)", warehouse.id, ctx.user_id, data.is_shared
    )
    invalidate(WAREHOUSES)
    return warehouse


def update_warehouse(ctx: TenantContext, warehouse_id: int, payload) -> Warehouse:
    """Renames/relocates only; is_shared in the payload is ignored."""
    warehouse = get_warehouse(ctx, warehouse_id)
    data = validate_warehouse(payload)
    with unit_of_work("update warehouse"):
        warehouse.name = data.name
        warehouse.location = data.location
    invalidate(WAREHOUSES)
    return warehouse


def delete_warehouse(ctx: TenantContext, warehouse_id: int) -> None:
    warehouse = get_warehouse(ctx, warehouse_id)

    guard_delete(
        "warehouse",
        db.session.query(ProductStock.id).filter(ProductStock.warehouse_id == warehouse.id),
        reason="Cannot delete warehouse that has stock. Please transfer or remove the stock first.",
    )
    history = "Cannot delete warehouse that is referenced by movements, sales or purchases."
    guard_delete(
        "warehouse",
        db.session.query(StockMovement.id).filter(
            (StockMovement.from_warehouse_id == warehouse.id)
            | (StockMovement.to_warehouse_id == warehouse.id)
        ),
        reason=history,
    )
    for item_model in (SaleItem, PurchaseOrderItem):
        guard_delete(
            "warehouse",
            db.session.query(item_model.id).filter(item_model.warehouse_id == warehouse.id),
            reason=history,
        )

    with unit_of_work("delete warehouse"):
        db.session.delete(warehouse)

    current_app.logger.info("Warehouse %s deleted by user %s", warehouse_id, ctx.user_id)
    invalidate(WAREHOUSES)


def get_warehouse_page_data(ctx: TenantContext, requested: ScopeFilter | None = None) -> dict:
    """
    Everything the warehouse stock page needs in one read.

    locked_stocks lists (product_id, warehouse_id) pairs touched by a stock
    movement: their quantity is owned by movement history and should be
    changed through movements, not set directly.
    """
    warehouses = list_warehouses(ctx, requested)
    products = scoped_query(Product, ctx, requested).order_by(Product.name).all()
    stocks = scoped_query(ProductStock, ctx, requested).all()

    per_warehouse = defaultdict(lambda: {"total_items": 0, "total_quantity": 0})
    for stock in stocks:
        totals = per_warehouse[stock.warehouse_id]
        totals["total_items"] += 1
        totals["total_quantity"] += stock.quantity

    locked = set()
    movement_rows = (
        scoped_query(StockMovement, ctx, requested)
        .with_entities(StockMovement.product_id, StockMovement.from_warehouse_id, StockMovement.to_warehouse_id)
        .all()
    )
    for product_id, from_id, to_id in movement_rows:
        if from_id:
            locked.add((product_id, from_id))
        if to_id:
            locked.add((product_id, to_id))

    return {
        "warehouses": [w.to_dict() for w in warehouses],
        "products": [
            {"id": p.id, "name": p.name, "barcode": p.barcode, "organization_id": p.organization_id}
            for p in products
        ],
        "stocks": [
            {"product_id": s.product_id, "warehouse_id": s.warehouse_id, "quantity": s.quantity}
            for s in stocks
        ],
        "warehouse_totals": [
            {
                "id": w.id,
                "name": w.name,
                "location": w.location,
                **per_warehouse[w.id],
            }
            for w in warehouses
        ],
        "locked_stocks": sorted([product_id, warehouse_id] for product_id, warehouse_id in locked),
    }
