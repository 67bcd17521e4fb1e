# backend/stockroom/routes/warehouses.py
"""
Warehouse and stock level API routes.
"""
from flask import Blueprint, g, jsonify

from .. import actions
from ..decorators import require_tenant
from ..services import stock_service, warehouse_service
from .common import payload, respond, scope_from_args


warehouses_bp = Blueprint("warehouses", __name__, url_prefix="/api")


@warehouses_bp.get("/warehouses")
@require_tenant
def list_warehouses():
    warehouses = warehouse_service.list_warehouses(g.tenant, scope_from_args())
    return jsonify({"warehouses": [w.to_dict() for w in warehouses]}), 200


@warehouses_bp.get("/warehouses/overview")
@require_tenant
def warehouse_overview():
    """Warehouses, products, stock map, per-warehouse totals and movement-locked stocks."""
    return jsonify(warehouse_service.get_warehouse_page_data(g.tenant, scope_from_args())), 200


@warehouses_bp.post("/warehouses")
@require_tenant
def create_warehouse():
    """
    Request body:
    {"name": str, "location": str (optional), "is_shared": bool (optional)}
    """
    return respond(actions.create_warehouse_action(g.user_id, payload()))


@warehouses_bp.put("/warehouses/<int:warehouse_id>")
@require_tenant
def update_warehouse(warehouse_id: int):
    return respond(actions.update_warehouse_action(g.user_id, warehouse_id, payload()))


@warehouses_bp.delete("/warehouses/<int:warehouse_id>")
@require_tenant
def delete_warehouse(warehouse_id: int):
    return respond(actions.delete_warehouse_action(g.user_id, warehouse_id))


@warehouses_bp.get("/stock")
@require_tenant
def list_stock():
    stocks = stock_service.list_stock(g.tenant, scope_from_args())
    return jsonify({"stock": [s.to_dict() for s in stocks]}), 200


@warehouses_bp.put("/warehouses/<int:warehouse_id>/stock/<int:product_id>")
@require_tenant
def set_stock_level(warehouse_id: int, product_id: int):
    """
    Set the absolute on-hand quantity.

    Request body: {"quantity": int >= 0}
    """
    return respond(actions.update_stock_action(g.user_id, product_id, warehouse_id, payload()))


@warehouses_bp.post("/stock/import")
@require_tenant
def import_stock():
    """
    Bulk stock import (absolute quantities).

    Request body: [{"product_id": int | "barcode": str, "warehouse_id": int, "quantity": int}, ...]
    or {"rows": [...]}.
    Response: {"success": true, "count": int, "errors": [str]}
    """
    return respond(actions.bulk_update_stock_action(g.user_id, payload()))
