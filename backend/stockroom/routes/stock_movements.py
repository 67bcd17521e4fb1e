# backend/stockroom/routes/stock_movements.py
"""
Stock movement API routes (inbound, outbound, transfers).
"""
from flask import Blueprint, g, jsonify, request

from .. import actions
from ..decorators import require_tenant
from ..services import movement_service
from .common import payload, respond, scope_from_args


stock_movements_bp = Blueprint("stock_movements", __name__, url_prefix="/api/stock-movements")


@stock_movements_bp.get("")
@require_tenant
def list_movements():
    movements = movement_service.list_movements(
        g.tenant,
        scope_from_args(),
        product_id=request.args.get("product_id", type=int),
        warehouse_id=request.args.get("warehouse_id", type=int),
    )
    return jsonify({"movements": [m.to_dict() for m in movements]}), 200


@stock_movements_bp.post("")
@require_tenant
def create_movement():
    """
    Request body:
    {
        "product_id": int,
        "from_warehouse_id": int | "none" (optional),
        "to_warehouse_id": int | "none" (optional),
        "quantity": int,
        "notes": str (optional)
    }
    At least one warehouse is required; both means a transfer.
    """
    return respond(actions.create_stock_movement_action(g.user_id, payload()))


@stock_movements_bp.put("/<int:movement_id>")
@require_tenant
def update_movement(movement_id: int):
    return respond(actions.update_stock_movement_action(g.user_id, movement_id, payload()))


@stock_movements_bp.delete("/<int:movement_id>")
@require_tenant
def delete_movement(movement_id: int):
    return respond(actions.delete_stock_movement_action(g.user_id, movement_id))
