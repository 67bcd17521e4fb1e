# backend/stockroom/routes/purchases.py
"""
Purchase order API routes.
"""
from flask import Blueprint, g, jsonify, request

from .. import actions
from ..decorators import require_tenant
from ..services import purchase_service
from .common import date_range_from_args, payload, respond, scope_from_args


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchase-orders")


@purchases_bp.get("")
@require_tenant
def list_purchase_orders():
    start, end = date_range_from_args()
    supplier_id = request.args.get("supplier_id", type=int)
    orders = purchase_service.list_purchase_orders(
        g.tenant,
        scope_from_args(),
        start=start,
        end=end,
        supplier_id=supplier_id,
        notes=request.args.get("notes"),
    )
    return jsonify({"purchase_orders": [o.to_dict(include_items=True) for o in orders]}), 200


@purchases_bp.post("")
@require_tenant
def create_purchase_order():
    """
    Create a purchase order and receive its items into stock.

    Request body:
    {
        "supplier_id": int (optional),
        "notes": str (optional),
        "items": [{"product_id": int, "warehouse_id": int, "quantity": int, "unit_price_cents": int}]
    }
    """
    return respond(actions.create_purchase_order_action(g.user_id, payload()))


@purchases_bp.get("/<int:order_id>")
@require_tenant
def get_purchase_order(order_id: int):
    order = purchase_service.get_purchase_order(g.tenant, order_id)
    return jsonify(order.to_dict(include_items=True)), 200


@purchases_bp.put("/<int:order_id>")
@require_tenant
def update_purchase_order(order_id: int):
    return respond(actions.update_purchase_order_action(g.user_id, order_id, payload()))


@purchases_bp.delete("/<int:order_id>")
@require_tenant
def delete_purchase_order(order_id: int):
    """Delete a purchase order and its items. Received stock is kept."""
    return respond(actions.delete_purchase_order_action(g.user_id, order_id))


@purchases_bp.put("/items/<int:item_id>")
@require_tenant
def update_purchase_item(item_id: int):
    return respond(actions.update_purchase_item_action(g.user_id, item_id, payload()))


@purchases_bp.delete("/items/<int:item_id>")
@require_tenant
def delete_purchase_item(item_id: int):
    return respond(actions.delete_purchase_item_action(g.user_id, item_id))
