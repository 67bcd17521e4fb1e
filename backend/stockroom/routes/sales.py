# backend/stockroom/routes/sales.py
"""
Sales API routes.
"""
from flask import Blueprint, g, jsonify

from .. import actions
from ..decorators import require_tenant
from ..services import sales_service
from .common import date_range_from_args, payload, respond, scope_from_args


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_tenant
def list_sales():
    start, end = date_range_from_args()
    sales = sales_service.list_sales(g.tenant, scope_from_args(), start=start, end=end)
    return jsonify({"sales": [s.to_dict(include_items=True) for s in sales]}), 200


@sales_bp.post("")
@require_tenant
def create_sale():
    """
    Create a sale and take its items out of stock.

    Request body:
    {
        "customer_id": int,
        "notes": str (optional),
        "items": [{"product_id": int, "warehouse_id": int, "quantity": int, "unit_price_cents": int}]
    }

    Returns:
        201: Sale created
        400: Invalid fields
        404: Customer, product or warehouse not found
        409: Insufficient stock
    """
    return respond(actions.create_sale_action(g.user_id, payload()))


@sales_bp.get("/top-products")
@require_tenant
def top_products():
    return jsonify({"products": sales_service.get_top_selling_products(g.tenant, scope_from_args())}), 200


@sales_bp.get("/<int:sale_id>")
@require_tenant
def get_sale(sale_id: int):
    return jsonify(sales_service.get_sale_for_invoice(g.tenant, sale_id)), 200


@sales_bp.delete("/<int:sale_id>")
@require_tenant
def delete_sale(sale_id: int):
    """Delete a sale; its quantities go back to the warehouses they came from."""
    return respond(actions.delete_sale_action(g.user_id, sale_id))
