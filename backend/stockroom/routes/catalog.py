# backend/stockroom/routes/catalog.py
"""
Catalog API routes: categories, products (inventory), customers, suppliers.
"""
from flask import Blueprint, g, jsonify

from .. import actions
from ..decorators import require_tenant
from ..services import catalog_service
from .common import payload, respond, scope_from_args


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


# Categories

@catalog_bp.get("/categories")
@require_tenant
def list_categories():
    categories = catalog_service.list_categories(g.tenant, scope_from_args())
    return jsonify({"categories": [c.to_dict() for c in categories]}), 200


@catalog_bp.post("/categories")
@require_tenant
def create_category():
    return respond(actions.create_category_action(g.user_id, payload()))


@catalog_bp.put("/categories/<int:category_id>")
@require_tenant
def update_category(category_id: int):
    return respond(actions.update_category_action(g.user_id, category_id, payload()))


@catalog_bp.delete("/categories/<int:category_id>")
@require_tenant
def delete_category(category_id: int):
    """409 while any product still references the category."""
    return respond(actions.delete_category_action(g.user_id, category_id))


# Products

@catalog_bp.get("/products")
@require_tenant
def list_products():
    """Products with category name and total on-hand stock in scope."""
    return jsonify({"products": catalog_service.list_inventory(g.tenant, scope_from_args())}), 200


@catalog_bp.post("/products")
@require_tenant
def create_product():
    """
    Request body:
    {
        "name": str (>= 3 chars),
        "barcode": str (>= 5 chars),
        "category_id": int,
        "cost_price_cents": int,
        "selling_price_cents": int (>= cost_price_cents)
    }
    """
    return respond(actions.create_product_action(g.user_id, payload()))


@catalog_bp.put("/products/<int:product_id>")
@require_tenant
def update_product(product_id: int):
    return respond(actions.update_product_action(g.user_id, product_id, payload()))


@catalog_bp.delete("/products/<int:product_id>")
@require_tenant
def delete_product(product_id: int):
    return respond(actions.delete_product_action(g.user_id, product_id))


# Customers / suppliers

@catalog_bp.get("/customers")
@require_tenant
def list_customers():
    customers = catalog_service.list_customers(g.tenant, scope_from_args())
    return jsonify({"customers": [c.to_dict() for c in customers]}), 200


@catalog_bp.post("/customers")
@require_tenant
def create_customer():
    return respond(actions.create_customer_action(g.user_id, payload()))


@catalog_bp.get("/suppliers")
@require_tenant
def list_suppliers():
    suppliers = catalog_service.list_suppliers(g.tenant, scope_from_args())
    return jsonify({"suppliers": [s.to_dict() for s in suppliers]}), 200


@catalog_bp.post("/suppliers")
@require_tenant
def create_supplier():
    return respond(actions.create_supplier_action(g.user_id, payload()))
