# Overview: Organization-level catalog: categories, products, customers and suppliers.

"""
Catalog master data.

All rows here are organization-scoped (OrganizationScope): every branch of an
organization shares one catalog. Stock lives per warehouse in ProductStock.

Deletes are guarded: a category with products, or a product with sales,
purchases, movements or stock records, cannot be deleted.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import NotFoundInScopeError
from ..models import (
    Category, Customer, Product, ProductStock, PurchaseOrderItem, SaleItem,
    StockMovement, Supplier,
)
from ..signals import INVENTORY, invalidate
from ..validation import validate_category, validate_party, validate_product
from .guard_service import guard_delete
from .pipeline import unit_of_work
from .scope_service import ScopeFilter, get_scoped_or_none, new_scoped, restrict, scoped_query
from .tenant_service import TenantContext


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def list_categories(ctx: TenantContext, requested: ScopeFilter | None = None) -> list[Category]:
    return scoped_query(Category, ctx, requested).order_by(Category.name).all()


def get_category(ctx: TenantContext, category_id: int) -> Category:
    category = get_scoped_or_none(Category, ctx, category_id)
    if category is None:
        raise NotFoundInScopeError("Category not found.")
    return category


def create_category(ctx: TenantContext, payload) -> Category:
    name = validate_category(payload)
    with unit_of_work("create category"):
        category = new_scoped(Category, ctx, name=name)
        db.session.add(category)
    invalidate(INVENTORY)
    return category


def update_category(ctx: TenantContext, category_id: int, payload) -> Category:
    category = get_category(ctx, category_id)
    name = validate_category(payload)
    with unit_of_work("update category"):
        category.name = name
    invalidate(INVENTORY)
    return category


def delete_category(ctx: TenantContext, category_id: int) -> None:
    category = get_category(ctx, category_id)
    guard_delete(
        "category",
        db.session.query(Product.id).filter(Product.category_id == category.id),
        reason="Cannot delete category that has products. Please reassign or delete the products first.",
    )
    with unit_of_work("delete category"):
        db.session.delete(category)
    current_app.logger.info("Category %s deleted by user %s", category_id, ctx.user_id)
    invalidate(INVENTORY)


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def list_inventory(ctx: TenantContext, requested: ScopeFilter | None = None) -> list[dict]:
    """Products with category name and on-hand stock summed over the warehouses in scope."""
    stock = restrict(
        db.session.query(
            ProductStock.product_id.label("product_id"),
            func.sum(ProductStock.quantity).label("stock"),
        ),
        ProductStock,
        ctx,
        requested,
    ).group_by(ProductStock.product_id).subquery()

    rows = (
        scoped_query(Product, ctx, requested)
        .outerjoin(Category, Category.id == Product.category_id)
        .outerjoin(stock, stock.c.product_id == Product.id)
        .with_entities(Product, Category.name, stock.c.stock)
        .order_by(Product.name)
        .all()
    )
    result = []
    for product, category_name, on_hand in rows:
        data = product.to_dict()
        data["category"] = category_name or "Uncategorized"
        data["stock"] = int(on_hand or 0)
        result.append(data)
    return result


def get_product(ctx: TenantContext, product_id: int) -> Product:
    product = get_scoped_or_none(Product, ctx, product_id)
    if product is None:
        raise NotFoundInScopeError("Product not found.")
    return product


def _check_category(ctx: TenantContext, category_id: int) -> None:
    if get_scoped_or_none(Category, ctx, category_id) is None:
        raise NotFoundInScopeError("Category not found.")


def create_product(ctx: TenantContext, payload) -> Product:
    data = validate_product(payload)
    _check_category(ctx, data.category_id)
    with unit_of_work("create product"):
        product = new_scoped(
            Product,
            ctx,
            name=data.name,
            barcode=data.barcode,
            category_id=data.category_id,
            cost_price_cents=data.cost_price_cents,
            selling_price_cents=data.selling_price_cents,
        )
        db.session.add(product)
    current_app.logger.info("Product %s (%s) created by user %s", product.id, product.barcode, ctx.user_id)
    invalidate(INVENTORY)
    return product


def update_product(ctx: TenantContext, product_id: int, payload) -> Product:
    """Price changes apply to future sales only; existing sales keep their snapshot."""
    product = get_product(ctx, product_id)
    data = validate_product(payload)
    _check_category(ctx, data.category_id)
    with unit_of_work("update product"):
        product.name = data.name
        product.barcode = data.barcode
        product.category_id = data.category_id
        product.cost_price_cents = data.cost_price_cents
        product.selling_price_cents = data.selling_price_cents
    invalidate(INVENTORY)
    return product


def delete_product(ctx: TenantContext, product_id: int) -> None:
    product = get_product(ctx, product_id)
    reason = "Cannot delete product that has sales, purchases or stock history."
    for dependent in (SaleItem, PurchaseOrderItem, StockMovement, ProductStock):
        guard_delete(
            "product",
            db.session.query(dependent.id).filter(dependent.product_id == product.id),
            reason=reason,
        )
    with unit_of_work("delete product"):
        db.session.delete(product)
    current_app.logger.info("Product %s deleted by user %s", product_id, ctx.user_id)
    invalidate(INVENTORY)


# ---------------------------------------------------------------------------
# Customers / suppliers
# ---------------------------------------------------------------------------

def _create_party(model, label: str, ctx: TenantContext, payload):
    data = validate_party(payload)
    with unit_of_work(f"create {label}"):
        party = new_scoped(model, ctx, name=data.name, phone=data.phone, location=data.location)
        db.session.add(party)
    return party


def create_customer(ctx: TenantContext, payload) -> Customer:
    return _create_party(Customer, "customer", ctx, payload)


def create_supplier(ctx: TenantContext, payload) -> Supplier:
    return _create_party(Supplier, "supplier", ctx, payload)


def list_customers(ctx: TenantContext, requested: ScopeFilter | None = None) -> list[Customer]:
    return scoped_query(Customer, ctx, requested).order_by(Customer.name).all()


def list_suppliers(ctx: TenantContext, requested: ScopeFilter | None = None) -> list[Supplier]:
    return scoped_query(Supplier, ctx, requested).order_by(Supplier.name).all()
