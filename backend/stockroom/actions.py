# Overview: Caller-facing mutation surface; every action returns a result dict and never raises expected failures.

"""
Mutation surface.

Every action takes the caller's user id (as established by the upstream
authentication layer) and a payload, resolves the tenant context itself and
returns either

    {"success": True, ...}                 on success
    {"error": str, "details": [str]?}      on any expected failure

Results are ActionResult dicts carrying the HTTP status the routes should use.

USAGE:
    result = create_sale_action(user_id, {"customer_id": 1, "items": [...]})
    if "error" in result:
        ...
"""
from __future__ import annotations

from typing import Any, Callable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .errors import ConfigurationError, ForbiddenError, InventoryError, StoreError, UnauthorizedError
from .services import (
    catalog_service, movement_service, notification_service, purchase_service,
    sales_service, stock_service, warehouse_service,
)
from .services.tenant_service import require_tenant_context


class ActionResult(dict):
    """Result dict with the HTTP status it maps to."""

    def __init__(self, data: dict, status_code: int = 200):
        super().__init__(data)
        self.status_code = status_code

    @property
    def ok(self) -> bool:
        return "error" not in self


def execute(user_id, operation: Callable, *args, result_key: str | None = None,
            serialize: Callable[[Any], Any] | None = None, status_code: int = 200) -> ActionResult:
    """Resolve the tenant, run operation(ctx, *args) and fold the outcome into an ActionResult."""
    try:
        ctx = require_tenant_context(user_id)
        value = operation(ctx, *args)
    except InventoryError as exc:
        db.session.rollback()
        if isinstance(exc, (UnauthorizedError, ForbiddenError)):
            current_app.logger.warning(
                "%s denied for user %s: %s", operation.__name__, user_id, exc.message
            )
        elif isinstance(exc, ConfigurationError):
            current_app.logger.error(
                "%s misconfigured tenant for user %s: %s", operation.__name__, user_id, exc.message
            )
        return ActionResult(exc.to_result(), exc.status_code)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("%s failed for user %s", operation.__name__, user_id)
        error = StoreError()
        return ActionResult(error.to_result(), error.status_code)

    result = {"success": True}
    if result_key is not None:
        result[result_key] = serialize(value) if serialize else value
    return ActionResult(result, status_code)


def _to_dict(row):
    return row.to_dict()


def _with_items(row):
    return row.to_dict(include_items=True)


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------

def create_sale_action(user_id, payload) -> ActionResult:
    return execute(user_id, sales_service.create_sale, payload,
                   result_key="sale", serialize=_with_items, status_code=201)


def delete_sale_action(user_id, sale_id) -> ActionResult:
    return execute(user_id, sales_service.delete_sale, sale_id)


# ---------------------------------------------------------------------------
# Purchase orders
# ---------------------------------------------------------------------------

def create_purchase_order_action(user_id, payload) -> ActionResult:
    return execute(user_id, purchase_service.create_purchase_order, payload,
                   result_key="purchase_order", serialize=_with_items, status_code=201)


def update_purchase_order_action(user_id, order_id, payload) -> ActionResult:
    return execute(user_id, purchase_service.update_purchase_order, order_id, payload,
                   result_key="purchase_order", serialize=_with_items)


def delete_purchase_order_action(user_id, order_id) -> ActionResult:
    return execute(user_id, purchase_service.delete_purchase_order, order_id)


def update_purchase_item_action(user_id, item_id, payload) -> ActionResult:
    return execute(user_id, purchase_service.update_purchase_item, item_id, payload,
                   result_key="item", serialize=_to_dict)


def delete_purchase_item_action(user_id, item_id) -> ActionResult:
    return execute(user_id, purchase_service.delete_purchase_item, item_id)


# ---------------------------------------------------------------------------
# Stock movements and stock levels
# ---------------------------------------------------------------------------

def create_stock_movement_action(user_id, payload) -> ActionResult:
    return execute(user_id, movement_service.create_movement, payload,
                   result_key="movement", serialize=_to_dict, status_code=201)


def update_stock_movement_action(user_id, movement_id, payload) -> ActionResult:
    return execute(user_id, movement_service.update_movement, movement_id, payload,
                   result_key="movement", serialize=_to_dict)


def delete_stock_movement_action(user_id, movement_id) -> ActionResult:
    return execute(user_id, movement_service.delete_movement, movement_id)


def update_stock_action(user_id, product_id, warehouse_id, payload) -> ActionResult:
    return execute(user_id, stock_service.update_stock_level, product_id, warehouse_id, payload,
                   result_key="stock", serialize=_to_dict)


def bulk_update_stock_action(user_id, payload) -> ActionResult:
    """{"success": True, "count": n, "errors": [...]} for partially applied imports."""
    result = execute(user_id, stock_service.bulk_set_stock_levels, payload, result_key="import")
    if result.ok:
        result.update(result.pop("import"))
    return result


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

def mark_notification_read_action(user_id, notification_id) -> ActionResult:
    return execute(user_id, notification_service.mark_as_read, notification_id,
                   result_key="notification", serialize=_to_dict)


def mark_all_notifications_read_action(user_id) -> ActionResult:
    return execute(user_id, notification_service.mark_all_as_read, result_key="updated")


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

def create_category_action(user_id, payload) -> ActionResult:
    return execute(user_id, catalog_service.create_category, payload,
                   result_key="category", serialize=_to_dict, status_code=201)


def update_category_action(user_id, category_id, payload) -> ActionResult:
    return execute(user_id, catalog_service.update_category, category_id, payload,
                   result_key="category", serialize=_to_dict)


def delete_category_action(user_id, category_id) -> ActionResult:
    return execute(user_id, catalog_service.delete_category, category_id)


def create_product_action(user_id, payload) -> ActionResult:
    return execute(user_id, catalog_service.create_product, payload,
                   result_key="product", serialize=_to_dict, status_code=201)


def update_product_action(user_id, product_id, payload) -> ActionResult:
    return execute(user_id, catalog_service.update_product, product_id, payload,
                   result_key="product", serialize=_to_dict)


def delete_product_action(user_id, product_id) -> ActionResult:
    return execute(user_id, catalog_service.delete_product, product_id)


def create_customer_action(user_id, payload) -> ActionResult:
    return execute(user_id, catalog_service.create_customer, payload,
                   result_key="customer", serialize=_to_dict, status_code=201)


def create_supplier_action(user_id, payload) -> ActionResult:
    return execute(user_id, catalog_service.create_supplier, payload,
                   result_key="supplier", serialize=_to_dict, status_code=201)


# ---------------------------------------------------------------------------
# Warehouses
# ---------------------------------------------------------------------------

def create_warehouse_action(user_id, payload) -> ActionResult:
    return execute(user_id, warehouse_service.create_warehouse, payload,
                   result_key="warehouse", serialize=_to_dict, status_code=201)


def update_warehouse_action(user_id, warehouse_id, payload) -> ActionResult:
    return execute(user_id, warehouse_service.update_warehouse, warehouse_id, payload,
                   result_key="warehouse", serialize=_to_dict)


def delete_warehouse_action(user_id, warehouse_id) -> ActionResult:
    return execute(user_id, warehouse_service.delete_warehouse, warehouse_id)
