# Overview: Low-stock alerts and the notification inbox (list, mark read, mark all read).

"""
Notifications.

LOW STOCK:
A conditional decrement that takes a (product, warehouse) record from at or
above LOW_STOCK_THRESHOLD to below it records one low_stock notification.
Further decrements below the threshold stay quiet until the record is topped
up past it again. A threshold of 0 turns alerts off.

The alert is added to the caller's open transaction and never committed here:
if the sale/purchase/movement that caused it rolls back, so does the alert.
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import NotFoundInScopeError
from ..models import Notification, Warehouse
from ..models.notifications import NOTIFICATION_LOW_STOCK
from ..signals import NOTIFICATIONS, invalidate
from .pipeline import unit_of_work
from .scope_service import ScopeFilter, get_scoped_or_none, scoped_query
from .tenant_service import TenantContext


INBOX_LIMIT = 20


def low_stock_threshold() -> int:
    return int(current_app.config.get("LOW_STOCK_THRESHOLD", 0) or 0)


def crossed_low_stock(before: int, after: int, threshold: int) -> bool:
    return threshold > 0 and after < threshold <= before


def record_low_stock(
    ctx: TenantContext, product_id: int, product_name: str, warehouse: Warehouse, remaining: int
) -> Notification:
    """Add a low_stock alert scoped to the warehouse's tenant. Does not commit."""
    notification = Notification(
        organization_id=warehouse.organization_id,
        branch_id=warehouse.branch_id,
        user_id=ctx.user_id,
        type=NOTIFICATION_LOW_STOCK,
        title="Low stock",
        message=f"{product_name} is down to {remaining} in {warehouse.name}.",
        product_id=product_id,
        warehouse_id=warehouse.id,
    )
    db.session.add(notification)
    current_app.logger.info(
        "Low stock: product=%s warehouse=%s remaining=%s", product_id, warehouse.id, remaining
    )
    return notification


def list_notifications(
    ctx: TenantContext,
    requested: ScopeFilter | None = None,
    *,
    unread_only: bool = False,
    limit: int = INBOX_LIMIT,
) -> list[Notification]:
    query = scoped_query(Notification, ctx, requested)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def unread_count(ctx: TenantContext, requested: ScopeFilter | None = None) -> int:
    return scoped_query(Notification, ctx, requested).filter(Notification.is_read.is_(False)).count()


def mark_as_read(ctx: TenantContext, notification_id: int) -> Notification:
    notification = get_scoped_or_none(Notification, ctx, notification_id)
    if notification is None:
        raise NotFoundInScopeError("Notification not found.")

    with unit_of_work("mark notification as read"):
        notification.is_read = True

    invalidate(NOTIFICATIONS)
    return notification


def mark_all_as_read(ctx: TenantContext) -> int:
    """Mark every unread notification in the caller's scope as read. Returns how many changed."""
    with unit_of_work("mark notifications as read"):
        updated = (
            scoped_query(Notification, ctx)
            .filter(Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )

    current_app.logger.info("User %s marked %s notifications as read", ctx.user_id, updated)
    invalidate(NOTIFICATIONS)
    return updated
