# Overview: Cache invalidation signal emitted after successful inventory mutations.

"""
Presentation layers subscribe to `views_invalidated` to drop cached pages:

    from stockroom.signals import views_invalidated

    @views_invalidated.connect_via(app)
    def _drop(sender, views, **extra):
        for view in views:
            cache.delete_memoized(...)

Fire-and-forget: a failing receiver is logged and never fails the mutation.
"""
from __future__ import annotations

from blinker import Namespace
from flask import current_app


SALES = "sales"
PURCHASES = "purchases"
INVENTORY = "inventory"
WAREHOUSES = "warehouses"
STOCK_MOVEMENTS = "stock-movements"
NOTIFICATIONS = "notifications"

_signals = Namespace()

views_invalidated = _signals.signal("views-invalidated")


def invalidate(*views: str) -> None:
    app = current_app._get_current_object()
    try:
        views_invalidated.send(app, views=list(views))
    except Exception:
        app.logger.exception("Cache invalidation receiver failed for %s", ", ".join(views))
