# backend/stockroom/routes/notifications.py
"""
Notification inbox API routes.
"""
from flask import Blueprint, g, jsonify, request

from .. import actions
from ..decorators import require_tenant
from ..services import notification_service
from .common import respond, scope_from_args


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_tenant
def list_notifications():
    """Latest 20 notifications in scope, newest first. ?unread=true for unread only."""
    scope = scope_from_args()
    notifications = notification_service.list_notifications(
        g.tenant,
        scope,
        unread_only=request.args.get("unread", "").lower() in ("1", "true"),
    )
    return jsonify({
        "notifications": [n.to_dict() for n in notifications],
        "unread_count": notification_service.unread_count(g.tenant, scope),
    }), 200


@notifications_bp.post("/<int:notification_id>/read")
@require_tenant
def mark_read(notification_id: int):
    return respond(actions.mark_notification_read_action(g.user_id, notification_id))


@notifications_bp.post("/read-all")
@require_tenant
def mark_all_read():
    return respond(actions.mark_all_notifications_read_action(g.user_id))
