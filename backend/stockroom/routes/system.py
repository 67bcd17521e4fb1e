# backend/stockroom/routes/system.py
"""
System health, caller identity and reconciliation endpoints.

Health is "degraded" (still 200) while unresolved reconciliation events
exist: the engine works, but an operator has orphaned headers to clean up.
"""

import time
from flask import Blueprint, current_app, g, jsonify
from sqlalchemy.exc import SQLAlchemyError

from ..decorators import require_super_admin, require_tenant
from ..extensions import db
from ..models import Organization, ReconciliationEvent, User
from ..services.pipeline import find_orphan_headers
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        organization_count = db.session.query(Organization).count()
        user_count = db.session.query(User).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "organizations": organization_count,
                "users": user_count,
            }
        }
    except SQLAlchemyError:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_reconciliation_health() -> dict:
    try:
        unresolved = (
            db.session.query(ReconciliationEvent)
            .filter(ReconciliationEvent.resolved_at.is_(None))
            .count()
        )
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Reconciliation health check failed")
        return {"status": "unhealthy", "error": "Database error"}

    if unresolved:
        return {
            "status": "degraded",
            "warning": f"{unresolved} unresolved reconciliation event(s)",
            "details": {"unresolved": unresolved},
        }
    return {"status": "healthy", "details": {"unresolved": 0}}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    reconciliation_health = check_reconciliation_health()

    all_checks = [database_health, reconciliation_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "reconciliation": reconciliation_health,
        }
    }

    return response, http_status


@system_bp.get("/api/me")
@require_tenant
def me():
    """The caller's resolved tenant context."""
    return jsonify(g.tenant.to_dict()), 200


@system_bp.get("/api/admin/reconciliation-events")
@require_tenant
@require_super_admin
def reconciliation_events():
    events = (
        db.session.query(ReconciliationEvent)
        .filter(ReconciliationEvent.resolved_at.is_(None))
        .order_by(ReconciliationEvent.created_at.desc())
        .all()
    )
    return jsonify({"events": [e.to_dict() for e in events]}), 200


@system_bp.get("/api/admin/orphans")
@require_tenant
@require_super_admin
def orphan_headers():
    return jsonify(find_orphan_headers(g.tenant)), 200
