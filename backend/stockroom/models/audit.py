from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class ReconciliationEvent(db.Model):
    """
    Out-of-band record of a write the engine could not clean up.

    Written when a compensating delete fails and leaves an orphan header
    (a sale or purchase order without items). Operators resolve these by hand
    and stamp resolved_at.
    """
    __tablename__ = "reconciliation_events"
    __table_args__ = (
        db.Index("ix_reconciliation_events_unresolved", "resolved_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    event_type = db.Column(db.String(64), nullable=False, index=True)
    entity_type = db.Column(db.String(64), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)

    organization_id = db.Column(db.Integer, nullable=True, index=True)
    branch_id = db.Column(db.Integer, nullable=True)
    user_id = db.Column(db.Integer, nullable=True)

    reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "organization_id": self.organization_id,
            "branch_id": self.branch_id,
            "user_id": self.user_id,
            "reason": self.reason,
            "created_at": to_utc_z(self.created_at),
            "resolved_at": to_utc_z(self.resolved_at) if self.resolved_at else None,
        }
