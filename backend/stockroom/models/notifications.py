from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


NOTIFICATION_LOW_STOCK = "low_stock"


class Notification(db.Model):
    """
    In-app alert for the people working a warehouse.

    MULTI-TENANT: scoped like the warehouse it is about. branch_id is NULL
    for alerts on a shared warehouse, which every branch of the organization
    sees. product_id/warehouse_id are plain references so alerts outlive the
    rows they mention.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_scope_read", "organization_id", "branch_id", "is_read"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    type = db.Column(db.String(32), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)

    product_id = db.Column(db.Integer, nullable=True)
    warehouse_id = db.Column(db.Integer, nullable=True)

    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "branch_id": self.branch_id,
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<Notification id={self.id} type={self.type} read={self.is_read}>"
