from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class Warehouse(db.Model):
    """
    Physical stock location.

    MULTI-TENANT:
    - organization_id: owning tenant (required)
    - branch_id: owning branch, or NULL for a shared warehouse visible to
      every branch of the organization
    """
    __tablename__ = "warehouses"
    __table_args__ = (
        db.Index("ix_warehouses_org_branch", "organization_id", "branch_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)

    name = db.Column(db.String(100), nullable=False)
    location = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_shared(self) -> bool:
        return self.branch_id is None

    def __repr__(self) -> str:
        return f"<Warehouse id={self.id} name={self.name!r} branch_id={self.branch_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "branch_id": self.branch_id,
            "name": self.name,
            "location": self.location,
            "is_shared": self.is_shared,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }


class ProductStock(db.Model):
    """
    On-hand quantity per (product, warehouse).

    INVARIANT: quantity >= 0. Enforced by the CHECK constraint and by the
    conditional decrement in stock_service.apply_stock_delta; never written
    with a blind read-modify-write.

    branch_id mirrors the warehouse's branch (NULL for shared warehouses) so
    stock rows can be scoped without joining warehouses.
    """
    __tablename__ = "product_stocks"
    __table_args__ = (
        db.UniqueConstraint("product_id", "warehouse_id", name="uq_product_stocks_product_warehouse"),
        db.CheckConstraint("quantity >= 0", name="ck_product_stocks_quantity_non_negative"),
        db.Index("ix_product_stocks_org_branch", "organization_id", "branch_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product")
    warehouse = db.relationship("Warehouse")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "branch_id": self.branch_id,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "quantity": self.quantity,
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Recorded change of a product's location.

    - only to_warehouse_id set: inbound / new stock
    - only from_warehouse_id set: outbound / removal
    - both set: transfer between warehouses
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
        db.Index("ix_stock_movements_branch_created", "branch_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    from_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True, index=True)
    to_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")
    from_warehouse = db.relationship("Warehouse", foreign_keys=[from_warehouse_id])
    to_warehouse = db.relationship("Warehouse", foreign_keys=[to_warehouse_id])
    created_by_user = db.relationship("User")

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def kind(self) -> str:
        if self.from_warehouse_id and self.to_warehouse_id:
            return "TRANSFER"
        if self.from_warehouse_id:
            return "OUTBOUND"
        return "INBOUND"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "from_warehouse_id": self.from_warehouse_id,
            "from_warehouse_name": self.from_warehouse.name if self.from_warehouse else None,
            "to_warehouse_id": self.to_warehouse_id,
            "to_warehouse_name": self.to_warehouse.name if self.to_warehouse else None,
            "kind": self.kind,
            "quantity": self.quantity,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_by_name": self.created_by_user.full_name if self.created_by_user else None,
            "created_at": to_utc_z(self.created_at),
        }
