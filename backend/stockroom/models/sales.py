from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class Sale(db.Model):
    """
    Sale header.

    total_amount_cents = sum(quantity * unit_price_cents) over items
    profit_amount_cents = sum(quantity * (unit_price_cents - product.cost_price_cents))
    Both are computed once, at creation time, from the prices then in effect.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_branch_created", "branch_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    profit_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        cascade="all, delete-orphan",
    )
    branch = db.relationship("Branch")
    customer = db.relationship("Customer")
    user = db.relationship("User")

    def __repr__(self) -> str:
        return f"<Sale id={self.id} branch_id={self.branch_id} total={self.total_amount_cents}>"

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "branch_id": self.branch_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "user_id": self.user_id,
            "seller_name": (self.user.full_name if self.user else None) or "System",
            "total_amount_cents": self.total_amount_cents,
            "profit_amount_cents": self.profit_amount_cents,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")
    warehouse = db.relationship("Warehouse")

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "barcode": self.product.barcode if self.product else None,
            "warehouse_id": self.warehouse_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }
