from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("organization_id", "name", name="uq_categories_org_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Product master data.

    MULTI-TENANT: Products are organization-scoped and branch-agnostic.
    Every branch of the organization sells from the same catalog; stock is
    tracked per warehouse in ProductStock.

    PRICING:
    cost_price_cents / selling_price_cents are read when a sale is created to
    snapshot profit. Changing them later never rewrites historical sales.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("organization_id", "barcode", name="uq_products_org_barcode"),
        db.Index("ix_products_org_name", "organization_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(64), nullable=False)

    # Authoritative storage in cents
    cost_price_cents = db.Column(db.Integer, nullable=False)
    selling_price_cents = db.Column(db.Integer, nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} barcode={self.barcode!r} name={self.name!r} organization_id={self.organization_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "category_id": self.category_id,
            "name": self.name,
            "barcode": self.barcode,
            "cost_price_cents": self.cost_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class _PartyMixin:
    """Columns shared by organization-level trading partners."""
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(64), nullable=True)
    location = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "phone": self.phone,
            "location": self.location,
            "created_at": to_utc_z(self.created_at),
        }


class Customer(_PartyMixin, db.Model):
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)


class Supplier(_PartyMixin, db.Model):
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
