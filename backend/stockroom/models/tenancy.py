from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z

class Organization(db.Model):
    """
    Multi-tenant root: Every tenant is an Organization.

    DESIGN:
    - Organizations own products, categories, customers and suppliers directly
    - Branches belong to organizations (organization_id FK) and own sales,
      purchase orders, stock movements and branch-private warehouses
    - No data may cross organization boundaries except for super admins
    """
    __tablename__ = "organizations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Organization id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }

class Branch(db.Model):
    """
    Branch within an organization.

    MULTI-TENANT: Branch names are unique within an organization, not globally.
    """
    __tablename__ = "branches"
    __table_args__ = (
        db.UniqueConstraint("organization_id", "name", name="uq_branches_org_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    location = db.Column(db.String(255), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    organization = db.relationship("Organization", backref=db.backref("branches", lazy=True))

    def __repr__(self) -> str:
        return f"<Branch id={self.id} name={self.name!r} organization_id={self.organization_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "location": self.location,
            "created_at": to_utc_z(self.created_at),
        }

class User(db.Model):
    """
    User profile carrying tenant assignment.

    Credentials live with the external authentication provider; this row only
    says which organization/branch the authenticated user acts on and whether
    they are a super admin (no fixed scope, sees every tenant).
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, unique=True, index=True)
    full_name = db.Column(db.String(255), nullable=True)

    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=True, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)

    is_super_admin = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    organization = db.relationship("Organization")
    branch = db.relationship("Branch")

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "organization_id": self.organization_id,
            "branch_id": self.branch_id,
            "is_super_admin": self.is_super_admin,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
