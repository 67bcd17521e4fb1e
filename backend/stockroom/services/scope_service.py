"""
Tenant Scoping: filter library and per-entity scope policies.

WHY: Tenant isolation is one pair of rules (organization predicate, branch
predicate) that must be applied to every read and write touching a
tenant-scoped table. Writing `query = filter(query, ctx)` by hand at each call
site is how a filter gets forgotten, so:

1. The filter functions are pure: they take a generative SQLAlchemy query
   (legacy Query or 2.0 Select) and return a new one.
2. Each tenant model has exactly one ScopePolicy in SCOPE_POLICIES.
3. Services obtain tenant rows only through scoped_query()/new_scoped(),
   which refuse models without a policy.

SUPER ADMIN: no fixed scope. Filters return the query unchanged unless the
super admin asks for a specific organization/branch through a ScopeFilter,
in which case that scope (not the caller's own) is applied.

USAGE:
    sales = scoped_query(Sale, ctx).order_by(Sale.created_at.desc()).all()
    product = new_scoped(Product, ctx, name="Widget", ...)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import or_, select

from ..extensions import db
from ..errors import ConfigurationError
from ..models import (
    Branch, Category, Customer, Notification, Product, ProductStock, PurchaseOrder,
    PurchaseOrderItem, Sale, SaleItem, StockMovement, Supplier, Warehouse,
)
from .tenant_service import TenantContext


@dataclass(frozen=True)
class ScopeFilter:
    """Explicit organization/branch requested by the caller. Only honoured for super admins."""
    organization_id: Optional[int] = None
    branch_id: Optional[int] = None

    @classmethod
    def from_mapping(cls, args: Any) -> "ScopeFilter":
        def _int(key):
            raw = args.get(key) if args else None
            if raw in (None, "", "all"):
                return None
            try:
                return int(raw)
            except (TypeError, ValueError):
                return None
        return cls(organization_id=_int("organization_id"), branch_id=_int("branch_id"))

    @property
    def is_empty(self) -> bool:
        return self.organization_id is None and self.branch_id is None


def _query_entity(query):
    return query.column_descriptions[0]["entity"]


def _column(query, column):
    if isinstance(column, str):
        return getattr(_query_entity(query), column)
    return column


# ---------------------------------------------------------------------------
# Filter library
# ---------------------------------------------------------------------------

def apply_organization_filter(query, ctx: TenantContext, column="organization_id"):
    """Restrict an organization-level query to the caller's organization (no-op for super admin)."""
    if ctx.is_super_admin:
        return query

    if not ctx.organization_id:
        raise ConfigurationError("User must belong to an organization")

    return query.filter(_column(query, column) == ctx.organization_id)


def apply_branch_filter(query, ctx: TenantContext, column="branch_id"):
    """Restrict a branch-level query to the caller's branch (no-op for super admin)."""
    if ctx.is_super_admin:
        return query

    if not ctx.branch_id:
        raise ConfigurationError("User must belong to a branch")

    return query.filter(_column(query, column) == ctx.branch_id)


def get_organization_defaults(ctx: TenantContext) -> dict:
    """Values stamped onto new organization-level rows."""
    if not ctx.organization_id:
        raise ConfigurationError("User must belong to an organization to create entities")
    return {"organization_id": ctx.organization_id}


def get_branch_defaults(ctx: TenantContext) -> dict:
    """Values stamped onto new branch-level rows."""
    if not ctx.branch_id:
        raise ConfigurationError("User must belong to a branch to create entities")
    return {"branch_id": ctx.branch_id}


def effective_scope(ctx: TenantContext, requested: ScopeFilter | None = None) -> ScopeFilter:
    """
    The organization/branch a read actually covers.

    Super admins get exactly what they asked for (possibly nothing = global);
    everyone else gets their own assignment regardless of what they asked for.
    """
    if ctx.is_super_admin:
        return requested or ScopeFilter()
    return ScopeFilter(organization_id=ctx.organization_id, branch_id=ctx.branch_id)


def _branch_org_subquery(branch_id: int):
    return select(Branch.organization_id).where(Branch.id == branch_id).scalar_subquery()


def _org_branch_ids(organization_id: int):
    return select(Branch.id).where(Branch.organization_id == organization_id)


# ---------------------------------------------------------------------------
# Scope policies (one per entity type)
# ---------------------------------------------------------------------------

class ScopePolicy:
    """Restricts queries on one model to a tenant scope and stamps tenant columns on new rows."""

    def __init__(self, model):
        self.model = model

    def restrict(self, query, ctx: TenantContext, requested: ScopeFilter | None = None):
        raise NotImplementedError

    def defaults(self, ctx: TenantContext) -> dict:
        raise NotImplementedError


class OrganizationScope(ScopePolicy):
    def __init__(self, model, column: str = "organization_id"):
        super().__init__(model)
        self.column = getattr(model, column)

    def restrict(self, query, ctx, requested=None):
        if ctx.is_super_admin:
            if requested is None or requested.is_empty:
                return query
            if requested.organization_id is not None:
                return query.filter(self.column == requested.organization_id)
            return query.filter(self.column == _branch_org_subquery(requested.branch_id))
        return apply_organization_filter(query, ctx, self.column)

    def defaults(self, ctx):
        return get_organization_defaults(ctx)


class BranchScope(ScopePolicy):
    def __init__(self, model, column: str = "branch_id"):
        super().__init__(model)
        self.column = getattr(model, column)

    def restrict(self, query, ctx, requested=None):
        if ctx.is_super_admin:
            if requested is None or requested.is_empty:
                return query
            if requested.branch_id is not None:
                return query.filter(self.column == requested.branch_id)
            return query.filter(self.column.in_(_org_branch_ids(requested.organization_id)))
        return apply_branch_filter(query, ctx, self.column)

    def defaults(self, ctx):
        return get_branch_defaults(ctx)


class BranchOrSharedScope(ScopePolicy):
    """
    Rows owned by a branch, or shared across the organization (branch IS NULL).

    Used for warehouses, the stock held in them and the alerts about them: a
    branch sees its own warehouses plus the organization's shared ones.
    """

    def __init__(self, model, org_column: str = "organization_id", branch_column: str = "branch_id"):
        super().__init__(model)
        self.org_column = getattr(model, org_column)
        self.branch_column = getattr(model, branch_column)

    def _branch_or_shared(self, branch_id):
        return or_(self.branch_column == branch_id, self.branch_column.is_(None))

    def restrict(self, query, ctx, requested=None):
        if ctx.is_super_admin:
            if requested is None or requested.is_empty:
                return query
            if requested.organization_id is not None:
                query = query.filter(self.org_column == requested.organization_id)
            else:
                query = query.filter(self.org_column == _branch_org_subquery(requested.branch_id))
            if requested.branch_id is not None:
                query = query.filter(self._branch_or_shared(requested.branch_id))
            return query

        query = apply_organization_filter(query, ctx, self.org_column)
        if ctx.branch_id:
            return query.filter(self._branch_or_shared(ctx.branch_id))
        # Organization-level users without a branch only see shared rows
        return query.filter(self.branch_column.is_(None))

    def defaults(self, ctx):
        return get_organization_defaults(ctx)


class ParentScope(ScopePolicy):
    """Child rows (sale items, purchase order items) inherit their header's scope."""

    def __init__(self, model, parent, fk_column: str):
        super().__init__(model)
        self.parent = parent
        self.fk_column = getattr(model, fk_column)

    def restrict(self, query, ctx, requested=None):
        if ctx.is_super_admin and (requested is None or requested.is_empty):
            return query
        parent_ids = policy_for(self.parent).restrict(select(self.parent.id), ctx, requested)
        return query.filter(self.fk_column.in_(parent_ids))

    def defaults(self, ctx):
        return {}


SCOPE_POLICIES: dict[type, ScopePolicy] = {
    Branch: OrganizationScope(Branch),
    Category: OrganizationScope(Category),
    Product: OrganizationScope(Product),
    Customer: OrganizationScope(Customer),
    Supplier: OrganizationScope(Supplier),
    Warehouse: BranchOrSharedScope(Warehouse),
    ProductStock: BranchOrSharedScope(ProductStock),
    Notification: BranchOrSharedScope(Notification),
    Sale: BranchScope(Sale),
    PurchaseOrder: BranchScope(PurchaseOrder),
    StockMovement: BranchScope(StockMovement),
    SaleItem: ParentScope(SaleItem, Sale, "sale_id"),
    PurchaseOrderItem: ParentScope(PurchaseOrderItem, PurchaseOrder, "purchase_order_id"),
}


def policy_for(model) -> ScopePolicy:
    try:
        return SCOPE_POLICIES[model]
    except KeyError:
        raise LookupError(f"{model.__name__} has no tenant scope policy") from None


def scoped_query(model, ctx: TenantContext, requested: ScopeFilter | None = None):
    """Base query over a tenant model, already restricted to the caller's scope."""
    return policy_for(model).restrict(db.session.query(model), ctx, requested)


def restrict(query, model, ctx: TenantContext, requested: ScopeFilter | None = None):
    """Restrict an arbitrary (e.g. aggregate) query on behalf of `model`'s policy."""
    return policy_for(model).restrict(query, ctx, requested)


def new_scoped(model, ctx: TenantContext, **values):
    """Construct a tenant row with its tenant columns stamped from the context."""
    return model(**{**values, **policy_for(model).defaults(ctx)})


def get_scoped_or_none(model, ctx: TenantContext, row_id: int):
    """
    Fetch one row by id within scope.

    Missing and out-of-scope rows both come back as None so callers cannot
    tell them apart.
    """
    if row_id is None:
        return None
    return scoped_query(model, ctx).filter(model.id == row_id).first()
