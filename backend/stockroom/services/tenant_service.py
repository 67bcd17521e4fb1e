"""
Multi-Tenant Service: Tenant Context Resolution

WHY: Every mutation and read starts by asking which organization/branch the
caller may act on. The answer is derived from the user profile on every call
and never cached: privilege and scope must not be stale.

SECURITY INVARIANTS:
1. No context -> the caller is treated as Unauthorized and nothing is read or written
2. The context is immutable for the lifetime of a request
3. A non-super-admin without an organization/branch may still resolve a
   context; operations that need the missing id fail with ConfigurationError

USAGE:
    from stockroom.services.tenant_service import require_tenant_context

    ctx = require_tenant_context(user_id)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..extensions import db
from ..errors import ForbiddenError, UnauthorizedError
from ..models import User


@dataclass(frozen=True)
class TenantContext:
    user_id: int
    is_super_admin: bool
    organization_id: Optional[int]
    branch_id: Optional[int]
    organization_name: Optional[str] = None
    branch_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "is_super_admin": self.is_super_admin,
            "organization_id": self.organization_id,
            "branch_id": self.branch_id,
            "organization_name": self.organization_name,
            "branch_name": self.branch_name,
        }


def resolve_tenant_context(user_id: int | None) -> TenantContext | None:
    """
    Resolve the caller's tenant context from their profile.

    Returns None if the caller is unauthenticated (no user id), has no
    profile, or the profile is deactivated. Callers must treat None as
    "Unauthorized" and abort, not retry.
    """
    if user_id is None:
        return None

    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None

    return TenantContext(
        user_id=user.id,
        is_super_admin=bool(user.is_super_admin),
        organization_id=user.organization_id,
        branch_id=user.branch_id,
        organization_name=user.organization.name if user.organization else None,
        branch_name=user.branch.name if user.branch else None,
    )


def require_tenant_context(user_id: int | None) -> TenantContext:
    """Resolve the tenant context or raise UnauthorizedError."""
    ctx = resolve_tenant_context(user_id)
    if ctx is None:
        raise UnauthorizedError()
    return ctx


def require_super_admin(ctx: TenantContext) -> TenantContext:
    if not ctx.is_super_admin:
        raise ForbiddenError()
    return ctx
