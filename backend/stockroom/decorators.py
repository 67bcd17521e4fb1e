# Overview: Request decorators establishing the tenant context for API routes.

from functools import wraps
from flask import current_app, g, jsonify, request

from .errors import ForbiddenError, UnauthorizedError
from .services.tenant_service import resolve_tenant_context


def identity_from_request():
    """
    Authenticated user id placed on the request by the upstream auth proxy.

    Returns None for a missing or malformed header.
    """
    raw = request.headers.get(current_app.config["TENANT_IDENTITY_HEADER"])
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def require_tenant(f):
    """
    Resolve the tenant context for the request.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.user_id: The authenticated user id
    - g.tenant: The TenantContext (organization/branch scope, super admin flag)

    SECURITY: Returns 401 if:
    - No identity header, or not an integer
    - No such user
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = identity_from_request()
        ctx = resolve_tenant_context(user_id)

        if ctx is None:
            current_app.logger.warning(
                "Unauthorized request to %s %s (identity=%r)", request.method, request.path, user_id
            )
            error = UnauthorizedError()
            return jsonify(error.to_result()), error.status_code

        g.user_id = user_id
        g.tenant = ctx
        return f(*args, **kwargs)

    return decorated_function


def require_super_admin(f):
    """Must be stacked under @require_tenant."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not getattr(g, "tenant", None) or not g.tenant.is_super_admin:
            current_app.logger.warning(
                "Super admin required for %s %s (user=%s)",
                request.method, request.path, getattr(g, "user_id", None),
            )
            error = ForbiddenError()
            return jsonify(error.to_result()), error.status_code
        return f(*args, **kwargs)

    return decorated_function
