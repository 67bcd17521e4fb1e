"""
Inventory error taxonomy.

Services raise these; the mutation surface (stockroom.actions) turns them into
result dicts of the shape {"error": str, "details": [str]} and routes turn the
dicts into JSON responses using status_code.

NotFoundInScopeError is raised both when a row is missing and when it exists
under another tenant. The two cases must stay indistinguishable to callers.
"""
from __future__ import annotations


class InventoryError(Exception):
    """Base class for expected, caller-facing failures."""
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None, details: list[str] | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = list(details or [])
        self.compensation_failed = False

    def to_result(self) -> dict:
        result: dict = {"error": self.message}
        if self.details:
            result["details"] = list(self.details)
        if self.compensation_failed:
            result["compensation_failed"] = True
        return result


class UnauthorizedError(InventoryError):
    """No resolvable tenant context for the caller."""
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(InventoryError):
    """Tenant context resolved but lacks the required privilege."""
    status_code = 403
    default_message = "Forbidden: Super admin access required"


class ValidationError(InventoryError):
    """Payload failed shape/range checks. Raised before any store access."""
    status_code = 400
    default_message = "Invalid fields provided."


class ConfigurationError(InventoryError):
    """
    A non-super-admin identity lacks the organization/branch a filter or default needs.

    This is a data-setup problem. The specific message is for the logs; callers
    only ever see public_message.
    """
    status_code = 500
    default_message = "User is not assigned to an organization or branch"
    public_message = "An unexpected error occurred. Please contact your administrator."

    def to_result(self) -> dict:
        return {"error": self.public_message}


class NotFoundInScopeError(InventoryError):
    status_code = 404
    default_message = "Not found"


class InsufficientStockError(InventoryError):
    status_code = 409

    def __init__(
        self,
        *,
        available: int,
        requested: int,
        product_ref: str | int | None = None,
        message: str | None = None,
    ):
        self.available = available
        self.requested = requested
        self.product_ref = product_ref
        if message is None:
            name = product_ref if product_ref is not None else "product"
            message = f"Insufficient stock for {name}. Available: {available}, Requested: {requested}"
        super().__init__(message)

    def to_result(self) -> dict:
        result = super().to_result()
        result["available"] = self.available
        result["requested"] = self.requested
        return result


class DeleteBlockedError(InventoryError):
    """Referential delete guard refused to delete a parent row."""
    status_code = 409

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class StoreError(InventoryError):
    """Underlying database call failed. The cause is logged, never shown."""
    status_code = 500
    default_message = "Database error"


class CompensationFailure(Exception):
    """
    A compensating delete failed and left an orphan header behind.

    Not an InventoryError: it is never shown to the end user. The pipeline
    logs and persists it, then re-raises the error that triggered compensation.
    """

    def __init__(self, entity_type: str, entity_id: int, cause: Exception):
        super().__init__(f"Compensation failed for {entity_type} {entity_id}: {cause}")
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.cause = cause
