# Overview: Referential delete guard for parent rows with dependents.

from __future__ import annotations

from flask import current_app

from ..errors import DeleteBlockedError


def has_dependents(dependent_query) -> bool:
    """LIMIT 1 existence check: never counts the full dependent set."""
    return dependent_query.limit(1).first() is not None


def guard_delete(parent_label: str, dependent_query, reason: str | None = None) -> None:
    """
    Refuse to delete a parent row while dependent_query still matches anything.

    Raises DeleteBlockedError with a caller-facing reason.
    """
    if has_dependents(dependent_query):
        reason = reason or f"Cannot delete {parent_label} while it is still in use."
        current_app.logger.info("Delete blocked: %s", reason)
        raise DeleteBlockedError(reason)
