# Overview: Retry helper for the compensating delete of the inventory write pipelines.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None, label: str = "operation"):
    """
    Execute an idempotent DB operation with retry on transient failures.

    Retries on OperationalError (deadlocks, locks, dropped connections) and
    StaleDataError (optimistic locking conflicts). Only the compensating
    delete is run through here: create pipelines are not idempotent and are
    never retried automatically.
    """
    if attempts is None:
        attempts = current_app.config.get("COMPENSATION_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("COMPENSATION_BACKOFF_SECONDS", 0.1)

    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "%s failed (attempt %d/%d): %s", label, attempt + 1, attempts, exc
            )
            time.sleep(backoff_base * (2 ** attempt))
