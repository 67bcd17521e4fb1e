# backend/stockroom/config.py
from __future__ import annotations
import os


WRITE_MODE_ATOMIC = "atomic"
WRITE_MODE_COMPENSATING = "compensating"


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockroom.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockroom.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "atomic": header, items and stock effects commit in one transaction.
    # "compensating": header commits first; a failed item write deletes it again.
    INVENTORY_WRITE_MODE = os.environ.get("INVENTORY_WRITE_MODE", WRITE_MODE_ATOMIC)

    # Attempts for the compensating delete before it is recorded as a failure
    COMPENSATION_ATTEMPTS = int(os.environ.get("COMPENSATION_ATTEMPTS", "3"))
    COMPENSATION_BACKOFF_SECONDS = float(os.environ.get("COMPENSATION_BACKOFF_SECONDS", "0.1"))

    # Header carrying the authenticated user id, set by the upstream auth proxy
    TENANT_IDENTITY_HEADER = os.environ.get("TENANT_IDENTITY_HEADER", "X-User-Id")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # A decrement taking a stock record below this quantity records a low_stock
    # notification. 0 disables the alerts.
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))
