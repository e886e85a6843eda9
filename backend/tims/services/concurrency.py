# Overview: Serialization of stock writes on one inventory item: row locks plus bounded retry.

"""
Stock writes on a single item must not interleave. Two mechanisms cover the
supported databases:

- PostgreSQL / MySQL: the item row is read with SELECT ... FOR UPDATE, so a
  second writer blocks until the first commits and then sees its stock level.
- SQLite has no row locks. InventoryItem.version_id makes the losing writer's
  UPDATE fail with StaleDataError, and the unit of work is re-run.

Retry settings come from app config (STOCK_WRITE_ATTEMPTS,
STOCK_RETRY_BACKOFF_SECONDS). Once attempts run out the last error propagates
and the app-level handler answers 500.
"""

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


RETRYABLE_STOCK_ERRORS = (OperationalError, StaleDataError)

# Dialects that honor SELECT ... FOR UPDATE
_ROW_LOCK_DIALECTS = {"postgresql", "mysql", "mariadb", "oracle", "mssql"}


def supports_row_locks() -> bool:
    return db.session.get_bind().dialect.name in _ROW_LOCK_DIALECTS


def lock_for_update(query):
    """Add FOR UPDATE where the database honors it; otherwise return query as is."""
    if supports_row_locks():
        return query.with_for_update()
    return query


def run_with_retry(func, *, attempts: int | None = None, label: str | None = None):
    """
    Call func, re-running it after a lock timeout, deadlock or version clash.

    func must start from a fresh read each time: the session is rolled back
    before every retry. Backoff doubles per attempt.
    """
    config = current_app.config
    attempts = attempts or config.get("STOCK_WRITE_ATTEMPTS", 3)
    backoff = config.get("STOCK_RETRY_BACKOFF_SECONDS", 0.1)
    label = label or getattr(func, "__qualname__", "stock write")

    attempt = 1
    while True:
        try:
            return func()
        except RETRYABLE_STOCK_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts:
                current_app.logger.error(
                    "%s gave up after %d attempts: %s", label, attempts, exc.__class__.__name__
                )
                raise
            current_app.logger.warning(
                "%s conflicted (attempt %d/%d): %s", label, attempt, attempts, exc.__class__.__name__
            )
            time.sleep(backoff * (2 ** (attempt - 1)))
            attempt += 1
