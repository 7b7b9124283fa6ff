# Overview: Service-layer helpers for concurrency; row locking and retry around units of work.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

# Lock contention (SQLite "database is locked", deadlocks) and version_id conflicts
RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """SELECT ... FOR UPDATE. SQLite ignores it; see begin_write_transaction."""
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Take the database write lock up front on SQLite.

    SQLite has no row locks; BEGIN IMMEDIATE serializes writers so that a
    check-then-decrement sequence cannot interleave with another writer.
    No-op on other engines (they rely on lock_for_update).
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run a whole unit of work, retrying it on RETRYABLE_ERRORS.

    The session is rolled back before each retry and the delay doubles
    every time. Anything else func raises (OrderError, ValidationError...)
    propagates on the first attempt.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS:
            db.session.rollback()
            if attempt == attempts:
                raise
            time.sleep(backoff_base * (2 ** (attempt - 1)))
