# Overview: Transaction, locking and retry helpers shared by write paths.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query, *, of=None):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; writers there are serialized
    by begin_isolated() instead.
    """
    if of is not None:
        return query.with_for_update(of=of)
    return query.with_for_update()


def begin_isolated(*, lock_timeout_ms: int | None = None) -> None:
    """
    Start a fresh write transaction at the isolation level used by checkout
    and by grant/membership mutations.

    Any open session transaction is rolled back first so reads inside the
    new transaction observe everything committed before it began.

    - PostgreSQL: SERIALIZABLE, with a per-transaction lock_timeout.
    - SQLite: BEGIN IMMEDIATE takes the database write lock up front.
    """
    db.session.rollback()

    if lock_timeout_ms is None:
        lock_timeout_ms = current_app.config.get("CHECKOUT_LOCK_TIMEOUT_MS", 5000)

    dialect = db.engine.dialect.name
    if dialect == "sqlite":
        db.session.execute(text(f"PRAGMA busy_timeout = {int(lock_timeout_ms)}"))
        db.session.execute(text("BEGIN IMMEDIATE"))
    elif dialect == "postgresql":
        db.session.connection(execution_options={"isolation_level": "SERIALIZABLE"})
        db.session.execute(text(f"SET LOCAL lock_timeout = {int(lock_timeout_ms)}"))
    else:
        db.session.connection(execution_options={"isolation_level": "SERIALIZABLE"})


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock timeouts, serialization
    failures) and StaleDataError (optimistic locking conflicts). The last
    failure is re-raised once attempts are exhausted.
    """
    if attempts is None:
        attempts = current_app.config.get("CHECKOUT_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("CHECKOUT_RETRY_BACKOFF", 0.05)

    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            current_app.logger.info(
                "Retrying after concurrency failure (attempt %s/%s): %s",
                attempt + 1, attempts, exc.__class__.__name__,
            )
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
