# Overview: Locking and retry primitives shared by the ledger services and their callers.

from __future__ import annotations

import logging
import time

from sqlalchemy import text

from ..errors import LedgerError


logger = logging.getLogger(__name__)


# SQLSTATE classes reported by PostgreSQL (psycopg exposes them as pgcode/sqlstate)
_UNIQUE_VIOLATION_CODES = {"23505"}
_LOCK_CONFLICT_CODES = {"40001", "40P01", "55P03"}

# SQLite / MySQL report these only through the message text
_UNIQUE_VIOLATION_MARKERS = ("unique constraint failed", "duplicate entry", "duplicate key value")
_LOCK_CONFLICT_MARKERS = (
    "database is locked",
    "database table is locked",
    "database is busy",
    "deadlock",
    "could not serialize",
    "lock wait timeout",
)


def _driver_error(exc):
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    return code, str(orig if orig is not None else exc).lower()


def is_unique_violation(exc) -> bool:
    """True when an IntegrityError came from a UNIQUE constraint (the retryable kind)."""
    code, message = _driver_error(exc)
    if code:
        return code in _UNIQUE_VIOLATION_CODES
    return any(marker in message for marker in _UNIQUE_VIOLATION_MARKERS)


def is_lock_conflict(exc) -> bool:
    """True when an OperationalError is a lock, busy or serialization failure."""
    code, message = _driver_error(exc)
    if code in _LOCK_CONFLICT_CODES:
        return True
    return any(marker in message for marker in _LOCK_CONFLICT_MARKERS)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write() covers it there
    by taking the database write lock up front.
    """
    return query.with_for_update()


def begin_write(session) -> None:
    """
    Open the write transaction before the first read.

    SQLite: BEGIN IMMEDIATE takes the RESERVED lock now, so two writers can
    never both read quantity=5 and both decrement it; the second one waits on
    busy_timeout and then reads the committed value. Skipped when the
    connection is already inside a transaction (nested service call).

    Other backends: no-op, row locks from lock_for_update() do the job.
    """
    if session.get_bind().dialect.name != "sqlite":
        return
    raw = session.connection().connection.driver_connection
    if getattr(raw, "in_transaction", False):
        return
    session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05):
    """
    Call func() again when it fails with a retryable LedgerError.

    This belongs to CALLERS of the ledger services (HTTP layer, CLI). The
    services themselves never retry: each call is one transaction that either
    commits or raises, and a retry must start again from a fresh read.
    """
    for attempt in range(attempts):
        try:
            return func()
        except LedgerError as exc:
            if not exc.retryable or attempt >= attempts - 1:
                raise
            delay = backoff_base * (2 ** attempt)
            logger.warning(
                "Retrying after %s (attempt %s/%s, sleeping %.3fs)",
                exc.code, attempt + 1, attempts, delay,
            )
            time.sleep(delay)
