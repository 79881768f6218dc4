# Overview: Row locking and retry helpers shared by every read-modify-write service.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConflictError


class ConcurrentUpdateError(ConflictError):
    """Raised when a row kept changing underneath us after every retry."""
    pass


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; the version_id column
    still catches lost updates there.
    """
    return query.with_for_update()


def get_owned_for_update(model, *, owner_id: int, row_id: int):
    """Load one owner-scoped row under a row lock, or None."""
    return lock_for_update(
        db.session.query(model).filter_by(id=row_id, owner_id=owner_id)
    ).first()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    func must do its own reads, so each attempt starts from fresh rows.
    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). A stale write that survives every
    attempt surfaces as ConcurrentUpdateError.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                if isinstance(exc, StaleDataError):
                    raise ConcurrentUpdateError(
                        "Record was modified by another request, please retry"
                    ) from exc
                raise
            current_app.logger.warning(
                "Retrying after concurrent update (attempt %s/%s): %s",
                attempt + 1, attempts, exc.__class__.__name__,
            )
            time.sleep(backoff_base * (2 ** attempt))

