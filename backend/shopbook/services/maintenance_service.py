# Overview: Service-layer operations for maintenance; encapsulates business logic and database work.

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import SecurityEvent
from shopbook.time_utils import utcnow


def cleanup_security_events(*, retention_days: int = 90, owner_id: int | None = None) -> int:
    """Delete security events older than retention_days, optionally for one owner."""
    cutoff = utcnow() - timedelta(days=retention_days)
    query = db.session.query(SecurityEvent).filter(SecurityEvent.occurred_at < cutoff)
    if owner_id is not None:
        query = query.filter(SecurityEvent.owner_id == owner_id)
    deleted = query.delete(synchronize_session=False)
    db.session.commit()
    return deleted
