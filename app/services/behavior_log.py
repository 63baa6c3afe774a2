"""
Behavioral-event sink — write-only append log.

Callers add events inside their own unit of work; each insert runs in a
savepoint so a failed write is rolled back alone and never reaches the
caller. The enclosing operation commits.

Public API
----------
record_event(db, user_id, event_type, reference_date, meta) -> bool
get_behavior_events(db, user_id, event_type, limit, offset) -> (total, items)
"""
from __future__ import annotations

import json
import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from app.models.behavior_event import BehaviorEvent

logger = logging.getLogger(__name__)


class EventType:
    SEGMENT_COMPLETION   = "segment_completion"
    ROUTINE_GENERATED    = "routine_generated"
    ADAPTATIONS_APPLIED  = "routine_adaptations_applied"
    ADAPTATIONS_PENDING  = "routine_adaptations_pending"


ALL_EVENT_TYPES = (
    EventType.SEGMENT_COMPLETION,
    EventType.ROUTINE_GENERATED,
    EventType.ADAPTATIONS_APPLIED,
    EventType.ADAPTATIONS_PENDING,
)


def record_event(
    db: Session,
    user_id: str,
    event_type: str,
    reference_date: date,
    meta: Optional[dict] = None,
) -> bool:
    """Append one event. Returns False (and logs) if the write failed."""
    savepoint = db.begin_nested()
    try:
        db.add(BehaviorEvent(
            user_id=user_id,
            event_type=event_type,
            reference_date=reference_date,
            event_metadata=json.dumps(meta or {}, default=str),
        ))
        db.flush()
        savepoint.commit()
        return True
    except Exception:
        savepoint.rollback()
        logger.warning(
            "Behavior event %s for user %s on %s was not recorded",
            event_type, user_id, reference_date, exc_info=True,
        )
        return False


def get_behavior_events(
    db: Session,
    user_id: str,
    event_type: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[BehaviorEvent]]:
    """Return (total, page) of a user's events, newest first."""
    q = db.query(BehaviorEvent).filter(BehaviorEvent.user_id == user_id)
    if event_type:
        q = q.filter(BehaviorEvent.event_type == event_type)
    total = q.count()
    items = (
        q.order_by(BehaviorEvent.created_at.desc(), BehaviorEvent.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items
