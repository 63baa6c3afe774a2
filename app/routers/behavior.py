"""
Behavior events router.

GET /users/{user_id}/behavior/events   — the user's event log (paginated, newest first)
"""
from __future__ import annotations

import json
from typing import Optional, Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.errors import InvalidInputError
from app.db.base import get_db
from app.models.behavior_event import BehaviorEvent
from app.schemas.behavior import BehaviorEventListResponse, BehaviorEventResponse
from app.services.behavior_log import ALL_EVENT_TYPES, EventType, get_behavior_events

router = APIRouter(prefix="/users/{user_id}/behavior", tags=["behavior"])


# ---------------------------------------------------------------------------
# Serialization helper
# ---------------------------------------------------------------------------

def _parse_metadata(raw: Optional[str]) -> Optional[dict[str, Any]]:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (ValueError, TypeError):
        return None


def _event_to_response(ev: BehaviorEvent) -> BehaviorEventResponse:
    return BehaviorEventResponse(
        id=ev.id,
        event_type=ev.event_type,
        reference_date=str(ev.reference_date),
        metadata=_parse_metadata(ev.event_metadata),
        created_at=ev.created_at.isoformat() if ev.created_at else "",
    )


# ---------------------------------------------------------------------------
# GET /users/{user_id}/behavior/events
# ---------------------------------------------------------------------------

@router.get(
    "/events",
    response_model=BehaviorEventListResponse,
    summary="List behavior events (newest first)",
)
def list_behavior_events(
    user_id: str,
    event_type: Optional[str] = Query(
        default=None,
        description=(
            f'Filter by type: "{EventType.SEGMENT_COMPLETION}", '
            f'"{EventType.ROUTINE_GENERATED}", '
            f'"{EventType.ADAPTATIONS_APPLIED}", '
            f'"{EventType.ADAPTATIONS_PENDING}". Omit for all.'
        ),
        examples=["segment_completion"],
    ),
    limit: int = Query(default=50, ge=1, le=200, description="Page size."),
    offset: int = Query(default=0, ge=0, description="Skip N items."),
    db: Session = Depends(get_db),
):
    """
    ### Event types
    | Type | Written when |
    |---|---|
    | `segment_completion`          | a routine segment is updated |
    | `routine_generated`           | a new routine is created |
    | `routine_adaptations_applied` | review adaptations changed an existing routine |
    | `routine_adaptations_pending` | review adaptations were queued for a future day |
    """
    if event_type is not None and event_type not in ALL_EVENT_TYPES:
        raise InvalidInputError(
            f"Unknown event_type '{event_type}'.", field="event_type"
        )
    total, items = get_behavior_events(
        db=db, user_id=user_id, event_type=event_type, limit=limit, offset=offset
    )
    return BehaviorEventListResponse(
        total=total,
        items=[_event_to_response(ev) for ev in items],
    )
