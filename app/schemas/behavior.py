"""
Behavior event response schemas.

GET /users/{user_id}/behavior/events → BehaviorEventListResponse
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class BehaviorEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_type: str = Field(
        description=(
            '"segment_completion" | "routine_generated" | '
            '"routine_adaptations_applied" | "routine_adaptations_pending"'
        )
    )
    reference_date: str = Field(description="ISO date the event refers to.")
    metadata: Optional[dict[str, Any]] = Field(
        default=None,
        description="Context specific to each event_type.",
    )
    created_at: str


class BehaviorEventListResponse(BaseModel):
    total: int
    items: list[BehaviorEventResponse]
