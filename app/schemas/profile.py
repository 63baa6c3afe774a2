"""
Profile schemas.

PUT /users/{user_id}/profile → ProfileUpsert → ProfileResponse
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.schemas.common import check_hhmm, clean_list


class ProfileUpsert(BaseModel):
    wake_up_time: Optional[str] = Field(default=None, examples=["06:30"])
    sleep_time: Optional[str] = Field(
        default=None,
        description="May be earlier than wake_up_time (sleep after midnight).",
        examples=["23:00"],
    )
    available_hours: Optional[float] = Field(default=None, gt=0, le=24, examples=[6])
    academic_goals: list[str] = Field(default_factory=list, examples=[["Linear algebra"]])
    skill_goals: list[str] = Field(default_factory=list, examples=[["Guitar"]])
    energy_pattern: Optional[str] = Field(
        default=None, max_length=64, examples=["morning"],
    )

    @field_validator("wake_up_time", "sleep_time")
    @classmethod
    def valid_clock(cls, v: Optional[str]) -> Optional[str]:
        return check_hhmm(v)

    @field_validator("academic_goals", "skill_goals")
    @classmethod
    def strip_goals(cls, v: list[str]) -> list[str]:
        return clean_list(v)


class ProfileResponse(BaseModel):
    user_id: str
    wake_up_time: Optional[str] = None
    sleep_time: Optional[str] = None
    available_hours: Optional[float] = None
    academic_goals: list[str]
    skill_goals: list[str]
    energy_pattern: Optional[str] = None
    is_complete: bool
    missing_fields: list[str]
