"""
Profile provider.

Stores the per-user scheduling profile and hands the routine generator a
validated ProfileContext.

Public API
----------
upsert_profile(db, user_id, data)                    -> UserProfile
get_profile(db, user_id)                             -> UserProfile
missing_fields(profile, available_hours_override)    -> list[str]
load_generation_context(db, user_id, hours_override) -> ProfileContext
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ProfileIncompleteError
from app.models.profile import UserProfile
from app.schemas.profile import ProfileUpsert

logger = logging.getLogger(__name__)


@dataclass
class ProfileContext:
    wake_up_time: str
    sleep_time: str
    available_hours: float
    academic_goals: list[str] = field(default_factory=list)
    skill_goals: list[str] = field(default_factory=list)
    energy_pattern: Optional[str] = None


def goals_of(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (ValueError, TypeError):
        return []
    return [str(v) for v in value] if isinstance(value, list) else []


def missing_fields(
    profile: UserProfile,
    available_hours_override: Optional[float] = None,
) -> list[str]:
    """
    Fields that block routine generation. At least one goal list must be
    non-empty; the other falls back to generic activities.
    """
    missing: list[str] = []
    if not goals_of(profile.academic_goals) and not goals_of(profile.skill_goals):
        missing.append("goals")
    if not profile.wake_up_time or not profile.sleep_time:
        missing.append("schedule")
    if available_hours_override is None and not profile.available_hours:
        missing.append("available_hours")
    return missing


def get_profile(db: Session, user_id: str) -> UserProfile:
    profile = db.query(UserProfile).filter(UserProfile.user_id == user_id).first()
    if profile is None:
        raise NotFoundError("Profile", user_id)
    return profile


def upsert_profile(db: Session, user_id: str, data: ProfileUpsert) -> UserProfile:
    """Create the profile or overwrite every field of the existing one."""
    profile = db.query(UserProfile).filter(UserProfile.user_id == user_id).first()
    if profile is None:
        profile = UserProfile(user_id=user_id)
        db.add(profile)

    profile.wake_up_time = data.wake_up_time
    profile.sleep_time = data.sleep_time
    profile.available_hours = data.available_hours
    profile.academic_goals = json.dumps(data.academic_goals)
    profile.skill_goals = json.dumps(data.skill_goals)
    profile.energy_pattern = data.energy_pattern

    try:
        db.commit()
    except IntegrityError:
        # Concurrent first write for the same user: apply ours on top of theirs
        db.rollback()
        return upsert_profile(db, user_id, data)
    db.refresh(profile)
    logger.info("Profile saved for user %s", user_id)
    return profile


def load_generation_context(
    db: Session,
    user_id: str,
    available_hours_override: Optional[float] = None,
) -> ProfileContext:
    """Raise NotFoundError / ProfileIncompleteError unless generation can run."""
    profile = get_profile(db, user_id)
    missing = missing_fields(profile, available_hours_override)
    if missing:
        raise ProfileIncompleteError(missing)
    return ProfileContext(
        wake_up_time=profile.wake_up_time,
        sleep_time=profile.sleep_time,
        available_hours=(
            available_hours_override
            if available_hours_override is not None
            else profile.available_hours
        ),
        academic_goals=goals_of(profile.academic_goals),
        skill_goals=goals_of(profile.skill_goals),
        energy_pattern=profile.energy_pattern,
    )
