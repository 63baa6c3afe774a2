"""
Profile router.

PUT /users/{user_id}/profile   — create or replace the scheduling profile
GET /users/{user_id}/profile   — read it, with completeness check
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.models.profile import UserProfile
from app.schemas.common import ErrorResponse
from app.schemas.profile import ProfileResponse, ProfileUpsert
from app.services.profile import get_profile, goals_of, missing_fields, upsert_profile

router = APIRouter(prefix="/users/{user_id}/profile", tags=["profile"])


def _to_response(profile: UserProfile) -> ProfileResponse:
    missing = missing_fields(profile)
    return ProfileResponse(
        user_id=profile.user_id,
        wake_up_time=profile.wake_up_time,
        sleep_time=profile.sleep_time,
        available_hours=profile.available_hours,
        academic_goals=goals_of(profile.academic_goals),
        skill_goals=goals_of(profile.skill_goals),
        energy_pattern=profile.energy_pattern,
        is_complete=not missing,
        missing_fields=missing,
    )


@router.put("", response_model=ProfileResponse, summary="Create or replace the profile")
def put_profile(user_id: str, payload: ProfileUpsert, db: Session = Depends(get_db)):
    return _to_response(upsert_profile(db, user_id, payload))


@router.get(
    "",
    response_model=ProfileResponse,
    summary="Read the profile",
    responses={404: {"model": ErrorResponse, "description": "No profile for this user."}},
)
def read_profile(user_id: str, db: Session = Depends(get_db)):
    return _to_response(get_profile(db, user_id))
