"""
Shared schema primitives used across the API.
"""
import re
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def check_hhmm(value: Optional[str]) -> Optional[str]:
    """Validate a 24h "HH:MM" clock string (None passes through)."""
    if value is None:
        return None
    value = value.strip()
    if not _HHMM.match(value):
        raise ValueError('time must be "HH:MM" on a 24h clock')
    return value


def clean_list(values: Optional[list[str]]) -> list[str]:
    """Strip items and drop blanks."""
    return [v.strip() for v in (values or []) if v and v.strip()]


class ErrorDetail(BaseModel):
    """A single field-level validation error."""
    field: str
    message: str
    type: str


class ErrorResponse(BaseModel):
    """Standard error envelope returned for all 4xx/5xx responses."""
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None
