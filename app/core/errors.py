"""
Custom exception hierarchy for the discipline engine.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.

Enrichment steps (adaptations, insights) raise DegradedComputationError;
it is always caught by the caller and never reaches a handler.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class DisciplineException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidInputError(DisciplineException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message=message,
            details={"field": field} if field else {},
        )


class NotFoundError(DisciplineException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            message=f"{resource} {identifier} not found.",
            details={"resource": resource, "id": str(identifier)},
        )


class ConflictError(DisciplineException):
    http_status = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class ReviewAlreadyExistsError(ConflictError):
    code = "REVIEW_ALREADY_EXISTS"

    def __init__(self, day: date):
        super().__init__(
            message=f"Evening review for {day} already exists.",
            details={"day": str(day)},
        )


class HabitHasDependentsError(ConflictError):
    code = "HABIT_HAS_DEPENDENTS"

    def __init__(self, habit_id: int, dependent_ids: list[int]):
        super().__init__(
            message=(
                f"Habit {habit_id} has other habits stacked after it. "
                "Remove stacking first."
            ),
            details={"habit_id": habit_id, "dependent_ids": dependent_ids},
        )


class ProfileIncompleteError(DisciplineException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "PROFILE_INCOMPLETE"

    def __init__(self, missing: list[str]):
        super().__init__(
            message="Profile is incomplete: " + ", ".join(missing) + ".",
            details={"missing": missing},
        )


class RoutineGenerationError(DisciplineException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "ROUTINE_GENERATION_ERROR"


class DegradedComputationError(DisciplineException):
    code = "DEGRADED_COMPUTATION"

    def __init__(self, step: str, cause: Exception | None = None):
        super().__init__(
            message=f"Derived computation '{step}' failed.",
            details={"step": step, "cause": repr(cause)} if cause else {"step": step},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def discipline_exception_handler(request: Request, exc: DisciplineException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
