"""
Custom exception hierarchy for HabitFlow.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class HabitFlowException(Exception):
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


class UnauthenticatedError(HabitFlowException):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Authentication required. Please sign in."):
        super().__init__(message=message)


class HabitNotFoundError(HabitFlowException):
    """Raised for both missing habits and habits owned by someone else."""
    http_status = status.HTTP_404_NOT_FOUND
    code = "HABIT_NOT_FOUND"

    def __init__(self, habit_id: str):
        super().__init__(
            message="Habit not found.",
            details={"habit_id": habit_id},
        )


class HabitAlreadyCompletedError(HabitFlowException):
    http_status = status.HTTP_409_CONFLICT
    code = "HABIT_ALREADY_COMPLETED"

    def __init__(self, completed_at: datetime, cycle_start: datetime):
        super().__init__(
            message="Habit already completed in this cycle.",
            details={
                "completed_at": completed_at.isoformat(),
                "cycle_start": cycle_start.isoformat(),
            },
        )


class ConcurrentCompletionError(HabitFlowException):
    http_status = status.HTTP_409_CONFLICT
    code = "CONCURRENT_COMPLETION"

    def __init__(self, habit_id: str, attempts: int):
        super().__init__(
            message="Habit was modified concurrently. Please retry.",
            details={"habit_id": habit_id, "attempts": attempts},
        )


class ExtractionFailedError(HabitFlowException):
    http_status = status.HTTP_502_BAD_GATEWAY
    code = "EXTRACTION_FAILED"

    def __init__(self, message: str = "Failed to parse habit text.", reason: str | None = None):
        super().__init__(
            message=message,
            details={"reason": reason} if reason else {},
        )


class EmailAlreadyRegisteredError(HabitFlowException):
    http_status = status.HTTP_409_CONFLICT
    code = "EMAIL_ALREADY_REGISTERED"

    def __init__(self, email: str):
        super().__init__(
            message=f"An account with email {email} already exists.",
            details={"email": email},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def habitflow_exception_handler(request: Request, exc: HabitFlowException) -> JSONResponse:
    headers = None
    if isinstance(exc, UnauthenticatedError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
        headers=headers,
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
