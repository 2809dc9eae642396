"""
Habits router.

POST   /habits                — extract habits from free text and store one
GET    /habits                — list the caller's habits
GET    /habits/{id}           — one habit
PATCH  /habits/{id}/complete  — mark done for the current cycle
DELETE /habits/{id}           — delete
"""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from habitflow.db.base import get_db
from habitflow.models.habit import Habit
from habitflow.models.user import User
from habitflow.routers.deps import (
    CycleConfig,
    get_current_user,
    get_cycle_config,
    get_extractor,
    get_now,
)
from habitflow.schemas.common import ErrorResponse, NOT_FOUND_RESPONSE, UNAUTHENTICATED_RESPONSE
from habitflow.schemas.habit import (
    CreateHabitRequest,
    CreateHabitResponse,
    DeleteHabitResponse,
    HabitEnvelope,
    HabitListResponse,
    HabitResponse,
    ParsedHabit,
)
from habitflow.services import habits as habit_service
from habitflow.services.cycle import as_utc, cycle_window, is_completed_this_cycle
from habitflow.services.extraction import HabitExtractor

router = APIRouter(prefix="/habits", tags=["habits"])


# ---------------------------------------------------------------------------
# Serialization helper
# ---------------------------------------------------------------------------

def _habit_to_response(habit: Habit, now: datetime, cycle: CycleConfig) -> HabitResponse:
    return HabitResponse(
        id=habit.id,
        title=habit.title,
        description=habit.description,
        input_text=habit.input_text,
        parsed_data=[ParsedHabit.model_validate(p) for p in habit.parsed_data or []],
        completed_at=as_utc(habit.completed_at).isoformat() if habit.completed_at else None,
        streak=habit.streak,
        completed_this_cycle=is_completed_this_cycle(
            habit.completed_at, now, cycle.reset_hour, cycle.tz
        ),
        created_at=as_utc(habit.created_at).isoformat() if habit.created_at else "",
    )


# ---------------------------------------------------------------------------
# POST /habits
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=CreateHabitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a habit from free text",
    responses={
        **UNAUTHENTICATED_RESPONSE,
        422: {"model": ErrorResponse, "description": "Blank or missing input text."},
        502: {"model": ErrorResponse, "description": "Extraction service failed or returned garbage."},
    },
)
def create_habit(
    payload: CreateHabitRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    extractor: HabitExtractor = Depends(get_extractor),
    now: datetime = Depends(get_now),
    cycle: CycleConfig = Depends(get_cycle_config),
):
    """
    Send the text to the extraction model and store one habit. The first
    extracted activity becomes the title ("Custom Habit" if nothing was found).
    All extracted items are returned in `parsed_habits`.

    The new habit is stamped as completed at creation with streak 0, so it
    cannot be completed again until the next cycle starts.
    """
    habit, parsed = habit_service.create_habit(
        db=db, user_id=user.id, input_text=payload.input_text, extractor=extractor, now=now,
    )
    return CreateHabitResponse(
        habit=_habit_to_response(habit, now, cycle),
        parsed_habits=parsed,
    )


# ---------------------------------------------------------------------------
# GET /habits
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=HabitListResponse,
    summary="List my habits (newest first)",
    responses=UNAUTHENTICATED_RESPONSE,
)
def list_habits(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    cycle: CycleConfig = Depends(get_cycle_config),
):
    habits = habit_service.list_habits(db, user.id)
    start, end = cycle_window(now, 0, cycle.reset_hour, cycle.tz)
    return HabitListResponse(
        habits=[_habit_to_response(h, now, cycle) for h in habits],
        cycle_start=as_utc(start).isoformat(),
        next_reset_at=as_utc(end).isoformat(),
    )


# ---------------------------------------------------------------------------
# GET /habits/{habit_id}
# ---------------------------------------------------------------------------

@router.get(
    "/{habit_id}",
    response_model=HabitEnvelope,
    summary="Get one habit",
    responses={**UNAUTHENTICATED_RESPONSE, **NOT_FOUND_RESPONSE},
)
def get_habit(
    habit_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    cycle: CycleConfig = Depends(get_cycle_config),
):
    habit = habit_service.get_habit(db, user.id, habit_id)
    return HabitEnvelope(habit=_habit_to_response(habit, now, cycle))


# ---------------------------------------------------------------------------
# PATCH /habits/{habit_id}/complete
# ---------------------------------------------------------------------------

@router.patch(
    "/{habit_id}/complete",
    response_model=HabitEnvelope,
    summary="Complete a habit for the current cycle",
    responses={
        **UNAUTHENTICATED_RESPONSE,
        **NOT_FOUND_RESPONSE,
        409: {"model": ErrorResponse, "description": "Already completed in this cycle."},
    },
)
def complete_habit(
    habit_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    cycle: CycleConfig = Depends(get_cycle_config),
):
    """
    Apply the streak rules at the current instant:

    | Last completion | Result |
    |---|---|
    | in the current cycle | **409** `HABIT_ALREADY_COMPLETED`, nothing changes |
    | never | streak = 1 |
    | in the previous cycle | streak + 1 |
    | earlier | streak = 1 |

    A cycle starts at the configured reset hour (default 05:00), not midnight.
    """
    habit = habit_service.complete_habit(
        db, user.id, habit_id, now, reset_hour=cycle.reset_hour, tz=cycle.tz
    )
    return HabitEnvelope(habit=_habit_to_response(habit, now, cycle))


# ---------------------------------------------------------------------------
# DELETE /habits/{habit_id}
# ---------------------------------------------------------------------------

@router.delete(
    "/{habit_id}",
    response_model=DeleteHabitResponse,
    summary="Delete a habit",
    responses={**UNAUTHENTICATED_RESPONSE, **NOT_FOUND_RESPONSE},
)
def delete_habit(
    habit_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    habit_service.delete_habit(db, user.id, habit_id)
    return DeleteHabitResponse(ok=True)
