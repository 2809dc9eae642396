"""
Habit service: owner-scoped CRUD plus the authoritative completion transition.

Public API
----------
create_habit(db, user_id, input_text, extractor, now)   → (Habit, list[ParsedHabit])
list_habits(db, user_id)                                → list[Habit]
get_habit(db, user_id, habit_id)                        → Habit
complete_habit(db, user_id, habit_id, now, reset_hour, tz) → Habit
delete_habit(db, user_id, habit_id)                     → None

Every query filters on user_id. A habit owned by someone else is reported
exactly like a missing one (HabitNotFoundError).

Completion is a compare-and-set on `habits.version`: the row is updated only
if nobody else changed it since we read it, so two concurrent requests can
never both apply the streak rules to the same stale row.
"""
from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from habitflow.core.errors import ConcurrentCompletionError, HabitNotFoundError
from habitflow.models.habit import Habit
from habitflow.schemas.habit import ParsedHabit
from habitflow.services.cycle import DEFAULT_RESET_HOUR, as_utc, decide_completion
from habitflow.services.extraction import HabitExtractor

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Custom Habit"

# Re-read / re-decide attempts when the version guard loses a race
_MAX_COMPLETE_ATTEMPTS = 3


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------

def create_habit(
    db: Session,
    user_id: str,
    input_text: str,
    extractor: HabitExtractor,
    now: datetime,
) -> tuple[Habit, list[ParsedHabit]]:
    """
    Extract habit items from `input_text` and persist one Habit.
    The first item's activity becomes the title. `completed_at` is stamped
    with `now` and streak stays 0, so the habit counts as done for the
    creation cycle and the first completion in a later cycle sets streak 1.
    """
    parsed = extractor.extract(input_text)

    habit = Habit(
        user_id=user_id,
        title=parsed[0].activity if parsed else DEFAULT_TITLE,
        description=input_text,
        input_text=input_text,
        parsed_data=[p.model_dump() for p in parsed],
        completed_at=as_utc(now),
        streak=0,
        version=0,
    )
    db.add(habit)
    db.commit()
    db.refresh(habit)
    logger.info("Created habit %s (%d parsed item(s)) for user %s", habit.id, len(parsed), user_id)
    return habit, parsed


def list_habits(db: Session, user_id: str) -> list[Habit]:
    """All habits owned by `user_id`, newest first."""
    stmt = (
        select(Habit)
        .where(Habit.user_id == user_id)
        .order_by(Habit.created_at.desc(), Habit.id)
    )
    return list(db.scalars(stmt).all())


def _find_owned(db: Session, user_id: str, habit_id: str) -> Optional[Habit]:
    # populate_existing: a re-read must see the row as stored, not the identity map copy
    return db.scalars(
        select(Habit)
        .where(Habit.id == habit_id, Habit.user_id == user_id)
        .execution_options(populate_existing=True)
    ).first()


def get_habit(db: Session, user_id: str, habit_id: str) -> Habit:
    habit = _find_owned(db, user_id, habit_id)
    if habit is None:
        raise HabitNotFoundError(habit_id)
    return habit


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------

def _apply_decision(db: Session, habit: Habit, completed_at: datetime, streak: int) -> bool:
    """Conditional UPDATE keyed on the version we read. True if it won."""
    result = db.execute(
        update(Habit)
        .where(
            Habit.id == habit.id,
            Habit.user_id == habit.user_id,
            Habit.version == habit.version,
        )
        .values(
            completed_at=completed_at,
            streak=streak,
            version=Habit.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def complete_habit(
    db: Session,
    user_id: str,
    habit_id: str,
    now: datetime,
    reset_hour: int = DEFAULT_RESET_HOUR,
    tz: Optional[tzinfo] = None,
) -> Habit:
    """
    Mark the habit done for the cycle containing `now`.

    Raises HabitNotFoundError, HabitAlreadyCompletedError (already done this
    cycle, nothing written) or ConcurrentCompletionError.
    """
    for attempt in range(1, _MAX_COMPLETE_ATTEMPTS + 1):
        habit = get_habit(db, user_id, habit_id)
        decision = decide_completion(habit.completed_at, habit.streak, now, reset_hour, tz)

        if _apply_decision(db, habit, decision.completed_at, decision.streak):
            db.commit()
            db.refresh(habit)
            logger.info(
                "Completed habit %s: %s -> streak %d",
                habit.id, decision.previous_state.value, habit.streak,
            )
            return habit

        # Someone else updated the row between our read and write.
        db.rollback()
        logger.info("Completion of habit %s lost a version race (attempt %d)", habit_id, attempt)

    raise ConcurrentCompletionError(habit_id=habit_id, attempts=_MAX_COMPLETE_ATTEMPTS)


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

def delete_habit(db: Session, user_id: str, habit_id: str) -> None:
    """Delete scoped to the owner; zero affected rows means not found."""
    result = db.execute(
        delete(Habit)
        .where(Habit.id == habit_id, Habit.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        raise HabitNotFoundError(habit_id)
    db.commit()
    logger.info("Deleted habit %s for user %s", habit_id, user_id)
