"""
Cycle Engine — the shared definition of "a day" for habits.

Definition
----------
A *cycle* is the half-open window [start, start + 1 day) where `start` is the
most recent local wall-clock instant at RESET_HOUR:00 that is <= the instant
being classified. With the default reset hour of 5, "today" runs from 05:00
until 04:59:59.999 the next morning.

Every consumer (completion endpoint, dashboard, analytics series) derives its
windows through this module and never compares calendar dates directly.

Timezones
---------
`tz` selects the local clock. When omitted, the instant's own tzinfo is used,
and naive datetimes are read as UTC. One cycle is one local calendar step, so
a window that spans a DST switch is 23h or 25h long.

Completion rules (decide_completion)
------------------------------------
  1. completed_at >= cycle_start(now)               → reject (already done)
  2. completed_at is None                           → streak = 1
  3. previous_cycle_start(now) <= completed_at
     < cycle_start(now)                             → streak + 1
     otherwise (one or more cycles missed)          → streak = 1
In cases 2 and 3 completed_at becomes `now`.

Pure functions only: no DB, no clock reads. `now` is always passed in.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Optional

from habitflow.core.errors import HabitAlreadyCompletedError

DEFAULT_RESET_HOUR = 5

UTC = timezone.utc


class CompletionState(str, enum.Enum):
    never_completed = "never_completed"
    completed_this_cycle = "completed_this_cycle"
    completed_before_this_cycle = "completed_before_this_cycle"


@dataclass(frozen=True)
class CompletionDecision:
    """Outcome of an accepted completion: the values to write back."""
    completed_at: datetime
    streak: int
    previous_state: CompletionState


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def as_utc(ts: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values are taken to be UTC already."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def _check_reset_hour(reset_hour: int) -> None:
    if not 0 <= reset_hour <= 23:
        raise ValueError(f"reset_hour must be between 0 and 23, got {reset_hour}")


def _local(instant: datetime, tz: Optional[tzinfo]) -> datetime:
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    if tz is None:
        return instant
    return instant.astimezone(tz)


# ---------------------------------------------------------------------------
# Public: window arithmetic
# ---------------------------------------------------------------------------

def cycle_start(
    instant: datetime,
    reset_hour: int = DEFAULT_RESET_HOUR,
    tz: Optional[tzinfo] = None,
) -> datetime:
    """Most recent local instant at `reset_hour`:00:00.000 that is <= instant."""
    _check_reset_hour(reset_hour)
    local = _local(instant, tz)
    day = local.date()
    if local.hour < reset_hour:
        day -= timedelta(days=1)
    return datetime.combine(day, time(hour=reset_hour), tzinfo=local.tzinfo)


def shift_cycles(start: datetime, cycles: int) -> datetime:
    """Move a cycle boundary by `cycles` local calendar days."""
    # Same-tzinfo arithmetic is wall-clock, so R:00 stays R:00 across DST.
    return start + timedelta(days=cycles)


def previous_cycle_start(
    instant: datetime,
    reset_hour: int = DEFAULT_RESET_HOUR,
    tz: Optional[tzinfo] = None,
) -> datetime:
    return shift_cycles(cycle_start(instant, reset_hour, tz), -1)


def next_cycle_start(
    instant: datetime,
    reset_hour: int = DEFAULT_RESET_HOUR,
    tz: Optional[tzinfo] = None,
) -> datetime:
    """When the current cycle ends and completions open up again."""
    return shift_cycles(cycle_start(instant, reset_hour, tz), 1)


def cycle_window(
    instant: datetime,
    offset: int = 0,
    reset_hour: int = DEFAULT_RESET_HOUR,
    tz: Optional[tzinfo] = None,
) -> tuple[datetime, datetime]:
    """(start, end) of the cycle containing `instant`, moved by `offset` cycles."""
    start = shift_cycles(cycle_start(instant, reset_hour, tz), offset)
    return start, shift_cycles(start, 1)


def rolling_windows(
    now: datetime,
    count: int,
    span: int = 1,
    reset_hour: int = DEFAULT_RESET_HOUR,
    tz: Optional[tzinfo] = None,
) -> list[tuple[datetime, datetime]]:
    """
    `count` consecutive blocks of `span` cycles, oldest first. The newest block
    ends where the current cycle ends.
    """
    if count < 0 or span < 1:
        raise ValueError("count must be >= 0 and span >= 1")
    end_of_today = next_cycle_start(now, reset_hour, tz)
    windows = []
    for i in range(count - 1, -1, -1):
        end = shift_cycles(end_of_today, -span * i)
        windows.append((shift_cycles(end, -span), end))
    return windows


def in_window(ts: Optional[datetime], start: datetime, end: datetime) -> bool:
    """start <= ts < end. A missing timestamp is never inside any window."""
    if ts is None:
        return False
    return start <= as_utc(ts) < end


# ---------------------------------------------------------------------------
# Public: completion state machine
# ---------------------------------------------------------------------------

def completion_state(
    completed_at: Optional[datetime],
    now: datetime,
    reset_hour: int = DEFAULT_RESET_HOUR,
    tz: Optional[tzinfo] = None,
) -> CompletionState:
    if completed_at is None:
        return CompletionState.never_completed
    if as_utc(completed_at) >= cycle_start(now, reset_hour, tz):
        return CompletionState.completed_this_cycle
    return CompletionState.completed_before_this_cycle


def is_completed_this_cycle(
    completed_at: Optional[datetime],
    now: datetime,
    reset_hour: int = DEFAULT_RESET_HOUR,
    tz: Optional[tzinfo] = None,
) -> bool:
    return completion_state(completed_at, now, reset_hour, tz) is CompletionState.completed_this_cycle


def decide_completion(
    completed_at: Optional[datetime],
    streak: int,
    now: datetime,
    reset_hour: int = DEFAULT_RESET_HOUR,
    tz: Optional[tzinfo] = None,
) -> CompletionDecision:
    """
    Apply the completion rules to a habit's current (completed_at, streak).
    Raises HabitAlreadyCompletedError when the habit is done for this cycle.
    """
    start = cycle_start(now, reset_hour, tz)
    state = completion_state(completed_at, now, reset_hour, tz)

    if state is CompletionState.completed_this_cycle:
        raise HabitAlreadyCompletedError(completed_at=as_utc(completed_at), cycle_start=start)

    if state is CompletionState.never_completed:
        new_streak = 1
    elif in_window(completed_at, shift_cycles(start, -1), start):
        new_streak = max(streak, 0) + 1
    else:
        new_streak = 1

    return CompletionDecision(
        completed_at=as_utc(now),
        streak=new_streak,
        previous_state=state,
    )
