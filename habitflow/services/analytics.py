"""
Analytics service — read-only dashboard statistics.

Every window here comes from the Cycle Engine, so "completed today" on the
dashboard is exactly the set of habits the completion endpoint would reject
right now.

Definitions
-----------
  today             [cycle_start(now), next_cycle_start(now))
  previous cycle    [cycle_start(now) - 1, cycle_start(now))
  cycle series      N one-cycle windows, oldest first, ending with today
  weekly rates      M seven-cycle blocks, oldest first, newest ends with today;
                    rate = completions in block / (habit count * 7)
  active streaks    streak >= 1 and completed_at >= previous_cycle_start(now)

Percentages are integers rounded half-up; zero habits always gives 0.

Only the last completion of each habit is stored, so historical windows
count at most one completion per habit.

Public API
----------
build_dashboard(habits, now, reset_hour, tz)          -> DashboardStats
cycle_series(habits, now, cycles, reset_hour, tz)     -> list[CycleCount]
weekly_rates(habits, now, weeks, reset_hour, tz)      -> WeeklyRates
category_distribution(habits)                         -> dict[str, int]
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Sequence

from habitflow.models.habit import Habit
from habitflow.services.cycle import (
    DEFAULT_RESET_HOUR,
    as_utc,
    cycle_window,
    in_window,
    previous_cycle_start,
    rolling_windows,
)

CYCLES_PER_WEEK = 7

# (name, minimum total streak days), ascending
LEVELS: tuple[tuple[str, int], ...] = (
    ("Novice", 0),
    ("Explorer", 5),
    ("Achiever", 15),
    ("Pro", 30),
    ("Master", 60),
)


# ---------------------------------------------------------------------------
# Result types (plain dataclasses, no ORM)
# ---------------------------------------------------------------------------

@dataclass
class CycleCount:
    start: datetime
    end: datetime
    label: str          # short weekday name of the cycle start, e.g. "Mon"
    completed: int


@dataclass
class WeekRate:
    label: str          # "Week 1" (oldest) … "Week M" (current)
    start: datetime
    end: datetime
    completions: int
    rate: int           # percent, 0–100


@dataclass
class WeeklyRates:
    weeks: list[WeekRate]
    average: int        # rounded mean of the block rates


@dataclass
class Level:
    name: str
    next_name: Optional[str]
    points_to_next: int


@dataclass
class DashboardStats:
    cycle_start: datetime
    cycle_end: datetime
    next_reset_at: datetime
    total_habits: int
    completed_today: int
    completed_previous_cycle: int
    completion_rate: int
    previous_completion_rate: int
    completion_delta: int
    active_streaks: int
    active_streaks_delta: int
    total_streak_days: int
    level: Level


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------

def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percentage(part: int, whole: int) -> int:
    """part / whole as an integer percent; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return round_half_up(Decimal(part) * 100 / Decimal(whole))


def count_in_window(habits: Iterable[Habit], start: datetime, end: datetime) -> int:
    return sum(1 for h in habits if in_window(h.completed_at, start, end))


def level_for(total_streak_days: int) -> Level:
    current = LEVELS[0]
    nxt: Optional[tuple[str, int]] = None
    for i, (name, minimum) in enumerate(LEVELS):
        if total_streak_days >= minimum:
            current = (name, minimum)
            nxt = LEVELS[i + 1] if i + 1 < len(LEVELS) else None
    if nxt is None:
        return Level(name=current[0], next_name=None, points_to_next=0)
    return Level(
        name=current[0],
        next_name=nxt[0],
        points_to_next=max(0, nxt[1] - total_streak_days),
    )


# ---------------------------------------------------------------------------
# Public: dashboard
# ---------------------------------------------------------------------------

def build_dashboard(
    habits: Sequence[Habit],
    now: datetime,
    reset_hour: int = DEFAULT_RESET_HOUR,
    tz: Optional[tzinfo] = None,
) -> DashboardStats:
    start, end = cycle_window(now, 0, reset_hour, tz)
    prev_start, prev_end = cycle_window(now, -1, reset_hour, tz)
    total = len(habits)

    completed_today = count_in_window(habits, start, end)
    completed_prev = count_in_window(habits, prev_start, prev_end)
    rate = percentage(completed_today, total)
    prev_rate = percentage(completed_prev, total)

    alive_since = previous_cycle_start(now, reset_hour, tz)
    active = sum(
        1 for h in habits
        if h.streak >= 1
        and h.completed_at is not None
        and as_utc(h.completed_at) >= alive_since
    )
    total_streak_days = sum(max(h.streak, 0) for h in habits)

    return DashboardStats(
        cycle_start=start,
        cycle_end=end,
        next_reset_at=end,
        total_habits=total,
        completed_today=completed_today,
        completed_previous_cycle=completed_prev,
        completion_rate=rate,
        previous_completion_rate=prev_rate,
        completion_delta=rate - prev_rate,
        active_streaks=active,
        active_streaks_delta=active - completed_prev,
        total_streak_days=total_streak_days,
        level=level_for(total_streak_days),
    )


# ---------------------------------------------------------------------------
# Public: series
# ---------------------------------------------------------------------------

def cycle_series(
    habits: Sequence[Habit],
    now: datetime,
    cycles: int = 7,
    reset_hour: int = DEFAULT_RESET_HOUR,
    tz: Optional[tzinfo] = None,
) -> list[CycleCount]:
    """Completions per cycle for the last `cycles` cycles, oldest first."""
    return [
        CycleCount(
            start=start,
            end=end,
            label=start.strftime("%a"),
            completed=count_in_window(habits, start, end),
        )
        for start, end in rolling_windows(now, cycles, 1, reset_hour, tz)
    ]


def weekly_rates(
    habits: Sequence[Habit],
    now: datetime,
    weeks: int = 4,
    reset_hour: int = DEFAULT_RESET_HOUR,
    tz: Optional[tzinfo] = None,
) -> WeeklyRates:
    """Completion rate per 7-cycle block for the last `weeks` blocks."""
    possible = len(habits) * CYCLES_PER_WEEK
    blocks = []
    for i, (start, end) in enumerate(rolling_windows(now, weeks, CYCLES_PER_WEEK, reset_hour, tz)):
        completions = count_in_window(habits, start, end)
        blocks.append(WeekRate(
            label=f"Week {i + 1}",
            start=start,
            end=end,
            completions=completions,
            rate=percentage(completions, possible),
        ))

    average = 0
    if blocks:
        average = round_half_up(Decimal(sum(b.rate for b in blocks)) / Decimal(len(blocks)))
    return WeeklyRates(weeks=blocks, average=average)


def category_distribution(habits: Iterable[Habit]) -> dict[str, int]:
    """Habit count per category of the first parsed item."""
    counts: dict[str, int] = {}
    for h in habits:
        counts[h.category] = counts.get(h.category, 0) + 1
    return counts
