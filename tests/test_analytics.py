"""
Tests for the analytics service (pure, unsaved Habit objects) and the
agreement between the dashboard and the completion endpoint.

Scenario D: zero habits → every rate is 0, no division error.
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from habitflow.models.habit import Habit
from habitflow.services.analytics import (
    LEVELS,
    build_dashboard,
    category_distribution,
    cycle_series,
    level_for,
    percentage,
    weekly_rates,
)
from habitflow.services.cycle import is_completed_this_cycle

UTC = timezone.utc
R = 5
NOW = datetime(2024, 1, 10, 6, 0, tzinfo=UTC)   # cycle 2024-01-10T05:00 → 2024-01-11T05:00


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=UTC)


def _habit(completed_at=None, streak=0, category=None) -> Habit:
    parsed = [{"activity": "x", "quantity": 1, "unit": "times", "category": category, "confidence": 0.9}] if category else []
    return Habit(
        title="x",
        input_text="x",
        parsed_data=parsed,
        completed_at=completed_at,
        streak=streak,
    )


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------

class TestPercentage:

    def test_zero_total_is_zero(self):
        assert percentage(0, 0) == 0
        assert percentage(5, 0) == 0

    @pytest.mark.parametrize("part,whole,expected", [
        (1, 2, 50),
        (1, 3, 33),
        (2, 3, 67),
        (1, 8, 13),     # 12.5 rounds half-up
        (1, 200, 1),    # 0.5 rounds half-up
        (3, 3, 100),
    ])
    def test_round_half_up(self, part, whole, expected):
        assert percentage(part, whole) == expected


class TestLevels:

    @pytest.mark.parametrize("total,name,next_name,remaining", [
        (0, "Novice", "Explorer", 5),
        (4, "Novice", "Explorer", 1),
        (5, "Explorer", "Achiever", 10),
        (29, "Achiever", "Pro", 1),
        (30, "Pro", "Master", 30),
        (60, "Master", None, 0),
        (500, "Master", None, 0),
    ])
    def test_thresholds(self, total, name, next_name, remaining):
        level = level_for(total)
        assert (level.name, level.next_name, level.points_to_next) == (name, next_name, remaining)

    def test_levels_ascending(self):
        minimums = [m for _, m in LEVELS]
        assert minimums == sorted(minimums)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

class TestDashboard:

    def test_scenario_d_no_habits(self):
        stats = build_dashboard([], NOW, R)
        assert stats.total_habits == 0
        assert stats.completion_rate == 0
        assert stats.previous_completion_rate == 0
        assert stats.completion_delta == 0
        assert stats.active_streaks == 0
        assert stats.level.name == "Novice"

    def test_windows(self):
        stats = build_dashboard([], NOW, R)
        assert stats.cycle_start == _utc(2024, 1, 10, 5)
        assert stats.cycle_end == _utc(2024, 1, 11, 5)
        assert stats.next_reset_at == _utc(2024, 1, 11, 5)

    def test_counts_and_rates(self):
        habits = [
            _habit(_utc(2024, 1, 10, 5), 2),        # today (boundary, inclusive)
            _habit(_utc(2024, 1, 10, 5, 30), 1),    # today
            _habit(_utc(2024, 1, 10, 4, 59), 4),    # previous cycle
            _habit(_utc(2024, 1, 8, 12), 7),        # lapsed
            _habit(None, 0),                        # never
        ]
        stats = build_dashboard(habits, NOW, R)
        assert stats.total_habits == 5
        assert stats.completed_today == 2
        assert stats.completed_previous_cycle == 1
        assert stats.completion_rate == 40
        assert stats.previous_completion_rate == 20
        assert stats.completion_delta == 20
        assert stats.active_streaks == 3
        assert stats.active_streaks_delta == 2
        assert stats.total_streak_days == 14
        assert stats.level.name == "Explorer"

    def test_midnight_is_not_a_boundary(self):
        # 23:00 on the 9th and 02:00 on the 10th are the same cycle
        habits = [_habit(_utc(2024, 1, 9, 23), 1), _habit(_utc(2024, 1, 10, 2), 1)]
        stats = build_dashboard(habits, _utc(2024, 1, 10, 3), R)
        assert stats.completed_today == 2
        assert stats.completion_rate == 100

    def test_active_streak_requires_positive_streak(self):
        stats = build_dashboard([_habit(_utc(2024, 1, 10, 6), 0)], NOW, R)
        assert stats.active_streaks == 0

    def test_completed_today_matches_completion_gate(self):
        habits = [
            _habit(_utc(2024, 1, 10, 5), 1),
            _habit(_utc(2024, 1, 10, 4, 59, 59), 1),
            _habit(_utc(2024, 1, 11, 4, 0), 1),
            _habit(None, 0),
        ]
        now = _utc(2024, 1, 11, 4, 30)
        gated = sum(1 for h in habits if is_completed_this_cycle(h.completed_at, now, R))
        assert build_dashboard(habits, now, R).completed_today == gated == 2

    def test_naive_timestamps_from_storage(self):
        stats = build_dashboard([_habit(datetime(2024, 1, 10, 7), 1)], NOW, R)
        assert stats.completed_today == 1


# ---------------------------------------------------------------------------
# Series
# ---------------------------------------------------------------------------

class TestCycleSeries:

    def test_seven_cycles_oldest_first(self):
        habits = [
            _habit(_utc(2024, 1, 10, 7), 1),    # today
            _habit(_utc(2024, 1, 10, 3), 1),    # cycle of the 9th
            _habit(_utc(2024, 1, 4, 5), 1),     # oldest cycle, boundary
            _habit(_utc(2024, 1, 4, 4), 1),     # just outside
        ]
        series = cycle_series(habits, NOW, 7, R)
        assert len(series) == 7
        assert series[0].start == _utc(2024, 1, 4, 5)
        assert series[-1].end == _utc(2024, 1, 11, 5)
        assert [c.completed for c in series] == [1, 0, 0, 0, 0, 1, 1]

    def test_labels_are_weekdays(self):
        series = cycle_series([], NOW, 7, R)
        assert series[-1].label == "Wed"     # 2024-01-10
        assert series[0].label == "Thu"

    def test_no_habits(self):
        assert all(c.completed == 0 for c in cycle_series([], NOW, 7, R))


class TestWeeklyRates:

    def test_four_blocks_of_seven_cycles(self):
        result = weekly_rates([], NOW, 4, R)
        assert [w.label for w in result.weeks] == ["Week 1", "Week 2", "Week 3", "Week 4"]
        assert result.weeks[-1].start == _utc(2024, 1, 4, 5)
        assert result.weeks[-1].end == _utc(2024, 1, 11, 5)
        assert result.weeks[0].start == _utc(2023, 12, 14, 5)

    def test_scenario_d_zero_habits(self):
        result = weekly_rates([], NOW, 4, R)
        assert all(w.rate == 0 for w in result.weeks)
        assert result.average == 0

    def test_rate_is_completions_over_habits_times_seven(self):
        habits = [
            _habit(_utc(2024, 1, 9, 12), 1),    # week 4
            _habit(_utc(2024, 1, 5, 12), 1),    # week 4
            _habit(_utc(2023, 12, 20, 12), 1),  # week 1
        ]
        result = weekly_rates(habits, NOW, 4, R)
        # 3 habits * 7 = 21 possible per block
        assert [w.completions for w in result.weeks] == [1, 0, 0, 2]
        assert [w.rate for w in result.weeks] == [5, 0, 0, 10]
        assert result.average == 4      # (5 + 10) / 4 = 3.75

    def test_zero_weeks(self):
        result = weekly_rates([_habit(NOW, 1)], NOW, 0, R)
        assert result.weeks == []
        assert result.average == 0


class TestCategoryDistribution:

    def test_counts_first_item_category(self):
        habits = [
            _habit(category="fitness"),
            _habit(category="fitness"),
            _habit(category="learning"),
            _habit(),
        ]
        assert category_distribution(habits) == {"fitness": 2, "learning": 1, "other": 1}

    def test_empty(self):
        assert category_distribution([]) == {}
