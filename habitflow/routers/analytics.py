"""
Analytics router — dashboard numbers and chart series for the caller's habits.

GET /analytics/dashboard    — current-cycle headline stats
GET /analytics/cycles       — completions per cycle (default last 7)
GET /analytics/weeks        — completion rate per 7-cycle block (default last 4)
GET /analytics/categories   — habit count per category
"""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from habitflow.db.base import get_db
from habitflow.models.user import User
from habitflow.routers.deps import CycleConfig, get_current_user, get_cycle_config, get_now
from habitflow.schemas.analytics import (
    CategoryDistributionResponse,
    CycleCountResponse,
    CycleSeriesResponse,
    DashboardResponse,
    LevelResponse,
    WeekRateResponse,
    WeeklyRatesResponse,
)
from habitflow.schemas.common import UNAUTHENTICATED_RESPONSE
from habitflow.services.analytics import (
    DashboardStats,
    build_dashboard,
    category_distribution,
    cycle_series,
    weekly_rates,
)
from habitflow.services.cycle import as_utc
from habitflow.services.habits import list_habits

router = APIRouter(prefix="/analytics", tags=["analytics"], responses=UNAUTHENTICATED_RESPONSE)


def _iso(ts: datetime) -> str:
    return as_utc(ts).isoformat()


def _dashboard_to_response(s: DashboardStats) -> DashboardResponse:
    return DashboardResponse(
        cycle_start=_iso(s.cycle_start),
        cycle_end=_iso(s.cycle_end),
        next_reset_at=_iso(s.next_reset_at),
        total_habits=s.total_habits,
        completed_today=s.completed_today,
        completed_previous_cycle=s.completed_previous_cycle,
        completion_rate=s.completion_rate,
        previous_completion_rate=s.previous_completion_rate,
        completion_delta=s.completion_delta,
        active_streaks=s.active_streaks,
        active_streaks_delta=s.active_streaks_delta,
        total_streak_days=s.total_streak_days,
        level=LevelResponse(
            name=s.level.name,
            next_name=s.level.next_name,
            points_to_next=s.level.points_to_next,
        ),
    )


@router.get("/dashboard", response_model=DashboardResponse, summary="Current-cycle dashboard")
def dashboard(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    cycle: CycleConfig = Depends(get_cycle_config),
):
    """
    Counts use the same cycle boundary as `PATCH /habits/{id}/complete`, so a
    habit counted in `completed_today` is one whose completion would be
    rejected right now.
    """
    habits = list_habits(db, user.id)
    return _dashboard_to_response(build_dashboard(habits, now, cycle.reset_hour, cycle.tz))


@router.get("/cycles", response_model=CycleSeriesResponse, summary="Completions per cycle")
def cycles(
    count: int = Query(default=7, ge=1, le=90, alias="cycles", description="Number of cycles."),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    cycle: CycleConfig = Depends(get_cycle_config),
):
    habits = list_habits(db, user.id)
    series = cycle_series(habits, now, count, cycle.reset_hour, cycle.tz)
    return CycleSeriesResponse(cycles=[
        CycleCountResponse(start=_iso(c.start), end=_iso(c.end), label=c.label, completed=c.completed)
        for c in series
    ])


@router.get("/weeks", response_model=WeeklyRatesResponse, summary="Completion rate per week")
def weeks(
    count: int = Query(default=4, ge=1, le=52, alias="weeks", description="Number of 7-cycle blocks."),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    cycle: CycleConfig = Depends(get_cycle_config),
):
    habits = list_habits(db, user.id)
    result = weekly_rates(habits, now, count, cycle.reset_hour, cycle.tz)
    return WeeklyRatesResponse(
        weeks=[
            WeekRateResponse(
                label=w.label, start=_iso(w.start), end=_iso(w.end),
                completions=w.completions, rate=w.rate,
            )
            for w in result.weeks
        ],
        average=result.average,
    )


@router.get(
    "/categories",
    response_model=CategoryDistributionResponse,
    summary="Habit count per category",
)
def categories(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    habits = list_habits(db, user.id)
    return CategoryDistributionResponse(
        total_habits=len(habits),
        categories=category_distribution(habits),
    )
