"""
Analytics response schemas.

GET /analytics/dashboard   → DashboardResponse
GET /analytics/cycles      → CycleSeriesResponse
GET /analytics/weeks       → WeeklyRatesResponse
GET /analytics/categories  → CategoryDistributionResponse
"""
from typing import Optional
from pydantic import BaseModel, Field


class LevelResponse(BaseModel):
    name: str = Field(description="Novice | Explorer | Achiever | Pro | Master")
    next_name: Optional[str] = Field(default=None, description="None at the top level.")
    points_to_next: int = Field(description="Streak days still needed for the next level.")


class DashboardResponse(BaseModel):
    """Headline numbers for the current cycle."""
    cycle_start: str
    cycle_end: str
    next_reset_at: str
    total_habits: int
    completed_today: int
    completed_previous_cycle: int
    completion_rate: int = Field(description="Percent of habits completed this cycle.", examples=[67])
    previous_completion_rate: int
    completion_delta: int = Field(description="Percentage points vs the previous cycle.")
    active_streaks: int = Field(
        description="Habits with streak >= 1 completed this or the previous cycle."
    )
    active_streaks_delta: int
    total_streak_days: int
    level: LevelResponse


class CycleCountResponse(BaseModel):
    start: str
    end: str
    label: str = Field(examples=["Mon"])
    completed: int


class CycleSeriesResponse(BaseModel):
    cycles: list[CycleCountResponse] = Field(description="Oldest first; the last item is today.")


class WeekRateResponse(BaseModel):
    label: str = Field(examples=["Week 4"])
    start: str
    end: str
    completions: int
    rate: int = Field(description="Percent of possible completions (habits x 7).")


class WeeklyRatesResponse(BaseModel):
    weeks: list[WeekRateResponse] = Field(description="Oldest first; the last block ends with today.")
    average: int = Field(description="Mean of the block rates, rounded half-up.")


class CategoryDistributionResponse(BaseModel):
    total_habits: int
    categories: dict[str, int]
