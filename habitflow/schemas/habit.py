"""
Habit request / response schemas.

POST   /habits                  → CreateHabitRequest → CreateHabitResponse
GET    /habits                  → HabitListResponse
GET    /habits/{id}             → HabitEnvelope
PATCH  /habits/{id}/complete    → HabitEnvelope
DELETE /habits/{id}             → DeleteHabitResponse
"""
from __future__ import annotations

from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

INPUT_TEXT_MAX_LENGTH = 2_000

HABIT_CATEGORIES = ("health", "fitness", "work", "learning", "self_care", "other")


# ---------------------------------------------------------------------------
# Extraction output
# ---------------------------------------------------------------------------

class ParsedHabit(BaseModel):
    """One habit item extracted from free text by the language model."""
    activity: Annotated[str, Field(min_length=1, max_length=256, examples=["running"])]
    quantity: float = Field(default=1, ge=0, examples=[5])
    unit: str = Field(default="times", examples=["miles", "minutes", "glasses"])
    category: str = Field(default="other", description=" | ".join(HABIT_CATEGORIES))
    confidence: float = Field(ge=0, le=1, examples=[0.95])

    @field_validator("activity", mode="before")
    @classmethod
    def strip_activity(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("quantity", mode="before")
    @classmethod
    def default_quantity(cls, v: Any) -> Any:
        return 1 if v is None else v

    @field_validator("unit", mode="before")
    @classmethod
    def default_unit(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "times"
        return v.strip() if isinstance(v, str) else v

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> str:
        value = str(v).strip().lower().replace(" ", "_").replace("-", "_") if v else ""
        return value if value in HABIT_CATEGORIES else "other"


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class CreateHabitRequest(BaseModel):
    """Free-text description of what the user did."""
    input_text: Annotated[str, Field(
        min_length=1,
        max_length=INPUT_TEXT_MAX_LENGTH,
        description="Stripped of leading/trailing whitespace.",
        examples=["Ran 5 miles and meditated for 10 minutes"],
    )]

    @field_validator("input_text", mode="before")
    @classmethod
    def strip_and_check_empty(cls, v: str) -> str:
        stripped = v.strip() if isinstance(v, str) else v
        if not stripped:
            raise ValueError("input text must not be empty after stripping whitespace")
        return stripped


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class HabitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str] = None
    input_text: str
    parsed_data: list[ParsedHabit] = Field(default_factory=list)
    completed_at: Optional[str] = Field(default=None, description="UTC timestamp of the last completion.")
    streak: int = Field(ge=0)
    completed_this_cycle: bool = Field(
        description="True when a completion right now would be rejected."
    )
    created_at: str


class HabitEnvelope(BaseModel):
    habit: HabitResponse


class CreateHabitResponse(BaseModel):
    habit: HabitResponse
    parsed_habits: list[ParsedHabit] = Field(
        description="Everything the extraction service found, in order. May be empty."
    )


class HabitListResponse(BaseModel):
    habits: list[HabitResponse] = Field(description="Newest first.")
    cycle_start: str = Field(description="Start of the current cycle (UTC).")
    next_reset_at: str = Field(description="When the current cycle ends (UTC).")


class DeleteHabitResponse(BaseModel):
    ok: bool = True
