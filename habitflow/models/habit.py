"""
Habit — one tracked activity owned by exactly one user.

completed_at is the last completion instant (NULL = never completed). Creation
stamps it with the creation instant and streak 0; after that the pair is only
written by the completion service, through a conditional UPDATE guarded on
`version`.

parsed_data: list of {activity, quantity, unit, category, confidence} dicts
as returned by the extraction service.
"""
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON, CheckConstraint, ForeignKey, Integer, String, Text, DateTime, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from habitflow.db.base import Base


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class Habit(Base):
    __tablename__ = "habits"
    __table_args__ = (
        CheckConstraint("streak >= 0", name="ck_habit_streak_non_negative"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    input_text: Mapped[str] = mapped_column(Text, nullable=False)
    parsed_data: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Python-side default keeps sub-second ordering on backends whose now() is coarse
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    owner = relationship("User", back_populates="habits")

    @property
    def category(self) -> str:
        """Category of the first parsed item, "other" when absent."""
        if self.parsed_data:
            first = self.parsed_data[0]
            if isinstance(first, dict) and first.get("category"):
                return str(first["category"])
        return "other"
