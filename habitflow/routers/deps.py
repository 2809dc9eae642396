"""
Shared FastAPI dependencies: current user, clock, cycle configuration and
the extraction client. Tests swap these via app.dependency_overrides.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from habitflow.core.config import settings
from habitflow.core.errors import UnauthenticatedError
from habitflow.core.security import decode_access_token
from habitflow.db.base import get_db
from habitflow.models.user import User
from habitflow.services.extraction import HabitExtractor, OpenAIHabitExtractor
from habitflow.services.users import get_user

# auto_error=False so a missing header goes through our own 401 envelope
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


@dataclass(frozen=True)
class CycleConfig:
    reset_hour: int
    tz: tzinfo


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    if not token:
        raise UnauthenticatedError()
    user = get_user(db, decode_access_token(token))
    if user is None:
        raise UnauthenticatedError("Invalid or expired token.")
    return user


def get_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def get_cycle_config() -> CycleConfig:
    return CycleConfig(reset_hour=settings.RESET_HOUR, tz=settings.tzinfo)


@lru_cache(maxsize=1)
def get_extractor() -> HabitExtractor:
    return OpenAIHabitExtractor(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        timeout=settings.EXTRACTION_TIMEOUT_SECONDS,
    )
