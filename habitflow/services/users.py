"""
User service: registration and credential checks.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from habitflow.core.errors import EmailAlreadyRegisteredError, UnauthenticatedError
from habitflow.core.security import hash_password, verify_password
from habitflow.models.user import User

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.scalars(select(User).where(User.email == _normalize_email(email))).first()


def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.get(User, user_id)


def register_user(db: Session, email: str, password: str, name: Optional[str] = None) -> User:
    email = _normalize_email(email)
    if get_user_by_email(db, email) is not None:
        raise EmailAlreadyRegisteredError(email)

    user = User(email=email, name=name, password_hash=hash_password(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        # Unique index on email: a concurrent signup got there first
        db.rollback()
        raise EmailAlreadyRegisteredError(email) from exc
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise UnauthenticatedError("Incorrect email or password.")
    return user
