"""
Password hashing and bearer tokens.

Tokens are HS256 JWTs whose `sub` claim is the user id. Any decode problem
(bad signature, expired, missing sub) is reported as UnauthenticatedError so
callers never see library-specific exceptions.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from habitflow.core.config import settings
from habitflow.core.errors import UnauthenticatedError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(tz=timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload = {"sub": subject, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the user id carried by `token`."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise UnauthenticatedError("Invalid or expired token.") from exc
    subject = payload.get("sub")
    if not subject or not isinstance(subject, str):
        raise UnauthenticatedError("Invalid or expired token.")
    return subject
