"""
Auth router.

POST /auth/signup   — create an account
POST /auth/token    — OAuth2 password flow, returns a bearer token
GET  /auth/me       — the authenticated user
"""
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from habitflow.core.security import create_access_token
from habitflow.db.base import get_db
from habitflow.models.user import User
from habitflow.routers.deps import get_current_user
from habitflow.schemas.auth import SignupRequest, TokenResponse, UserResponse
from habitflow.schemas.common import ErrorResponse, UNAUTHENTICATED_RESPONSE
from habitflow.services.cycle import as_utc
from habitflow.services.users import authenticate, register_user

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        created_at=as_utc(user.created_at).isoformat() if user.created_at else "",
    )


@router.post(
    "/signup",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
    responses={409: {"model": ErrorResponse, "description": "Email already registered."}},
)
def signup(payload: SignupRequest, db: Session = Depends(get_db)):
    user = register_user(db, email=payload.email, password=payload.password, name=payload.name)
    return _user_to_response(user)


@router.post(
    "/token",
    response_model=TokenResponse,
    summary="Exchange email + password for a bearer token",
    responses=UNAUTHENTICATED_RESPONSE,
)
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """`username` carries the email address, as in the OAuth2 password flow."""
    user = authenticate(db, email=form_data.username, password=form_data.password)
    return TokenResponse(access_token=create_access_token(user.id))


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user",
    responses=UNAUTHENTICATED_RESPONSE,
)
def me(user: User = Depends(get_current_user)):
    return _user_to_response(user)
