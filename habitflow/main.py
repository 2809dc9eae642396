import logging

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from habitflow.db.base import get_db
from habitflow.core.config import settings
from habitflow.core.logging_config import configure_logging
from habitflow.routers import auth as auth_router
from habitflow.routers import habits as habits_router
from habitflow.routers import analytics as analytics_router
from habitflow.core.errors import (
    HabitFlowException,
    habitflow_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="HabitFlow API",
    description=(
        "**Habit tracking with a reset-hour day boundary**\n\n"
        "Free-text entries are turned into habits by a language model. Each habit "
        "can be completed once per cycle; a cycle starts at the configured reset "
        "hour (default 05:00) rather than midnight, and consecutive cycles build "
        "a streak.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(HabitFlowException, habitflow_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(auth_router.router)
app.include_router(habits_router.router)
app.include_router(analytics_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Liveness plus a `SELECT 1` against the database. Also reports the cycle
    settings so a client can tell which reset hour and timezone apply.
    HTTP 503 when the database cannot be reached.
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": "unreachable"},
        )
    return {
        "status": "ok",
        "db": "ok",
        "env": settings.APP_ENV,
        "reset_hour": settings.RESET_HOUR,
        "timezone": settings.TIMEZONE,
    }
