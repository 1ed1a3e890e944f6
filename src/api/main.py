"""
FastAPI application for the signal-drill scheduling engine.

Provides REST API for:
- Study sessions (review, practice, box and guest modes)
- Answer submission and progress updates
- Learner stats and box overview
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from config import get_settings
from src.core.logging import configure_logging
from src.db.database import check_connection, init_db

settings = get_settings()


def _check_database_health() -> tuple[str, str | None]:
    """
    Check database connectivity.

    Returns:
        Tuple of (status, error_message). Status is "ok" or "error".
    """
    try:
        check_connection()
        return "ok", None
    except SQLAlchemyError as e:
        return "error", str(e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    configure_logging(settings)
    logger.info("Starting signal-drill service...")
    init_db()
    logger.info(f"Service started on {settings.api_host}:{settings.api_port}")

    yield

    # Shutdown
    logger.info("Shutting down signal-drill service...")


app = FastAPI(
    title="Signal Drill",
    description="""
    Spaced-repetition scheduling for railway signal and operations exam prep.

    ## Features

    - **Sessions**: Due cards first, topped up with new cards; practice and box modes
    - **Answers**: Leitner box transitions with XP and streak tracking
    - **Stats**: XP, answer totals and daily streak per learner
    """,
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ========================================
# Health & Status Endpoints
# ========================================


@app.get("/", tags=["Health"])
def root() -> dict[str, str]:
    """Root endpoint returning service info."""
    return {
        "service": "signal-drill",
        "version": "0.1.0",
        "status": "ok",
    }


@app.get("/health", tags=["Health"])
def health_check() -> dict[str, Any]:
    """Health check with an actual database round-trip."""
    db_status, db_error = _check_database_health()

    result: dict[str, Any] = {
        "status": "healthy" if db_status == "ok" else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": {
            "database": db_status,
            "content": "remote" if settings.has_remote_content() else "local",
            "scheduler": settings.scheduler_strategy,
        },
    }
    if db_error:
        result["errors"] = {"database": db_error}
    return result


# ========================================
# Import and mount routers
# ========================================

from src.api.routers import study_router  # noqa: E402

app.include_router(study_router.router, prefix="/study", tags=["Study"])
