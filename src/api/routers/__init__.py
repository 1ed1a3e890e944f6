"""API routers for signal-drill."""

from src.api.routers import study_router

__all__ = [
    "study_router",
]
