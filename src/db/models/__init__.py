# SQLAlchemy models
from .base import Base
from .content import QuestionRecord
from .progress import LearnerProgress
from .stats import LearnerStats

__all__ = [
    # Base
    "Base",
    # Content (read-only to the scheduling core)
    "QuestionRecord",
    # Scheduling state
    "LearnerProgress",
    "LearnerStats",
]
