"""
Spaced-repetition scheduling engine.

Components:
- Scheduler functions: box transitions, review dates, XP
- ProgressStore: per (learner, question) progress persistence
- SessionComposer: review/practice/box/guest session assembly
- AnswerPipeline: score -> schedule -> progress -> stats
- StatsAggregator: XP, totals and daily streak
- StudyEngine: facade used by the API and CLI (``src.scheduling.engine``)
"""

from .errors import (
    ConcurrentUpdateConflict,
    IntegrityViolation,
    InvalidScore,
    InvalidSessionOptions,
    OperationTimeout,
    QuestionNotFound,
    SchedulingError,
    StoreUnavailable,
)
from .models import (
    AnswerOutcome,
    BoxSummary,
    ProgressSnapshot,
    Question,
    QuestionFilter,
    SessionMode,
    SessionOptions,
    SessionQuestion,
    StatsSummary,
)
from .scheduler import (
    EaseFactorStrategy,
    LeitnerStrategy,
    next_box_number,
    next_review_date,
    xp_gain,
)

__all__ = [
    # Errors
    "SchedulingError",
    "InvalidScore",
    "InvalidSessionOptions",
    "QuestionNotFound",
    "StoreUnavailable",
    "ConcurrentUpdateConflict",
    "IntegrityViolation",
    "OperationTimeout",
    # Types
    "Question",
    "QuestionFilter",
    "ProgressSnapshot",
    "SessionQuestion",
    "SessionOptions",
    "SessionMode",
    "StatsSummary",
    "BoxSummary",
    "AnswerOutcome",
    # Scheduling
    "next_box_number",
    "next_review_date",
    "xp_gain",
    "LeitnerStrategy",
    "EaseFactorStrategy",
]
