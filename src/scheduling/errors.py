"""
Error kinds raised by the scheduling engine.

Callers can catch ``SchedulingError`` for everything the engine raises on
purpose; store driver exceptions are translated before they leave the
store layer.
"""

from __future__ import annotations


class SchedulingError(Exception):
    """Base class for engine errors."""


class InvalidScore(SchedulingError, ValueError):
    """Score is not an integer in [0, 5]. Never retried."""

    def __init__(self, score: object):
        self.score = score
        super().__init__(f"Score must be an integer between 0 and 5, got {score!r}")


class InvalidSessionOptions(SchedulingError, ValueError):
    """Session request that cannot be composed (bad mode/box combination)."""


class QuestionNotFound(SchedulingError, LookupError):
    """Answer submitted for a question the content store does not know."""

    def __init__(self, question_id: str):
        self.question_id = question_id
        super().__init__(f"Question not found: {question_id}")


class StoreUnavailable(SchedulingError):
    """Transient store failure.

    ``may_have_applied`` is set when a write failed at a point where the
    store may still have committed it.
    """

    def __init__(self, message: str, may_have_applied: bool = False):
        self.may_have_applied = may_have_applied
        super().__init__(message)


class ConcurrentUpdateConflict(SchedulingError):
    """Optimistic concurrency check failed for a progress or stats row."""


class IntegrityViolation(SchedulingError):
    """A write broke a store constraint other than uniqueness. Never retried."""


class OperationTimeout(SchedulingError, TimeoutError):
    """An engine call exceeded its caller-supplied timeout."""
