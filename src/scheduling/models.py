"""
Domain types for the scheduling engine.

Questions come from the content collaborator and are read-only here.
``ProgressSnapshot`` is the detached, immutable view of a progress row that
leaves the store; ORM instances never escape a transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from src.db.models import LearnerProgress

MIN_SCORE = 0
MAX_SCORE = 5
CORRECT_THRESHOLD = 4  # score >= 4 counts as correct everywhere

MIN_BOX = 1
MAX_BOX = 5

REGULATION_ALL = "all"
REGULATION_BOTH = "both"


class QuestionCategory(str, Enum):
    SIGNALE = "Signale"
    BETRIEBSDIENST = "Betriebsdienst"


class SessionMode(str, Enum):
    REVIEW = "review"
    PRACTICE = "practice"
    BOXES = "boxes"
    GUEST = "guest"


def is_correct(score: int) -> bool:
    return score >= CORRECT_THRESHOLD


@dataclass(frozen=True)
class Answer:
    text: str
    is_correct: bool = False


@dataclass(frozen=True)
class Question:
    """A study question as served by the content store."""

    id: str
    category: str
    sub_category: str = ""
    regulation_category: str | None = None
    difficulty: int = 1
    question_type: str = "open"
    text: str = ""
    answers: tuple[Answer, ...] = ()


@dataclass(frozen=True)
class QuestionFilter:
    """
    Category/subcategory/regulation filter shared by every session mode.

    ``subcategories`` takes precedence over ``sub_category`` when non-empty.
    A regulation of ``"all"`` disables regulation filtering; any other value
    also matches questions tagged ``"both"`` or untagged.
    """

    category: str | None = None
    sub_category: str | None = None
    subcategories: tuple[str, ...] = ()
    regulation: str = REGULATION_ALL

    def matches(self, question: Question) -> bool:
        if self.category and question.category != self.category:
            return False
        if self.subcategories:
            if question.sub_category not in self.subcategories:
                return False
        elif self.sub_category and question.sub_category != self.sub_category:
            return False
        return regulation_matches(question.regulation_category, self.regulation)


def regulation_matches(tag: str | None, regulation: str) -> bool:
    if regulation == REGULATION_ALL:
        return True
    return not tag or tag == REGULATION_BOTH or tag == regulation


@dataclass(frozen=True)
class ProgressSnapshot:
    """Read-only copy of one progress record."""

    learner_id: str
    question_id: str
    box_number: int
    last_score: int
    last_reviewed_at: datetime
    next_review_at: datetime
    streak: int = 0
    repetition_count: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    interval_days: int | None = None
    ease_factor: float | None = None
    version: int = 1

    @classmethod
    def from_row(cls, row: LearnerProgress) -> ProgressSnapshot:
        return cls(
            learner_id=row.learner_id,
            question_id=row.question_id,
            box_number=row.box_number,
            last_score=row.last_score,
            last_reviewed_at=row.last_reviewed_at,
            next_review_at=row.next_review_at,
            streak=row.streak,
            repetition_count=row.repetition_count,
            correct_count=row.correct_count,
            incorrect_count=row.incorrect_count,
            interval_days=row.interval_days,
            ease_factor=row.ease_factor,
            version=row.version,
        )

    def is_due(self, now: datetime) -> bool:
        return self.next_review_at <= now


@dataclass(frozen=True)
class SessionQuestion:
    """A question paired with the learner's progress (None if never studied)."""

    question: Question
    progress: ProgressSnapshot | None = None

    @property
    def is_new(self) -> bool:
        return self.progress is None


@dataclass(frozen=True)
class StatsSummary:
    xp: int = 0
    total_correct: int = 0
    total_incorrect: int = 0
    streak_days: int = 0
    last_activity_date: date | None = None

    def as_dict(self) -> dict[str, int]:
        return {
            "xp": self.xp,
            "totalCorrect": self.total_correct,
            "totalIncorrect": self.total_incorrect,
            "streakDays": self.streak_days,
        }


@dataclass
class BoxSummary:
    box_number: int
    count: int = 0
    due: int = 0


@dataclass
class AnswerOutcome:
    """What a submitted answer changed; ``persisted`` is False for guests."""

    question_id: str
    score: int
    persisted: bool
    progress: ProgressSnapshot | None = None
    xp_gained: int = 0
    stats: StatsSummary | None = None
    attempts: int = 1


class SessionOptions(BaseModel):
    """Options accepted by ``loadSession``."""

    category: str | None = None
    subcategory: str | None = None
    subcategories: list[str] = Field(default_factory=list)
    regulation: str = REGULATION_ALL
    mode: Literal["review", "practice", "boxes", "guest"] = "review"
    box_number: int | None = Field(default=None, ge=MIN_BOX, le=MAX_BOX)
    batch_size: int | None = Field(default=None, ge=1)

    def to_filter(self) -> QuestionFilter:
        return QuestionFilter(
            category=self.category or None,
            sub_category=self.subcategory or None,
            subcategories=tuple(s for s in self.subcategories if s and s.strip()),
            regulation=self.regulation or REGULATION_ALL,
        )
