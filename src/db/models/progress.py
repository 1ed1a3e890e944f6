"""
Per-learner, per-question mastery state.

One row per (learner, question). The unique constraint is the authority on
that invariant; the ``version`` column drives optimistic concurrency so two
writers that read the same row cannot both commit an update.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, Index, Integer, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class LearnerProgress(Base):
    """Leitner box state plus optional ease-factor fields for one card."""

    __tablename__ = "progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    learner_id: Mapped[str] = mapped_column(Text, nullable=False)
    question_id: Mapped[str] = mapped_column(Text, nullable=False)

    box_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_score: Mapped[int] = mapped_column(Integer, nullable=False)

    # Only maintained by the ease-factor strategy
    interval_days: Mapped[int | None] = mapped_column(Integer)
    ease_factor: Mapped[float | None] = mapped_column(Float)

    last_reviewed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    next_review_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    repetition_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    incorrect_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("learner_id", "question_id", name="uq_progress_learner_question"),
        CheckConstraint("box_number BETWEEN 1 AND 5", name="ck_progress_box_range"),
        CheckConstraint("last_score BETWEEN 0 AND 5", name="ck_progress_score_range"),
        CheckConstraint("next_review_at >= last_reviewed_at", name="ck_progress_review_order"),
        Index("idx_progress_due", "learner_id", "next_review_at"),
        Index("idx_progress_box", "learner_id", "box_number"),
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<LearnerProgress learner={self.learner_id} question={self.question_id} "
            f"box={self.box_number} next={self.next_review_at}>"
        )
