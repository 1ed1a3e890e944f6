"""Aggregate learner statistics (XP, answer totals, daily streak)."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class LearnerStats(Base):
    __tablename__ = "stats"

    learner_id: Mapped[str] = mapped_column(Text, primary_key=True)
    xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_correct: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_incorrect: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streak_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_activity_date: Mapped[date | None] = mapped_column(Date)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<LearnerStats learner={self.learner_id} xp={self.xp} streak_days={self.streak_days}>"
