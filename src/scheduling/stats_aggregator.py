"""
Learner statistics: XP, answer totals and the daily streak.

The daily streak is re-derived from ``last_activity_date`` on every answer
rather than incremented blindly, so repeated or out-of-order calls on the
same calendar date leave it unchanged.
"""

from __future__ import annotations

from datetime import date, timedelta

from loguru import logger
from sqlalchemy.orm import Session

from src.db.models import LearnerStats

from .models import StatsSummary, is_correct
from .scheduler import xp_gain


def next_day_streak(last_activity_date: date | None, streak_days: int, today: date) -> int:
    """Daily streak after activity on ``today``."""
    if last_activity_date is None:
        return 1
    if last_activity_date >= today:
        # Already counted today (or a later date was recorded first)
        return max(streak_days, 1)
    if last_activity_date == today - timedelta(days=1):
        return streak_days + 1
    return 1


def _summary(row: LearnerStats) -> StatsSummary:
    return StatsSummary(
        xp=row.xp,
        total_correct=row.total_correct,
        total_incorrect=row.total_incorrect,
        streak_days=row.streak_days,
        last_activity_date=row.last_activity_date,
    )


class StatsAggregator:
    """Maintains the ``stats`` row for each learner."""

    def record_answer(self, session: Session, learner_id: str, score: int, today: date) -> tuple[int, StatsSummary]:
        """
        Apply one answer to the learner's stats and flush.

        Returns:
            Tuple of (xp gained, updated stats)
        """
        gained = xp_gain(score)
        row = session.get(LearnerStats, learner_id)

        if row is None:
            row = LearnerStats(
                learner_id=learner_id,
                xp=0,
                total_correct=0,
                total_incorrect=0,
                streak_days=0,
            )
            session.add(row)

        row.xp += gained
        if is_correct(score):
            row.total_correct += 1
        else:
            row.total_incorrect += 1

        row.streak_days = next_day_streak(row.last_activity_date, row.streak_days, today)
        if row.last_activity_date is None or row.last_activity_date < today:
            row.last_activity_date = today

        session.flush()

        logger.debug(f"Stats {learner_id}: +{gained} XP (total {row.xp}), streak_days={row.streak_days}")
        return gained, _summary(row)

    def get(self, session: Session, learner_id: str) -> StatsSummary:
        """Stats for a learner; zeros if they have never answered."""
        row = session.get(LearnerStats, learner_id)
        return _summary(row) if row else StatsSummary()
