"""
Progress persistence for the scheduling engine.

Provides data access for:
- Per (learner, question) progress rows (one row per pair, enforced by a
  unique constraint)
- Due-card and box-specific queries used by session composition
- Box overview counts

The store never opens its own transaction: callers pass the ``Session`` they
own, so a read-modify-write and the matching stats update commit together.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from loguru import logger
from sqlalchemy import case, func, select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from src.db.models import LearnerProgress

from .deadline import Deadline
from .errors import ConcurrentUpdateConflict, IntegrityViolation, OperationTimeout, StoreUnavailable
from .models import MAX_BOX, MIN_BOX, BoxSummary, ProgressSnapshot, is_correct
from .scheduler import ScheduleDecision, next_card_streak

# =============================================================================
# Error translation
# =============================================================================


UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(e: IntegrityError) -> bool:
    """Duplicate key on insert: SQLSTATE 23505 on PostgreSQL, ``UNIQUE constraint failed`` on SQLite."""
    orig = e.orig
    if UNIQUE_VIOLATION_SQLSTATE in (getattr(orig, "pgcode", None), getattr(orig, "sqlstate", None)):
        return True
    message = str(orig).lower()
    return "unique constraint" in message or "duplicate key" in message


@contextmanager
def translate_store_errors(deadline: Deadline | None = None, writing: bool = False) -> Iterator[None]:
    """
    Map store failures onto engine error kinds.

    Only stale versions and duplicate keys are concurrency conflicts; other
    constraint failures are data errors and are never retried. A store
    failure after the deadline has passed is reported as a timeout.
    """
    if deadline is not None:
        deadline.check()
    try:
        yield
    except StaleDataError as e:
        raise ConcurrentUpdateConflict(f"Concurrent update detected: {e}") from e
    except IntegrityError as e:
        if is_unique_violation(e):
            raise ConcurrentUpdateConflict(f"Concurrent insert detected: {e}") from e
        raise IntegrityViolation(f"Store rejected the write: {e}") from e
    except (OperationalError, DBAPIError) as e:
        if deadline is not None and deadline.expired:
            raise OperationTimeout(f"{deadline.operation} timed out in the store: {e}") from e
        raise StoreUnavailable(f"Store unavailable: {e}", may_have_applied=writing) from e
    except StoreUnavailable as e:
        if deadline is not None and deadline.expired:
            raise OperationTimeout(f"{deadline.operation} timed out: {e}") from e
        raise


def apply_statement_timeout(session: Session, deadline: Deadline) -> None:
    """Bound in-flight statements by the remaining budget (PostgreSQL only)."""
    remaining = deadline.remaining
    if remaining is None or session.get_bind().dialect.name != "postgresql":
        return
    millis = max(1, int(remaining * 1000))
    session.exec_driver_sql(f"SET LOCAL statement_timeout = {millis}")


# =============================================================================
# Progress Store
# =============================================================================


class ProgressStore:
    """SQLAlchemy-backed access to the ``progress`` table."""

    # =========================================================================
    # Single-record operations
    # =========================================================================

    def get_row(self, session: Session, learner_id: str, question_id: str) -> LearnerProgress | None:
        """Fetch the progress row for update within the caller's transaction."""
        stmt = select(LearnerProgress).where(
            LearnerProgress.learner_id == learner_id,
            LearnerProgress.question_id == question_id,
        )
        return session.scalars(stmt).one_or_none()

    def get(self, session: Session, learner_id: str, question_id: str) -> ProgressSnapshot | None:
        row = self.get_row(session, learner_id, question_id)
        return ProgressSnapshot.from_row(row) if row else None

    def record_answer(
        self,
        session: Session,
        row: LearnerProgress | None,
        learner_id: str,
        question_id: str,
        score: int,
        decision: ScheduleDecision,
        now: datetime,
    ) -> ProgressSnapshot:
        """
        Create or update the progress row for one answer and flush it.

        Args:
            session: Caller-owned session (transaction)
            row: Row previously loaded with ``get_row`` (None for a first answer)
            learner_id: Learner identifier
            question_id: Question identifier
            score: Validated score (0-5)
            decision: Scheduling result for this answer
            now: Review timestamp

        Returns:
            Snapshot of the written row

        Raises:
            ConcurrentUpdateConflict: Another writer changed or created the row
                since it was read
        """
        correct = is_correct(score)

        if row is None:
            row = LearnerProgress(
                learner_id=learner_id,
                question_id=question_id,
                streak=0,
                repetition_count=0,
                correct_count=0,
                incorrect_count=0,
            )
            session.add(row)

        row.last_score = score
        row.box_number = decision.box_number
        row.next_review_at = decision.next_review_at
        row.interval_days = decision.interval_days
        row.ease_factor = decision.ease_factor
        row.last_reviewed_at = now
        row.streak = next_card_streak(score, row.streak)
        row.repetition_count += 1
        if correct:
            row.correct_count += 1
        else:
            row.incorrect_count += 1
        row.updated_at = now

        session.flush()

        logger.debug(
            f"Progress {learner_id}/{question_id}: score={score} box={row.box_number} "
            f"next_review={row.next_review_at:%Y-%m-%d %H:%M} streak={row.streak}"
        )
        return ProgressSnapshot.from_row(row)

    # =========================================================================
    # Session queries
    # =========================================================================

    def list_due(self, session: Session, learner_id: str, now: datetime) -> list[ProgressSnapshot]:
        """Progress rows due at ``now``, most overdue first."""
        stmt = (
            select(LearnerProgress)
            .where(LearnerProgress.learner_id == learner_id, LearnerProgress.next_review_at <= now)
            .order_by(LearnerProgress.next_review_at.asc(), LearnerProgress.question_id.asc())
        )
        return [ProgressSnapshot.from_row(r) for r in session.scalars(stmt)]

    def list_by_box(self, session: Session, learner_id: str, box_number: int) -> list[ProgressSnapshot]:
        """Progress rows currently in a box, earliest review first."""
        stmt = (
            select(LearnerProgress)
            .where(LearnerProgress.learner_id == learner_id, LearnerProgress.box_number == box_number)
            .order_by(LearnerProgress.next_review_at.asc(), LearnerProgress.question_id.asc())
        )
        return [ProgressSnapshot.from_row(r) for r in session.scalars(stmt)]

    def reviewed_question_ids(self, session: Session, learner_id: str) -> set[str]:
        stmt = select(LearnerProgress.question_id).where(LearnerProgress.learner_id == learner_id)
        return set(session.scalars(stmt))

    def box_overview(self, session: Session, learner_id: str, now: datetime) -> list[BoxSummary]:
        """Total and due card counts for every box, including empty ones."""
        due_flag = case((LearnerProgress.next_review_at <= now, 1), else_=0)
        stmt = (
            select(
                LearnerProgress.box_number,
                func.count(LearnerProgress.id),
                func.coalesce(func.sum(due_flag), 0),
            )
            .where(LearnerProgress.learner_id == learner_id)
            .group_by(LearnerProgress.box_number)
        )
        counts = {box: (int(total), int(due)) for box, total, due in session.execute(stmt)}

        return [
            BoxSummary(box_number=box, count=counts.get(box, (0, 0))[0], due=counts.get(box, (0, 0))[1])
            for box in range(MIN_BOX, MAX_BOX + 1)
        ]
