"""
Answer submission: validate -> schedule -> persist progress -> update stats.

Progress and stats for one answer are written in a single transaction.
Both rows are version-checked, so a concurrent writer makes the flush fail
instead of silently overwriting; the whole read-modify-write is then re-run
from a fresh read a bounded number of times.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

from src.content.store import ContentStore
from src.db.database import session_scope

from .deadline import Deadline
from .errors import ConcurrentUpdateConflict, QuestionNotFound
from .models import AnswerOutcome, ProgressSnapshot
from .progress_store import ProgressStore, apply_statement_timeout, translate_store_errors
from .scheduler import SchedulingStrategy, utcnow, validate_score
from .stats_aggregator import StatsAggregator


class AnswerPipeline:
    """Applies submitted answers to progress and stats."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        content: ContentStore,
        strategy: SchedulingStrategy,
        progress_store: ProgressStore | None = None,
        stats: StatsAggregator | None = None,
        conflict_retry_attempts: int = 1,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.content = content
        self.strategy = strategy
        self.progress_store = progress_store or ProgressStore()
        self.stats = stats or StatsAggregator()
        self.conflict_retry_attempts = conflict_retry_attempts
        self.clock = clock

    def submit(
        self,
        learner_id: str | None,
        question_id: str,
        score: object,
        deadline: Deadline | None = None,
    ) -> AnswerOutcome:
        """
        Record one answer.

        Guests (``learner_id`` None) get a successful outcome with
        ``persisted=False``; nothing is read or written for them.

        Raises:
            InvalidScore: Score is not an integer in [0, 5]
            QuestionNotFound: The content store does not know the question
            ConcurrentUpdateConflict: Conflicts persisted through every retry
            IntegrityViolation: The write broke a non-unique constraint
            StoreUnavailable: The store failed; ``may_have_applied`` tells
                whether the commit may still have gone through
            OperationTimeout: The deadline expired before commit
        """
        valid_score = validate_score(score)

        if learner_id is None:
            logger.debug(f"Guest answer for {question_id} (score={valid_score}) not persisted")
            return AnswerOutcome(question_id=question_id, score=valid_score, persisted=False)

        deadline = deadline or Deadline(operation="submit_answer")
        with translate_store_errors(deadline):
            question = self.content.get_question_by_id(question_id, timeout=deadline.remaining)
        if question is None:
            raise QuestionNotFound(question_id)

        attempt = 0
        while True:
            attempt += 1
            try:
                outcome = self._apply(learner_id, question_id, valid_score, deadline)
                outcome.attempts = attempt
                return outcome
            except ConcurrentUpdateConflict:
                if attempt > self.conflict_retry_attempts:
                    logger.error(
                        f"Giving up on answer {learner_id}/{question_id} after {attempt} conflicting attempts"
                    )
                    raise
                logger.warning(f"Concurrent update on {learner_id}/{question_id}, retrying (attempt {attempt})")

    def _apply(self, learner_id: str, question_id: str, score: int, deadline: Deadline) -> AnswerOutcome:
        now = self.clock()

        # Outer translation covers commit; inner failures are already translated
        with translate_store_errors(deadline, writing=True):
            with session_scope(self.session_factory) as session:
                with translate_store_errors(deadline):
                    apply_statement_timeout(session, deadline)
                    row = self.progress_store.get_row(session, learner_id, question_id)
                    previous = ProgressSnapshot.from_row(row) if row else None

                decision = self.strategy.schedule(previous, score, now)

                with translate_store_errors(deadline):
                    progress = self.progress_store.record_answer(
                        session, row, learner_id, question_id, score, decision, now
                    )
                with translate_store_errors(deadline):
                    gained, stats = self.stats.record_answer(session, learner_id, score, now.date())

                deadline.check()

        return AnswerOutcome(
            question_id=question_id,
            score=score,
            persisted=True,
            progress=progress,
            xp_gained=gained,
            stats=stats,
        )
