"""
Study engine facade.

The interface exposed to the UI/session layer:
- load_session   - compose the next batch of questions
- submit_answer  - record a score for one question
- get_stats      - aggregate learner statistics
- get_box_overview / count_due - box and due-card counts

Every call is independent: the engine keeps no per-learner state between
calls. Read operations retry ``StoreUnavailable`` with exponential backoff;
writes are never retried on store failures (only on optimistic-concurrency
conflicts, inside the answer pipeline).
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

from config import Settings, get_settings
from src.content.store import ContentStore, SqlContentStore
from src.db.database import get_session_factory

from .answer_pipeline import AnswerPipeline
from .deadline import Deadline
from .errors import StoreUnavailable
from .models import AnswerOutcome, BoxSummary, SessionOptions, SessionQuestion, StatsSummary
from .progress_store import ProgressStore, apply_statement_timeout, translate_store_errors
from .scheduler import SchedulingStrategy, build_strategy, utcnow
from .session_composer import SessionComposer
from .stats_aggregator import StatsAggregator

T = TypeVar("T")


class StudyEngine:
    """Entry point for session loading, answer submission and stats."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        content: ContentStore,
        strategy: SchedulingStrategy,
        default_batch_size: int = 15,
        max_batch_size: int = 100,
        default_timeout: float | None = None,
        read_retry_attempts: int = 3,
        read_retry_backoff: float = 0.2,
        conflict_retry_attempts: int = 1,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session_factory = session_factory
        self.content = content
        self.strategy = strategy
        self.default_timeout = default_timeout
        self.read_retry_attempts = read_retry_attempts
        self.read_retry_backoff = read_retry_backoff
        self.clock = clock
        self._sleep = sleep

        self.progress_store = ProgressStore()
        self.stats = StatsAggregator()
        self.composer = SessionComposer(
            content,
            self.progress_store,
            default_batch_size=default_batch_size,
            max_batch_size=max_batch_size,
        )
        self.pipeline = AnswerPipeline(
            session_factory,
            content,
            strategy,
            progress_store=self.progress_store,
            stats=self.stats,
            conflict_retry_attempts=conflict_retry_attempts,
            clock=clock,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        session_factory: sessionmaker[Session] | None = None,
        content: ContentStore | None = None,
        **kwargs: Any,
    ) -> StudyEngine:
        """Build an engine from application settings."""
        settings = settings or get_settings()
        session_factory = session_factory or get_session_factory()

        if content is None:
            if settings.has_remote_content():
                from src.content.http_store import HttpContentStore

                content = HttpContentStore(
                    settings.content_api_url,
                    api_key=settings.content_api_key,
                    cache_ttl_seconds=settings.content_cache_ttl_seconds,
                    cache_max_entries=settings.content_cache_max_entries,
                )
            else:
                content = SqlContentStore(session_factory)

        logger.debug(f"StudyEngine using {settings.scheduler_strategy} scheduling")
        return cls(
            session_factory,
            content,
            build_strategy(settings),
            default_batch_size=settings.default_batch_size,
            max_batch_size=settings.max_batch_size,
            default_timeout=settings.operation_timeout_seconds,
            read_retry_attempts=settings.read_retry_attempts,
            read_retry_backoff=settings.read_retry_backoff_seconds,
            conflict_retry_attempts=settings.conflict_retry_attempts,
            **kwargs,
        )

    # =========================================================================
    # Public interface
    # =========================================================================

    def load_session(
        self,
        learner_id: str | None,
        options: SessionOptions | None = None,
        timeout: float | None = None,
    ) -> list[SessionQuestion]:
        """
        Compose the next batch of questions for a learner (or a guest).

        Args:
            learner_id: Learner identifier, None for guest/practice
            options: Mode, filters and batch size (defaults: review, all regulations)
            timeout: Seconds before the call fails with OperationTimeout

        Returns:
            Ordered list of SessionQuestion
        """
        options = options or SessionOptions()
        deadline = self._deadline("load_session", timeout)

        def compose(session: Session) -> list[SessionQuestion]:
            return self.composer.compose(session, learner_id, options, self.clock(), deadline)

        return self._read(compose, deadline)

    def submit_answer(
        self,
        learner_id: str | None,
        question_id: str,
        score: object,
        timeout: float | None = None,
    ) -> AnswerOutcome:
        """Record an answer; a no-op success for guests."""
        return self.pipeline.submit(learner_id, question_id, score, self._deadline("submit_answer", timeout))

    def get_stats(self, learner_id: str, timeout: float | None = None) -> StatsSummary:
        deadline = self._deadline("get_stats", timeout)
        return self._read(lambda session: self.stats.get(session, learner_id), deadline)

    def get_box_overview(self, learner_id: str, timeout: float | None = None) -> list[BoxSummary]:
        """Card and due counts for boxes 1-5."""
        deadline = self._deadline("get_box_overview", timeout)
        now = self.clock()
        return self._read(lambda session: self.progress_store.box_overview(session, learner_id, now), deadline)

    def count_due(self, learner_id: str, options: SessionOptions | None = None, timeout: float | None = None) -> int:
        """Number of due cards matching the session filters."""
        query = (options or SessionOptions()).to_filter()
        deadline = self._deadline("count_due", timeout)
        now = self.clock()

        def count(session: Session) -> int:
            return len(self.composer.matching_due(session, learner_id, query, now, deadline))

        return self._read(count, deadline)

    # =========================================================================
    # Internals
    # =========================================================================

    def _deadline(self, operation: str, timeout: float | None) -> Deadline:
        return Deadline(timeout=timeout if timeout is not None else self.default_timeout, operation=operation)

    def _read(self, fn: Callable[[Session], T], deadline: Deadline) -> T:
        """Run a read-only unit of work, retrying transient store failures."""
        for attempt in range(self.read_retry_attempts):
            try:
                with translate_store_errors(deadline):
                    with self.session_factory() as session:
                        apply_statement_timeout(session, deadline)
                        return fn(session)
            except StoreUnavailable as e:
                if attempt == self.read_retry_attempts - 1:
                    raise
                wait_time = self.read_retry_backoff * (2**attempt)
                remaining = deadline.remaining
                if remaining is not None and wait_time >= remaining:
                    raise
                logger.warning(
                    f"{deadline.operation} failed on attempt {attempt + 1}/{self.read_retry_attempts}: {e}. "
                    f"Retrying in {wait_time:.2f}s..."
                )
                self._sleep(wait_time)

        raise StoreUnavailable(f"{deadline.operation} failed after {self.read_retry_attempts} attempts")
