"""
Unit tests for answer submission: validation, persistence and conflict retry.
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from src.db.models import LearnerProgress, LearnerStats
from src.scheduling.answer_pipeline import AnswerPipeline
from src.scheduling.deadline import Deadline
from src.scheduling.errors import (
    ConcurrentUpdateConflict,
    InvalidScore,
    OperationTimeout,
    QuestionNotFound,
    SchedulingError,
    StoreUnavailable,
)
from src.scheduling.progress_store import ProgressStore
from src.scheduling.scheduler import LeitnerStrategy


class ConflictingProgressStore(ProgressStore):
    """Raises a conflict on the first ``failures`` writes."""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    def record_answer(self, *args, **kwargs):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConcurrentUpdateConflict("row changed underneath us")
        return super().record_answer(*args, **kwargs)


@pytest.fixture
def pipeline(session_factory, content_store, clock):
    return AnswerPipeline(session_factory, content_store, LeitnerStrategy(), clock=clock)


def count_rows(session_factory, model):
    with session_factory() as session:
        return session.query(model).count()


class TestValidation:
    @pytest.mark.parametrize("score", [-1, 6, 2.5, "3", None])
    def test_invalid_score_rejected(self, pipeline, session_factory, score):
        with pytest.raises(InvalidScore):
            pipeline.submit("learner-1", "sig-001", score)

        assert count_rows(session_factory, LearnerProgress) == 0

    def test_invalid_score_rejected_for_guest(self, pipeline):
        with pytest.raises(InvalidScore):
            pipeline.submit(None, "sig-001", 9)

    def test_unknown_question(self, pipeline, session_factory):
        with pytest.raises(QuestionNotFound) as exc:
            pipeline.submit("learner-1", "does-not-exist", 4)

        assert exc.value.question_id == "does-not-exist"
        assert count_rows(session_factory, LearnerProgress) == 0


class TestContentLookup:
    def test_driver_error_is_store_unavailable(self, session_factory, clock):
        class BrokenContent:
            def get_question_by_id(self, question_id, timeout=None):
                raise OperationalError("SELECT", {}, Exception("db down"))

        pipeline = AnswerPipeline(session_factory, BrokenContent(), LeitnerStrategy(), clock=clock)

        with pytest.raises(StoreUnavailable) as exc:
            pipeline.submit("learner-1", "sig-001", 4)

        assert isinstance(exc.value, SchedulingError)
        assert exc.value.may_have_applied is False
        assert count_rows(session_factory, LearnerProgress) == 0
        assert count_rows(session_factory, LearnerStats) == 0

    def test_lookup_gets_remaining_budget(self, session_factory, content_store, clock):
        budgets = []

        class RecordingContent:
            def get_question_by_id(self, question_id, timeout=None):
                budgets.append(timeout)
                return content_store.get_question_by_id(question_id)

        pipeline = AnswerPipeline(session_factory, RecordingContent(), LeitnerStrategy(), clock=clock)
        pipeline.submit("learner-1", "sig-001", 4, deadline=Deadline(timeout=30.0, operation="submit_answer"))

        assert 0 < budgets[0] <= 30.0


class TestGuest:
    def test_guest_answer_is_not_persisted(self, pipeline, session_factory):
        outcome = pipeline.submit(None, "sig-001", 5)

        assert outcome.persisted is False
        assert outcome.progress is None
        assert outcome.xp_gained == 0
        assert count_rows(session_factory, LearnerProgress) == 0
        assert count_rows(session_factory, LearnerStats) == 0


class TestPersistence:
    def test_first_answer(self, pipeline, clock):
        outcome = pipeline.submit("learner-1", "sig-001", 5)

        assert outcome.persisted is True
        assert outcome.attempts == 1
        assert outcome.progress.box_number == 2
        assert outcome.progress.next_review_at == clock.now + timedelta(days=3)
        assert outcome.progress.streak == 1
        assert outcome.xp_gained == 15
        assert outcome.stats.xp == 15
        assert outcome.stats.streak_days == 1

    def test_failed_recall_resets_box_and_streak(self, pipeline, clock):
        pipeline.submit("learner-1", "sig-001", 5)
        clock.advance(days=3)
        pipeline.submit("learner-1", "sig-001", 4)
        clock.advance(days=7)

        outcome = pipeline.submit("learner-1", "sig-001", 2)

        assert outcome.progress.box_number == 1
        assert outcome.progress.streak == 0
        assert outcome.progress.next_review_at == clock.now + timedelta(days=1)
        assert outcome.progress.correct_count == 2
        assert outcome.progress.incorrect_count == 1

    def test_streak_of_four_resets_then_restarts(self, pipeline, clock):
        for _ in range(4):
            outcome = pipeline.submit("learner-1", "sig-003", 4)
            clock.advance(days=1)
        assert outcome.progress.streak == 4

        assert pipeline.submit("learner-1", "sig-003", 2).progress.streak == 0
        assert pipeline.submit("learner-1", "sig-003", 4).progress.streak == 1

    def test_score_three_advances_box_but_resets_streak(self, pipeline, clock):
        pipeline.submit("learner-1", "sig-001", 4)
        clock.advance(days=3)

        outcome = pipeline.submit("learner-1", "sig-001", 3)

        assert outcome.progress.box_number == 3
        assert outcome.progress.streak == 0
        assert outcome.stats.total_incorrect == 1

    def test_one_row_per_learner_and_question(self, pipeline, session_factory):
        for score in (5, 1, 4):
            pipeline.submit("learner-1", "sig-001", score)
        pipeline.submit("learner-2", "sig-001", 4)

        assert count_rows(session_factory, LearnerProgress) == 2
        assert count_rows(session_factory, LearnerStats) == 2


class TestConflictRetry:
    def test_retries_once_after_conflict(self, session_factory, content_store, clock):
        store = ConflictingProgressStore(failures=1)
        pipeline = AnswerPipeline(
            session_factory, content_store, LeitnerStrategy(), progress_store=store, clock=clock
        )

        outcome = pipeline.submit("learner-1", "sig-001", 5)

        assert outcome.attempts == 2
        assert outcome.progress.box_number == 2
        assert count_rows(session_factory, LearnerProgress) == 1

    def test_gives_up_after_retry_budget(self, session_factory, content_store, clock):
        store = ConflictingProgressStore(failures=2)
        pipeline = AnswerPipeline(
            session_factory, content_store, LeitnerStrategy(), progress_store=store, clock=clock
        )

        with pytest.raises(ConcurrentUpdateConflict):
            pipeline.submit("learner-1", "sig-001", 5)

        assert store.calls == 2
        assert count_rows(session_factory, LearnerProgress) == 0
        assert count_rows(session_factory, LearnerStats) == 0

    def test_no_retry_when_disabled(self, session_factory, content_store, clock):
        store = ConflictingProgressStore(failures=1)
        pipeline = AnswerPipeline(
            session_factory,
            content_store,
            LeitnerStrategy(),
            progress_store=store,
            conflict_retry_attempts=0,
            clock=clock,
        )

        with pytest.raises(ConcurrentUpdateConflict):
            pipeline.submit("learner-1", "sig-001", 5)
        assert store.calls == 1


class TestDeadline:
    def test_expired_deadline_writes_nothing(self, pipeline, session_factory):
        with pytest.raises(OperationTimeout):
            pipeline.submit("learner-1", "sig-001", 5, deadline=Deadline(timeout=0.0, operation="submit_answer"))

        assert count_rows(session_factory, LearnerProgress) == 0
