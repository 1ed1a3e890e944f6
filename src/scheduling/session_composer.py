"""
Session composition.

Builds the ordered list of (question, progress) pairs for one study request.

Key principles:
1. Due cards always come first, most overdue first
2. Never-studied questions top up the remaining batch
3. Practice and guest sessions ignore progress entirely
4. Box sessions show only the cards currently in the requested box

Composition is read-only and holds no state between calls. A learner with
more due cards than the batch size gets the rest on the next call, since
answered cards stop being due.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from loguru import logger
from sqlalchemy.orm import Session

from src.content.store import ContentStore

from .deadline import Deadline
from .errors import InvalidSessionOptions
from .models import ProgressSnapshot, Question, QuestionFilter, SessionMode, SessionOptions, SessionQuestion
from .progress_store import ProgressStore, translate_store_errors


class SessionComposer:
    """Assembles study sessions from progress and content."""

    def __init__(
        self,
        content: ContentStore,
        progress_store: ProgressStore,
        default_batch_size: int = 15,
        max_batch_size: int = 100,
    ):
        """
        Initialize the composer.

        Args:
            content: Question source (read-only)
            progress_store: Progress data access
            default_batch_size: Batch size when options leave it unset
            max_batch_size: Largest batch a caller may request
        """
        self.content = content
        self.progress_store = progress_store
        self.default_batch_size = default_batch_size
        self.max_batch_size = max_batch_size

    def resolve_batch_size(self, options: SessionOptions) -> int:
        batch_size = options.batch_size if options.batch_size is not None else self.default_batch_size
        if batch_size < 1 or batch_size > self.max_batch_size:
            raise InvalidSessionOptions(f"batch_size must be between 1 and {self.max_batch_size}, got {batch_size}")
        return batch_size

    def compose(
        self,
        session: Session,
        learner_id: str | None,
        options: SessionOptions,
        now: datetime,
        deadline: Deadline | None = None,
    ) -> list[SessionQuestion]:
        """
        Build a session for the requested mode.

        Args:
            session: Read session on the progress store
            learner_id: Learner identifier, None for guests
            options: Mode, filters and batch size
            now: Reference time for due-date comparisons
            deadline: Time budget for the store round-trips

        Returns:
            Ordered session questions (possibly empty)
        """
        deadline = deadline or Deadline(operation="load_session")
        batch_size = self.resolve_batch_size(options)
        query = options.to_filter()
        mode = SessionMode(options.mode)

        if mode is SessionMode.BOXES:
            if options.box_number is None:
                raise InvalidSessionOptions("box_number is required for boxes mode")
            if learner_id is None:
                logger.info("Box session requested without a learner; returning empty session")
                return []
            items = self._box_session(session, learner_id, options.box_number, query, batch_size, deadline)
        elif mode is SessionMode.REVIEW and learner_id is not None:
            items = self._review_session(session, learner_id, query, batch_size, now, deadline)
        else:
            if mode is SessionMode.REVIEW:
                logger.debug("Review session requested without a learner; serving practice")
            items = self._practice_session(query, batch_size, deadline)

        logger.info(
            f"Session composed: mode={mode.value} learner={learner_id or 'guest'} "
            f"cards={len(items)} (new={sum(1 for i in items if i.is_new)})"
        )
        return items

    # =========================================================================
    # Modes
    # =========================================================================

    def _review_session(
        self,
        session: Session,
        learner_id: str,
        query: QuestionFilter,
        batch_size: int,
        now: datetime,
        deadline: Deadline,
    ) -> list[SessionQuestion]:
        due = self.matching_due(session, learner_id, query, now, deadline)
        items = due[:batch_size]

        if len(due) > batch_size:
            logger.info(f"{len(due) - batch_size} more due cards remain for {learner_id} after this batch")

        needed = batch_size - len(items)
        if needed > 0:
            with translate_store_errors(deadline):
                reviewed = self.progress_store.reviewed_question_ids(session, learner_id)
            deadline.check()
            candidates = self.content.get_questions(query, timeout=deadline.remaining)
            new_questions = [q for q in candidates if q.id not in reviewed]
            items.extend(SessionQuestion(question=q) for q in new_questions[:needed])

        return items

    def _practice_session(self, query: QuestionFilter, batch_size: int, deadline: Deadline) -> list[SessionQuestion]:
        deadline.check()
        questions = self.content.get_questions(query, timeout=deadline.remaining)
        return [SessionQuestion(question=q) for q in questions[:batch_size]]

    def _box_session(
        self,
        session: Session,
        learner_id: str,
        box_number: int,
        query: QuestionFilter,
        batch_size: int,
        deadline: Deadline,
    ) -> list[SessionQuestion]:
        with translate_store_errors(deadline):
            in_box = self.progress_store.list_by_box(session, learner_id, box_number)
        return self._join(in_box, query, deadline)[:batch_size]

    # =========================================================================
    # Helpers
    # =========================================================================

    def matching_due(
        self,
        session: Session,
        learner_id: str,
        query: QuestionFilter,
        now: datetime,
        deadline: Deadline,
    ) -> list[SessionQuestion]:
        """All due cards matching the filter, most overdue first."""
        with translate_store_errors(deadline):
            due = self.progress_store.list_due(session, learner_id, now)
        return self._join(due, query, deadline)

    def _join(
        self,
        progress: Sequence[ProgressSnapshot],
        query: QuestionFilter,
        deadline: Deadline,
    ) -> list[SessionQuestion]:
        """Pair progress rows with their questions, keeping progress order."""
        if not progress:
            return []
        deadline.check()
        found = self.content.get_questions_by_ids([p.question_id for p in progress], timeout=deadline.remaining)
        questions: dict[str, Question] = {q.id: q for q in found}

        items: list[SessionQuestion] = []
        for p in progress:
            question = questions.get(p.question_id)
            if question is None:
                logger.warning(f"Progress for {p.learner_id} references missing question {p.question_id}")
                continue
            if query.matches(question):
                items.append(SessionQuestion(question=question, progress=p))
        return items
