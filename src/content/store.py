"""
Content store contract and the local SQL implementation.

The scheduling core only reads questions. Implementations must return
questions ordered by id so session composition is deterministic.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, sessionmaker

from src.db.models import QuestionRecord
from src.scheduling.deadline import Deadline
from src.scheduling.models import REGULATION_ALL, REGULATION_BOTH, Answer, Question, QuestionFilter
from src.scheduling.progress_store import apply_statement_timeout


class ContentStore(Protocol):
    def get_questions(self, query: QuestionFilter, timeout: float | None = None) -> list[Question]: ...

    def get_question_by_id(self, question_id: str, timeout: float | None = None) -> Question | None: ...

    def get_questions_by_ids(self, question_ids: Sequence[str], timeout: float | None = None) -> list[Question]: ...


def question_from_row(row: Mapping[str, Any]) -> Question:
    """Build a Question from a content row (DB record dict or REST payload)."""
    answers = tuple(
        Answer(text=str(a.get("text", "")), is_correct=bool(a.get("isCorrect", a.get("is_correct", False))))
        for a in (row.get("answers") or [])
        if isinstance(a, Mapping)
    )
    return Question(
        id=str(row["id"]),
        category=row.get("category") or "",
        sub_category=row.get("sub_category") or "",
        regulation_category=row.get("regulation_category") or None,
        difficulty=int(row.get("difficulty") or 1),
        question_type=row.get("question_type") or "open",
        text=row.get("text") or "",
        answers=answers,
    )


def _record_to_question(record: QuestionRecord) -> Question:
    return question_from_row(
        {
            "id": record.id,
            "category": record.category,
            "sub_category": record.sub_category,
            "regulation_category": record.regulation_category,
            "difficulty": record.difficulty,
            "question_type": record.question_type,
            "text": record.text,
            "answers": record.answers,
        }
    )


class SqlContentStore:
    """Read-only access to the ``questions`` table."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def _session(self, timeout: float | None) -> Session:
        session = self.session_factory()
        if timeout is not None:
            apply_statement_timeout(session, Deadline(timeout=timeout, operation="content read"))
        return session

    def get_questions(self, query: QuestionFilter, timeout: float | None = None) -> list[Question]:
        stmt = select(QuestionRecord).order_by(QuestionRecord.id.asc())

        if query.category:
            stmt = stmt.where(QuestionRecord.category == query.category)
        if query.subcategories:
            stmt = stmt.where(QuestionRecord.sub_category.in_(query.subcategories))
        elif query.sub_category:
            stmt = stmt.where(QuestionRecord.sub_category == query.sub_category)
        if query.regulation != REGULATION_ALL:
            stmt = stmt.where(
                or_(
                    QuestionRecord.regulation_category == query.regulation,
                    QuestionRecord.regulation_category == REGULATION_BOTH,
                    QuestionRecord.regulation_category.is_(None),
                    QuestionRecord.regulation_category == "",
                )
            )

        with self._session(timeout) as session:
            return [_record_to_question(r) for r in session.scalars(stmt)]

    def get_question_by_id(self, question_id: str, timeout: float | None = None) -> Question | None:
        with self._session(timeout) as session:
            record = session.get(QuestionRecord, question_id)
            return _record_to_question(record) if record else None

    def get_questions_by_ids(self, question_ids: Sequence[str], timeout: float | None = None) -> list[Question]:
        if not question_ids:
            return []
        stmt = (
            select(QuestionRecord)
            .where(QuestionRecord.id.in_(list(question_ids)))
            .order_by(QuestionRecord.id.asc())
        )
        with self._session(timeout) as session:
            return [_record_to_question(r) for r in session.scalars(stmt)]


def seed_questions(session: Session, rows: Iterable[Mapping[str, Any]]) -> int:
    """Insert or replace question rows; returns the number written."""
    count = 0
    for row in rows:
        session.merge(
            QuestionRecord(
                id=str(row["id"]),
                category=row["category"],
                sub_category=row.get("sub_category") or "",
                regulation_category=row.get("regulation_category"),
                question_type=row.get("question_type") or "open",
                difficulty=int(row.get("difficulty") or 1),
                text=row.get("text") or "",
                answers=list(row.get("answers") or []),
            )
        )
        count += 1
    return count
