"""
Study router.

Thin RPC layer over the StudyEngine: session loading, answer submission,
learner stats and box overview. The learner identity is passed explicitly;
a null learner means guest/practice mode.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, List, NoReturn

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from pydantic import BaseModel, Field

from src.scheduling.engine import StudyEngine
from src.scheduling.errors import (
    ConcurrentUpdateConflict,
    InvalidScore,
    InvalidSessionOptions,
    OperationTimeout,
    QuestionNotFound,
    SchedulingError,
    StoreUnavailable,
)
from src.scheduling.models import SessionOptions, SessionQuestion

router = APIRouter()


@lru_cache(maxsize=1)
def get_study_engine() -> StudyEngine:
    """FastAPI dependency returning the process-wide engine."""
    return StudyEngine.from_settings()


# ========================================
# Request/Response Models
# ========================================


class SessionRequest(BaseModel):
    """Request model for loading a session."""

    learner_id: str | None = None
    options: SessionOptions = Field(default_factory=SessionOptions)
    timeout_seconds: float | None = Field(default=None, gt=0)


class AnswerModel(BaseModel):
    text: str
    is_correct: bool


class QuestionModel(BaseModel):
    id: str
    category: str
    sub_category: str
    regulation_category: str | None
    difficulty: int
    question_type: str
    text: str
    answers: List[AnswerModel]


class ProgressModel(BaseModel):
    box_number: int
    last_score: int
    last_reviewed_at: str
    next_review_at: str
    streak: int
    repetition_count: int
    correct_count: int
    incorrect_count: int
    interval_days: int | None = None
    ease_factor: float | None = None


class SessionItem(BaseModel):
    question: QuestionModel
    progress: ProgressModel | None = None


class SessionResponse(BaseModel):
    items: List[SessionItem]
    total: int


class AnswerRequest(BaseModel):
    """Request model for submitting an answer."""

    learner_id: str | None = None
    question_id: str
    score: Any  # validated by the engine so bad scores map to InvalidScore
    timeout_seconds: float | None = Field(default=None, gt=0)


class AnswerResponse(BaseModel):
    question_id: str
    persisted: bool
    box_number: int | None = None
    next_review_at: str | None = None
    streak: int | None = None
    xp_gained: int = 0


class StatsResponse(BaseModel):
    xp: int
    totalCorrect: int
    totalIncorrect: int
    streakDays: int


class BoxResponse(BaseModel):
    box_number: int
    count: int
    due: int


# ========================================
# Helpers
# ========================================


def _raise_http(e: SchedulingError) -> NoReturn:
    """Map engine errors onto HTTP status codes."""
    if isinstance(e, (InvalidScore, InvalidSessionOptions)):
        raise HTTPException(status_code=422, detail=str(e)) from e
    if isinstance(e, QuestionNotFound):
        raise HTTPException(status_code=404, detail=str(e)) from e
    if isinstance(e, ConcurrentUpdateConflict):
        raise HTTPException(status_code=409, detail=str(e)) from e
    if isinstance(e, OperationTimeout):
        raise HTTPException(status_code=504, detail=str(e)) from e
    if isinstance(e, StoreUnavailable):
        detail = str(e)
        if e.may_have_applied:
            detail += " (the answer may have been recorded)"
        raise HTTPException(status_code=503, detail=detail) from e
    raise HTTPException(status_code=500, detail=str(e)) from e


def _to_item(item: SessionQuestion) -> SessionItem:
    q = item.question
    question = QuestionModel(
        id=q.id,
        category=q.category,
        sub_category=q.sub_category,
        regulation_category=q.regulation_category,
        difficulty=q.difficulty,
        question_type=q.question_type,
        text=q.text,
        answers=[AnswerModel(text=a.text, is_correct=a.is_correct) for a in q.answers],
    )
    progress = None
    if item.progress is not None:
        p = item.progress
        progress = ProgressModel(
            box_number=p.box_number,
            last_score=p.last_score,
            last_reviewed_at=p.last_reviewed_at.isoformat(),
            next_review_at=p.next_review_at.isoformat(),
            streak=p.streak,
            repetition_count=p.repetition_count,
            correct_count=p.correct_count,
            incorrect_count=p.incorrect_count,
            interval_days=p.interval_days,
            ease_factor=p.ease_factor,
        )
    return SessionItem(question=question, progress=progress)


# ========================================
# Study Endpoints
# ========================================


@router.post("/session", response_model=SessionResponse, summary="Load a study session")
def load_session(
    request: SessionRequest,
    engine: StudyEngine = Depends(get_study_engine),
) -> SessionResponse:
    """
    Compose the next batch of questions.

    Modes:
    - review: due cards first, topped up with new cards
    - practice / guest: matching questions, no progress
    - boxes: cards currently in ``options.box_number``
    """
    try:
        items = engine.load_session(request.learner_id, request.options, timeout=request.timeout_seconds)
    except SchedulingError as e:
        logger.warning(f"Session load failed: {e}")
        _raise_http(e)

    return SessionResponse(items=[_to_item(i) for i in items], total=len(items))


@router.post("/answer", response_model=AnswerResponse, summary="Submit an answer")
def submit_answer(
    request: AnswerRequest,
    engine: StudyEngine = Depends(get_study_engine),
) -> AnswerResponse:
    """Record a score (0-5). Guest answers succeed without being stored."""
    try:
        outcome = engine.submit_answer(
            request.learner_id,
            request.question_id,
            request.score,
            timeout=request.timeout_seconds,
        )
    except SchedulingError as e:
        logger.warning(f"Answer for {request.question_id} failed: {e}")
        _raise_http(e)

    progress = outcome.progress
    return AnswerResponse(
        question_id=outcome.question_id,
        persisted=outcome.persisted,
        box_number=progress.box_number if progress else None,
        next_review_at=progress.next_review_at.isoformat() if progress else None,
        streak=progress.streak if progress else None,
        xp_gained=outcome.xp_gained,
    )


@router.get("/stats/{learner_id}", response_model=StatsResponse, summary="Get learner stats")
def get_stats(
    learner_id: str,
    engine: StudyEngine = Depends(get_study_engine),
) -> StatsResponse:
    try:
        stats = engine.get_stats(learner_id)
    except SchedulingError as e:
        _raise_http(e)
    return StatsResponse(**stats.as_dict())


@router.get("/boxes/{learner_id}", response_model=List[BoxResponse], summary="Get box overview")
def get_boxes(
    learner_id: str,
    engine: StudyEngine = Depends(get_study_engine),
) -> List[BoxResponse]:
    """Total and due card counts for boxes 1-5."""
    try:
        boxes = engine.get_box_overview(learner_id)
    except SchedulingError as e:
        _raise_http(e)
    return [BoxResponse(box_number=b.box_number, count=b.count, due=b.due) for b in boxes]
