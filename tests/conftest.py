"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
Every database fixture runs against a private in-memory SQLite engine, so
no external services are required.
"""
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy.pool import StaticPool

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.content.store import SqlContentStore, seed_questions  # noqa: E402
from src.db.database import build_engine, init_db, make_session_factory, session_scope  # noqa: E402
from src.scheduling.engine import StudyEngine  # noqa: E402
from src.scheduling.scheduler import LeitnerStrategy  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (in-memory database, API and CLI)")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


class FakeClock:
    """Callable clock returning a controllable naive UTC timestamp."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


SAMPLE_QUESTIONS = [
    {
        "id": "bd-001",
        "category": "Betriebsdienst",
        "sub_category": "Fahrdienst",
        "regulation_category": "DS 301",
        "question_type": "open",
        "difficulty": 2,
        "text": "Wer erteilt den Auftrag zur Zugfahrt?",
        "answers": [{"text": "Der Fahrdienstleiter", "isCorrect": True}],
    },
    {
        "id": "bd-002",
        "category": "Betriebsdienst",
        "sub_category": "Rangierdienst",
        "regulation_category": "DV 301",
        "question_type": "open",
        "difficulty": 1,
        "text": "Was bedeutet Ra 1?",
        "answers": [{"text": "Wegfahren", "isCorrect": True}],
    },
    {
        "id": "sig-001",
        "category": "Signale",
        "sub_category": "Hauptsignale",
        "regulation_category": "DS 301",
        "question_type": "multiple_choice",
        "difficulty": 1,
        "text": "Was zeigt Hp 0?",
        "answers": [
            {"text": "Halt", "isCorrect": True},
            {"text": "Fahrt", "isCorrect": False},
        ],
    },
    {
        "id": "sig-002",
        "category": "Signale",
        "sub_category": "Hauptsignale",
        "regulation_category": "DV 301",
        "question_type": "open",
        "difficulty": 2,
        "text": "Was zeigt Hp 1 (DV 301)?",
        "answers": [{"text": "Fahrt", "isCorrect": True}],
    },
    {
        "id": "sig-003",
        "category": "Signale",
        "sub_category": "Vorsignale",
        "regulation_category": "both",
        "question_type": "open",
        "difficulty": 3,
        "text": "Was kündigt Vr 0 an?",
        "answers": [{"text": "Halt erwarten", "isCorrect": True}],
    },
    {
        "id": "sig-004",
        "category": "Signale",
        "sub_category": "Vorsignale",
        "regulation_category": None,
        "question_type": "open",
        "difficulty": 2,
        "text": "Was kündigt Vr 1 an?",
        "answers": [{"text": "Fahrt erwarten", "isCorrect": True}],
    },
]


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def db_engine():
    """Private in-memory SQLite engine with all tables created."""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)


@pytest.fixture
def sample_questions():
    """Provide the sample question rows (Signale and Betriebsdienst)."""
    return [dict(q) for q in SAMPLE_QUESTIONS]


@pytest.fixture
def content_store(session_factory, sample_questions):
    """SQL content store seeded with the sample questions."""
    with session_scope(session_factory) as session:
        seed_questions(session, sample_questions)
    return SqlContentStore(session_factory)


@pytest.fixture
def clock():
    """Clock fixed at 2024-03-04 08:00 UTC (a Monday)."""
    return FakeClock(datetime(2024, 3, 4, 8, 0, 0))


@pytest.fixture
def study_engine(session_factory, content_store, clock):
    """Leitner engine wired to the in-memory store and fake clock."""
    return StudyEngine(
        session_factory,
        content_store,
        LeitnerStrategy(),
        clock=clock,
        sleep=lambda seconds: None,
    )
