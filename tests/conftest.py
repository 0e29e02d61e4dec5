import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import quiz_engine.models.db  # noqa: F401
from quiz_engine.database import Base
from quiz_engine.models.quiz import Quiz
from quiz_engine.services.kv_store import MemoryKeyValueStore, SqlKeyValueStore


def build_quiz_payload(quiz_id: str = "python-basics", **overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": quiz_id,
        "title": "Python basics",
        "questions": [
            {
                "id": "q1",
                "type": "single",
                "prompt": "Which keyword defines a function?",
                "choices": [
                    {"id": "a", "label": "func"},
                    {"id": "b", "label": "def", "isCorrect": True},
                    {"id": "c", "label": "fn"},
                ],
                "points": 10,
                "explanation": "Functions are defined with def.",
            },
            {
                "id": "q2",
                "type": "multiple",
                "prompt": "Which are immutable?",
                "choices": [
                    {"id": "a", "label": "tuple", "isCorrect": True},
                    {"id": "b", "label": "list"},
                    {"id": "c", "label": "str", "isCorrect": True},
                    {"id": "d", "label": "dict"},
                ],
                "points": 15,
            },
            {
                "id": "q3",
                "type": "input",
                "prompt": "Is Python dynamically typed?",
                "answerPattern": "^yes$|^y$",
                "points": 5,
            },
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def quiz_payload() -> dict[str, object]:
    return build_quiz_payload()


@pytest.fixture
def sample_quiz(quiz_payload: dict[str, object]) -> Quiz:
    return Quiz.model_validate(quiz_payload)


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def sql_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def sql_store(sql_session_factory) -> SqlKeyValueStore:
    return SqlKeyValueStore(sql_session_factory)


class FakeClock:
    """Manually advanced clock for time-dependent services."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
