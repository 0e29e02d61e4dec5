"""Session-related Pydantic models."""
from typing import Literal

from pydantic import BaseModel, Field

from quiz_engine.models.quiz import SealedQuestion
from quiz_engine.models.submission import QuizResult, SubmittedAnswer


class SessionCreateRequest(BaseModel):
    """Model for creating a quiz session."""

    quizId: str = Field(..., min_length=1)
    mode: Literal["practice", "exam"] = "practice"
    variantId: str | None = None
    autoTimer: bool = False


class AnswerRequest(BaseModel):
    answer: SubmittedAnswer


class NavigateRequest(BaseModel):
    index: int = Field(..., ge=0)


class SessionSnapshot(BaseModel):
    """Read-only view of a session."""

    sessionId: str
    quizId: str
    mode: str
    state: str
    currentIndex: int
    currentQuestion: SealedQuestion | None = None
    questionOrder: list[str]
    answers: dict[str, SubmittedAnswer]
    revealed: list[str]
    streak: int
    remainingSeconds: float | None = None
    elapsedSeconds: float
    isPaused: bool
    result: QuizResult | None = None


class ReviewEntry(BaseModel):
    """Per-question review shown after submission."""

    questionId: str
    submitted: SubmittedAnswer | None = None
    correct: bool
    earned: float
    max: float
    correctChoiceIds: list[str]
    explanation: str | None = None
