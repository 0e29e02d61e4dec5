"""Submission and result Pydantic models."""
from pydantic import BaseModel, ConfigDict, Field

SubmittedAnswer = str | list[str]


class Submission(BaseModel):
    """Model for a quiz submission."""

    quizId: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    answers: dict[str, SubmittedAnswer]
    durationMs: int = Field(..., ge=0)
    variantId: str | None = None
    nonce: str = Field(..., min_length=1)


class QuestionResult(BaseModel):
    """Score of a single question."""

    model_config = ConfigDict(frozen=True)

    id: str
    correct: bool
    earned: float = Field(..., ge=0)
    max: float = Field(..., ge=0)


class QuizResult(BaseModel):
    """Aggregate score of an attempt."""

    model_config = ConfigDict(frozen=True)

    correctCount: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    score: float = Field(..., ge=0)
    maxScore: float = Field(..., ge=0)
    perQuestion: list[QuestionResult]

    @property
    def percent(self) -> float:
        if self.maxScore <= 0:
            return 0.0
        return (self.score / self.maxScore) * 100


class SubmitResponse(BaseModel):
    """Model for submission response."""

    success: bool
    result: QuizResult
    replayed: bool = False


class NonceResponse(BaseModel):
    nonce: str
