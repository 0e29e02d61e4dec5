"""Statistics Pydantic models."""
from pydantic import BaseModel, Field


class HistogramBucket(BaseModel):
    scoreRange: str
    count: int = Field(..., ge=0)


class QuestionStats(BaseModel):
    questionId: str
    attempts: int = Field(..., ge=0)
    correct: int = Field(..., ge=0)
    correctRate: float = Field(..., ge=0, le=1)


class QuizStats(BaseModel):
    """Aggregate statistics for one quiz."""

    quizId: str
    attempts: int = Field(..., ge=0)
    completions: int = Field(..., ge=0)
    completionRate: float = Field(..., ge=0, le=1)
    avgTimePerQuestionMs: float = Field(..., ge=0)
    scoreHistogram: list[HistogramBucket]
    perQuestionStats: list[QuestionStats]
