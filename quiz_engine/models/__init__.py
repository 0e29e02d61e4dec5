"""Pydantic models."""
from quiz_engine.models.events import ClientEventPayload
from quiz_engine.models.quiz import (
    Choice,
    Question,
    QuestionType,
    Quiz,
    SealedChoice,
    SealedQuestion,
    SealedQuiz,
)
from quiz_engine.models.session import (
    AnswerRequest,
    NavigateRequest,
    ReviewEntry,
    SessionCreateRequest,
    SessionSnapshot,
)
from quiz_engine.models.stats import HistogramBucket, QuestionStats, QuizStats
from quiz_engine.models.submission import (
    NonceResponse,
    QuestionResult,
    QuizResult,
    Submission,
    SubmitResponse,
    SubmittedAnswer,
)

__all__ = [
    "AnswerRequest",
    "Choice",
    "ClientEventPayload",
    "HistogramBucket",
    "NavigateRequest",
    "NonceResponse",
    "Question",
    "QuestionResult",
    "QuestionStats",
    "QuestionType",
    "Quiz",
    "QuizResult",
    "QuizStats",
    "ReviewEntry",
    "SealedChoice",
    "SealedQuestion",
    "SealedQuiz",
    "SessionCreateRequest",
    "SessionSnapshot",
    "Submission",
    "SubmitResponse",
    "SubmittedAnswer",
]
