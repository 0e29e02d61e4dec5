"""Quiz content endpoints."""
import secrets
from typing import Annotated

from fastapi import APIRouter, Depends

from quiz_engine.dependencies import get_quiz_repository, get_tracker
from quiz_engine.errors import ValidationError
from quiz_engine.models import ClientEventPayload, NonceResponse, SealedQuiz
from quiz_engine.services.analytics_service import AnalyticsEvent, AnalyticsTracker
from quiz_engine.services.codec_service import seal_quiz
from quiz_engine.services.quiz_service import QuizRepository
from quiz_engine.utils import parse_iso_timestamp, utc_now

router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])

Repository = Annotated[QuizRepository, Depends(get_quiz_repository)]
Tracker = Annotated[AnalyticsTracker, Depends(get_tracker)]


@router.get("")
def list_quizzes(quizzes: Repository) -> list[dict[str, object]]:
    """List metadata of available quizzes."""
    return quizzes.list_metadata()


@router.get("/{quiz_id}", response_model=SealedQuiz, response_model_by_alias=True)
def get_quiz(quiz_id: str, quizzes: Repository, tracker: Tracker) -> SealedQuiz:
    """Serve a quiz with its correct answers sealed."""
    quiz = quizzes.get(quiz_id)
    tracker.track(AnalyticsEvent.VIEW, quiz.id)
    return seal_quiz(quiz)


@router.get("/{quiz_id}/nonce", response_model=NonceResponse)
def issue_nonce(quiz_id: str, quizzes: Repository) -> NonceResponse:
    """Hand out a fresh replay token for one attempt."""
    quizzes.get(quiz_id)
    return NonceResponse(nonce=secrets.token_urlsafe(16))


@router.post("/{quiz_id}/events")
def record_event(
    quiz_id: str,
    payload: ClientEventPayload,
    quizzes: Repository,
    tracker: Tracker,
) -> dict[str, object]:
    """Record an analytics event reported by the client."""
    quiz = quizzes.get(quiz_id)
    try:
        event = AnalyticsEvent(payload.event)
    except ValueError as exc:
        raise ValidationError(f"Unknown event: {payload.event}", constraint="event") from exc

    properties = dict(payload.properties)
    properties["ts"] = (parse_iso_timestamp(payload.ts) or utc_now()).isoformat()
    if payload.sessionId:
        properties["sessionId"] = payload.sessionId
    for reserved in ("quizId", "quiz_id", "event"):
        properties.pop(reserved, None)
    tracker.track(event, quiz.id, **properties)
    return {"status": "recorded", "quizId": quiz.id, "event": event.value}
