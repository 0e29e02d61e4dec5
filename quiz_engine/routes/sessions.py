"""Server-resident quiz session endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends

from quiz_engine.dependencies import get_quiz_repository, get_session_manager
from quiz_engine.models import (
    AnswerRequest,
    NavigateRequest,
    QuestionResult,
    QuizResult,
    ReviewEntry,
    SessionCreateRequest,
    SessionSnapshot,
)
from quiz_engine.services.quiz_service import QuizRepository
from quiz_engine.services.session_service import SessionManager

router = APIRouter(prefix="/api/sessions", tags=["sessions"])

Sessions = Annotated[SessionManager, Depends(get_session_manager)]


@router.post("", response_model=SessionSnapshot, status_code=201)
def create_session(
    payload: SessionCreateRequest,
    sessions: Sessions,
    quizzes: Annotated[QuizRepository, Depends(get_quiz_repository)],
) -> SessionSnapshot:
    """Create a session for a quiz in NOT_STARTED state."""
    quiz = quizzes.get(payload.quizId)
    session = sessions.create(
        quiz,
        mode=payload.mode,
        variant_id=payload.variantId,
        auto_timer=payload.autoTimer,
    )
    return session.snapshot()


@router.get("/{session_id}", response_model=SessionSnapshot)
def get_session(session_id: str, sessions: Sessions) -> SessionSnapshot:
    return sessions.get(session_id).snapshot()


@router.delete("/{session_id}")
def delete_session(session_id: str, sessions: Sessions) -> dict[str, object]:
    sessions.get(session_id)
    sessions.discard(session_id)
    return {"status": "deleted", "sessionId": session_id}


@router.post("/{session_id}/start", response_model=SessionSnapshot)
def start_session(session_id: str, sessions: Sessions) -> SessionSnapshot:
    session = sessions.get(session_id)
    session.start()
    return session.snapshot()


@router.post("/{session_id}/pause", response_model=SessionSnapshot)
def pause_session(session_id: str, sessions: Sessions) -> SessionSnapshot:
    session = sessions.get(session_id)
    session.pause()
    return session.snapshot()


@router.post("/{session_id}/resume", response_model=SessionSnapshot)
def resume_session(session_id: str, sessions: Sessions) -> SessionSnapshot:
    session = sessions.get(session_id)
    session.resume()
    return session.snapshot()


@router.post("/{session_id}/next", response_model=SessionSnapshot)
def next_question(session_id: str, sessions: Sessions) -> SessionSnapshot:
    session = sessions.get(session_id)
    session.next()
    return session.snapshot()


@router.post("/{session_id}/previous", response_model=SessionSnapshot)
def previous_question(session_id: str, sessions: Sessions) -> SessionSnapshot:
    session = sessions.get(session_id)
    session.previous()
    return session.snapshot()


@router.post("/{session_id}/goto", response_model=SessionSnapshot)
def go_to_question(
    session_id: str,
    payload: NavigateRequest,
    sessions: Sessions,
) -> SessionSnapshot:
    session = sessions.get(session_id)
    session.go_to(payload.index)
    return session.snapshot()


@router.post("/{session_id}/answer", response_model=SessionSnapshot)
def answer_question(
    session_id: str,
    payload: AnswerRequest,
    sessions: Sessions,
) -> SessionSnapshot:
    """Record the answer for the current question."""
    session = sessions.get(session_id)
    session.answer(payload.answer)
    return session.snapshot()


@router.post("/{session_id}/reveal", response_model=QuestionResult)
def reveal_question(session_id: str, sessions: Sessions) -> QuestionResult:
    return sessions.get(session_id).reveal()


@router.post("/{session_id}/submit", response_model=QuizResult)
def submit_session(session_id: str, sessions: Sessions) -> QuizResult:
    """Score the session; repeated calls return the same result."""
    return sessions.get(session_id).submit()


@router.post("/{session_id}/review", response_model=list[ReviewEntry])
def review_session(session_id: str, sessions: Sessions) -> list[ReviewEntry]:
    return sessions.get(session_id).review()


@router.post("/{session_id}/restart", response_model=SessionSnapshot)
def restart_session(session_id: str, sessions: Sessions) -> SessionSnapshot:
    session = sessions.get(session_id)
    session.restart()
    return session.snapshot()
