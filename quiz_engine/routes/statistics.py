"""Statistics endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends

from quiz_engine.dependencies import get_quiz_repository, get_result_store
from quiz_engine.models import QuizStats
from quiz_engine.services.quiz_service import QuizRepository
from quiz_engine.services.result_store import ResultStore

router = APIRouter(prefix="/api", tags=["statistics"])


@router.get("/quizzes/{quiz_id}/stats", response_model=QuizStats)
def get_quiz_stats(
    quiz_id: str,
    quizzes: Annotated[QuizRepository, Depends(get_quiz_repository)],
    results: Annotated[ResultStore, Depends(get_result_store)],
) -> QuizStats:
    """Aggregate attempt statistics for a quiz."""
    return results.get_stats(quizzes.get(quiz_id))
