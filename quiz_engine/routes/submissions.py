"""Submission endpoint."""
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Response

from quiz_engine.dependencies import get_client_identifier, get_guard
from quiz_engine.models import SubmitResponse
from quiz_engine.services.rate_limit_service import rate_limit_headers
from quiz_engine.services.submission_service import SubmissionGuard

router = APIRouter(prefix="/api/quiz", tags=["submissions"])


@router.post("/submit", response_model=SubmitResponse)
def submit_quiz(
    response: Response,
    payload: Annotated[dict[str, Any], Body()],
    guard: Annotated[SubmissionGuard, Depends(get_guard)],
    identifier: Annotated[str, Depends(get_client_identifier)],
) -> SubmitResponse:
    """Score a submission.

    The body is validated by the guard rather than by FastAPI, so shape
    errors come back in the same ``{success, error}`` form as every other
    rejection.
    """
    outcome = guard.submit(payload, identifier)
    response.headers.update(rate_limit_headers(outcome.rate_limit))
    return SubmitResponse(success=True, result=outcome.result, replayed=outcome.replayed)
