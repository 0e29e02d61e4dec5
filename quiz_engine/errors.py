"""Error taxonomy for the quiz engine.

Every error carries the HTTP status the API layer answers with, so services
can raise them without knowing about FastAPI.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quiz_engine.models.submission import QuizResult


class QuizEngineError(Exception):
    """Base class for all quiz engine errors."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(QuizEngineError):
    """Malformed submission or quiz definition."""

    def __init__(self, message: str, constraint: str | None = None) -> None:
        super().__init__(message)
        self.constraint = constraint


class RateLimitExceeded(QuizEngineError):
    """Caller exceeded the submission rate for the current window."""

    status_code = 429

    def __init__(self, identifier: str, retry_after: int, reset_at: float) -> None:
        super().__init__("Rate limit exceeded")
        self.identifier = identifier
        self.retry_after = retry_after
        self.reset_at = reset_at


class ReplayDetected(QuizEngineError):
    """Replay token already processed. Carries the original result."""

    status_code = 200

    def __init__(self, quiz_id: str, token: str, result: QuizResult) -> None:
        super().__init__(f"Replay of token for quiz {quiz_id}")
        self.quiz_id = quiz_id
        self.token = token
        self.result = result


class SubmissionInFlight(QuizEngineError):
    """Another delivery of the same token is still being processed."""

    status_code = 409


class QuizNotFound(QuizEngineError):
    status_code = 404

    def __init__(self, quiz_id: str) -> None:
        super().__init__(f"Quiz not found: {quiz_id}")
        self.quiz_id = quiz_id


class SessionNotFound(QuizEngineError):
    status_code = 404

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class DecodeError(QuizEngineError):
    """Obfuscated answer token could not be decoded."""


class IllegalTransition(QuizEngineError):
    """Action is not valid for the session's current state."""

    status_code = 409

    def __init__(self, action: str, state: str) -> None:
        super().__init__(f"Cannot {action} while session is {state}")
        self.action = action
        self.state = state


class TransientStorageError(QuizEngineError):
    """Storage backend failed in a way that may succeed on retry."""

    status_code = 503
