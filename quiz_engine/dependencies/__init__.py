"""FastAPI dependencies."""
from quiz_engine.dependencies.client import get_client_identifier
from quiz_engine.dependencies.services import (
    get_guard,
    get_quiz_repository,
    get_result_store,
    get_session_manager,
    get_store,
    get_tracker,
)

__all__ = [
    "get_client_identifier",
    "get_guard",
    "get_quiz_repository",
    "get_result_store",
    "get_session_manager",
    "get_store",
    "get_tracker",
]
