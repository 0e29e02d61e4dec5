"""Main FastAPI application with modularized routes."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quiz_engine.config import LOG_LEVEL
from quiz_engine.database import init_db
from quiz_engine.dependencies import get_session_manager, get_store
from quiz_engine.errors import QuizEngineError, RateLimitExceeded
from quiz_engine.logging_setup import setup_console_logging
from quiz_engine.routes import quizzes, sessions, statistics, submissions
from quiz_engine.services.cleanup_service import schedule_cleanup

setup_console_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Quiz Engine API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[
        "X-RateLimit-Limit",
        "X-RateLimit-Remaining",
        "X-RateLimit-Reset",
        "Retry-After",
    ],
)


@app.exception_handler(QuizEngineError)
def handle_quiz_engine_error(request: Request, exc: QuizEngineError) -> JSONResponse:
    """Render every engine error as ``{success: false, error}``."""
    headers = {}
    if isinstance(exc, RateLimitExceeded):
        headers["Retry-After"] = str(exc.retry_after)
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
        headers=headers,
    )


# Startup events
@app.on_event("startup")
def startup_events() -> None:
    """Initialize database and schedule cleanup tasks on startup."""
    init_db()
    schedule_cleanup(get_store(), get_session_manager())


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# Include routers
app.include_router(quizzes.router)
app.include_router(statistics.router)
app.include_router(submissions.router)
app.include_router(sessions.router)
