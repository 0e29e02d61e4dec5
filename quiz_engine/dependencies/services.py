"""Process-wide service instances.

Each getter is cached so every request shares one store, one session
registry and one guard. Tests swap them through ``app.dependency_overrides``.
"""
from functools import lru_cache

from quiz_engine.config import KV_BACKEND, SESSION_TICK_SECONDS
from quiz_engine.services.analytics_service import (
    AnalyticsTracker,
    LoggingAnalyticsProvider,
    StoreAnalyticsProvider,
)
from quiz_engine.services.kv_store import KeyValueStore, MemoryKeyValueStore, SqlKeyValueStore
from quiz_engine.services.quiz_service import QuizRepository
from quiz_engine.services.rate_limit_service import RateLimiter
from quiz_engine.services.replay_service import ReplayRegistry
from quiz_engine.services.result_store import ResultStore
from quiz_engine.services.session_service import SessionManager
from quiz_engine.services.submission_service import SubmissionGuard


@lru_cache
def get_store() -> KeyValueStore:
    if KV_BACKEND == "memory":
        return MemoryKeyValueStore()
    return SqlKeyValueStore()


@lru_cache
def get_quiz_repository() -> QuizRepository:
    return QuizRepository()


@lru_cache
def get_tracker() -> AnalyticsTracker:
    return AnalyticsTracker([LoggingAnalyticsProvider(), StoreAnalyticsProvider(get_store())])


@lru_cache
def get_result_store() -> ResultStore:
    return ResultStore(get_store())


@lru_cache
def get_guard() -> SubmissionGuard:
    store = get_store()
    return SubmissionGuard(
        quizzes=get_quiz_repository(),
        limiter=RateLimiter(store),
        replays=ReplayRegistry(store),
        results=get_result_store(),
        tracker=get_tracker(),
    )


@lru_cache
def get_session_manager() -> SessionManager:
    return SessionManager(on_event=get_tracker(), timer_interval=SESSION_TICK_SECONDS)

