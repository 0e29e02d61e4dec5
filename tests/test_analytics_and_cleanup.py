import json

import pytest

from quiz_engine.models.quiz import Quiz
from quiz_engine.services import cleanup_service
from quiz_engine.services.analytics_service import (
    AnalyticsEvent,
    AnalyticsTracker,
    StoreAnalyticsProvider,
)
from quiz_engine.services.kv_store import MemoryKeyValueStore
from quiz_engine.services.rate_limit_service import RateLimiter
from quiz_engine.services.session_service import SessionManager


def test_store_provider_records_events(memory_store) -> None:
    tracker = AnalyticsTracker([StoreAnalyticsProvider(memory_store, namespace="t:")])
    tracker.track(AnalyticsEvent.VIEW, "quiz-1")
    tracker("quiz.start", "quiz-1", mode="exam")
    tracker.track(AnalyticsEvent.START, "quiz-1")

    assert memory_store.hgetall("t:events:quiz-1:counts") == {"quiz.view": 1, "quiz.start": 2}
    stored = [
        json.loads(value)
        for key, (value, _) in memory_store._values.items()
        if key.startswith("t:events:quiz-1:")
    ]
    assert len(stored) == 3
    exam_start = next(item for item in stored if item["properties"].get("mode") == "exam")
    assert exam_start["event"] == "quiz.start"
    assert exam_start["properties"] == {"quizId": "quiz-1", "mode": "exam"}


def test_failing_provider_is_isolated(memory_store) -> None:
    class Broken:
        def track(self, event, properties) -> None:
            raise RuntimeError("provider down")

    tracker = AnalyticsTracker([Broken(), StoreAnalyticsProvider(memory_store)])
    tracker.track(AnalyticsEvent.FINISH, "quiz-1", score=3)
    assert memory_store.hgetall("quiz:events:quiz-1:counts") == {"quiz.finish": 1}


def test_unknown_event_name_rejected() -> None:
    with pytest.raises(ValueError):
        AnalyticsTracker([]).track("quiz.unknown", "quiz-1")


def test_run_cleanup(sql_store, sample_quiz: Quiz, clock) -> None:
    sql_store.set("fresh", "v", ttl_seconds=60)
    manager = SessionManager(clock=clock)
    manager.create(sample_quiz)
    clock.advance(10)

    purged, discarded = cleanup_service.run_cleanup(sql_store, manager)
    assert discarded == 0
    assert purged == 0

    assert cleanup_service.discard_idle_sessions(manager, max_idle_seconds=5) == 1
    assert len(manager) == 0


def test_purge_sweeps_expired_rate_limit_windows(clock) -> None:
    store = MemoryKeyValueStore(clock=clock)
    limiter = RateLimiter(store, limit=5, window_seconds=60, clock=clock)
    for _ in range(100):
        limiter.hit("caller")
        clock.advance(61)
    clock.advance(120)

    assert len(store._counters) == 100
    assert cleanup_service.purge_expired_entries(store) == 100
    assert store._counters == {}


def test_purge_logs_failures(monkeypatch: pytest.MonkeyPatch, sql_store) -> None:
    def _boom() -> int:
        raise RuntimeError("locked")

    monkeypatch.setattr(sql_store, "purge_expired", _boom)
    assert cleanup_service.purge_expired_entries(sql_store) == 0
