"""Fire-and-forget analytics events.

Tracking must never break the quiz flow: a failing provider is logged and
skipped.
"""
import enum
import logging
import uuid
from collections.abc import Iterable
from typing import Protocol

from quiz_engine.config import ANALYTICS_EVENT_TTL_SECONDS, KV_NAMESPACE
from quiz_engine.services.kv_store import KeyValueStore
from quiz_engine.utils import json_dump, utc_now_iso

logger = logging.getLogger(__name__)


class AnalyticsEvent(str, enum.Enum):
    VIEW = "quiz.view"
    START = "quiz.start"
    SELECT_CHOICE = "quiz.select_choice"
    REVEAL_QUESTION = "quiz.reveal_question"
    FINISH = "quiz.finish"
    REVIEW_OPEN = "quiz.review_open"
    COPY_MDX = "quiz.copy_mdx"
    ADMIN_SAVE = "quiz.admin.save"


class AnalyticsProvider(Protocol):
    def track(self, event: AnalyticsEvent, properties: dict[str, object]) -> None: ...


class LoggingAnalyticsProvider:
    def track(self, event: AnalyticsEvent, properties: dict[str, object]) -> None:
        logger.info(f"[analytics] {event.value}: {properties}")


class StoreAnalyticsProvider:
    """Keeps each event as a JSON value with a retention TTL."""

    def __init__(
        self,
        store: KeyValueStore,
        namespace: str = KV_NAMESPACE,
        ttl_seconds: int = ANALYTICS_EVENT_TTL_SECONDS,
    ) -> None:
        self._store = store
        self._namespace = namespace
        self._ttl_seconds = ttl_seconds

    def track(self, event: AnalyticsEvent, properties: dict[str, object]) -> None:
        quiz_id = properties.get("quizId", "unknown")
        key = f"{self._namespace}events:{quiz_id}:{uuid.uuid4().hex}"
        payload = {"event": event.value, "properties": properties, "ts": utc_now_iso()}
        self._store.set(key, json_dump(payload, compact=True), self._ttl_seconds)
        self._store.hincrby(f"{self._namespace}events:{quiz_id}:counts", event.value, 1)


class AnalyticsTracker:
    def __init__(self, providers: Iterable[AnalyticsProvider] | None = None) -> None:
        self._providers = list(providers) if providers is not None else [LoggingAnalyticsProvider()]

    def track(self, event: AnalyticsEvent | str, quiz_id: str, **properties: object) -> None:
        event = AnalyticsEvent(event)
        payload = {"quizId": quiz_id, **properties}
        for provider in self._providers:
            try:
                provider.track(event, payload)
            except Exception:
                logger.exception(f"Analytics provider {type(provider).__name__} failed")

    def __call__(self, event: AnalyticsEvent | str, quiz_id: str, **properties: object) -> None:
        self.track(event, quiz_id, **properties)
