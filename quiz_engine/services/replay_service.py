"""Replay-token registry.

A token moves through ``pending`` (claimed, result being computed) to
``done`` (result persisted). Claims expire after the retention window so the
registry cannot grow without bound.
"""
import logging
import time
from collections.abc import Callable

from quiz_engine.config import (
    KV_NAMESPACE,
    REPLAY_POLL_INTERVAL_SECONDS,
    REPLAY_TOKEN_TTL_SECONDS,
    REPLAY_WAIT_TIMEOUT_SECONDS,
)
from quiz_engine.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

PENDING = "pending"
DONE = "done"


class ReplayRegistry:
    def __init__(
        self,
        store: KeyValueStore,
        ttl_seconds: int = REPLAY_TOKEN_TTL_SECONDS,
        namespace: str = KV_NAMESPACE,
        wait_timeout: float = REPLAY_WAIT_TIMEOUT_SECONDS,
        poll_interval: float = REPLAY_POLL_INTERVAL_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds
        self._namespace = namespace
        self._wait_timeout = wait_timeout
        self._poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock

    def _key(self, quiz_id: str, token: str) -> str:
        return f"{self._namespace}replay:{quiz_id}:{token}"

    def claim(self, quiz_id: str, token: str) -> bool:
        """Atomically claim a token. False means it was already seen."""
        return self._store.set_if_absent(
            self._key(quiz_id, token), PENDING, ttl_seconds=self._ttl_seconds
        )

    def state(self, quiz_id: str, token: str) -> str | None:
        return self._store.get(self._key(quiz_id, token))

    def mark_done(self, quiz_id: str, token: str) -> None:
        self._store.set(self._key(quiz_id, token), DONE, ttl_seconds=self._ttl_seconds)

    def release(self, quiz_id: str, token: str) -> None:
        """Drop a claim whose processing failed so a retry can proceed."""
        self._store.delete(self._key(quiz_id, token))

    def wait_until_settled(self, quiz_id: str, token: str) -> str | None:
        """Wait for a pending claim held by another caller.

        Returns ``done``, ``None`` (claim released), or ``pending`` when the
        wait timed out.
        """
        deadline = self._clock() + self._wait_timeout
        while True:
            state = self.state(quiz_id, token)
            if state != PENDING:
                return state
            if self._clock() >= deadline:
                logger.warning(f"Replay token for quiz {quiz_id} still pending after wait")
                return PENDING
            self._sleep(self._poll_interval)
