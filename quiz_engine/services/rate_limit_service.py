"""Fixed-window rate limiting on top of the key-value store."""
import hashlib
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from quiz_engine.config import (
    CODEC_SECRET,
    KV_NAMESPACE,
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_WINDOW_SECONDS,
)
from quiz_engine.errors import RateLimitExceeded
from quiz_engine.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitRecord:
    """Outcome of one rate-limit hit."""

    identifier: str
    count: int
    limit: int
    reset_at: float

    @property
    def allowed(self) -> bool:
        return self.count <= self.limit

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)

    def retry_after(self, now: float) -> int:
        return max(1, math.ceil(self.reset_at - now))


class RateLimiter:
    """Counts hits per identifier inside fixed windows.

    The counter key includes the window index, so a new window starts from
    zero without any reset step; the store's atomic ``incr`` is the only
    check-and-increment, which means concurrent callers cannot both slip
    under the limit. A rejected hit gives its increment back, so the stored
    count never passes the limit and retries over budget change nothing.
    """

    def __init__(
        self,
        store: KeyValueStore,
        limit: int = RATE_LIMIT_MAX_REQUESTS,
        window_seconds: int = RATE_LIMIT_WINDOW_SECONDS,
        namespace: str = KV_NAMESPACE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._limit = limit
        self._window_seconds = window_seconds
        self._namespace = namespace
        self._clock = clock

    @property
    def limit(self) -> int:
        return self._limit

    def hit(self, identifier: str) -> RateLimitRecord:
        """Count one request and report whether it is within the limit."""
        window = int(self._clock() // self._window_seconds)
        key = f"{self._namespace}rate_limit:{identifier}:{window}"
        count = self._store.incr(key, ttl_seconds=self._window_seconds * 2)
        if count > self._limit:
            self._store.incr(key, -1)
        return RateLimitRecord(
            identifier=identifier,
            count=count,
            limit=self._limit,
            reset_at=float((window + 1) * self._window_seconds),
        )

    def check(self, identifier: str) -> RateLimitRecord:
        """Like `hit`, but raise when the limit is exceeded."""
        record = self.hit(identifier)
        if not record.allowed:
            logger.info(f"Rate limit exceeded for {hash_identifier(identifier)}")
            raise RateLimitExceeded(
                identifier,
                retry_after=record.retry_after(self._clock()),
                reset_at=record.reset_at,
            )
        return record


def rate_limit_headers(record: RateLimitRecord, retry_after: int | None = None) -> dict[str, str]:
    """Build X-RateLimit-* response headers."""
    headers = {
        "X-RateLimit-Limit": str(record.limit),
        "X-RateLimit-Remaining": str(record.remaining),
        "X-RateLimit-Reset": str(math.ceil(record.reset_at)),
    }
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)
    return headers


def hash_identifier(identifier: str) -> str:
    """One-way hash of a caller identifier for logs."""
    digest = hashlib.sha256(f"{CODEC_SECRET}:{identifier}".encode("utf-8"))
    return digest.hexdigest()[:16]
