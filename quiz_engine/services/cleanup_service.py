"""Service for cleanup operations."""
import logging
import threading
import time

from quiz_engine.config import CLEANUP_INTERVAL_SECONDS, SESSION_IDLE_TIMEOUT_SECONDS
from quiz_engine.services.kv_store import KeyValueStore
from quiz_engine.services.session_service import SessionManager

logger = logging.getLogger(__name__)


def purge_expired_entries(store: KeyValueStore) -> int:
    """Remove expired entries so short-lived keys do not accumulate."""
    try:
        deleted = store.purge_expired()
    except Exception as e:
        logger.error(f"Failed to purge expired entries: {e}")
        return 0
    if deleted > 0:
        logger.info(f"Purged {deleted} expired entries")
    return deleted


def discard_idle_sessions(
    sessions: SessionManager,
    max_idle_seconds: float = SESSION_IDLE_TIMEOUT_SECONDS,
) -> int:
    return sessions.discard_idle(max_idle_seconds)


def run_cleanup(store: KeyValueStore, sessions: SessionManager) -> tuple[int, int]:
    return purge_expired_entries(store), discard_idle_sessions(sessions)


def schedule_cleanup(
    store: KeyValueStore,
    sessions: SessionManager,
    interval_seconds: float = CLEANUP_INTERVAL_SECONDS,
) -> threading.Thread:
    """Schedule periodic cleanup of expired entries and idle sessions."""

    def _worker() -> None:
        # Initial delay before first cleanup
        time.sleep(60)
        while True:
            try:
                run_cleanup(store, sessions)
            except Exception:
                logger.exception("Cleanup run failed")
            time.sleep(interval_seconds)

    thread = threading.Thread(
        target=_worker,
        name="quiz_engine_cleanup",
        daemon=True,
    )
    thread.start()
    return thread
