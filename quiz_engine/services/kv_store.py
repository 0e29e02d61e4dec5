"""Key-value persistence used by the rate limiter, replay registry and result store.

Two backends share one contract:

* ``MemoryKeyValueStore``: process-local, for tests and single-process use.
* ``SqlKeyValueStore``: SQLAlchemy tables ``kv_entries`` / ``kv_counters``.

String values and integer counters live in separate namespaces: ``get`` never
returns a counter and ``incr`` never touches a string value. ``set_if_absent``,
``incr`` and ``hincrby`` are atomic check-and-set operations. ``hincrby_many``
applies a batch of hash increments all at once or not at all.
"""
import logging
import threading
import time
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Protocol

from sqlalchemy import and_, delete, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session as DbSession, sessionmaker

from quiz_engine.errors import TransientStorageError
from quiz_engine.models.db.kv import KeyValueCounter, KeyValueEntry

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None: ...

    def set_if_absent(self, key: str, value: str, ttl_seconds: int | None = None) -> bool: ...

    def delete(self, key: str) -> bool: ...

    def incr(self, key: str, amount: int = 1, ttl_seconds: int | None = None) -> int: ...

    def hincrby(self, key: str, field: str, amount: int = 1) -> int: ...

    def hincrby_many(self, increments: Iterable[tuple[str, str, int]]) -> None: ...

    def hgetall(self, key: str) -> dict[str, int]: ...

    def purge_expired(self) -> int: ...


class MemoryKeyValueStore:
    """Thread-safe in-memory store.

    Expired entries are dropped when read again, and in bulk by ``purge_expired``.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._values: dict[str, tuple[str, float | None]] = {}
        self._counters: dict[str, tuple[int, float | None]] = {}
        self._hashes: dict[str, dict[str, int]] = {}

    def _expiry(self, ttl_seconds: int | None) -> float | None:
        return self._clock() + ttl_seconds if ttl_seconds else None

    def _live(self, table: dict, key: str):
        item = table.get(key)
        if item is None:
            return None
        expires_at = item[1]
        if expires_at is not None and self._clock() >= expires_at:
            del table[key]
            return None
        return item

    def get(self, key: str) -> str | None:
        with self._lock:
            item = self._live(self._values, key)
            return item[0] if item else None

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        with self._lock:
            self._values[key] = (value, self._expiry(ttl_seconds))

    def set_if_absent(self, key: str, value: str, ttl_seconds: int | None = None) -> bool:
        with self._lock:
            if self._live(self._values, key) is not None:
                return False
            self._values[key] = (value, self._expiry(ttl_seconds))
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._values.pop(key, None) is not None

    def incr(self, key: str, amount: int = 1, ttl_seconds: int | None = None) -> int:
        with self._lock:
            item = self._live(self._counters, key)
            if item is None:
                item = (0, self._expiry(ttl_seconds))
            value = item[0] + amount
            self._counters[key] = (value, item[1])
            return value

    def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        with self._lock:
            fields = self._hashes.setdefault(key, {})
            fields[field] = fields.get(field, 0) + amount
            return fields[field]

    def hincrby_many(self, increments: Iterable[tuple[str, str, int]]) -> None:
        batch = list(increments)
        with self._lock:
            for key, field, amount in batch:
                fields = self._hashes.setdefault(key, {})
                fields[field] = fields.get(field, 0) + amount

    def hgetall(self, key: str) -> dict[str, int]:
        with self._lock:
            return dict(self._hashes.get(key, {}))

    def purge_expired(self) -> int:
        """Drop every expired value and counter."""
        with self._lock:
            now = self._clock()
            removed = 0
            for table in (self._values, self._counters):
                expired = [
                    key
                    for key, (_, expires_at) in table.items()
                    if expires_at is not None and now >= expires_at
                ]
                for key in expired:
                    del table[key]
                removed += len(expired)
            return removed


class SqlKeyValueStore:
    """Store backed by the ``kv_entries`` and ``kv_counters`` tables.

    Each operation runs in its own transaction. Counters use
    update-then-insert so concurrent writers never lose an increment; a
    process-local lock additionally serializes writers sharing one engine.
    """

    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        if session_factory is None:
            from quiz_engine.database import SessionLocal

            session_factory = SessionLocal
        self._session_factory = session_factory
        self._lock = threading.Lock()

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _expiry(self, ttl_seconds: int | None) -> datetime | None:
        return self._now() + timedelta(seconds=ttl_seconds) if ttl_seconds else None

    def _run(self, operation: Callable[[DbSession], object]):
        with self._lock:
            db = self._session_factory()
            try:
                result = operation(db)
                db.commit()
                return result
            except OperationalError as exc:
                db.rollback()
                logger.warning(f"Key-value store operation failed: {exc}")
                raise TransientStorageError("Storage temporarily unavailable") from exc
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def _drop_expired_entry(self, db: DbSession, key: str) -> None:
        db.execute(
            delete(KeyValueEntry).where(
                KeyValueEntry.key == key,
                KeyValueEntry.expires_at.is_not(None),
                KeyValueEntry.expires_at <= self._now(),
            )
        )

    def get(self, key: str) -> str | None:
        def _get(db: DbSession) -> str | None:
            entry = db.get(KeyValueEntry, key)
            if entry is None:
                return None
            if entry.expires_at is not None and _aware(entry.expires_at) <= self._now():
                db.delete(entry)
                return None
            return entry.value

        return self._run(_get)

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        def _set(db: DbSession) -> None:
            entry = db.get(KeyValueEntry, key)
            if entry is None:
                db.add(KeyValueEntry(key=key, value=value, expires_at=self._expiry(ttl_seconds)))
            else:
                entry.value = value
                entry.expires_at = self._expiry(ttl_seconds)

        self._run(_set)

    def set_if_absent(self, key: str, value: str, ttl_seconds: int | None = None) -> bool:
        def _claim(db: DbSession) -> bool:
            self._drop_expired_entry(db, key)
            db.add(KeyValueEntry(key=key, value=value, expires_at=self._expiry(ttl_seconds)))
            try:
                db.flush()
            except IntegrityError:
                db.rollback()
                return False
            return True

        return self._run(_claim)

    def delete(self, key: str) -> bool:
        def _delete(db: DbSession) -> bool:
            result = db.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
            return result.rowcount > 0

        return self._run(_delete)

    def _bump(
        self,
        db: DbSession,
        key: str,
        field: str,
        amount: int,
        ttl_seconds: int | None,
    ) -> int:
        match = and_(KeyValueCounter.key == key, KeyValueCounter.field == field)
        db.execute(
            delete(KeyValueCounter).where(
                match,
                KeyValueCounter.expires_at.is_not(None),
                KeyValueCounter.expires_at <= self._now(),
            )
        )
        updated = db.execute(
            update(KeyValueCounter)
            .where(match)
            .values(value=KeyValueCounter.value + amount)
        )
        if updated.rowcount == 0:
            db.add(
                KeyValueCounter(
                    key=key,
                    field=field,
                    value=amount,
                    expires_at=self._expiry(ttl_seconds),
                )
            )
            db.flush()
        return db.execute(select(KeyValueCounter.value).where(match)).scalar_one()

    def _run_counters(self, operation: Callable[[DbSession], object], label: str):
        # An IntegrityError means another writer inserted the row first. The
        # whole transaction is rolled back, so rerunning it counts once.
        for _ in range(2):
            try:
                return self._run(operation)
            except IntegrityError:
                logger.debug(f"Counter insert race on {label}, retrying")
        raise TransientStorageError(f"Could not increment counter {label}")

    def incr(self, key: str, amount: int = 1, ttl_seconds: int | None = None) -> int:
        return self._run_counters(lambda db: self._bump(db, key, "", amount, ttl_seconds), key)

    def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        return self._run_counters(lambda db: self._bump(db, key, field, amount, None), key)

    def hincrby_many(self, increments: Iterable[tuple[str, str, int]]) -> None:
        """Apply every increment in one transaction."""
        batch = list(increments)

        def _apply(db: DbSession) -> None:
            for key, field, amount in batch:
                self._bump(db, key, field, amount, None)

        self._run_counters(_apply, f"batch of {len(batch)}")

    def hgetall(self, key: str) -> dict[str, int]:
        def _hgetall(db: DbSession) -> dict[str, int]:
            rows = db.execute(
                select(KeyValueCounter.field, KeyValueCounter.value).where(
                    KeyValueCounter.key == key,
                    KeyValueCounter.field != "",
                )
            ).all()
            return {row.field: row.value for row in rows}

        return self._run(_hgetall)

    def purge_expired(self) -> int:
        """Delete expired rows from both tables."""

        def _purge(db: DbSession) -> int:
            now = self._now()
            removed = 0
            for model in (KeyValueEntry, KeyValueCounter):
                result = db.execute(
                    delete(model).where(model.expires_at.is_not(None), model.expires_at <= now)
                )
                removed += result.rowcount
            return removed

        return self._run(_purge)


def _aware(value: datetime) -> datetime:
    # SQLite returns naive datetimes even for timezone-aware columns
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
