"""Database models."""
from quiz_engine.models.db.kv import KeyValueCounter, KeyValueEntry

__all__ = [
    "KeyValueCounter",
    "KeyValueEntry",
]
