"""
Key-value tables backing the SQL implementation of the store abstraction.
"""

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import BigInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from quiz_engine.database import Base


class KeyValueEntry(Base):
    """
    String value stored under a key.
    Used for results, replay tokens and analytics events.
    """

    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True, index=True
    )


class KeyValueCounter(Base):
    """
    Integer counter under (key, field).
    Plain counters use an empty field; hashes use one row per field.
    """

    __tablename__ = "kv_counters"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    field: Mapped[str] = mapped_column(String(255), primary_key=True, default="")
    value: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True, index=True
    )
