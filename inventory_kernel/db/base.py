"""
Module: inventory_kernel.db.base
Responsibility: The declarative base every ORM model inherits: integer
    surrogate keys, the column type map for money and timestamps, and the
    TrackedBase created/updated mixin.
Architecture position: Kernel > DB.  Imported by every model; imports
    nothing else from the kernel.

Invariants enforced:
    - Integer surrogate keys: every model gets an autoincrement ``id`` that
      works on PostgreSQL (BIGINT identity) and SQLite (INTEGER rowid alias).
    - Decimal precision: Decimal maps to Numeric(14, 2).  NEVER use float
      for prices or totals.
    - Timestamps are always timezone-aware UTC, on every backend.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime, Integer, Numeric
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

# BIGINT on PostgreSQL, INTEGER on SQLite so the rowid alias autoincrements.
IdInteger = BigInteger().with_variant(Integer(), "sqlite")


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime that round-trips as UTC on every backend.

    Contract:
        SQLite drops tzinfo on storage; values loaded back without tzinfo
        are interpreted as UTC.  Aware values are normalized to UTC before
        binding.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        """Normalize aware datetimes to UTC when storing."""
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime not allowed: {value!r}")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        """Attach UTC to naive values when loading."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is an autoincrement integer primary key.
        - Decimal maps to Numeric(14, 2).
        - datetime maps to UTCDateTime -- always timezone-aware.
        - int maps to BigInteger (INTEGER on SQLite).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(14, 2),
        datetime: UTCDateTime(),
        int: IdInteger,
    }

    id: Mapped[int] = mapped_column(
        IdInteger,
        primary_key=True,
        autoincrement=True,
    )


class TrackedBase(Base):
    """
    Abstract base with audit timestamps.

    Contract:
        ``created_at`` and ``updated_at`` are written by services from the
        injected Clock, never from the database server clock, so tests and
        replays are deterministic.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )
