"""Database layer - engine, base classes and column types."""

from inventory_kernel.db.base import Base, IdInteger, TrackedBase, UTCDateTime
from inventory_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session_factory,
    session_scope,
)
from inventory_kernel.db.types import round_money, to_money

__all__ = [
    "get_engine",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "IdInteger",
    "UTCDateTime",
    "round_money",
    "to_money",
]
