"""
BaseService -- shared constructor for kernel services.

Every service works inside a transaction it does not own: it adds, updates
and flushes through the session it was given, and leaves commit and
rollback to the OrderCoordinator (or to a test).  That is what lets a
fulfilment's status write and its stock adjustments land as one unit.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from inventory_kernel.db.base import Base
from inventory_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Holds the caller's session and the clock all timestamps come from."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
