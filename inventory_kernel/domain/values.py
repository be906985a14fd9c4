"""
Values -- enumerations and small value objects shared by every layer.

Responsibility:
    Defines the order types, order statuses, actor roles, and the Actor
    value that is threaded explicitly through every core call.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Imported by models/, services/ and
    the api/ boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Quantities and stock levels are stored in 32-bit integer columns
MAX_QUANTITY = 2**31 - 1


class OrderType(str, Enum):
    """Direction of an order relative to our stock."""

    PURCHASE = "purchase"
    SALE = "sale"


class OrderStatus(str, Enum):
    """
    Order lifecycle status.

    Which transitions are legal depends on the order type; see
    ``inventory_kernel.domain.state_machine``.
    """

    CREATED = "created"
    SENT = "sent"
    IN_TRANSIT = "in_transit"
    RECEIVED = "received"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"
    VOIDED = "voided"


class Role(str, Enum):
    """Roles the identity provider may assign to an actor."""

    OWNER = "owner"
    WORKER = "worker"
    COURIER = "courier"


@dataclass(frozen=True, slots=True)
class Actor:
    """
    The authenticated caller of a core operation.

    Guarantees:
        - Immutable; carries exactly what the identity provider yields.
    """

    user_id: int
    role: Role

    def __post_init__(self) -> None:
        if not isinstance(self.role, Role):
            raise ValueError(f"role must be a Role, got {self.role!r}")
        if isinstance(self.user_id, bool) or not isinstance(self.user_id, int):
            raise ValueError(f"user_id must be an int, got {self.user_id!r}")
