"""
Pure domain layer.

This module contains value objects, commands, read models, the order state
machines and capability checks, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic.
"""

from inventory_kernel.domain.authorization import (
    DEFAULT_CAPABILITIES,
    CapabilityTable,
    is_allowed,
)
from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.dtos import (
    ChangeStatusCommand,
    CreateOrderCommand,
    LineRequest,
    OrderInfo,
    OrderLineInfo,
    PriceSnapshot,
)
from inventory_kernel.domain.state_machine import (
    PURCHASE_WORKFLOW,
    SALE_WORKFLOW,
    allowed_targets,
)
from inventory_kernel.domain.values import Actor, OrderStatus, OrderType, Role

__all__ = [
    "Actor",
    "CapabilityTable",
    "ChangeStatusCommand",
    "Clock",
    "CreateOrderCommand",
    "DEFAULT_CAPABILITIES",
    "DeterministicClock",
    "LineRequest",
    "OrderInfo",
    "OrderLineInfo",
    "OrderStatus",
    "OrderType",
    "PURCHASE_WORKFLOW",
    "PriceSnapshot",
    "Role",
    "SALE_WORKFLOW",
    "SystemClock",
    "allowed_targets",
    "is_allowed",
]
