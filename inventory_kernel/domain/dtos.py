"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that flow through the order
    pipeline: the validated commands (CreateOrderCommand, LineRequest,
    ChangeStatusCommand), the price snapshot taken per line, and the order
    read models (OrderInfo, OrderLineInfo) returned by every service.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  ``from_model()`` class methods are
    boundary converters invoked only from the service layer.

Invariants enforced:
    - A CreateOrderCommand that exists is structurally valid: known order
      type, at least one line, quantities from 1 to MAX_QUANTITY, supplier set
      for PURCHASE and absent for SALE.  Nothing past the boundary
      re-checks these shapes.
    - Services return DTOs, never ORM entities.

Failure modes:
    - InvalidOrderTypeError, EmptyOrderError, InvalidQuantityError,
      SupplierRequiredError, SupplierForbiddenError on construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from inventory_kernel.domain.values import MAX_QUANTITY, OrderStatus, OrderType
from inventory_kernel.exceptions import (
    EmptyOrderError,
    InvalidOrderTypeError,
    InvalidQuantityError,
    SupplierForbiddenError,
    SupplierRequiredError,
    UnknownStatusError,
)

if TYPE_CHECKING:
    from inventory_kernel.models.order import Order as OrderModel
    from inventory_kernel.models.order import OrderLine as OrderLineModel


def _is_line_quantity(value: object) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and 0 < value <= MAX_QUANTITY
    )


# =============================================================================
# Commands
# =============================================================================


@dataclass(frozen=True)
class LineRequest:
    """One requested line: a product and a quantity."""

    product_id: int
    quantity: int


@dataclass(frozen=True)
class CreateOrderCommand:
    """
    Validated order-creation request.

    PURCHASE and SALE share one shape; the variant is selected by
    ``order_type`` and the supplier rule is checked here.
    """

    order_type: OrderType
    lines: tuple[LineRequest, ...]
    supplier_id: int | None = None
    fulfiller_id: int | None = None
    note: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.order_type, OrderType):
            raise InvalidOrderTypeError(self.order_type)
        if not self.lines:
            raise EmptyOrderError()
        for index, line in enumerate(self.lines):
            if not _is_line_quantity(line.quantity):
                raise InvalidQuantityError(index, line.quantity)
        if self.order_type == OrderType.PURCHASE and self.supplier_id is None:
            raise SupplierRequiredError()
        if self.order_type == OrderType.SALE and self.supplier_id is not None:
            raise SupplierForbiddenError(self.supplier_id)
        # Normalize lists handed in by callers
        object.__setattr__(self, "lines", tuple(self.lines))


@dataclass(frozen=True)
class ChangeStatusCommand:
    """Validated status-change request."""

    status: OrderStatus
    reason: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, OrderStatus):
            raise UnknownStatusError(
                self.status, tuple(s.value for s in OrderStatus)
            )


# =============================================================================
# Snapshots and read models
# =============================================================================


@dataclass(frozen=True)
class PriceSnapshot:
    """Unit price captured for a line at order creation."""

    product_id: int
    product_code: str
    unit_price: Decimal


@dataclass(frozen=True)
class OrderLineInfo:
    """Immutable view of one order line."""

    id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    @classmethod
    def from_model(cls, model: OrderLineModel) -> OrderLineInfo:
        return cls(
            id=model.id,
            product_id=model.product_id,
            quantity=model.quantity,
            unit_price=model.unit_price,
            line_total=model.line_total,
        )


@dataclass(frozen=True)
class OrderInfo:
    """
    Immutable view of an order header with its lines.

    Lines are in insertion order.
    """

    id: int
    order_type: OrderType
    status: OrderStatus
    created_by_id: int
    supplier_id: int | None
    fulfiller_id: int | None
    total_value: Decimal
    note: str | None
    is_voided: bool
    void_reason: str | None
    voided_by_id: int | None
    voided_at: datetime | None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None
    lines: tuple[OrderLineInfo, ...] = ()

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @classmethod
    def from_model(cls, model: OrderModel) -> OrderInfo:
        """
        Create an OrderInfo from an Order ORM model.

        Args:
            model: Order ORM model instance (lines are loaded with it).

        Returns:
            OrderInfo DTO.
        """
        return cls(
            id=model.id,
            order_type=model.order_type,
            status=model.status,
            created_by_id=model.created_by_id,
            supplier_id=model.supplier_id,
            fulfiller_id=model.fulfiller_id,
            total_value=model.total_value,
            note=model.note,
            is_voided=model.is_voided,
            void_reason=model.void_reason,
            voided_by_id=model.voided_by_id,
            voided_at=model.voided_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
            completed_at=model.completed_at,
            lines=tuple(OrderLineInfo.from_model(line) for line in model.lines),
        )
