"""
Module: inventory_kernel.models.order
Responsibility: ORM persistence for order headers and their line items.
Architecture position: Kernel > Models.  May import from db/ and
    domain/values.py only.

Invariants enforced:
    - ``total_value`` equals the sum of line totals at creation and is never
      recomputed (written once by OrderService; guarded by
      db/immutability.py together with ``order_type``, ``supplier_id`` and
      ``created_by_id``).
    - Order lines are immutable once created.  Deletion is only possible
      while the parent order is still CREATED.
    - ``quantity > 0`` on every line (ck_order_line_quantity_positive).
    - Lines are returned in insertion order (ordered by id).

Failure modes:
    - ImmutabilityViolationError (from db/immutability.py) on any attempt to
      change a line or a header snapshot field.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import Base, IdInteger, TrackedBase, UTCDateTime
from inventory_kernel.domain.values import OrderStatus, OrderType


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Order(TrackedBase):
    """
    Order header (purchase from a supplier or sale to a customer).

    Guarantees:
        - supplier_id is set for PURCHASE and NULL for SALE (service rule).
        - status changes only through StatusTransitionEngine.
        - completed_at is stamped on FULFILLED / RECEIVED.
        - void metadata is stamped on VOIDED / CANCELLED.
    """

    __tablename__ = "orders"

    __table_args__ = (
        Index("idx_order_status", "status"),
        Index("idx_order_type", "order_type"),
        Index("idx_order_fulfiller", "fulfiller_id"),
    )

    order_type: Mapped[OrderType] = mapped_column(
        SAEnum(
            OrderType,
            native_enum=False,
            length=20,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )

    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            native_enum=False,
            length=20,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=OrderStatus.CREATED,
    )

    created_by_id: Mapped[int] = mapped_column(IdInteger, nullable=False)

    supplier_id: Mapped[int | None] = mapped_column(
        ForeignKey("suppliers.id"), nullable=True
    )

    # Assigned courier (user id from the identity provider)
    fulfiller_id: Mapped[int | None] = mapped_column(IdInteger, nullable=True)

    total_value: Mapped[Decimal] = mapped_column(nullable=False)

    note: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    # Cancellation metadata
    is_voided: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    void_reason: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    voided_by_id: Mapped[int | None] = mapped_column(IdInteger, nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    completed_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )

    lines: Mapped[list["OrderLine"]] = relationship(
        "OrderLine",
        back_populates="order",
        order_by="OrderLine.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Order {self.id} {self.order_type.value} [{self.status.value}]>"


class OrderLine(Base):
    """
    One product and quantity within an order.

    Guarantees:
        - unit_price is the snapshot taken at creation (sale price for SALE).
        - line_total == unit_price * quantity.
        - Never updated after insert.
    """

    __tablename__ = "order_lines"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_line_quantity_positive"),
        Index("idx_order_line_order", "order_id"),
        Index("idx_order_line_product", "product_id"),
    )

    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False)

    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    line_total: Mapped[Decimal] = mapped_column(nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="lines")

    def __repr__(self) -> str:
        return f"<OrderLine {self.id} product={self.product_id} x{self.quantity}>"
