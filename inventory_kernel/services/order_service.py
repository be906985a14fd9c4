"""
OrderService -- the order aggregate's persistence operations.

Responsibility:
    Creates orders with their price-snapshotted lines, reads them back as
    OrderInfo DTOs, deletes orders that never left CREATED, and assigns a
    courier.  Status changes are NOT made here; they belong to the
    StatusTransitionEngine.

Architecture position:
    Kernel > Services -- imperative shell.  Flushes only; the
    OrderCoordinator owns the transaction.

Invariants enforced:
    - total_value == sum(line_total) == sum(quantity * unit_price), computed
      once at creation and never recomputed, and every amount fits
      Numeric(14, 2) so it reads back exactly as written.
    - Header and lines are inserted in one flush; a failure on any line
      leaves nothing behind once the caller rolls back.
    - A new order always starts in CREATED.
    - No stock is checked or reserved at creation.
    - Only CREATED orders can be deleted; terminal orders cannot be
      reassigned.

Failure modes:
    - UnknownSupplierError: PURCHASE supplier id does not exist.
    - UnknownProductError: a line's product does not exist.
    - AmountOutOfRangeError: a line total or the order total does not fit
      a money column.  Raised before anything is added to the session.
    - OrderNotFoundError: order id does not exist.
    - OrderNotDeletableError / OrderClosedError: lifecycle rules.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select

from inventory_kernel.db.types import fits_money, round_money
from inventory_kernel.domain.dtos import CreateOrderCommand, OrderInfo
from inventory_kernel.domain.state_machine import is_terminal
from inventory_kernel.domain.values import Actor, OrderStatus, OrderType
from inventory_kernel.exceptions import (
    AmountOutOfRangeError,
    OrderClosedError,
    OrderNotDeletableError,
    OrderNotFoundError,
    UnknownSupplierError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.order import Order, OrderLine
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.price_snapshot import PriceSnapshotResolver
from inventory_kernel.services.supplier_service import SupplierService

logger = get_logger("services.order")


class OrderService(BaseService[Order]):
    """
    Service for the order aggregate (header + lines).

    Contract:
        All public methods return OrderInfo DTOs (or nothing), never ORM
        entities.
    """

    def _get_by_id(self, order_id: int) -> Order:
        order = self.session.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def lock_order(self, order_id: int) -> Order:
        """
        Load an order header with a row lock held until the transaction ends.

        On PostgreSQL this is ``SELECT ... FOR UPDATE``; SQLite serializes
        writers through ``BEGIN IMMEDIATE`` instead (see db/engine.py).
        ``populate_existing`` makes sure we act on the row as it is after
        the lock was granted, not on a cached copy.

        Raises:
            OrderNotFoundError: If the order doesn't exist.
        """
        order = self.session.execute(
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def create_order(self, command: CreateOrderCommand, actor: Actor) -> OrderInfo:
        """
        Persist a new order in CREATED status.

        Preconditions:
            - ``command`` has passed structural validation (its constructor
              guarantees this).

        Postconditions:
            - One header row and len(command.lines) line rows are flushed,
              lines in request order.
            - total_value equals the sum of the line totals.

        Raises:
            UnknownSupplierError: If the supplier doesn't exist.
            UnknownProductError: If any line's product doesn't exist.
            AmountOutOfRangeError: If a line total or the total is too large.
        """
        if command.order_type == OrderType.PURCHASE:
            if not SupplierService(self.session, self.clock).exists(command.supplier_id):
                raise UnknownSupplierError(command.supplier_id)

        snapshots = PriceSnapshotResolver(self.session, self.clock).resolve_lines(
            command.lines, command.order_type
        )

        now = self.clock.now()
        lines = []
        total = Decimal("0")
        for index, (request, snapshot) in enumerate(zip(command.lines, snapshots)):
            line_total = round_money(snapshot.unit_price * request.quantity)
            if not fits_money(line_total):
                raise AmountOutOfRangeError(line_total, line_index=index)
            total += line_total
            lines.append(
                OrderLine(
                    product_id=request.product_id,
                    quantity=request.quantity,
                    unit_price=snapshot.unit_price,
                    line_total=line_total,
                    created_at=now,
                )
            )
        if not fits_money(total):
            raise AmountOutOfRangeError(total)

        order = Order(
            order_type=command.order_type,
            status=OrderStatus.CREATED,
            created_by_id=actor.user_id,
            supplier_id=command.supplier_id,
            fulfiller_id=command.fulfiller_id,
            total_value=round_money(total),
            note=command.note,
            is_voided=False,
            created_at=now,
            updated_at=now,
            lines=lines,
        )
        self.session.add(order)
        self.session.flush()

        logger.info(
            "order_created",
            extra={
                "order_id": order.id,
                "order_type": order.order_type.value,
                "line_count": len(lines),
                "total_value": order.total_value,
                "actor_id": actor.user_id,
            },
        )
        return OrderInfo.from_model(order)

    def get_order(self, order_id: int) -> OrderInfo:
        """
        Raises:
            OrderNotFoundError: If the order doesn't exist.
        """
        return OrderInfo.from_model(self._get_by_id(order_id))

    def list_orders(
        self,
        order_type: OrderType | None = None,
        status: OrderStatus | None = None,
        fulfiller_id: int | None = None,
    ) -> list[OrderInfo]:
        """Orders matching the filters, newest first."""
        stmt = select(Order)
        if order_type is not None:
            stmt = stmt.where(Order.order_type == order_type)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        if fulfiller_id is not None:
            stmt = stmt.where(Order.fulfiller_id == fulfiller_id)
        stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc())
        return [OrderInfo.from_model(o) for o in self.session.execute(stmt).scalars()]

    def delete_order(self, order_id: int, actor: Actor) -> None:
        """
        Delete an order and its lines.  No stock effect.

        Raises:
            OrderNotFoundError: If the order doesn't exist.
            OrderNotDeletableError: If the order has left CREATED.
        """
        order = self.lock_order(order_id)
        if order.status != OrderStatus.CREATED:
            raise OrderNotDeletableError(order_id, order.status.value)

        self.session.delete(order)
        self.session.flush()

        logger.info(
            "order_deleted",
            extra={"order_id": order_id, "actor_id": actor.user_id},
        )

    def assign_fulfiller(
        self, order_id: int, fulfiller_id: int | None, actor: Actor
    ) -> OrderInfo:
        """
        Assign (or clear, with None) the courier of an order.

        Raises:
            OrderNotFoundError: If the order doesn't exist.
            OrderClosedError: If the order is in a terminal status.
        """
        order = self.lock_order(order_id)
        if is_terminal(order.order_type, order.status):
            raise OrderClosedError(order_id, order.status.value)

        order.fulfiller_id = fulfiller_id
        order.updated_at = self.clock.now()
        self.session.flush()

        logger.info(
            "order_fulfiller_assigned",
            extra={
                "order_id": order_id,
                "fulfiller_id": fulfiller_id,
                "actor_id": actor.user_id,
            },
        )
        return OrderInfo.from_model(order)
