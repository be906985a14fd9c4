"""
StatusTransitionEngine -- moves an order through its lifecycle.

Responsibility:
    Validate a requested status change against the per-type state machine,
    the actor's capabilities and the order's assignment; write the new
    status and lifecycle stamps; and, on the transition into FULFILLED,
    apply every line to stock through the InventoryLedger.  All of it
    within the caller's transaction.

Architecture position:
    Kernel > Services -- imperative shell around the pure
    ``domain.state_machine`` and ``domain.authorization``.  Called only by
    the OrderCoordinator.

Invariants enforced:
    - Guards run against the order row read under lock, in this order:
        1. order exists                     -> OrderNotFoundError
        2. target differs from current      -> StatusUnchangedError
        3. target in the allowed set        -> InvalidTransitionError
        4. VOIDED carries a reason          -> VoidReasonRequiredError
        5. capability and assignment        -> AuthorizationError
      No write happens before all five pass.
    - The status write is a compare-and-set on the status read under lock;
      losing a race raises ConcurrentTransitionError.
    - Stock moves exactly once per order: only the transition flagged
      ``posts_inventory`` (into FULFILLED) adjusts stock, and it can only
      fire from a status other than FULFILLED.
    - PURCHASE fulfilment adds each line's quantity; SALE fulfilment
      removes it.  One insufficient line aborts the whole transaction.

Failure modes:
    - Everything listed above, plus InsufficientStockError and
      ProductNotFoundError from the ledger.  The engine never catches
      them; the coordinator rolls back.
"""

from __future__ import annotations

from sqlalchemy import update

from inventory_kernel.domain.authorization import (
    DEFAULT_CAPABILITIES,
    CapabilityTable,
    operation_for_target,
    require_assignment,
    require_capability,
)
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import ChangeStatusCommand, OrderInfo
from inventory_kernel.domain.state_machine import check_transition, stock_direction
from inventory_kernel.domain.values import Actor, OrderStatus
from inventory_kernel.exceptions import ConcurrentTransitionError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.order import Order
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.inventory_ledger import InventoryLedger
from inventory_kernel.services.order_service import OrderService

logger = get_logger("services.status_transition")

COMPLETION_STATUSES = frozenset({OrderStatus.FULFILLED, OrderStatus.RECEIVED})


class StatusTransitionEngine(BaseService[Order]):
    """
    Applies one status change to one order.

    Contract:
        ``transition()`` flushes within the caller's transaction and
        returns the updated order.  It never commits.
    """

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        capabilities: CapabilityTable = DEFAULT_CAPABILITIES,
    ):
        super().__init__(session, clock)
        self.capabilities = capabilities
        self._orders = OrderService(session, self.clock)
        self._ledger = InventoryLedger(session, self.clock)

    def transition(
        self, order_id: int, command: ChangeStatusCommand, actor: Actor
    ) -> OrderInfo:
        """
        Move an order to ``command.status``.

        Preconditions:
            - The caller is within an active transaction.

        Postconditions:
            - The order's status is ``command.status`` with lifecycle
              stamps set, and for a fulfilment every line has been applied
              to stock.

        Raises:
            OrderNotFoundError, StatusUnchangedError, InvalidTransitionError,
            VoidReasonRequiredError, AuthorizationError,
            ConcurrentTransitionError, InsufficientStockError,
            ProductNotFoundError.
        """
        order = self._orders.lock_order(order_id)
        current = order.status
        target = command.status

        transition = check_transition(
            order_id, order.order_type, current, target, command.reason
        )

        operation = operation_for_target(target)
        require_capability(actor, operation, order.order_type, self.capabilities)
        require_assignment(actor, operation, order.fulfiller_id)

        self._write_status(order, current, target, command.reason, actor)

        if transition.posts_inventory and current != OrderStatus.FULFILLED:
            self._apply_to_stock(order)

        self.session.flush()
        self.session.refresh(order)

        logger.info(
            "order_status_changed",
            extra={
                "order_id": order_id,
                "order_type": order.order_type.value,
                "from_status": current.value,
                "to_status": target.value,
                "action": transition.action,
                "posts_inventory": transition.posts_inventory,
                "actor_id": actor.user_id,
            },
        )
        return OrderInfo.from_model(order)

    def _write_status(
        self,
        order: Order,
        current: OrderStatus,
        target: OrderStatus,
        reason: str | None,
        actor: Actor,
    ) -> None:
        now = self.clock.now()
        values: dict = {"status": target, "updated_at": now}

        if target in COMPLETION_STATUSES:
            values["completed_at"] = now
        elif target == OrderStatus.VOIDED:
            values.update(
                is_voided=True,
                void_reason=reason.strip(),
                voided_by_id=actor.user_id,
                voided_at=now,
            )
        elif target == OrderStatus.CANCELLED:
            # Cancellation metadata without marking the order voided
            values.update(
                void_reason=reason.strip() if reason and reason.strip() else None,
                voided_by_id=actor.user_id,
                voided_at=now,
            )

        result = self.session.execute(
            update(Order)
            .where(Order.id == order.id)
            .where(Order.status == current)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "order_transition_lost_race",
                extra={"order_id": order.id, "expected_status": current.value},
            )
            raise ConcurrentTransitionError(order.id, current.value)

    def _apply_to_stock(self, order: Order) -> None:
        direction = stock_direction(order.order_type)
        for line in order.lines:
            self._ledger.adjust(line.product_id, direction * line.quantity)
        logger.info(
            "order_stock_applied",
            extra={
                "order_id": order.id,
                "order_type": order.order_type.value,
                "line_count": len(order.lines),
            },
        )
