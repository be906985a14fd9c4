"""
OrderCoordinator -- one transaction per core operation.

Responsibility:
    The single entry point the request boundary calls.  For every
    operation it rejects what can be rejected without the database
    (capabilities the actor's role can never hold), then opens exactly one
    unit of work, runs the services inside it, and commits.  Any exception
    rolls the whole unit back and is re-raised unchanged.

Architecture position:
    Kernel > Services -- the outermost kernel service.  Owns the session;
    every service below it only flushes.

Invariants enforced:
    - Atomicity: a status change and its stock adjustments commit together
      or not at all.  No partial inventory effect is ever committed.
    - Each call opens its own session from the factory, so coordinators
      are safe to share between threads.
    - No retries.  A failed call leaves state unchanged and may be retried
      by the caller; a retried fulfilment after success is rejected as
      STATUS_UNCHANGED.

Failure modes:
    - Every InventoryKernelError raised below, re-raised after rollback.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from uuid import uuid4

from sqlalchemy.orm import Session, sessionmaker

from inventory_kernel.db.engine import get_session_factory, session_scope
from inventory_kernel.domain.authorization import (
    DEFAULT_CAPABILITIES,
    ORDER_ASSIGN,
    ORDER_CREATE,
    ORDER_DELETE,
    ORDER_VIEW,
    PRODUCT_MANAGE,
    STOCK_VIEW,
    CapabilityTable,
    is_allowed_for_any_type,
    operation_for_target,
    require_assignment,
    require_capability,
)
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import ChangeStatusCommand, CreateOrderCommand, OrderInfo
from inventory_kernel.domain.values import Actor, OrderStatus, OrderType, Role
from inventory_kernel.exceptions import AuthorizationError, InventoryKernelError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.order_service import OrderService
from inventory_kernel.services.product_service import ProductInfo, ProductService
from inventory_kernel.services.status_transition import StatusTransitionEngine
from inventory_kernel.services.supplier_service import SupplierInfo, SupplierService

logger = get_logger("services.coordinator")

DEFAULT_LOW_STOCK_THRESHOLD = 5


class OrderCoordinator:
    """
    Transaction coordinator for orders, products and suppliers.

    Args:
        session_factory: Source of sessions; defaults to the engine's
            factory from ``db.engine``.
        clock: Time source passed to every service.
        capabilities: Role -> grants table for authorization.
        low_stock_threshold: Default threshold for ``list_low_stock``.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
        capabilities: CapabilityTable = DEFAULT_CAPABILITIES,
        low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    ):
        self._session_factory = session_factory
        self.clock = clock or SystemClock()
        self.capabilities = capabilities
        self.low_stock_threshold = low_stock_threshold

    @contextmanager
    def _unit_of_work(
        self, operation: str, actor: Actor, order_id: int | None = None
    ) -> Iterator[Session]:
        factory = self._session_factory or get_session_factory()
        with LogContext.bind(
            correlation_id=uuid4().hex,
            actor_id=str(actor.user_id),
            order_id=str(order_id) if order_id is not None else None,
        ):
            try:
                with session_scope(factory) as session:
                    yield session
            except InventoryKernelError as exc:
                logger.warning(
                    "operation_rejected",
                    extra={
                        "operation": operation,
                        "error_code": exc.code,
                        "error": str(exc),
                    },
                )
                raise

    def _require(
        self, actor: Actor, operation: str, order_type: OrderType | None = None
    ) -> None:
        require_capability(actor, operation, order_type, self.capabilities)

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    def create_order(self, command: CreateOrderCommand, actor: Actor) -> OrderInfo:
        """Create an order with snapshot prices.  No stock is touched."""
        self._require(actor, ORDER_CREATE, command.order_type)
        with self._unit_of_work("create_order", actor) as session:
            return OrderService(session, self.clock).create_order(command, actor)

    def change_status(
        self, order_id: int, command: ChangeStatusCommand, actor: Actor
    ) -> OrderInfo:
        """
        Move an order to a new status; fulfilment adjusts stock atomically.

        A role that cannot perform the target transition for any order type
        is rejected before a transaction opens.  Type-scoped grants and
        courier assignment are checked against the locked order row.
        """
        operation = operation_for_target(command.status)
        if not is_allowed_for_any_type(actor.role, operation, self.capabilities):
            raise AuthorizationError(
                actor.role.value, operation, f"capability '{operation}' not granted"
            )
        with self._unit_of_work("change_status", actor, order_id) as session:
            engine = StatusTransitionEngine(session, self.clock, self.capabilities)
            return engine.transition(order_id, command, actor)

    def get_order(self, order_id: int, actor: Actor) -> OrderInfo:
        """Read one order.  Couriers only see orders assigned to them."""
        self._require(actor, ORDER_VIEW)
        with self._unit_of_work("get_order", actor, order_id) as session:
            order = OrderService(session, self.clock).get_order(order_id)
            require_assignment(actor, ORDER_VIEW, order.fulfiller_id)
            return order

    def list_orders(
        self,
        actor: Actor,
        order_type: OrderType | None = None,
        status: OrderStatus | None = None,
    ) -> list[OrderInfo]:
        """Orders newest first.  Couriers only see orders assigned to them."""
        self._require(actor, ORDER_VIEW)
        fulfiller_id = actor.user_id if actor.role == Role.COURIER else None
        with self._unit_of_work("list_orders", actor) as session:
            return OrderService(session, self.clock).list_orders(
                order_type=order_type, status=status, fulfiller_id=fulfiller_id
            )

    def delete_order(self, order_id: int, actor: Actor) -> None:
        """Delete an order that is still CREATED."""
        self._require(actor, ORDER_DELETE)
        with self._unit_of_work("delete_order", actor, order_id) as session:
            OrderService(session, self.clock).delete_order(order_id, actor)

    def assign_fulfiller(
        self, order_id: int, fulfiller_id: int | None, actor: Actor
    ) -> OrderInfo:
        """Assign the courier responsible for an open order."""
        self._require(actor, ORDER_ASSIGN)
        with self._unit_of_work("assign_fulfiller", actor, order_id) as session:
            return OrderService(session, self.clock).assign_fulfiller(
                order_id, fulfiller_id, actor
            )

    # -------------------------------------------------------------------------
    # Products and suppliers
    # -------------------------------------------------------------------------

    def create_product(self, actor: Actor, **fields) -> ProductInfo:
        self._require(actor, PRODUCT_MANAGE)
        with self._unit_of_work("create_product", actor) as session:
            return ProductService(session, self.clock).create_product(**fields)

    def update_product(self, product_id: int, actor: Actor, **fields) -> ProductInfo:
        self._require(actor, PRODUCT_MANAGE)
        with self._unit_of_work("update_product", actor) as session:
            return ProductService(session, self.clock).update_product(
                product_id, **fields
            )

    def get_product(self, product_id: int, actor: Actor) -> ProductInfo:
        with self._unit_of_work("get_product", actor) as session:
            return ProductService(session, self.clock).get_product(product_id)

    def list_products(self, actor: Actor) -> list[ProductInfo]:
        with self._unit_of_work("list_products", actor) as session:
            return ProductService(session, self.clock).list_products()

    def list_low_stock(
        self, actor: Actor, threshold: int | None = None
    ) -> list[ProductInfo]:
        """Products at or below ``threshold`` (configured default if None)."""
        self._require(actor, STOCK_VIEW)
        if threshold is None:
            threshold = self.low_stock_threshold
        with self._unit_of_work("list_low_stock", actor) as session:
            return ProductService(session, self.clock).list_low_stock(threshold)

    def create_supplier(self, actor: Actor, **fields) -> SupplierInfo:
        # Whoever may raise orders may register the supplier they buy from
        self._require(actor, ORDER_CREATE)
        with self._unit_of_work("create_supplier", actor) as session:
            return SupplierService(session, self.clock).create_supplier(**fields)

    def get_supplier(self, supplier_id: int, actor: Actor) -> SupplierInfo:
        with self._unit_of_work("get_supplier", actor) as session:
            return SupplierService(session, self.clock).get_supplier(supplier_id)
