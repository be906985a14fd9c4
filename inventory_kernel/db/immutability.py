"""
Snapshot protection for orders, order lines and products.

An order records what was agreed when it was created: the unit price and
quantity on each line and the total on its header.  Later price edits on a
product must never reach an existing order.  The services never write
those columns after insert; the mapper listeners registered here reject
any flush that tries to, raising ImmutabilityViolationError before SQL is
emitted.

Frozen after insert:

    OrderLine   every column; deletable only while its order is CREATED
    Order       order_type, supplier_id, total_value, created_by_id
    Product     acquisition_cost

Lifecycle columns (status, stamps, fulfiller, void metadata) stay writable.
Core ``update()`` statements do not go through mapper events; the status
compare-and-set in StatusTransitionEngine is one and writes lifecycle
columns only.

``inventory_config.bridges.build_coordinator`` registers the listeners at
startup.  Registering twice is harmless.
"""

from sqlalchemy import event, inspect, select

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

ORDER_IMMUTABLE_FIELDS = ("order_type", "supplier_id", "total_value", "created_by_id")
PRODUCT_IMMUTABLE_FIELDS = ("acquisition_cost",)


def _block(entity_type: str, entity_id, operation: str, reason: str, field=None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_frozen_fields(entity_type: str, target, fields: tuple[str, ...]):
    insp = inspect(target)
    for key in fields:
        if insp.attrs[key].history.has_changes():
            _block(
                entity_type,
                target.id,
                "UPDATE",
                f"Cannot modify field '{key}' after creation",
                field=key,
            )


def _reject_line_update(mapper, connection, target):
    _block("OrderLine", target.id, "UPDATE", "Order lines cannot be modified after creation")


def _reject_line_delete_after_created(mapper, connection, target):
    """
    Lines leave only with a CREATED order.

    Lines are deleted before their order in the same flush, so the parent
    row is still readable on the flush connection.
    """
    from inventory_kernel.domain.values import OrderStatus
    from inventory_kernel.models.order import Order

    status = connection.execute(
        select(Order.status).where(Order.id == target.order_id)
    ).scalar_one_or_none()

    if status is not None and status != OrderStatus.CREATED:
        _block(
            "OrderLine",
            target.id,
            "DELETE",
            f"Order lines cannot be deleted once the order is {OrderStatus(status).value}",
        )


def _freeze_order_header(mapper, connection, target):
    _check_frozen_fields("Order", target, ORDER_IMMUTABLE_FIELDS)


def _freeze_acquisition_cost(mapper, connection, target):
    _check_frozen_fields("Product", target, PRODUCT_IMMUTABLE_FIELDS)


def _listeners():
    from inventory_kernel.models.order import Order, OrderLine
    from inventory_kernel.models.product import Product

    return (
        (OrderLine, "before_update", _reject_line_update),
        (OrderLine, "before_delete", _reject_line_delete_after_created),
        (Order, "before_update", _freeze_order_header),
        (Product, "before_update", _freeze_acquisition_cost),
    )


def register_immutability_listeners():
    """Attach the snapshot listeners.  Already attached ones are skipped."""
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """Detach the snapshot listeners.  Tests only."""
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
