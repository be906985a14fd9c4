"""
inventory_kernel.domain.authorization -- Capability checks per operation.

Responsibility:
    Decide whether an actor's role may perform an operation, optionally
    scoped to an order type, and whether a courier may touch a given order.
    Checks are pure functions over a role -> capabilities table returning
    ``(allowed, reason)``; ``require_*`` variants raise AuthorizationError.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Called by the OrderCoordinator
    before a transaction opens (role checks) and by the
    StatusTransitionEngine against the locked order row (ownership checks).

Invariants:
    - Identity is never resolved here; the caller supplies the Actor.
    - A grant is either ``operation`` (any order type) or
      ``operation:type`` (only that order type, e.g. ``order.fulfill:sale``).
    - Unknown roles and operations are denied.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from inventory_kernel.domain.values import Actor, OrderStatus, OrderType, Role
from inventory_kernel.exceptions import AuthorizationError

# Operations
ORDER_CREATE = "order.create"
ORDER_VIEW = "order.view"
ORDER_TRANSITION = "order.transition"
ORDER_FULFILL = "order.fulfill"
ORDER_VOID = "order.void"
ORDER_DELETE = "order.delete"
ORDER_ASSIGN = "order.assign"
PRODUCT_MANAGE = "product.manage"
STOCK_VIEW = "stock.view"

OPERATIONS: frozenset[str] = frozenset({
    ORDER_CREATE,
    ORDER_VIEW,
    ORDER_TRANSITION,
    ORDER_FULFILL,
    ORDER_VOID,
    ORDER_DELETE,
    ORDER_ASSIGN,
    PRODUCT_MANAGE,
    STOCK_VIEW,
})

CapabilityTable = Mapping[Role, frozenset[str]]

DEFAULT_CAPABILITIES: CapabilityTable = {
    Role.OWNER: frozenset({
        ORDER_CREATE,
        ORDER_VIEW,
        ORDER_TRANSITION,
        ORDER_FULFILL,
        ORDER_VOID,
        ORDER_DELETE,
        ORDER_ASSIGN,
        PRODUCT_MANAGE,
        STOCK_VIEW,
    }),
    # Workers may only move sales through their lifecycle
    Role.WORKER: frozenset({
        ORDER_CREATE,
        ORDER_VIEW,
        f"{ORDER_TRANSITION}:{OrderType.SALE.value}",
        f"{ORDER_FULFILL}:{OrderType.SALE.value}",
        f"{ORDER_VOID}:{OrderType.SALE.value}",
        STOCK_VIEW,
    }),
    Role.COURIER: frozenset({
        ORDER_VIEW,
        ORDER_TRANSITION,
    }),
}

# Target status -> operation required to move an order there
_TARGET_OPERATION: dict[OrderStatus, str] = {
    OrderStatus.FULFILLED: ORDER_FULFILL,
    OrderStatus.RECEIVED: ORDER_FULFILL,
    OrderStatus.VOIDED: ORDER_VOID,
    OrderStatus.CANCELLED: ORDER_VOID,
}

# Roles whose visibility is limited to orders assigned to them
ASSIGNMENT_SCOPED_ROLES: frozenset[Role] = frozenset({Role.COURIER})


def build_capability_table(
    grants: Mapping[str, Iterable[str]],
    base: CapabilityTable = DEFAULT_CAPABILITIES,
) -> CapabilityTable:
    """Overlay ``{role_value: [grant, ...]}`` onto a base table.

    Roles named in ``grants`` are replaced wholesale; other roles keep the
    base grants.

    Raises:
        ValueError: Unknown role name or unknown operation in a grant.
    """
    table: dict[Role, frozenset[str]] = dict(base)
    for role_name, role_grants in grants.items():
        try:
            role = Role(role_name)
        except ValueError:
            raise ValueError(f"Unknown role in capability table: {role_name!r}") from None
        parsed = frozenset(role_grants)
        for grant in parsed:
            operation, _, scope = grant.partition(":")
            if operation not in OPERATIONS:
                raise ValueError(f"Unknown operation {operation!r} for role {role_name}")
            if scope and scope not in {t.value for t in OrderType}:
                raise ValueError(f"Unknown order type scope {scope!r} in grant {grant!r}")
        table[role] = parsed
    return table


def operation_for_target(target: OrderStatus) -> str:
    """Operation required to move an order into ``target``."""
    return _TARGET_OPERATION.get(target, ORDER_TRANSITION)


def is_allowed(
    role: Role,
    operation: str,
    order_type: OrderType | None = None,
    table: CapabilityTable = DEFAULT_CAPABILITIES,
) -> bool:
    """Pure capability check: may ``role`` perform ``operation``?

    A type-scoped grant only counts when ``order_type`` matches it.
    """
    grants = table.get(role, frozenset())
    if operation in grants:
        return True
    if order_type is not None:
        return f"{operation}:{order_type.value}" in grants
    return False


def is_allowed_for_any_type(
    role: Role,
    operation: str,
    table: CapabilityTable = DEFAULT_CAPABILITIES,
) -> bool:
    """True when ``role`` holds ``operation`` for at least one order type.

    Lets callers reject a request before the order (and its type) is read.
    """
    return any(is_allowed(role, operation, t, table) for t in OrderType)


def check_capability(
    actor: Actor,
    operation: str,
    order_type: OrderType | None = None,
    table: CapabilityTable = DEFAULT_CAPABILITIES,
) -> tuple[bool, str]:
    """Returns (allowed, reason); reason is empty when allowed."""
    if is_allowed(actor.role, operation, order_type, table):
        return (True, "")
    scope = f" on {order_type.value} orders" if order_type is not None else ""
    return (False, f"capability '{operation}' not granted{scope}")


def check_assignment(actor: Actor, fulfiller_id: int | None) -> tuple[bool, str]:
    """Assignment-scoped roles may only act on orders assigned to them."""
    if actor.role not in ASSIGNMENT_SCOPED_ROLES:
        return (True, "")
    if fulfiller_id is not None and fulfiller_id == actor.user_id:
        return (True, "")
    return (False, "order is not assigned to this actor")


def require_capability(
    actor: Actor,
    operation: str,
    order_type: OrderType | None = None,
    table: CapabilityTable = DEFAULT_CAPABILITIES,
) -> None:
    """Raises AuthorizationError when the capability is missing."""
    allowed, reason = check_capability(actor, operation, order_type, table)
    if not allowed:
        raise AuthorizationError(actor.role.value, operation, reason)


def require_assignment(
    actor: Actor, operation: str, fulfiller_id: int | None
) -> None:
    allowed, reason = check_assignment(actor, fulfiller_id)
    if not allowed:
        raise AuthorizationError(actor.role.value, operation, reason)
