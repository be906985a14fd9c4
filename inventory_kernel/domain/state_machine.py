"""
Order state machines (``inventory_kernel.domain.state_machine``).

Responsibility
--------------
Declares the per-order-type lifecycle as data and answers the pure
questions the StatusTransitionEngine asks: which targets are allowed from
a status, which transition moves stock, and in which direction.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/`` or ``services/``.

Invariants enforced
-------------------
* There is exactly one canonical table, keyed by order type.
* Transitions reference only states in ``Workflow.states``.
* FULFILLED is the only transition with ``posts_inventory=True`` in either
  workflow.
* Guards run in a fixed order: unchanged status, then allowed set, then
  void reason.  Each failure has its own exception type.

    PURCHASE:  CREATED -> IN_TRANSIT -> FULFILLED
               CREATED -> CANCELLED
    SALE:      CREATED -> FULFILLED
               CREATED -> VOIDED   (reason required)
"""

from __future__ import annotations

from dataclasses import dataclass

from inventory_kernel.domain.values import OrderStatus, OrderType
from inventory_kernel.exceptions import (
    InvalidTransitionError,
    StatusUnchangedError,
    VoidReasonRequiredError,
)


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.  The engine evaluates it.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition.

    Contract: frozen.  ``posts_inventory=True`` marks the single transition
    that calls the InventoryLedger for every line.
    """
    from_state: OrderStatus
    to_state: OrderStatus
    action: str
    guard: Guard | None = None
    posts_inventory: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for one order type."""
    order_type: OrderType
    initial_state: OrderStatus
    states: tuple[OrderStatus, ...]
    transitions: tuple[Transition, ...]

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"initial_state {self.initial_state} not in states of "
                f"{self.order_type.value} workflow"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Transition {t.action} references unknown state in "
                    f"{self.order_type.value} workflow"
                )

    def targets_from(self, status: OrderStatus) -> tuple[OrderStatus, ...]:
        return tuple(t.to_state for t in self.transitions if t.from_state == status)

    def find(self, from_state: OrderStatus, to_state: OrderStatus) -> Transition | None:
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t
        return None

    @property
    def terminal_states(self) -> tuple[OrderStatus, ...]:
        return tuple(s for s in self.states if not self.targets_from(s))


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

STOCK_AVAILABLE = Guard(
    name="stock_available",
    description="Every line's product has at least the line quantity on hand",
)

REASON_GIVEN = Guard(
    name="reason_given",
    description="A non-empty void reason was supplied",
)


# -----------------------------------------------------------------------------
# Workflows
# -----------------------------------------------------------------------------

PURCHASE_WORKFLOW = Workflow(
    order_type=OrderType.PURCHASE,
    initial_state=OrderStatus.CREATED,
    states=(
        OrderStatus.CREATED,
        OrderStatus.IN_TRANSIT,
        OrderStatus.FULFILLED,
        OrderStatus.CANCELLED,
    ),
    transitions=(
        Transition(OrderStatus.CREATED, OrderStatus.IN_TRANSIT, action="ship"),
        Transition(OrderStatus.CREATED, OrderStatus.CANCELLED, action="cancel"),
        Transition(
            OrderStatus.IN_TRANSIT,
            OrderStatus.FULFILLED,
            action="receive_into_stock",
            posts_inventory=True,
        ),
    ),
)

SALE_WORKFLOW = Workflow(
    order_type=OrderType.SALE,
    initial_state=OrderStatus.CREATED,
    states=(
        OrderStatus.CREATED,
        OrderStatus.FULFILLED,
        OrderStatus.VOIDED,
    ),
    transitions=(
        Transition(
            OrderStatus.CREATED,
            OrderStatus.FULFILLED,
            action="fulfil",
            guard=STOCK_AVAILABLE,
            posts_inventory=True,
        ),
        Transition(
            OrderStatus.CREATED,
            OrderStatus.VOIDED,
            action="void",
            guard=REASON_GIVEN,
        ),
    ),
)

WORKFLOWS: dict[OrderType, Workflow] = {
    OrderType.PURCHASE: PURCHASE_WORKFLOW,
    OrderType.SALE: SALE_WORKFLOW,
}

# Targets whose transition requires a reason
REASON_REQUIRED_TARGETS = frozenset({OrderStatus.VOIDED})


def workflow_for(order_type: OrderType) -> Workflow:
    return WORKFLOWS[order_type]


def allowed_targets(
    order_type: OrderType, status: OrderStatus
) -> tuple[OrderStatus, ...]:
    """Statuses reachable in one step; empty for terminal (or foreign) states."""
    return workflow_for(order_type).targets_from(status)


def is_terminal(order_type: OrderType, status: OrderStatus) -> bool:
    return not allowed_targets(order_type, status)


def stock_direction(order_type: OrderType) -> int:
    """+1 when fulfilment adds stock (PURCHASE), -1 when it consumes (SALE)."""
    return 1 if order_type == OrderType.PURCHASE else -1


def check_transition(
    order_id: int,
    order_type: OrderType,
    current: OrderStatus,
    target: OrderStatus,
    reason: str | None = None,
) -> Transition:
    """
    Validate a requested status change against the workflow.

    Guards, in order:
        1. target == current -> StatusUnchangedError
        2. target not allowed -> InvalidTransitionError (lists allowed set)
        3. reason-required target without reason -> VoidReasonRequiredError

    Returns:
        The matching Transition.
    """
    if target == current:
        raise StatusUnchangedError(order_id, current.value)

    transition = workflow_for(order_type).find(current, target)
    if transition is None:
        raise InvalidTransitionError(
            order_id=order_id,
            order_type=order_type.value,
            from_status=current.value,
            to_status=target.value,
            allowed=tuple(s.value for s in allowed_targets(order_type, current)),
        )

    if target in REASON_REQUIRED_TARGETS and not (reason and reason.strip()):
        raise VoidReasonRequiredError(order_id)

    return transition
