"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the request boundary, scripts, tests) must be able to react to a
failure without parsing message strings.  Every error therefore has:

  1. A TYPED exception class (catch by type, not message)
  2. A ``code`` class attribute (machine-readable, API-safe)
  3. A ``status_class`` class attribute (the HTTP-like status the boundary
     answers with)
  4. Structured DATA as instance attributes (not just a message string)

Example:
    try:
        coordinator.change_status(order_id, command, actor)
    except InsufficientStockError as e:
        notify(f"Only {e.available} of {e.product_code} left")
    except StateConflictError as e:
        return {"error": str(e), "code": e.code}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base, 500)
    |
    +-- ValidationError (400) -- rejected before any transaction opens
    |   +-- MalformedRequestError
    |   +-- InvalidOrderTypeError
    |   +-- UnknownStatusError
    |   +-- EmptyOrderError
    |   +-- InvalidQuantityError
    |   +-- SupplierRequiredError
    |   +-- SupplierForbiddenError
    |   +-- UnknownProductError
    |   +-- UnknownSupplierError
    |   +-- PriceInvariantError
    |   +-- AmountOutOfRangeError
    |
    +-- AuthorizationError (403) -- role / ownership violations
    |
    +-- StateConflictError (400) -- rejected before mutating writes
    |   +-- StatusUnchangedError
    |   +-- InvalidTransitionError
    |   +-- VoidReasonRequiredError
    |   +-- OrderNotDeletableError
    |   +-- OrderClosedError
    |   +-- ConcurrentTransitionError
    |
    +-- ResourceExhaustionError (400) -- detected mid-transaction
    |   +-- InsufficientStockError
    |   +-- StockLimitExceededError
    |
    +-- NotFoundError (404)
    |   +-- OrderNotFoundError
    |   +-- ProductNotFoundError
    |   +-- SupplierNotFoundError
    |
    +-- ConflictError (409)
    |   +-- DuplicateProductCodeError
    |
    +-- ImmutabilityViolationError (500)

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                      | When Raised
----------------|---------------------------|-------------------------------------
Validation      | MALFORMED_REQUEST         | Payload is not the expected shape
                | INVALID_ORDER_TYPE        | Type not PURCHASE / SALE
                | UNKNOWN_STATUS            | Status value not recognised
                | EMPTY_ORDER               | Order has no lines
                | INVALID_QUANTITY          | Line quantity not in 1..2**31-1
                | SUPPLIER_REQUIRED         | PURCHASE order without supplier
                | SUPPLIER_FORBIDDEN        | SALE order with supplier
                | UNKNOWN_PRODUCT           | Line references missing product
                | UNKNOWN_SUPPLIER          | Supplier id does not exist
                | PRICE_INVARIANT           | Sale price <= acquisition cost
                | AMOUNT_OUT_OF_RANGE       | Line or order total too large
----------------|---------------------------|-------------------------------------
Authorization   | FORBIDDEN                 | Role or ownership check failed
----------------|---------------------------|-------------------------------------
State conflict  | STATUS_UNCHANGED          | Target equals current status
                | INVALID_TRANSITION        | Target not allowed from current
                | VOID_REASON_REQUIRED      | VOIDED without a reason
                | ORDER_NOT_DELETABLE       | Delete of a non-CREATED order
                | ORDER_CLOSED              | Edit of a terminal order
                | CONCURRENT_TRANSITION     | Status changed under us
----------------|---------------------------|-------------------------------------
Exhaustion      | INSUFFICIENT_STOCK        | Sale exceeds on-hand quantity
                | STOCK_LIMIT_EXCEEDED      | Receipt overflows stock column
----------------|---------------------------|-------------------------------------
Not found       | ORDER_NOT_FOUND           | Order id doesn't exist
                | PRODUCT_NOT_FOUND         | Product id doesn't exist
                | SUPPLIER_NOT_FOUND        | Supplier id doesn't exist
----------------|---------------------------|-------------------------------------
Conflict        | DUPLICATE_PRODUCT_CODE    | Product code already used
----------------|---------------------------|-------------------------------------
Immutability    | IMMUTABILITY_VIOLATION    | Modifying an immutable record

===============================================================================
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have ``code`` and ``status_class`` class attributes.
    """

    code: str = "INVENTORY_KERNEL_ERROR"
    status_class: int = 500


# Validation


class ValidationError(InventoryKernelError):
    """Malformed input, shape or range violations."""

    code: str = "VALIDATION_ERROR"
    status_class: int = 400


class MalformedRequestError(ValidationError):
    """Request payload does not have the expected shape."""

    code: str = "MALFORMED_REQUEST"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid field '{field}': {reason}")


class InvalidOrderTypeError(ValidationError):
    """Order type is missing or not one of the supported types."""

    code: str = "INVALID_ORDER_TYPE"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid order type: {value!r}")


class UnknownStatusError(ValidationError):
    """Requested status is not a recognised order status."""

    code: str = "UNKNOWN_STATUS"

    def __init__(self, value: object, valid: tuple[str, ...]):
        self.value = value
        self.valid = valid
        super().__init__(
            f"Invalid status {value!r}. Allowed: {', '.join(valid)}"
        )


class EmptyOrderError(ValidationError):
    """Order creation without any lines."""

    code: str = "EMPTY_ORDER"

    def __init__(self):
        super().__init__("An order must have at least one line")


class InvalidQuantityError(ValidationError):
    """Line quantity is not an integer from 1 to MAX_QUANTITY."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, line_index: int, quantity: object):
        self.line_index = line_index
        self.quantity = quantity
        super().__init__(
            f"Line {line_index}: quantity must be a positive integer "
            f"no larger than 2**31 - 1, got {quantity!r}"
        )


class SupplierRequiredError(ValidationError):
    """PURCHASE orders must name a supplier."""

    code: str = "SUPPLIER_REQUIRED"

    def __init__(self):
        super().__init__("Purchase orders require a supplier")


class SupplierForbiddenError(ValidationError):
    """SALE orders must not name a supplier."""

    code: str = "SUPPLIER_FORBIDDEN"

    def __init__(self, supplier_id: int):
        self.supplier_id = supplier_id
        super().__init__("Sale orders must not have a supplier")


class UnknownProductError(ValidationError):
    """An order line references a product that does not exist."""

    code: str = "UNKNOWN_PRODUCT"

    def __init__(self, product_id: int, line_index: int | None = None):
        self.product_id = product_id
        self.line_index = line_index
        where = f"Line {line_index}: " if line_index is not None else ""
        super().__init__(f"{where}unknown product {product_id}")


class UnknownSupplierError(ValidationError):
    """An order references a supplier that does not exist."""

    code: str = "UNKNOWN_SUPPLIER"

    def __init__(self, supplier_id: int):
        self.supplier_id = supplier_id
        super().__init__(f"Unknown supplier {supplier_id}")


class PriceInvariantError(ValidationError):
    """Sale price must be strictly greater than acquisition cost."""

    code: str = "PRICE_INVARIANT"

    def __init__(self, sale_price, acquisition_cost):
        self.sale_price = sale_price
        self.acquisition_cost = acquisition_cost
        super().__init__(
            f"Sale price {sale_price} must be greater than acquisition cost "
            f"{acquisition_cost}"
        )


class AmountOutOfRangeError(ValidationError):
    """A line total or order total does not fit a money column."""

    code: str = "AMOUNT_OUT_OF_RANGE"

    def __init__(self, amount, line_index: int | None = None):
        self.amount = amount
        self.line_index = line_index
        where = "Order total" if line_index is None else f"Line {line_index} total"
        super().__init__(f"{where} {amount} exceeds the largest storable amount")


# Authorization


class AuthorizationError(InventoryKernelError):
    """Actor's role or ownership does not permit the operation."""

    code: str = "FORBIDDEN"
    status_class: int = 403

    def __init__(self, role: str, operation: str, reason: str | None = None):
        self.role = role
        self.operation = operation
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Role {role} may not perform {operation}{detail}")


# State conflicts


class StateConflictError(InventoryKernelError):
    """Request conflicts with the order's current state."""

    code: str = "STATE_CONFLICT"
    status_class: int = 400


class StatusUnchangedError(StateConflictError):
    """
    Target status equals the current status.

    Distinct from InvalidTransitionError: this is what makes a retried
    fulfilment a safe rejection instead of a second stock effect.
    """

    code: str = "STATUS_UNCHANGED"

    def __init__(self, order_id: int, status: str):
        self.order_id = order_id
        self.status = status
        super().__init__(f"Order {order_id} is already in status {status}")


class InvalidTransitionError(StateConflictError):
    """Target status is not reachable from the current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        order_id: int,
        order_type: str,
        from_status: str,
        to_status: str,
        allowed: tuple[str, ...],
    ):
        self.order_id = order_id
        self.order_type = order_type
        self.from_status = from_status
        self.to_status = to_status
        self.allowed = allowed
        allowed_text = ", ".join(allowed) if allowed else "none"
        super().__init__(
            f"Cannot move {order_type} order {order_id} from {from_status} "
            f"to {to_status}. Allowed: {allowed_text}"
        )


class VoidReasonRequiredError(StateConflictError):
    """Voiding an order requires a non-empty reason."""

    code: str = "VOID_REASON_REQUIRED"

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"A reason is required to void order {order_id}")


class OrderNotDeletableError(StateConflictError):
    """Only orders still in CREATED status can be deleted."""

    code: str = "ORDER_NOT_DELETABLE"

    def __init__(self, order_id: int, status: str):
        self.order_id = order_id
        self.status = status
        super().__init__(
            f"Order {order_id} cannot be deleted in status {status}"
        )


class OrderClosedError(StateConflictError):
    """Order is in a terminal status and can no longer be edited."""

    code: str = "ORDER_CLOSED"

    def __init__(self, order_id: int, status: str):
        self.order_id = order_id
        self.status = status
        super().__init__(f"Order {order_id} is closed (status {status})")


class ConcurrentTransitionError(StateConflictError):
    """The order's status changed between the locked read and the write."""

    code: str = "CONCURRENT_TRANSITION"

    def __init__(self, order_id: int, expected_status: str):
        self.order_id = order_id
        self.expected_status = expected_status
        super().__init__(
            f"Order {order_id} is no longer in status {expected_status}"
        )


# Resource exhaustion


class ResourceExhaustionError(InventoryKernelError):
    """A resource the operation needs is not available."""

    code: str = "RESOURCE_EXHAUSTION"
    status_class: int = 400


class InsufficientStockError(ResourceExhaustionError):
    """On-hand quantity is lower than the quantity being consumed."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        product_id: int,
        requested: int,
        available: int,
        product_code: str | None = None,
    ):
        self.product_id = product_id
        self.product_code = product_code
        self.requested = requested
        self.available = available
        label = product_code or str(product_id)
        super().__init__(
            f"Insufficient stock for product {label}: "
            f"requested {requested}, available {available}"
        )


class StockLimitExceededError(ResourceExhaustionError):
    """Receiving the quantity would push on-hand stock past MAX_QUANTITY."""

    code: str = "STOCK_LIMIT_EXCEEDED"

    def __init__(
        self,
        product_id: int,
        received: int,
        on_hand: int,
        product_code: str | None = None,
    ):
        self.product_id = product_id
        self.product_code = product_code
        self.received = received
        self.on_hand = on_hand
        label = product_code or str(product_id)
        super().__init__(
            f"Receiving {received} of product {label} on top of {on_hand} "
            "exceeds the largest storable quantity"
        )


# Not found


class NotFoundError(InventoryKernelError):
    """Referenced entity does not exist."""

    code: str = "NOT_FOUND"
    status_class: int = 404


class OrderNotFoundError(NotFoundError):
    """Order with given ID was not found."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class SupplierNotFoundError(NotFoundError):
    """Supplier with given ID was not found."""

    code: str = "SUPPLIER_NOT_FOUND"

    def __init__(self, supplier_id: int):
        self.supplier_id = supplier_id
        super().__init__(f"Supplier not found: {supplier_id}")


# Conflicts


class ConflictError(InventoryKernelError):
    """Write conflicts with existing data."""

    code: str = "CONFLICT"
    status_class: int = 409


class DuplicateProductCodeError(ConflictError):
    """Product code is already in use."""

    code: str = "DUPLICATE_PRODUCT_CODE"

    def __init__(self, product_code: str):
        self.product_code = product_code
        super().__init__(f"Product code already exists: {product_code}")


# Immutability


class ImmutabilityViolationError(InventoryKernelError):
    """Attempted to modify or delete an immutable record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
