"""
Status changes through the OrderCoordinator and StatusTransitionEngine.

Invariants tested:
- Stock moves exactly once per order, on the transition into FULFILLED.
- A fulfilment that would drive any line's product negative is rejected
  and leaves every product and the order unchanged.
- A repeated fulfilment is STATUS_UNCHANGED and has no second effect.
- A receipt that would overflow stock is rejected the same way.
- Guards run in order: existence, unchanged, allowed set, void reason,
  capability and assignment.
- Void and cancel stamp their metadata; completion stamps completed_at.
"""

import pytest

from inventory_kernel.domain.dtos import ChangeStatusCommand, CreateOrderCommand, LineRequest
from inventory_kernel.domain.values import MAX_QUANTITY, OrderStatus, OrderType
from inventory_kernel.exceptions import (
    AuthorizationError,
    InsufficientStockError,
    InvalidTransitionError,
    OrderNotFoundError,
    StatusUnchangedError,
    StockLimitExceededError,
    VoidReasonRequiredError,
)

FULFIL = ChangeStatusCommand(status=OrderStatus.FULFILLED)
SHIP = ChangeStatusCommand(status=OrderStatus.IN_TRANSIT)


@pytest.fixture
def create_sale(coordinator, worker):
    def _create(*lines, fulfiller_id=None):
        return coordinator.create_order(
            CreateOrderCommand(
                order_type=OrderType.SALE,
                lines=tuple(LineRequest(pid, qty) for pid, qty in lines),
                fulfiller_id=fulfiller_id,
            ),
            worker,
        )

    return _create


@pytest.fixture
def create_purchase(coordinator, owner, supplier):
    def _create(*lines, fulfiller_id=None):
        return coordinator.create_order(
            CreateOrderCommand(
                order_type=OrderType.PURCHASE,
                lines=tuple(LineRequest(pid, qty) for pid, qty in lines),
                supplier_id=supplier.id,
                fulfiller_id=fulfiller_id,
            ),
            owner,
        )

    return _create


# =========================================================================
# SALE fulfilment
# =========================================================================


class TestSaleFulfilment:

    def test_insufficient_stock_rejected(self, coordinator, worker, make_product, create_sale, stock_of):
        """on_hand 3, sale of 5: rejected, nothing changes."""
        p = make_product(on_hand=3)
        order = create_sale((p.id, 5))

        with pytest.raises(InsufficientStockError) as exc_info:
            coordinator.change_status(order.id, FULFIL, worker)

        err = exc_info.value
        assert err.code == "INSUFFICIENT_STOCK"
        assert err.status_class == 400
        assert err.requested == 5
        assert err.available == 3
        assert err.product_id == p.id
        assert stock_of(p.id) == 3
        assert coordinator.get_order(order.id, worker).status == OrderStatus.CREATED

    def test_fulfilment_consumes_stock(self, coordinator, worker, make_product, create_sale, stock_of, deterministic_clock):
        """on_hand 10, sale of 4: FULFILLED and 6 left."""
        p = make_product(on_hand=10)
        order = create_sale((p.id, 4))
        deterministic_clock.advance(60)

        result = coordinator.change_status(order.id, FULFIL, worker)

        assert result.status == OrderStatus.FULFILLED
        assert result.completed_at == deterministic_clock.now()
        assert result.is_completed
        assert stock_of(p.id) == 6

    def test_repeat_fulfilment_has_no_second_effect(self, coordinator, worker, make_product, create_sale, stock_of):
        p = make_product(on_hand=10)
        order = create_sale((p.id, 4))
        coordinator.change_status(order.id, FULFIL, worker)

        with pytest.raises(StatusUnchangedError):
            coordinator.change_status(order.id, FULFIL, worker)

        assert stock_of(p.id) == 6

    def test_exact_stock_drains_to_zero(self, coordinator, worker, make_product, create_sale, stock_of):
        p = make_product(on_hand=4)
        order = create_sale((p.id, 4))

        coordinator.change_status(order.id, FULFIL, worker)

        assert stock_of(p.id) == 0

    def test_one_short_line_aborts_all(self, coordinator, worker, make_product, create_sale, stock_of):
        """The first line would succeed on its own; the second fails, both roll back."""
        a = make_product(on_hand=10)
        b = make_product(on_hand=1)
        order = create_sale((a.id, 3), (b.id, 2))

        with pytest.raises(InsufficientStockError) as exc_info:
            coordinator.change_status(order.id, FULFIL, worker)

        assert exc_info.value.product_id == b.id
        assert stock_of(a.id) == 10
        assert stock_of(b.id) == 1
        assert coordinator.get_order(order.id, worker).status == OrderStatus.CREATED

    def test_duplicate_lines_sum_against_stock(self, coordinator, worker, make_product, create_sale, stock_of):
        """Two lines of 3 for a product with 5 on hand: the second line fails."""
        p = make_product(on_hand=5)
        order = create_sale((p.id, 3), (p.id, 3))

        with pytest.raises(InsufficientStockError) as exc_info:
            coordinator.change_status(order.id, FULFIL, worker)

        assert exc_info.value.available == 2
        assert stock_of(p.id) == 5

    def test_rejected_fulfilment_can_be_retried(self, coordinator, owner, worker, make_product, create_sale, create_purchase, stock_of):
        p = make_product(on_hand=1)
        sale_order = create_sale((p.id, 3))
        with pytest.raises(InsufficientStockError):
            coordinator.change_status(sale_order.id, FULFIL, worker)

        restock = create_purchase((p.id, 5))
        coordinator.change_status(restock.id, SHIP, owner)
        coordinator.change_status(restock.id, FULFIL, owner)

        coordinator.change_status(sale_order.id, FULFIL, worker)
        assert stock_of(p.id) == 3


# =========================================================================
# PURCHASE fulfilment
# =========================================================================


class TestPurchaseFulfilment:

    def test_receipt_adds_stock_once(self, coordinator, owner, make_product, create_purchase, stock_of):
        p = make_product(on_hand=2)
        order = create_purchase((p.id, 10))

        coordinator.change_status(order.id, SHIP, owner)
        assert stock_of(p.id) == 2

        result = coordinator.change_status(order.id, FULFIL, owner)
        assert result.status == OrderStatus.FULFILLED
        assert stock_of(p.id) == 12

        with pytest.raises(StatusUnchangedError):
            coordinator.change_status(order.id, FULFIL, owner)
        assert stock_of(p.id) == 12

    def test_receipt_past_stock_limit_rejected(self, coordinator, owner, make_product, create_purchase, stock_of):
        roomy = make_product(on_hand=0)
        full = make_product(on_hand=MAX_QUANTITY - 5)
        order = create_purchase((roomy.id, 10), (full.id, 10))
        coordinator.change_status(order.id, SHIP, owner)

        with pytest.raises(StockLimitExceededError) as exc_info:
            coordinator.change_status(order.id, FULFIL, owner)

        assert exc_info.value.received == 10
        assert exc_info.value.on_hand == MAX_QUANTITY - 5
        assert exc_info.value.status_class == 400
        assert stock_of(roomy.id) == 0
        assert stock_of(full.id) == MAX_QUANTITY - 5
        assert coordinator.get_order(order.id, owner).status == OrderStatus.IN_TRANSIT

    def test_must_ship_before_receipt(self, coordinator, owner, make_product, create_purchase, stock_of):
        p = make_product(on_hand=0)
        order = create_purchase((p.id, 10))

        with pytest.raises(InvalidTransitionError) as exc_info:
            coordinator.change_status(order.id, FULFIL, owner)

        assert set(exc_info.value.allowed) == {"in_transit", "cancelled"}
        assert stock_of(p.id) == 0

    def test_cancel_stamps_metadata(self, coordinator, owner, make_product, create_purchase, deterministic_clock):
        p = make_product()
        order = create_purchase((p.id, 1))

        result = coordinator.change_status(
            order.id,
            ChangeStatusCommand(status=OrderStatus.CANCELLED, reason="  supplier closed  "),
            owner,
        )

        assert result.status == OrderStatus.CANCELLED
        assert result.is_voided is False
        assert result.void_reason == "supplier closed"
        assert result.voided_by_id == owner.user_id
        assert result.voided_at == deterministic_clock.now()
        assert result.completed_at is None

    def test_cancel_without_reason(self, coordinator, owner, make_product, create_purchase):
        p = make_product()
        order = create_purchase((p.id, 1))

        result = coordinator.change_status(
            order.id, ChangeStatusCommand(status=OrderStatus.CANCELLED), owner
        )

        assert result.void_reason is None

    def test_cancelled_purchase_is_terminal(self, coordinator, owner, make_product, create_purchase):
        p = make_product()
        order = create_purchase((p.id, 1))
        coordinator.change_status(order.id, ChangeStatusCommand(status=OrderStatus.CANCELLED), owner)

        with pytest.raises(InvalidTransitionError) as exc_info:
            coordinator.change_status(order.id, SHIP, owner)
        assert exc_info.value.allowed == ()


# =========================================================================
# Void
# =========================================================================


class TestVoid:

    def test_void_requires_reason(self, coordinator, worker, make_product, create_sale):
        p = make_product(on_hand=5)
        order = create_sale((p.id, 1))

        with pytest.raises(VoidReasonRequiredError):
            coordinator.change_status(
                order.id, ChangeStatusCommand(status=OrderStatus.VOIDED, reason="  "), worker
            )
        assert coordinator.get_order(order.id, worker).is_voided is False

    def test_void_stamps_metadata(self, coordinator, worker, make_product, create_sale, stock_of):
        p = make_product(on_hand=5)
        order = create_sale((p.id, 1))

        result = coordinator.change_status(
            order.id, ChangeStatusCommand(status=OrderStatus.VOIDED, reason="duplicate"), worker
        )

        assert result.status == OrderStatus.VOIDED
        assert result.is_voided is True
        assert result.void_reason == "duplicate"
        assert result.voided_by_id == worker.user_id
        assert result.voided_at is not None
        assert stock_of(p.id) == 5

    def test_voided_sale_cannot_be_fulfilled(self, coordinator, worker, make_product, create_sale, stock_of):
        p = make_product(on_hand=5)
        order = create_sale((p.id, 1))
        coordinator.change_status(
            order.id, ChangeStatusCommand(status=OrderStatus.VOIDED, reason="x"), worker
        )

        with pytest.raises(InvalidTransitionError):
            coordinator.change_status(order.id, FULFIL, worker)
        assert stock_of(p.id) == 5


# =========================================================================
# Guards and authorization
# =========================================================================


class TestGuards:

    def test_missing_order(self, coordinator, owner):
        with pytest.raises(OrderNotFoundError) as exc_info:
            coordinator.change_status(987654, FULFIL, owner)
        assert exc_info.value.status_class == 404

    def test_unchanged_reported_before_authorization(self, coordinator, worker, make_product, create_sale):
        """CREATED -> CREATED is STATUS_UNCHANGED, not INVALID_TRANSITION."""
        p = make_product()
        order = create_sale((p.id, 1))

        with pytest.raises(StatusUnchangedError):
            coordinator.change_status(
                order.id, ChangeStatusCommand(status=OrderStatus.CREATED), worker
            )

    def test_worker_cannot_fulfil_purchase(self, coordinator, owner, worker, make_product, create_purchase, stock_of):
        p = make_product(on_hand=0)
        order = create_purchase((p.id, 7))
        coordinator.change_status(order.id, SHIP, owner)

        with pytest.raises(AuthorizationError) as exc_info:
            coordinator.change_status(order.id, FULFIL, worker)

        assert exc_info.value.status_class == 403
        assert stock_of(p.id) == 0
        assert coordinator.get_order(order.id, owner).status == OrderStatus.IN_TRANSIT

    def test_courier_rejected_before_transaction(self, coordinator, courier, make_product, create_sale, captured_logs):
        """Couriers can never fulfil; nothing is read or locked."""
        p = make_product(on_hand=5)
        order = create_sale((p.id, 1), fulfiller_id=courier.user_id)
        seen = len(captured_logs())

        with pytest.raises(AuthorizationError):
            coordinator.change_status(order.id, FULFIL, courier)

        new_records = captured_logs()[seen:]
        assert not any(r["message"] == "transaction_started" for r in new_records)

    def test_courier_ships_assigned_purchase(self, coordinator, courier, make_product, create_purchase):
        p = make_product()
        order = create_purchase((p.id, 1), fulfiller_id=courier.user_id)

        result = coordinator.change_status(order.id, SHIP, courier)

        assert result.status == OrderStatus.IN_TRANSIT

    def test_courier_cannot_touch_foreign_order(self, coordinator, owner, courier, other_courier, make_product, create_purchase):
        p = make_product()
        order = create_purchase((p.id, 1), fulfiller_id=other_courier.user_id)

        with pytest.raises(AuthorizationError) as exc_info:
            coordinator.change_status(order.id, SHIP, courier)

        assert "not assigned" in str(exc_info.value)
        assert coordinator.get_order(order.id, owner).status == OrderStatus.CREATED


class TestTransitionLogging:

    def test_status_change_logged(self, coordinator, worker, make_product, create_sale, captured_logs):
        p = make_product(on_hand=3)
        order = create_sale((p.id, 2))

        coordinator.change_status(order.id, FULFIL, worker)

        logs = captured_logs()
        changed = [r for r in logs if r["message"] == "order_status_changed"]
        assert len(changed) == 1
        assert changed[0]["from_status"] == "created"
        assert changed[0]["to_status"] == "fulfilled"
        assert changed[0]["posts_inventory"] is True
        assert changed[0]["order_id"] == str(order.id)
        adjusted = [r for r in logs if r["message"] == "stock_adjusted"]
        assert adjusted[-1]["delta"] == -2
        assert adjusted[-1]["on_hand_quantity"] == 1

    def test_rejection_logged(self, coordinator, worker, make_product, create_sale, captured_logs):
        p = make_product(on_hand=1)
        order = create_sale((p.id, 2))

        with pytest.raises(InsufficientStockError):
            coordinator.change_status(order.id, FULFIL, worker)

        rejected = [r for r in captured_logs() if r["message"] == "operation_rejected"]
        assert rejected[-1]["error_code"] == "INSUFFICIENT_STOCK"
        assert rejected[-1]["operation"] == "change_status"
