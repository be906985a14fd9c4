"""
InventoryLedger, PriceSnapshotResolver and order totals driven directly on one session.

Nothing here commits; the session fixture rolls back on teardown.
"""

from decimal import Decimal
from itertools import count

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from inventory_kernel.domain.dtos import CreateOrderCommand, LineRequest
from inventory_kernel.domain.values import MAX_QUANTITY, Actor, OrderType, Role
from inventory_kernel.exceptions import (
    InsufficientStockError,
    ProductNotFoundError,
    StockLimitExceededError,
    UnknownProductError,
)
from inventory_kernel.models.product import Product
from inventory_kernel.services.inventory_ledger import InventoryLedger
from inventory_kernel.services.order_service import OrderService
from inventory_kernel.services.price_snapshot import PriceSnapshotResolver
from inventory_kernel.services.product_service import ProductService


@pytest.fixture
def products(session, deterministic_clock):
    return ProductService(session, deterministic_clock)


@pytest.fixture
def ledger(session, deterministic_clock):
    return InventoryLedger(session, deterministic_clock)


class TestAdjust:

    def test_increment(self, products, ledger):
        p = products.create_product("Vijak", "V-1", "1.00", "2.00")

        assert ledger.adjust(p.id, 7) == 7
        assert ledger.on_hand(p.id) == 7

    def test_decrement_to_zero(self, products, ledger):
        p = products.create_product("Vijak", "V-1", "1.00", "2.00", opening_quantity=5)

        assert ledger.adjust(p.id, -5) == 0

    def test_refuses_negative(self, products, ledger, captured_logs):
        p = products.create_product("Vijak", "V-1", "1.00", "2.00", opening_quantity=3)

        with pytest.raises(InsufficientStockError) as exc_info:
            ledger.adjust(p.id, -4)

        assert exc_info.value.product_code == "V-1"
        assert exc_info.value.requested == 4
        assert exc_info.value.available == 3
        assert ledger.on_hand(p.id) == 3
        assert any(r["message"] == "insufficient_stock" for r in captured_logs())

    def test_fills_to_limit(self, products, ledger):
        p = products.create_product("Vijak", "V-1", "1.00", "2.00", opening_quantity=MAX_QUANTITY - 1)

        assert ledger.adjust(p.id, 1) == MAX_QUANTITY

    def test_refuses_overflow(self, products, ledger, captured_logs):
        p = products.create_product("Vijak", "V-1", "1.00", "2.00", opening_quantity=MAX_QUANTITY - 1)

        with pytest.raises(StockLimitExceededError) as exc_info:
            ledger.adjust(p.id, MAX_QUANTITY)

        assert exc_info.value.received == MAX_QUANTITY
        assert exc_info.value.product_code == "V-1"
        assert ledger.on_hand(p.id) == MAX_QUANTITY - 1
        assert any(r["message"] == "stock_limit_exceeded" for r in captured_logs())

    def test_unknown_product(self, ledger):
        with pytest.raises(ProductNotFoundError):
            ledger.adjust(123456, 1)
        with pytest.raises(ProductNotFoundError):
            ledger.on_hand(123456)

    @pytest.mark.parametrize("delta", [0, True, 1.0, "2"])
    def test_rejects_bad_delta(self, ledger, delta):
        with pytest.raises(ValueError):
            ledger.adjust(1, delta)

    def test_cached_product_sees_new_quantity(self, session, products, ledger):
        p = products.create_product("Vijak", "V-1", "1.00", "2.00", opening_quantity=2)
        cached = session.get(Product, p.id)

        ledger.adjust(p.id, 3)

        assert cached.on_hand_quantity == 5

    @given(deltas=st.lists(st.integers(min_value=-20, max_value=20).filter(bool), max_size=25))
    @settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_never_negative(self, session, ledger, deltas):
        """Applying any sequence of deltas never drives stock below zero."""
        product = session.query(Product).filter_by(code="FUZZ").one_or_none()
        if product is None:
            product = ProductService(session, ledger.clock).create_product(
                "Fuzz", "FUZZ", "1.00", "2.00"
            )
        expected = ledger.on_hand(product.id)
        for delta in deltas:
            if expected + delta < 0:
                with pytest.raises(InsufficientStockError):
                    ledger.adjust(product.id, delta)
            else:
                expected = ledger.adjust(product.id, delta)
            assert ledger.on_hand(product.id) == expected >= 0


class TestPriceSnapshot:

    def test_sale_uses_sale_price(self, session, products):
        p = products.create_product("Vijak", "V-1", "1.00", "2.50")

        snapshot = PriceSnapshotResolver(session).resolve(p.id, OrderType.SALE)

        assert snapshot.unit_price == Decimal("2.50")
        assert snapshot.product_code == "V-1"

    def test_purchase_is_zero(self, session, products):
        p = products.create_product("Vijak", "V-1", "1.00", "2.50")

        snapshot = PriceSnapshotResolver(session).resolve(p.id, OrderType.PURCHASE)

        assert snapshot.unit_price == Decimal("0.00")

    def test_resolve_lines_keeps_order(self, session, products):
        a = products.create_product("A", "A-1", "1.00", "2.00")
        b = products.create_product("B", "B-1", "1.00", "3.00")

        snapshots = PriceSnapshotResolver(session).resolve_lines(
            [LineRequest(b.id, 1), LineRequest(a.id, 1), LineRequest(b.id, 2)],
            OrderType.SALE,
        )

        assert [s.unit_price for s in snapshots] == [
            Decimal("3.00"),
            Decimal("2.00"),
            Decimal("3.00"),
        ]

    def test_unknown_product_names_line(self, session, products):
        a = products.create_product("A", "A-1", "1.00", "2.00")

        with pytest.raises(UnknownProductError) as exc_info:
            PriceSnapshotResolver(session).resolve_lines(
                [LineRequest(a.id, 1), LineRequest(55555, 1)], OrderType.SALE
            )

        assert exc_info.value.line_index == 1
        assert exc_info.value.product_id == 55555

    def test_resolve_unknown(self, session):
        with pytest.raises(UnknownProductError):
            PriceSnapshotResolver(session).resolve(55555, OrderType.SALE)


class TestOrderTotals:

    @given(
        lines=st.lists(
            st.tuples(
                st.decimals(min_value="2.00", max_value="9999.99", places=2),
                st.integers(min_value=1, max_value=500),
            ),
            min_size=1,
            max_size=8,
        )
    )
    @settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_total_is_sum_of_line_totals(self, session, products, lines):
        seq = count(session.query(Product).count())
        requests = []
        for price, quantity in lines:
            p = products.create_product(
                "Fuzz", f"T-{next(seq)}", "1.00", price
            )
            requests.append(LineRequest(p.id, quantity))

        order = OrderService(session, products.clock).create_order(
            CreateOrderCommand(order_type=OrderType.SALE, lines=tuple(requests)),
            Actor(user_id=1, role=Role.OWNER),
        )

        expected = sum(
            (price * quantity for price, quantity in lines), Decimal("0")
        )
        assert order.total_value == expected
        assert order.total_value == sum(line.line_total for line in order.lines)
