"""
ORM immutability listeners (``inventory_kernel.db.immutability``).

Each test writes through a single session that is rolled back afterwards.
"""

from decimal import Decimal

import pytest

from inventory_kernel.domain.dtos import CreateOrderCommand, LineRequest
from inventory_kernel.domain.values import Actor, OrderStatus, OrderType, Role
from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.models.order import Order, OrderLine
from inventory_kernel.models.product import Product
from inventory_kernel.services.order_service import OrderService
from inventory_kernel.services.product_service import ProductService

OWNER = Actor(user_id=1, role=Role.OWNER)


@pytest.fixture
def seeded_order(session, deterministic_clock):
    product = ProductService(session, deterministic_clock).create_product(
        "Letva", "L-1", "2.00", "3.00", opening_quantity=10
    )
    info = OrderService(session, deterministic_clock).create_order(
        CreateOrderCommand(order_type=OrderType.SALE, lines=(LineRequest(product.id, 2),)),
        OWNER,
    )
    return session.get(Order, info.id)


class TestOrderLineImmutability:

    def test_line_price_cannot_change(self, session, seeded_order):
        line = seeded_order.lines[0]
        line.unit_price = Decimal("99.00")

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "OrderLine"

    def test_line_quantity_cannot_change(self, session, seeded_order):
        seeded_order.lines[0].quantity = 1

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_lines_of_closed_order_cannot_be_deleted(self, session, seeded_order, captured_logs):
        session.execute(
            Order.__table__.update()
            .where(Order.__table__.c.id == seeded_order.id)
            .values(status=OrderStatus.FULFILLED)
        )
        session.delete(seeded_order.lines[0])

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert "fulfilled" in str(exc_info.value)
        assert any(r["message"] == "immutability_violation_blocked" for r in captured_logs())

    def test_lines_of_created_order_can_be_deleted(self, session, seeded_order):
        session.delete(seeded_order)
        session.flush()

        assert session.query(OrderLine).filter_by(order_id=seeded_order.id).count() == 0


class TestOrderHeaderImmutability:

    @pytest.mark.parametrize(
        "field, value",
        [
            ("total_value", Decimal("1.00")),
            ("order_type", OrderType.PURCHASE),
            ("created_by_id", 77),
            ("supplier_id", 5),
        ],
    )
    def test_snapshot_fields_frozen(self, session, seeded_order, field, value):
        setattr(seeded_order, field, value)

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert field in str(exc_info.value)

    def test_lifecycle_fields_writable(self, session, seeded_order):
        seeded_order.fulfiller_id = 3
        seeded_order.note = "call before delivery"
        session.flush()


class TestProductImmutability:

    def test_acquisition_cost_frozen(self, session, seeded_order):
        product = session.query(Product).filter_by(code="L-1").one()
        product.acquisition_cost = Decimal("2.50")

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_sale_price_writable(self, session, seeded_order):
        product = session.query(Product).filter_by(code="L-1").one()
        product.sale_price = Decimal("3.50")
        session.flush()
