"""
Product and supplier master data through the OrderCoordinator.

Invariants tested:
- sale_price > acquisition_cost on create and on every price update.
- Product codes are unique.
- Stock is never written through product maintenance.
- Prices and counts must fit their columns.
- Low-stock listing is inclusive of the threshold and scarcest first.
"""

from decimal import Decimal

import pytest

from inventory_kernel.exceptions import (
    AuthorizationError,
    DuplicateProductCodeError,
    MalformedRequestError,
    PriceInvariantError,
    ProductNotFoundError,
    SupplierNotFoundError,
)


class TestCreateProduct:

    def test_created_with_opening_stock(self, coordinator, owner):
        product = coordinator.create_product(
            owner,
            name="  Daska 2m ",
            code="D-2",
            acquisition_cost="4.10",
            sale_price=Decimal("6.5"),
            opening_quantity=12,
        )

        assert product.name == "Daska 2m"
        assert product.acquisition_cost == Decimal("4.10")
        assert product.sale_price == Decimal("6.50")
        assert product.on_hand_quantity == 12
        assert product.unit_of_measure == "kom"
        assert product.margin == Decimal("2.40")

    @pytest.mark.parametrize("sale_price", ["8.00", "7.99"])
    def test_price_must_exceed_cost(self, coordinator, owner, sale_price):
        with pytest.raises(PriceInvariantError) as exc_info:
            coordinator.create_product(
                owner, name="X", code="X-1", acquisition_cost="8.00", sale_price=sale_price
            )
        assert exc_info.value.status_class == 400
        assert coordinator.list_products(owner) == []

    def test_duplicate_code(self, coordinator, owner, make_product):
        make_product(code="DUP")

        with pytest.raises(DuplicateProductCodeError) as exc_info:
            make_product(code="DUP")

        assert exc_info.value.status_class == 409

    @pytest.mark.parametrize(
        "fields",
        [
            {"acquisition_cost": 1.5},
            {"acquisition_cost": "abc"},
            {"acquisition_cost": "-1.00"},
            {"name": "   "},
            {"code": ""},
            {"opening_quantity": -1},
            {"reorder_threshold": "3"},
            {"opening_quantity": 2**31},
            {"reorder_threshold": 2**31},
            {"sale_price": "1000000000000.00"},
        ],
    )
    def test_malformed_fields(self, coordinator, owner, fields):
        values = {
            "name": "X",
            "code": "X-1",
            "acquisition_cost": "1.00",
            "sale_price": "2.00",
        }
        values.update(fields)
        with pytest.raises(MalformedRequestError):
            coordinator.create_product(owner, **values)

    def test_worker_cannot_create(self, coordinator, worker):
        with pytest.raises(AuthorizationError):
            coordinator.create_product(
                worker, name="X", code="X-1", acquisition_cost="1.00", sale_price="2.00"
            )


class TestUpdateProduct:

    def test_price_update_keeps_stock(self, coordinator, owner, make_product):
        p = make_product(on_hand=9, sale_price="12.50", acquisition_cost="8.00")

        updated = coordinator.update_product(p.id, owner, sale_price="14.00", reorder_threshold=3)

        assert updated.sale_price == Decimal("14.00")
        assert updated.reorder_threshold == 3
        assert updated.on_hand_quantity == 9
        assert updated.acquisition_cost == Decimal("8.00")

    def test_price_update_checks_invariant(self, coordinator, owner, make_product):
        p = make_product(sale_price="12.50", acquisition_cost="8.00")

        with pytest.raises(PriceInvariantError):
            coordinator.update_product(p.id, owner, sale_price="7.00")

        assert coordinator.get_product(p.id, owner).sale_price == Decimal("12.50")

    def test_quantity_is_not_an_update_field(self, coordinator, owner, make_product):
        p = make_product(on_hand=9)

        with pytest.raises(TypeError):
            coordinator.update_product(p.id, owner, on_hand_quantity=100)

    def test_missing_product(self, coordinator, owner):
        with pytest.raises(ProductNotFoundError):
            coordinator.update_product(4242, owner, name="Y")


class TestLowStock:

    def test_threshold_inclusive_and_ordered(self, coordinator, worker, make_product):
        make_product(code="A", name="Alfa", on_hand=5)
        make_product(code="B", name="Beta", on_hand=0)
        make_product(code="C", name="Gama", on_hand=6)
        make_product(code="D", name="Delta", on_hand=0)

        low = coordinator.list_low_stock(worker, threshold=5)

        assert [p.code for p in low] == ["B", "D", "A"]

    def test_default_threshold(self, coordinator, worker, make_product):
        make_product(code="A", on_hand=5)
        make_product(code="B", on_hand=6)

        assert [p.code for p in coordinator.list_low_stock(worker)] == ["A"]

    def test_needs_reorder_flag(self, make_product):
        assert make_product(on_hand=2, reorder_threshold=2).needs_reorder
        assert not make_product(on_hand=3, reorder_threshold=2).needs_reorder

    def test_courier_cannot_view_stock(self, coordinator, courier):
        with pytest.raises(AuthorizationError):
            coordinator.list_low_stock(courier)


class TestSuppliers:

    def test_create_and_get(self, coordinator, owner):
        created = coordinator.create_supplier(
            owner, company_name=" Drvo Promet ", phone="011 123", email="info@drvo.rs"
        )

        fetched = coordinator.get_supplier(created.id, owner)
        assert fetched.company_name == "Drvo Promet"
        assert fetched.email == "info@drvo.rs"
        assert fetched.address is None

    def test_blank_name(self, coordinator, owner):
        with pytest.raises(MalformedRequestError):
            coordinator.create_supplier(owner, company_name="  ")

    def test_missing(self, coordinator, owner):
        with pytest.raises(SupplierNotFoundError):
            coordinator.get_supplier(31337, owner)
