"""
Service layer for Product master data.

Manages the product catalogue: names, codes, prices and reorder
thresholds.  Stock levels are read here but written only by the
InventoryLedger; ``update_product`` deliberately has no quantity argument.

Returns ProductInfo DTOs instead of ORM entities.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from inventory_kernel.db.types import fits_money, to_money
from inventory_kernel.domain.values import MAX_QUANTITY
from inventory_kernel.exceptions import (
    DuplicateProductCodeError,
    MalformedRequestError,
    PriceInvariantError,
    ProductNotFoundError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.product import Product
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.inventory_ledger import InventoryLedger

logger = get_logger("services.product")

DEFAULT_UNIT_OF_MEASURE = "kom"


@dataclass(frozen=True)
class ProductInfo:
    """Immutable DTO for product data."""

    id: int
    name: str
    code: str
    acquisition_cost: Decimal
    sale_price: Decimal
    on_hand_quantity: int
    reorder_threshold: int
    unit_of_measure: str

    @property
    def margin(self) -> Decimal:
        return self.sale_price - self.acquisition_cost

    @property
    def needs_reorder(self) -> bool:
        return self.on_hand_quantity <= self.reorder_threshold


def _money_field(field: str, value: object) -> Decimal:
    try:
        amount = to_money(value)
    except ValueError as exc:
        raise MalformedRequestError(field, str(exc)) from exc
    if amount < 0:
        raise MalformedRequestError(field, "must not be negative")
    if not fits_money(amount):
        raise MalformedRequestError(field, "exceeds the largest storable amount")
    return amount


def _count_field(field: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_QUANTITY:
        raise MalformedRequestError(field, f"must be an integer from 0 to {MAX_QUANTITY}")
    return value


def _check_price_invariant(sale_price: Decimal, acquisition_cost: Decimal) -> None:
    if sale_price <= acquisition_cost:
        raise PriceInvariantError(sale_price, acquisition_cost)


class ProductService(BaseService[Product]):
    """
    Service for managing products.

    Enforces sale_price > acquisition_cost on create and update, unique
    product codes, and a fixed acquisition cost.
    """

    def _to_dto(self, product: Product) -> ProductInfo:
        """Convert ORM Product to ProductInfo DTO."""
        return ProductInfo(
            id=product.id,
            name=product.name,
            code=product.code,
            acquisition_cost=product.acquisition_cost,
            sale_price=product.sale_price,
            on_hand_quantity=product.on_hand_quantity,
            reorder_threshold=product.reorder_threshold,
            unit_of_measure=product.unit_of_measure,
        )

    def _get_by_id(self, product_id: int) -> Product:
        """Get product by ID, raising if not found."""
        product = self.session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def get_product(self, product_id: int) -> ProductInfo:
        """
        Get product by ID.

        Raises:
            ProductNotFoundError: If product doesn't exist.
        """
        return self._to_dto(self._get_by_id(product_id))

    def list_products(self) -> list[ProductInfo]:
        """All products ordered by name."""
        stmt = select(Product).order_by(Product.name, Product.id)
        return [self._to_dto(p) for p in self.session.execute(stmt).scalars()]

    def list_low_stock(self, threshold: int) -> list[ProductInfo]:
        """
        Products whose on-hand quantity is at or below ``threshold``.

        Ordered by quantity (scarcest first), then name.
        """
        threshold = _count_field("threshold", threshold)
        stmt = (
            select(Product)
            .where(Product.on_hand_quantity <= threshold)
            .order_by(Product.on_hand_quantity, Product.name)
        )
        return [self._to_dto(p) for p in self.session.execute(stmt).scalars()]

    def create_product(
        self,
        name: str,
        code: str,
        acquisition_cost: object,
        sale_price: object,
        reorder_threshold: int = 0,
        unit_of_measure: str = DEFAULT_UNIT_OF_MEASURE,
        opening_quantity: int = 0,
    ) -> ProductInfo:
        """
        Create a new product.

        Args:
            name: Display name.
            code: Unique product code.
            acquisition_cost: What we pay per unit.  Fixed from now on.
            sale_price: What we charge per unit; must exceed the cost.
            reorder_threshold: Quantity at or below which to reorder.
            unit_of_measure: Unit label (pieces by default).
            opening_quantity: Initial stock, booked through the
                InventoryLedger.

        Returns:
            Created ProductInfo DTO.

        Raises:
            MalformedRequestError: Blank name/code or bad numbers.
            PriceInvariantError: sale_price <= acquisition_cost.
            DuplicateProductCodeError: code is already taken.
        """
        if not name or not name.strip():
            raise MalformedRequestError("name", "must not be blank")
        if not code or not code.strip():
            raise MalformedRequestError("code", "must not be blank")
        cost = _money_field("acquisition_cost", acquisition_cost)
        price = _money_field("sale_price", sale_price)
        _check_price_invariant(price, cost)
        reorder_threshold = _count_field("reorder_threshold", reorder_threshold)
        opening_quantity = _count_field("opening_quantity", opening_quantity)

        code = code.strip()
        existing = self.session.execute(
            select(Product.id).where(Product.code == code)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateProductCodeError(code)

        now = self.clock.now()
        product = Product(
            name=name.strip(),
            code=code,
            acquisition_cost=cost,
            sale_price=price,
            on_hand_quantity=0,
            reorder_threshold=reorder_threshold,
            unit_of_measure=unit_of_measure,
            created_at=now,
            updated_at=now,
        )
        self.session.add(product)
        try:
            self.session.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent insert of the same code
            raise DuplicateProductCodeError(code) from exc

        if opening_quantity:
            InventoryLedger(self.session, self.clock).adjust(
                product.id, opening_quantity
            )
            self.session.refresh(product)

        logger.info(
            "product_created",
            extra={
                "product_id": product.id,
                "product_code": code,
                "opening_quantity": opening_quantity,
            },
        )
        return self._to_dto(product)

    def update_product(
        self,
        product_id: int,
        name: str | None = None,
        sale_price: object | None = None,
        reorder_threshold: int | None = None,
        unit_of_measure: str | None = None,
    ) -> ProductInfo:
        """
        Update product details.

        Note: code, acquisition_cost and on-hand quantity cannot be changed
        here.  Existing order lines keep their snapshot prices.

        Raises:
            ProductNotFoundError: If product doesn't exist.
            PriceInvariantError: New sale_price <= acquisition_cost.
        """
        product = self._get_by_id(product_id)

        if name is not None:
            if not name.strip():
                raise MalformedRequestError("name", "must not be blank")
            product.name = name.strip()
        if sale_price is not None:
            price = _money_field("sale_price", sale_price)
            _check_price_invariant(price, product.acquisition_cost)
            product.sale_price = price
        if reorder_threshold is not None:
            product.reorder_threshold = _count_field(
                "reorder_threshold", reorder_threshold
            )
        if unit_of_measure is not None:
            product.unit_of_measure = unit_of_measure

        product.updated_at = self.clock.now()
        self.session.flush()

        logger.info(
            "product_updated",
            extra={"product_id": product.id, "sale_price": product.sale_price},
        )
        return self._to_dto(product)
