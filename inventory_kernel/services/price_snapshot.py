"""
PriceSnapshotResolver -- unit prices captured at order creation.

Responsibility:
    For each requested line, look up the product and decide the unit price
    that is frozen onto the order line.

Architecture position:
    Kernel > Services.  Called by OrderService.create_order() before any
    row is written.

Invariants enforced:
    - SALE lines snapshot the product's current ``sale_price``.
    - PURCHASE lines carry a zero unit price; a purchase moves quantity
      into stock and its acquisition cost lives on the product.
    - A snapshot is never refreshed.  Later price edits do not reach
      existing lines (lines are immutable, see db/immutability.py).

Failure modes:
    - UnknownProductError: a line references a product that does not exist.
"""

from collections.abc import Sequence
from decimal import Decimal

from sqlalchemy import select

from inventory_kernel.db.types import round_money
from inventory_kernel.domain.dtos import LineRequest, PriceSnapshot
from inventory_kernel.domain.values import OrderType
from inventory_kernel.exceptions import UnknownProductError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.product import Product
from inventory_kernel.services.base import BaseService

logger = get_logger("services.price_snapshot")

PURCHASE_UNIT_PRICE = Decimal("0.00")


class PriceSnapshotResolver(BaseService[Product]):
    """Resolves the unit price for order lines."""

    def resolve(self, product_id: int, order_type: OrderType) -> PriceSnapshot:
        """
        Snapshot the unit price for one product.

        Raises:
            UnknownProductError: If the product doesn't exist.
        """
        product = self.session.get(Product, product_id)
        if product is None:
            raise UnknownProductError(product_id)
        return self._snapshot(product, order_type)

    def resolve_lines(
        self, lines: Sequence[LineRequest], order_type: OrderType
    ) -> tuple[PriceSnapshot, ...]:
        """
        Snapshot every line in one query, preserving line order.

        Raises:
            UnknownProductError: Naming the first line whose product is
                missing.
        """
        product_ids = {line.product_id for line in lines}
        products = {
            p.id: p
            for p in self.session.execute(
                select(Product).where(Product.id.in_(product_ids))
            ).scalars()
        }

        snapshots = []
        for index, line in enumerate(lines):
            product = products.get(line.product_id)
            if product is None:
                logger.warning(
                    "snapshot_unknown_product",
                    extra={"product_id": line.product_id, "line_index": index},
                )
                raise UnknownProductError(line.product_id, line_index=index)
            snapshots.append(self._snapshot(product, order_type))
        return tuple(snapshots)

    @staticmethod
    def _snapshot(product: Product, order_type: OrderType) -> PriceSnapshot:
        if order_type == OrderType.SALE:
            unit_price = round_money(product.sale_price)
        else:
            unit_price = PURCHASE_UNIT_PRICE
        return PriceSnapshot(
            product_id=product.id,
            product_code=product.code,
            unit_price=unit_price,
        )
