"""
InventoryLedger -- the only writer of on-hand stock.

Responsibility:
    Apply signed quantity adjustments to a product's on-hand stock,
    atomically and never below zero, inside the caller's transaction.

Architecture position:
    Kernel > Services -- imperative shell.  Called by the
    StatusTransitionEngine when an order reaches FULFILLED.  Nothing else in
    the kernel writes ``Product.on_hand_quantity``.

Invariants enforced:
    - 0 <= on_hand_quantity <= MAX_QUANTITY after every adjustment.
    - Each adjustment is a single guarded statement:

          UPDATE products
             SET on_hand_quantity = on_hand_quantity + :delta
           WHERE id = :id
             AND on_hand_quantity + :delta BETWEEN 0 AND :max_quantity

      The UPDATE takes the product row lock itself and the guard is
      re-evaluated after any lock wait, so two concurrent sales of the
      same product cannot both pass a stale sufficiency check.
    - A zero-row result never leaves a partial change behind; the caller
      rolls back the whole transaction on the raised error.

Failure modes:
    - ProductNotFoundError: product id does not exist.
    - InsufficientStockError: applying delta would drive stock negative.
    - StockLimitExceededError: applying delta would overflow the stock
      column.
    - ValueError: delta == 0 (a no-op adjustment is a caller bug).
"""

from sqlalchemy import BigInteger, cast, select, update

from inventory_kernel.domain.values import MAX_QUANTITY
from inventory_kernel.exceptions import (
    InsufficientStockError,
    ProductNotFoundError,
    StockLimitExceededError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.product import Product
from inventory_kernel.services.base import BaseService

logger = get_logger("services.inventory_ledger")


class InventoryLedger(BaseService[Product]):
    """
    Signed, guarded stock adjustments.

    Contract:
        ``adjust()`` flushes nothing itself: the guarded UPDATE is executed
        immediately on the session's connection and becomes durable only
        when the caller commits.
    """

    def adjust(self, product_id: int, delta: int) -> int:
        """
        Add ``delta`` (positive or negative) to a product's on-hand stock.

        Preconditions:
            - The caller is within an active transaction.
            - ``delta`` is a non-zero int.

        Postconditions:
            - On success the product row holds the new quantity and stays
              locked until the transaction ends.

        Returns:
            The new on-hand quantity.

        Raises:
            ProductNotFoundError: If the product doesn't exist.
            InsufficientStockError: If the result would be negative.
            StockLimitExceededError: If the result would exceed MAX_QUANTITY.
            ValueError: If delta is zero or not an int.
        """
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValueError(f"delta must be an int, got {delta!r}")
        if delta == 0:
            raise ValueError("delta must be non-zero")

        # Guarded increment; the WHERE clause is the range check, summed as BIGINT
        result = self.session.execute(
            update(Product)
            .where(Product.id == product_id)
            .where(
                (cast(Product.on_hand_quantity, BigInteger) + delta).between(
                    0, MAX_QUANTITY
                )
            )
            .values(
                on_hand_quantity=Product.on_hand_quantity + delta,
                updated_at=self.clock.now(),
            )
            .execution_options(synchronize_session=False)
        )
        self._expire_cached(product_id)

        if result.rowcount == 0:
            self._raise_rejected(product_id, delta)

        new_quantity = self.on_hand(product_id)
        logger.info(
            "stock_adjusted",
            extra={
                "product_id": product_id,
                "delta": delta,
                "on_hand_quantity": new_quantity,
            },
        )
        return new_quantity

    def on_hand(self, product_id: int) -> int:
        """
        Current on-hand quantity, read from the database.

        Raises:
            ProductNotFoundError: If the product doesn't exist.
        """
        quantity = self.session.execute(
            select(Product.on_hand_quantity).where(Product.id == product_id)
        ).scalar_one_or_none()
        if quantity is None:
            raise ProductNotFoundError(product_id)
        return quantity

    def _raise_rejected(self, product_id: int, delta: int) -> None:
        row = self.session.execute(
            select(Product.code, Product.on_hand_quantity).where(
                Product.id == product_id
            )
        ).one_or_none()

        if row is None:
            logger.warning(
                "stock_adjustment_unknown_product",
                extra={"product_id": product_id, "delta": delta},
            )
            raise ProductNotFoundError(product_id)

        if delta > 0:
            logger.warning(
                "stock_limit_exceeded",
                extra={
                    "product_id": product_id,
                    "product_code": row.code,
                    "received": delta,
                    "on_hand_quantity": row.on_hand_quantity,
                },
            )
            raise StockLimitExceededError(
                product_id=product_id,
                received=delta,
                on_hand=row.on_hand_quantity,
                product_code=row.code,
            )

        logger.warning(
            "insufficient_stock",
            extra={
                "product_id": product_id,
                "product_code": row.code,
                "requested": -delta,
                "available": row.on_hand_quantity,
            },
        )
        raise InsufficientStockError(
            product_id=product_id,
            requested=-delta,
            available=row.on_hand_quantity,
            product_code=row.code,
        )

    def _expire_cached(self, product_id: int) -> None:
        # The bulk UPDATE bypasses the identity map
        cached = self.session.identity_map.get(
            self.session.identity_key(Product, product_id)
        )
        if cached is not None:
            self.session.expire(cached, ["on_hand_quantity", "updated_at"])
