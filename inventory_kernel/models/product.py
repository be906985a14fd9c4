"""
Module: inventory_kernel.models.product
Responsibility: ORM persistence for products and their on-hand stock.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - ``code`` is unique (uq_product_code).
    - ``on_hand_quantity >= 0`` (ck_product_on_hand_non_negative).  This is
      the database backstop; the InventoryLedger's guarded UPDATE is the
      primary check and reports INSUFFICIENT_STOCK before this fires.
    - ``sale_price > acquisition_cost`` is enforced by ProductService on
      create/update, not retroactively on existing rows.
    - ``on_hand_quantity`` is written only by the InventoryLedger.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase


class Product(TrackedBase):
    """
    A stocked product.

    Guarantees:
        - code is unique.
        - on_hand_quantity never drops below zero.
    """

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("code", name="uq_product_code"),
        CheckConstraint(
            "on_hand_quantity >= 0", name="ck_product_on_hand_non_negative"
        ),
        CheckConstraint(
            "reorder_threshold >= 0", name="ck_product_reorder_non_negative"
        ),
        Index("idx_product_on_hand", "on_hand_quantity"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    # Fixed at creation
    acquisition_cost: Mapped[Decimal] = mapped_column(nullable=False)

    sale_price: Mapped[Decimal] = mapped_column(nullable=False)

    on_hand_quantity: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    reorder_threshold: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    unit_of_measure: Mapped[str] = mapped_column(
        String(20), nullable=False, default="kom"
    )

    def __repr__(self) -> str:
        return f"<Product {self.code}: on_hand={self.on_hand_quantity}>"

    @property
    def margin(self) -> Decimal:
        """Sale price minus acquisition cost."""
        return self.sale_price - self.acquisition_cost

    @property
    def needs_reorder(self) -> bool:
        """True when stock is at or below the product's reorder threshold."""
        return self.on_hand_quantity <= self.reorder_threshold
