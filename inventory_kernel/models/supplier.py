"""
Module: inventory_kernel.models.supplier
Responsibility: ORM persistence for suppliers, the counterparty of
    PURCHASE orders.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase


class Supplier(TrackedBase):
    """A supplier that PURCHASE orders are placed with."""

    __tablename__ = "suppliers"

    company_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<Supplier {self.id}: {self.company_name}>"
