"""
Service layer for Supplier operations.

Returns SupplierInfo DTOs instead of ORM entities.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select

from inventory_kernel.exceptions import MalformedRequestError, SupplierNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.supplier import Supplier
from inventory_kernel.services.base import BaseService

logger = get_logger("services.supplier")


@dataclass(frozen=True)
class SupplierInfo:
    """Immutable DTO for supplier data."""

    id: int
    company_name: str
    phone: str | None
    email: str | None
    address: str | None


class SupplierService(BaseService[Supplier]):
    """Service for managing suppliers."""

    def _to_dto(self, supplier: Supplier) -> SupplierInfo:
        return SupplierInfo(
            id=supplier.id,
            company_name=supplier.company_name,
            phone=supplier.phone,
            email=supplier.email,
            address=supplier.address,
        )

    def exists(self, supplier_id: int) -> bool:
        return self.session.get(Supplier, supplier_id) is not None

    def get_supplier(self, supplier_id: int) -> SupplierInfo:
        """
        Raises:
            SupplierNotFoundError: If supplier doesn't exist.
        """
        supplier = self.session.get(Supplier, supplier_id)
        if supplier is None:
            raise SupplierNotFoundError(supplier_id)
        return self._to_dto(supplier)

    def list_suppliers(self) -> list[SupplierInfo]:
        stmt = select(Supplier).order_by(Supplier.company_name, Supplier.id)
        return [self._to_dto(s) for s in self.session.execute(stmt).scalars()]

    def create_supplier(
        self,
        company_name: str,
        phone: str | None = None,
        email: str | None = None,
        address: str | None = None,
    ) -> SupplierInfo:
        """
        Create a new supplier.

        Raises:
            MalformedRequestError: Blank company name.
        """
        if not company_name or not company_name.strip():
            raise MalformedRequestError("company_name", "must not be blank")

        now = self.clock.now()
        supplier = Supplier(
            company_name=company_name.strip(),
            phone=phone,
            email=email,
            address=address,
            created_at=now,
            updated_at=now,
        )
        self.session.add(supplier)
        self.session.flush()

        logger.info(
            "supplier_created",
            extra={"supplier_id": supplier.id, "company_name": supplier.company_name},
        )
        return self._to_dto(supplier)
