"""Services for the inventory kernel (write side)."""

from inventory_kernel.services.coordinator import OrderCoordinator
from inventory_kernel.services.inventory_ledger import InventoryLedger
from inventory_kernel.services.order_service import OrderService
from inventory_kernel.services.price_snapshot import PriceSnapshotResolver
from inventory_kernel.services.product_service import ProductInfo, ProductService
from inventory_kernel.services.status_transition import StatusTransitionEngine
from inventory_kernel.services.supplier_service import SupplierInfo, SupplierService

__all__ = [
    "InventoryLedger",
    "OrderCoordinator",
    "OrderService",
    "PriceSnapshotResolver",
    "ProductInfo",
    "ProductService",
    "StatusTransitionEngine",
    "SupplierInfo",
    "SupplierService",
]
