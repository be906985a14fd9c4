"""ORM models for the inventory kernel."""

from inventory_kernel.models.order import Order, OrderLine
from inventory_kernel.models.product import Product
from inventory_kernel.models.supplier import Supplier

__all__ = [
    "Order",
    "OrderLine",
    "Product",
    "Supplier",
]
