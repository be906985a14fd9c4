"""Request boundary: identity, payload schemas and handlers."""

from inventory_kernel.api.handlers import ApiResponse, OrderApi
from inventory_kernel.api.identity import IdentityProvider, StaticIdentityProvider
from inventory_kernel.api.schemas import parse_change_status, parse_create_order

__all__ = [
    "ApiResponse",
    "IdentityProvider",
    "OrderApi",
    "StaticIdentityProvider",
    "parse_change_status",
    "parse_create_order",
]
