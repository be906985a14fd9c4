"""
Inventory Kernel

Order lifecycle and inventory consistency for a small business:
- Purchase and sale orders with price snapshots taken at creation
- Per-type state machines for order status
- Stock adjusted exactly once, atomically, when an order is fulfilled
- No overselling or double counting under concurrent requests
"""

__version__ = "0.1.0"
