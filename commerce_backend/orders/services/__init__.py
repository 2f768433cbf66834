# orders/services/__init__.py

from .order_lifecycle import update_order_status
from .order_service import create_order, get_order, quote_order

__all__ = [
    "create_order",
    "get_order",
    "quote_order",
    "update_order_status",
]
