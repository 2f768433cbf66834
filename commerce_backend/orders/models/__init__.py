# orders/models/__init__.py

"""
ORDERS MODELS PACKAGE EXPORTS
"""

from .coupon import Coupon
from .order import Order
from .order_item import OrderItem
from .order_status import OrderStatus

__all__ = [
    "Coupon",
    "OrderStatus",
    "Order",
    "OrderItem",
]
