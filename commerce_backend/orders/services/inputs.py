# orders/services/inputs.py

"""
TYPED OPERATION INPUTS

One frozen dataclass per core operation. The HTTP layer validates field
presence and types once (serializers) and hands these over; the services
only check business rules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID


@dataclass(frozen=True)
class OrderLineInput:
    product_id: UUID
    quantity: int
    # Tax-inclusive price locked at cart time; derived from the product if None.
    unit_price: Optional[Decimal] = None


@dataclass(frozen=True)
class CreateOrderInput:
    customer_id: UUID
    items: tuple[OrderLineInput, ...]
    discount_rate: Decimal = Decimal("0.00")
    coupon_code: Optional[str] = None
    notes: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UpdateOrderStatusInput:
    order_id: UUID
    status_code: str
    notes: Optional[str] = None


@dataclass(frozen=True)
class QuoteLineInput:
    product_id: UUID
    quantity: int


@dataclass(frozen=True)
class QuoteInput:
    items: tuple[QuoteLineInput, ...]
    discount_rate: Decimal = Decimal("0.00")
