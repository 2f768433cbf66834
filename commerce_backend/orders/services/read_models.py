# orders/services/read_models.py

"""
ORDER READ MODELS

Assembly functions take rows that were ALREADY fetched (order, customer,
status, lines) and compose an immutable view. They never query on their
own, so callers decide exactly which joins happen.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Optional
from uuid import UUID

from commerce.errors import NotFoundError
from customers.models import Customer
from orders.models import Order, OrderItem, OrderStatus


@dataclass(frozen=True)
class CustomerSummary:
    id: UUID
    name: str
    email: str


@dataclass(frozen=True)
class StatusSummary:
    id: UUID
    code: str
    name: str


@dataclass(frozen=True)
class OrderLineView:
    id: UUID
    product_id: Optional[UUID]
    product_name: str
    sku: str
    quantity: int
    base_unit_price: Decimal
    tax_rate: Decimal
    unit_price: Decimal
    tax_amount: Decimal
    subtotal: Decimal


@dataclass(frozen=True)
class OrderView:
    id: UUID
    order_no: str
    customer: CustomerSummary
    status: StatusSummary
    lines: tuple[OrderLineView, ...]
    subtotal: Decimal
    tax_amount: Decimal
    discount_rate: Decimal
    discount_amount: Decimal
    total: Decimal
    notes: str
    metadata: dict[str, Any]
    coupon_code: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def build_line_view(item: OrderItem) -> OrderLineView:
    return OrderLineView(
        id=item.id,
        product_id=item.product_id,
        product_name=item.product_name,
        sku=item.sku,
        quantity=item.quantity,
        base_unit_price=item.base_unit_price,
        tax_rate=item.tax_rate,
        unit_price=item.unit_price,
        tax_amount=item.tax_amount,
        subtotal=item.subtotal,
    )


def build_order_view(
    *,
    order: Order,
    customer: Customer,
    status: OrderStatus,
    lines: Iterable[OrderItem],
) -> OrderView:
    return OrderView(
        id=order.id,
        order_no=order.order_no,
        customer=CustomerSummary(id=customer.id, name=customer.name, email=customer.email),
        status=StatusSummary(id=status.id, code=status.code, name=status.name),
        lines=tuple(build_line_view(item) for item in lines),
        subtotal=order.subtotal_amount,
        tax_amount=order.tax_amount,
        discount_rate=order.discount_rate,
        discount_amount=order.discount_amount,
        total=order.total_amount,
        notes=order.notes,
        metadata=dict(order.metadata or {}),
        coupon_code=order.coupon.code if order.coupon_id else "",
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def order_view_queryset():
    return (
        Order.objects.select_related("customer", "status", "coupon")
        .prefetch_related("items")
    )


def view_from_row(order: Order) -> OrderView:
    """For rows loaded through order_view_queryset()."""
    return build_order_view(
        order=order,
        customer=order.customer,
        status=order.status,
        lines=order.items.all(),
    )


def load_order_view(order_id) -> OrderView:
    order = order_view_queryset().filter(pk=order_id).first()
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")
    return view_from_row(order)
