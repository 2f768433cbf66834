# orders/services/order_service.py

"""
ORDER TRANSACTION COORDINATOR

Purpose:
- Create an order in ONE atomic transaction:
  customer check -> stock reservation per line -> coupon -> pricing
  -> Order + items.

HARD RULES:
- Any failure rolls back every reservation and the order rows together.
  Callers never observe partial state.
- Business errors are never retried here.
- The read model is assembled AFTER commit from a fresh fetch.

Public operations return commerce.results.Result.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

from django.db import transaction

from commerce.errors import (
    CommerceError,
    InvalidStateError,
    NotFoundError,
    ProductInactiveError,
)
from commerce.results import Result, returns_result
from customers.models import Customer
from orders.models import Order, OrderItem, OrderStatus
from orders.services.inputs import (
    CreateOrderInput,
    QuoteInput,
)
from orders.services.coupons import redeem_coupon
from orders.services.pricing import (
    DiscountBeforeTaxQuote,
    OrderPricing,
    PricingLine,
    price_order_lines,
    quote_discount_before_tax,
)
from orders.services.read_models import (
    OrderView,
    load_order_view,
)
from products.models import Product
from products.services.stock_ledger import reserve

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderQuote:
    pricing: OrderPricing
    discount_before_tax: DiscountBeforeTaxQuote


# ============================================================
# HELPERS
# ============================================================


def default_status() -> OrderStatus:
    status = OrderStatus.objects.filter(is_default=True, is_active=True).first()
    if status is None:
        raise InvalidStateError(
            "No active default order status is configured "
            "(run the seed_order_statuses command)"
        )
    return status


def _get_active_customer(customer_id) -> Customer:
    customer = Customer.objects.filter(pk=customer_id).first()
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} not found")
    if not customer.is_active:
        raise InvalidStateError(f"Customer {customer.name} is not active")
    return customer


# ============================================================
# CREATE
# ============================================================


@transaction.atomic
def _create_order_atomic(data: CreateOrderInput) -> uuid.UUID:
    customer = _get_active_customer(data.customer_id)

    if not data.items:
        raise InvalidStateError("Order must contain at least one item")

    if data.coupon_code and data.discount_rate:
        raise InvalidStateError("An order takes either a discount rate or a coupon, not both")

    status = default_status()
    order_id = uuid.uuid4()

    products = []
    pricing_lines = []
    for line in data.items:
        product = reserve(
            product_id=line.product_id,
            quantity=line.quantity,
            order_id=order_id,
        )
        products.append(product)
        pricing_lines.append(
            PricingLine(
                quantity=line.quantity,
                base_unit_price=product.price,
                tax_rate=product.tax_rate,
                unit_price_with_tax=line.unit_price,
            )
        )

    discount_rate = data.discount_rate
    coupon = None
    if data.coupon_code:
        redeemed = redeem_coupon(data.coupon_code, price_order_lines(pricing_lines).lines)
        coupon = redeemed.coupon
        discount_rate = redeemed.discount_rate

    pricing = price_order_lines(pricing_lines, discount_rate=discount_rate)

    order = Order.objects.create(
        id=order_id,
        customer=customer,
        status=status,
        coupon=coupon,
        subtotal_amount=pricing.subtotal,
        tax_amount=pricing.tax_amount,
        discount_rate=pricing.discount_rate,
        discount_amount=pricing.discount_amount,
        total_amount=pricing.total,
        notes=data.notes or "",
        metadata=dict(data.metadata or {}),
    )

    for position, (product, priced) in enumerate(zip(products, pricing.lines)):
        OrderItem.objects.create(
            order=order,
            product=product,
            position=position,
            product_name=product.name,
            sku=product.sku,
            quantity=priced.quantity,
            base_unit_price=priced.base_unit_price,
            tax_rate=priced.tax_rate,
            unit_price=priced.unit_price_with_tax,
            tax_amount=priced.tax_amount,
            subtotal=priced.subtotal,
        )

    logger.info(
        "Order created",
        extra={
            "order_id": str(order.id),
            "order_no": order.order_no,
            "customer_id": str(customer.id),
            "total": str(pricing.total),
            "lines": len(pricing.lines),
            "coupon": coupon.code if coupon else None,
        },
    )
    return order.id


def create_order(data: CreateOrderInput) -> Result[OrderView]:
    """
    Create an order atomically and return its read model.

    Errors (as Result.failure):
    - NotFoundError: customer, product or coupon missing
    - InvalidStateError: inactive customer/product, no lines, no default status,
      unusable coupon
    - InsufficientStockError: a line asks for more than is in stock
    - InvalidAmountError: bad rates or a negative total
    """
    logger.info(
        "Starting order creation",
        extra={"customer_id": str(data.customer_id), "lines": len(data.items)},
    )

    try:
        order_id = _create_order_atomic(data)
    except CommerceError as exc:
        logger.warning(
            "Order creation rolled back",
            extra={
                "customer_id": str(data.customer_id),
                "error_kind": exc.kind,
                "error": exc.message,
            },
        )
        return Result.failure(exc)

    return get_order(order_id)


# ============================================================
# READ
# ============================================================


@returns_result
def get_order(order_id) -> OrderView:
    return load_order_view(order_id)


# ============================================================
# QUOTE (NO WRITES)
# ============================================================


@returns_result
def quote_order(data: QuoteInput) -> OrderQuote:
    """
    Price a prospective order without touching stock.

    Returns both the canonical figures an order would store and the
    discount-before-tax preview.
    """
    if not data.items:
        raise InvalidStateError("Quote must contain at least one item")

    ids = {line.product_id for line in data.items}
    products = {str(p.id): p for p in Product.objects.filter(pk__in=ids)}

    lines = []
    for line in data.items:
        product = products.get(str(line.product_id))
        if product is None:
            raise NotFoundError(f"Product {line.product_id} not found")
        if not product.is_active:
            raise ProductInactiveError(f"Product {product.name} is not available")
        lines.append(
            PricingLine(
                quantity=line.quantity,
                base_unit_price=Decimal(product.price),
                tax_rate=Decimal(product.tax_rate),
            )
        )

    return OrderQuote(
        pricing=price_order_lines(lines, discount_rate=data.discount_rate),
        discount_before_tax=quote_discount_before_tax(
            lines, discount_rate=data.discount_rate
        ),
    )
