# orders/services/coupons.py

"""
COUPON REDEMPTION

Purpose:
- Resolve a coupon code into the discount rate an order is priced with.
- Count the use, inside the order's transaction.

HARD RULES:
- redeem_coupon MUST run inside the caller's transaction.atomic block:
  a rolled-back order rolls back the usage count with it.
- The usage increment is a conditional UPDATE on a locked row, so the
  usage limit holds under concurrent orders.
- Minimum purchase is checked against the pre-tax subtotal.
- A fixed coupon becomes value / tax-inclusive subtotal * 100, capped at 100.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from commerce.errors import InvalidStateError, NotFoundError
from orders.models import Coupon
from orders.services.pricing import PricedLine

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class RedeemedCoupon:
    coupon: Coupon
    discount_rate: Decimal


def _round2(value) -> Decimal:
    return Decimal(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def discount_rate_for(coupon: Coupon, *, subtotal_with_tax: Decimal) -> Decimal:
    value = Decimal(coupon.discount_value)
    if coupon.discount_type == Coupon.TYPE_PERCENTAGE:
        return _round2(min(value, HUNDRED))

    if subtotal_with_tax <= 0:
        return ZERO
    return _round2(min(value / subtotal_with_tax * HUNDRED, HUNDRED))


def redeem_coupon(code: str, lines: Iterable[PricedLine]) -> RedeemedCoupon:
    """
    Validate a coupon for the given priced lines and count one use.

    Raises:
    - NotFoundError       no coupon with that code
    - InvalidStateError   inactive, outside its validity window, usage
                          limit reached, or below the minimum purchase
    """
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("Coupon redemption must run inside transaction.atomic()")

    code = (code or "").strip().upper()
    coupon = Coupon.objects.select_for_update().filter(code=code).first()
    if coupon is None:
        raise NotFoundError(f"Coupon '{code}' is not valid")

    if not coupon.is_valid_at(timezone.now()):
        raise InvalidStateError(f"Coupon '{code}' is not active at this time")
    if coupon.usage_limit_reached:
        raise InvalidStateError(f"Coupon '{code}' has reached its usage limit")

    lines = tuple(lines)
    base_subtotal = _round2(
        sum((line.base_unit_price * line.quantity for line in lines), ZERO)
    )
    if coupon.min_purchase_amount is not None and base_subtotal < coupon.min_purchase_amount:
        raise InvalidStateError(
            f"Coupon '{code}' requires a minimum purchase of "
            f"{coupon.min_purchase_amount} before tax, got {base_subtotal}"
        )

    subtotal_with_tax = sum((line.subtotal for line in lines), ZERO)
    rate = discount_rate_for(coupon, subtotal_with_tax=subtotal_with_tax)

    updated = (
        Coupon.objects.filter(pk=coupon.pk)
        .filter(Q(usage_limit__isnull=True) | Q(times_used__lt=F("usage_limit")))
        .update(times_used=F("times_used") + 1)
    )
    if updated != 1:
        raise InvalidStateError(f"Coupon '{code}' has reached its usage limit")

    coupon.refresh_from_db(fields=["times_used"])
    logger.info(
        "Coupon redeemed",
        extra={"coupon": coupon.code, "discount_rate": str(rate), "times_used": coupon.times_used},
    )
    return RedeemedCoupon(coupon=coupon, discount_rate=rate)
