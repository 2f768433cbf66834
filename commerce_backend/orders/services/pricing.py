# orders/services/pricing.py

"""
ORDER PRICING (PURE FUNCTIONS)

Purpose:
- Turn (quantity, base unit price, tax rate) lines plus an order discount
  rate into the money figures stored on Order / OrderItem.

CANONICAL ALGORITHM (used by order creation):
1. unit_price_with_tax = supplied price, or round2(base * (1 + tax/100))
2. line_subtotal = round2(qty * unit_price_with_tax)
   line_tax      = round2(qty * base * tax/100)
3. subtotal = sum(line_subtotal), tax_amount = sum(line_tax)
4. discount_amount = round2(subtotal * discount/100)
5. total = round2(subtotal - discount_amount), must be >= 0

HARD RULES:
- Decimal only, never float.
- round2 = quantize(0.01, ROUND_HALF_UP), applied after EVERY
  multiplication that yields a currency amount.
- The discount is netted against the tax-inclusive subtotal. It is never
  folded into a per-line (1 + tax) * (1 - discount) factor.

The discount-before-tax quote at the bottom is a preview helper only; it
never feeds a persisted order.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional

from commerce.errors import InvalidAmountError

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def _money(value) -> Decimal:
    return Decimal(str(value or "0")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _decimal(value, *, field: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidAmountError(f"{field} must be a number")
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(f"{field} must be a number, got {value!r}")


def _percent(value, *, field: str) -> Decimal:
    rate = _decimal(ZERO if value is None else value, field=field)
    if rate < 0 or rate > HUNDRED:
        raise InvalidAmountError(f"{field} must be between 0 and 100, got {rate}")
    return rate


def _quantity(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmountError(f"quantity must be a whole number, got {value!r}")
    if value < 1:
        raise InvalidAmountError(f"quantity must be at least 1, got {value}")
    return value


@dataclass(frozen=True)
class PricingLine:
    quantity: int
    base_unit_price: Decimal
    tax_rate: Decimal
    unit_price_with_tax: Optional[Decimal] = None


@dataclass(frozen=True)
class PricedLine:
    quantity: int
    base_unit_price: Decimal
    tax_rate: Decimal
    unit_price_with_tax: Decimal
    subtotal: Decimal
    tax_amount: Decimal


@dataclass(frozen=True)
class OrderPricing:
    lines: tuple[PricedLine, ...]
    subtotal: Decimal
    tax_amount: Decimal
    discount_rate: Decimal
    discount_amount: Decimal
    total: Decimal


def price_line(line: PricingLine) -> PricedLine:
    qty = _quantity(line.quantity)
    base = _decimal(line.base_unit_price, field="base_unit_price")
    rate = _percent(line.tax_rate, field="tax_rate")

    if base < 0:
        raise InvalidAmountError(f"base_unit_price cannot be negative, got {base}")

    if line.unit_price_with_tax is None:
        unit = _money(base * (Decimal("1") + rate / HUNDRED))
    else:
        unit = _decimal(line.unit_price_with_tax, field="unit_price_with_tax")
        if unit < 0:
            raise InvalidAmountError(
                f"unit_price_with_tax cannot be negative, got {unit}"
            )

    return PricedLine(
        quantity=qty,
        base_unit_price=base,
        tax_rate=rate,
        unit_price_with_tax=unit,
        subtotal=_money(qty * unit),
        tax_amount=_money(qty * base * (rate / HUNDRED)),
    )


def price_order_lines(
    lines: Iterable[PricingLine], discount_rate=ZERO
) -> OrderPricing:
    """
    Price a whole order with the canonical algorithm.

    Raises InvalidAmountError on empty input, out-of-range rates,
    negative prices or a negative total.
    """
    priced = tuple(price_line(line) for line in lines)
    if not priced:
        raise InvalidAmountError("An order needs at least one line to be priced")

    rate = _percent(discount_rate, field="discount_rate")

    subtotal = sum((p.subtotal for p in priced), ZERO)
    tax_amount = sum((p.tax_amount for p in priced), ZERO)

    discount_amount = _money(subtotal * rate / HUNDRED)
    total = _money(subtotal - discount_amount)

    if total < 0:
        raise InvalidAmountError(
            f"Order total cannot be negative: subtotal {subtotal}, "
            f"discount {discount_amount}"
        )

    return OrderPricing(
        lines=priced,
        subtotal=subtotal,
        tax_amount=tax_amount,
        discount_rate=rate,
        discount_amount=discount_amount,
        total=total,
    )


# ============================================================
# DISCOUNT-BEFORE-TAX PREVIEW
# ============================================================


@dataclass(frozen=True)
class SingleItemPrice:
    base_price: Decimal
    discount_rate: Decimal
    discount_amount: Decimal
    price_after_discount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    final_price: Decimal


@dataclass(frozen=True)
class DiscountBeforeTaxQuote:
    subtotal_before_tax: Decimal
    subtotal_before_discount: Decimal
    discount_rate: Decimal
    discount_amount: Decimal
    subtotal_after_discount: Decimal
    tax_amount: Decimal
    final_price: Decimal


def price_single_item(base_price, discount_rate=ZERO, tax_rate=Decimal("21")) -> SingleItemPrice:
    """One unit, discount taken off the base before its own tax is added."""
    base = _decimal(base_price, field="base_price")
    if base < 0:
        raise InvalidAmountError(f"base_price cannot be negative, got {base}")
    d_rate = _percent(discount_rate, field="discount_rate")
    t_rate = _percent(tax_rate, field="tax_rate")

    discount_amount = _money(base * d_rate / HUNDRED)
    after_discount = _money(base - discount_amount)
    tax_amount = _money(after_discount * t_rate / HUNDRED)

    return SingleItemPrice(
        base_price=_money(base),
        discount_rate=d_rate,
        discount_amount=discount_amount,
        price_after_discount=after_discount,
        tax_rate=t_rate,
        tax_amount=tax_amount,
        final_price=_money(after_discount + tax_amount),
    )


def quote_discount_before_tax(
    lines: Iterable[PricingLine], discount_rate=ZERO
) -> DiscountBeforeTaxQuote:
    """
    Per-line proportional discount applied to each base before that line's
    own tax. Supplied unit_price_with_tax values are ignored here.
    """
    lines = list(lines)
    if not lines:
        raise InvalidAmountError("A quote needs at least one line")

    rate = _percent(discount_rate, field="discount_rate")
    keep = Decimal("1") - rate / HUNDRED

    before_tax = ZERO
    before_discount = ZERO
    tax_total = ZERO

    for line in lines:
        qty = _quantity(line.quantity)
        base = _decimal(line.base_unit_price, field="base_unit_price")
        if base < 0:
            raise InvalidAmountError(f"base_unit_price cannot be negative, got {base}")
        tax_rate = _percent(line.tax_rate, field="tax_rate")

        line_base = qty * base
        before_tax += line_base
        before_discount += line_base + line_base * tax_rate / HUNDRED
        tax_total += line_base * keep * tax_rate / HUNDRED

    discount_amount = _money(before_tax * rate / HUNDRED)
    after_discount = _money(before_tax - discount_amount)
    tax_amount = _money(tax_total)

    return DiscountBeforeTaxQuote(
        subtotal_before_tax=_money(before_tax),
        subtotal_before_discount=_money(before_discount),
        discount_rate=rate,
        discount_amount=discount_amount,
        subtotal_after_discount=after_discount,
        tax_amount=tax_amount,
        final_price=_money(after_discount + tax_amount),
    )
