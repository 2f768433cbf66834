# products/services/stock_ledger.py

"""
STOCK LEDGER

Purpose:
- Reserve stock (decrement) when an order is created.
- Release stock (increment) when an order is cancelled.
- Keep an append-only StockMovement row per mutation.

HARD RULES:
- Quantities are integer units >= 1.
- Stock never goes negative: the decrement is a conditional UPDATE
  (stock >= qty) on a row locked with select_for_update, backed by a
  CHECK constraint on the table.
- Both operations MUST run inside the caller's transaction.atomic block,
  together with the order write they belong to.
- release() tolerates a deleted product (logs and returns False) so a
  cancellation never fails on a restore step.
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import F

from commerce.errors import (
    InsufficientStockError,
    InvalidAmountError,
    NotFoundError,
    ProductInactiveError,
)
from products.models import Product, StockMovement

logger = logging.getLogger(__name__)


def _to_int_qty(value) -> int:
    """
    Quantity normalizer.
    HARD RULE: quantities are integer units in this system.
    """
    if isinstance(value, bool):
        raise InvalidAmountError("quantity must be a whole integer unit")

    if isinstance(value, int):
        qty = value
    elif isinstance(value, str) and value.strip().isdigit():
        qty = int(value.strip())
    else:
        raise InvalidAmountError("quantity must be a whole integer unit")

    if qty <= 0:
        raise InvalidAmountError("quantity must be at least 1")
    return qty


def _require_atomic_block():
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError(
            "Stock ledger operations must run inside transaction.atomic()"
        )


def reserve(*, product_id, quantity, order_id=None) -> Product:
    """
    Check-and-decrement stock for one product.

    Raises:
    - NotFoundError           product missing
    - ProductInactiveError    product deactivated
    - InsufficientStockError  product.stock < quantity

    Returns the locked product with its post-decrement stock.
    """
    _require_atomic_block()
    qty = _to_int_qty(quantity)

    product = Product.objects.select_for_update().filter(pk=product_id).first()
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")

    if not product.is_active:
        raise ProductInactiveError(f"Product {product.name} is not available")

    available = int(product.stock or 0)
    if available < qty:
        raise InsufficientStockError(
            f"Insufficient stock for {product.name}: "
            f"available {available}, requested {qty}"
        )

    updated = Product.objects.filter(pk=product.pk, stock__gte=qty).update(
        stock=F("stock") - qty
    )
    if updated != 1:
        # Row changed between the lock read and the write (no row lock support).
        product.refresh_from_db(fields=["stock"])
        raise InsufficientStockError(
            f"Insufficient stock for {product.name}: "
            f"available {product.stock}, requested {qty}"
        )

    StockMovement.objects.create(
        product=product,
        movement_type=StockMovement.MovementType.OUT,
        reason=StockMovement.Reason.ORDER,
        quantity=qty,
        order_id=order_id,
    )

    product.refresh_from_db(fields=["stock"])
    logger.debug(
        "Stock reserved",
        extra={"product_id": str(product.pk), "quantity": qty, "stock": product.stock},
    )
    return product


def release(*, product_id, quantity, order_id=None) -> bool:
    """
    Increment stock for one product.

    Returns False (and logs) when the product no longer exists;
    True when stock was restored.
    """
    _require_atomic_block()
    qty = _to_int_qty(quantity)

    if product_id is None:
        logger.warning(
            "Stock release skipped: order line has no product",
            extra={"order_id": str(order_id) if order_id else None, "quantity": qty},
        )
        return False

    updated = Product.objects.filter(pk=product_id).update(stock=F("stock") + qty)
    if updated == 0:
        logger.warning(
            "Stock release skipped: product not found",
            extra={"product_id": str(product_id), "quantity": qty},
        )
        return False

    StockMovement.objects.create(
        product_id=product_id,
        movement_type=StockMovement.MovementType.IN,
        reason=StockMovement.Reason.CANCELLATION,
        quantity=qty,
        order_id=order_id,
    )

    logger.debug(
        "Stock released", extra={"product_id": str(product_id), "quantity": qty}
    )
    return True
