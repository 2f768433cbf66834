# orders/services/order_lifecycle.py

"""
ORDER STATUS STATE MACHINE

The legal moves are the OrderStatus.can_transition_to edges stored in the
database. The default graph (see ensure_default_statuses):

    PENDING   -> PREPARING | COMPLETED | CANCELLED
    PREPARING -> COMPLETED | CANCELLED
    COMPLETED -> CANCELLED
    CANCELLED    (terminal)

HARD RULES:
- Re-applying the current status is a no-op: no side effects, notes only.
- Entering CANCELLED from PENDING, PREPARING or COMPLETED releases the stock
  of every line, in the same transaction as the status write.
- A release that finds no product is tolerated; anything else it raises
  rolls the whole transition back.
- Database lock / serialization failures are retried with backoff;
  business errors never are.
"""

from __future__ import annotations

import logging
import time

from django.conf import settings
from django.db import OperationalError, transaction

from commerce.errors import CommerceError, InvalidStateError, NotFoundError
from commerce.results import Result
from orders.models import Order, OrderStatus
from orders.services.inputs import UpdateOrderStatusInput
from orders.services.read_models import OrderView, load_order_view
from products.services.stock_ledger import release

logger = logging.getLogger(__name__)

RESTOCK_ON_CANCEL_FROM = {
    OrderStatus.CODE_PENDING,
    OrderStatus.CODE_PREPARING,
    OrderStatus.CODE_COMPLETED,
}

DEFAULT_STATUS_GRAPH = (
    (
        OrderStatus.CODE_PENDING,
        "Pending",
        "Order placed, waiting for payment or preparation",
        (OrderStatus.CODE_PREPARING, OrderStatus.CODE_COMPLETED, OrderStatus.CODE_CANCELLED),
    ),
    (
        OrderStatus.CODE_PREPARING,
        "Preparing",
        "Order is being prepared",
        (OrderStatus.CODE_COMPLETED, OrderStatus.CODE_CANCELLED),
    ),
    (
        OrderStatus.CODE_COMPLETED,
        "Completed",
        "Order paid and fulfilled",
        (OrderStatus.CODE_CANCELLED,),
    ),
    (
        OrderStatus.CODE_CANCELLED,
        "Cancelled",
        "Order cancelled, stock returned",
        (),
    ),
)

RETRY_BASE_DELAY_SECONDS = 0.1


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: OrderStatus, to_status: OrderStatus) -> bool:
    if from_status.pk == to_status.pk:
        return False

    if not to_status.is_active:
        return False

    return from_status.can_transition_to.filter(pk=to_status.pk).exists()


def validate_transition(*, order: Order, target_status: OrderStatus):
    current = order.status

    if not target_status.is_active:
        raise InvalidStateError(f"Order status {target_status.code} is not active")

    if not can_transition(from_status=current, to_status=target_status):
        if current.is_terminal:
            raise InvalidStateError(
                f"Order {order.order_no} is in terminal status {current.code}"
            )
        raise InvalidStateError(
            f"Order {order.order_no} cannot transition from "
            f"'{current.code}' to '{target_status.code}'"
        )


# ============================================================
# TRANSITION
# ============================================================


@transaction.atomic
def _apply_status_change(data: UpdateOrderStatusInput):
    order = Order.objects.select_for_update().filter(pk=data.order_id).first()
    if order is None:
        raise NotFoundError(f"Order {data.order_id} not found")

    code = (data.status_code or "").strip().upper()
    target = OrderStatus.objects.filter(code=code).first()
    if target is None:
        raise NotFoundError(f"Order status {code} not found")

    if order.status_id == target.pk:
        if data.notes is not None and data.notes != order.notes:
            order.notes = data.notes
            order.save(update_fields=["notes", "updated_at"])

        logger.warning(
            "Order status unchanged, transition skipped",
            extra={"order_id": str(order.id), "status": target.code},
        )
        return order.id

    validate_transition(order=order, target_status=target)

    previous_code = order.status.code
    restocked = 0

    if target.code == OrderStatus.CODE_CANCELLED and previous_code in RESTOCK_ON_CANCEL_FROM:
        for item in order.items.all():
            if release(
                product_id=item.product_id,
                quantity=item.quantity,
                order_id=order.id,
            ):
                restocked += 1

    order.status = target
    update_fields = ["status", "updated_at"]
    if data.notes is not None:
        order.notes = data.notes
        update_fields.append("notes")
    order.save(update_fields=update_fields)

    logger.info(
        "Order status updated",
        extra={
            "order_id": str(order.id),
            "from_status": previous_code,
            "to_status": target.code,
            "restocked_lines": restocked,
        },
    )
    return order.id


def _run_with_retry(func, *args, attempts: int):
    """
    Retry `func` on OperationalError with exponential backoff.

    Never retries inside an outer atomic block: the outer transaction is
    already broken and has to be retried by its owner.
    """
    attempt = 1
    while True:
        try:
            return func(*args)
        except OperationalError as exc:
            if attempt >= attempts or transaction.get_connection().in_atomic_block:
                raise

            delay = RETRY_BASE_DELAY_SECONDS * (2 ** (attempt - 1))
            logger.warning(
                "Order status update hit a database conflict, retrying",
                extra={"attempt": attempt, "delay": delay, "error": str(exc)},
            )
            time.sleep(delay)
            attempt += 1


def update_order_status(data: UpdateOrderStatusInput) -> Result[OrderView]:
    """
    Move an order to `data.status_code`.

    Errors (as Result.failure):
    - NotFoundError: order or target status missing
    - InvalidStateError: inactive target, edge not allowed, terminal status
    """
    attempts = max(int(getattr(settings, "ORDER_STATUS_UPDATE_RETRIES", 3)), 1)

    try:
        order_id = _run_with_retry(_apply_status_change, data, attempts=attempts)
        return Result.success(load_order_view(order_id))
    except CommerceError as exc:
        logger.warning(
            "Order status update rejected",
            extra={
                "order_id": str(data.order_id),
                "status": data.status_code,
                "error_kind": exc.kind,
                "error": exc.message,
            },
        )
        return Result.failure(exc)


# ============================================================
# DEFAULT GRAPH
# ============================================================


@transaction.atomic
def ensure_default_statuses() -> list[OrderStatus]:
    """
    Create the default status graph. Idempotent.
    Existing custom statuses and edges are left alone.
    """
    by_code = {}
    for position, (code, name, description, _) in enumerate(
        DEFAULT_STATUS_GRAPH
    ):
        status, created = OrderStatus.objects.get_or_create(
            code=code,
            defaults={
                "name": name,
                "description": description,
                "sort_order": position,
                "is_active": True,
            },
        )
        if created:
            logger.info("Order status created", extra={"status": code})
        by_code[code] = status

    pending = by_code[OrderStatus.CODE_PENDING]
    if not OrderStatus.objects.filter(is_default=True).exists():
        pending.is_default = True
        pending.save(update_fields=["is_default", "updated_at"])

    for code, _, _, transitions in DEFAULT_STATUS_GRAPH:
        by_code[code].can_transition_to.add(*[by_code[t] for t in transitions])

    return list(by_code.values())
