# payments/services/payment_workflow.py

"""
PAYMENT WORKFLOW COORDINATOR

Flow:
    create_payment_for_order
        -> create_preference  (provider, idempotency key forwarded)
        -> save_payment       (one row per idempotency key / external reference)
    verify_payment / webhook
        -> provider.get_payment
        -> update the local Payment under a row lock
        -> newly approved: drive the order to COMPLETED

HARD RULES:
- The provider client is injected at construction. No module-level client.
- Provider calls happen OUTSIDE database transactions.
- A second "approved" for an already-approved payment is a no-op.
- An approved payment never moves back to an earlier status, and other
  provider payments under its reference are recorded, not applied.
- An approval whose provider amount differs from the payment amount is
  recorded but does not complete the order.
- handle_webhook never raises: every outcome is acknowledged so the
  provider does not retry-storm; failures are logged.
- Every webhook delivery is kept in WebhookLog with its outcome.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from commerce.errors import (
    CommerceError,
    ConflictError,
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
)
from commerce.results import Result, returns_result
from customers.models import Customer
from orders.models import Order, OrderStatus
from orders.services import update_order_status
from orders.services.inputs import UpdateOrderStatusInput
from payments.models import Payment, WebhookLog
from payments.services.inputs import (
    BackUrls,
    CreatePaymentInput,
    CreatePreferenceRequest,
    PayerInput,
    PreferenceItem,
    VerifyPaymentInput,
    WebhookDelivery,
    WebhookNotification,
)
from payments.services.provider import (
    PaymentProvider,
    ProviderPayment,
    ProviderPreference,
)
from payments.services.read_models import (
    PaymentCreated,
    PaymentVerification,
    PaymentView,
    build_payment_view,
    build_preference_view,
    build_provider_payment_view,
)

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")

# provider payment_type_id -> Payment.payment_method
PAYMENT_TYPE_TO_METHOD = {
    "credit_card": Payment.METHOD_CREDIT_CARD,
    "debit_card": Payment.METHOD_DEBIT_CARD,
    "prepaid_card": Payment.METHOD_DEBIT_CARD,
    "ticket": Payment.METHOD_TICKET,
    "atm": Payment.METHOD_TICKET,
    "bank_transfer": Payment.METHOD_BANK_TRANSFER,
    "account_money": Payment.METHOD_ACCOUNT_MONEY,
}

# the only statuses an approved payment may still move to
APPROVED_EXIT_STATUSES = frozenset(
    {
        Payment.STATUS_REFUNDED,
        Payment.STATUS_CHARGED_BACK,
        Payment.STATUS_CANCELLED,
    }
)

# failed attempts that a repeated creation puts back to pending
RETRYABLE_STATUSES = frozenset({Payment.STATUS_REJECTED, Payment.STATUS_CANCELLED})


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def default_external_reference(order_id) -> str:
    return f"sale-{order_id}"


def default_idempotency_key(order_id) -> str:
    return f"payment-{order_id}-{int(time.time() * 1000)}"


# ============================================================
# CONFIG
# ============================================================


@dataclass(frozen=True)
class PaymentConfig:
    notification_url: str = ""
    back_urls: Optional[BackUrls] = None
    statement_descriptor: str = ""
    preference_ttl_hours: int = 24
    currency: str = "ARS"

    @classmethod
    def from_settings(cls) -> "PaymentConfig":
        payments = getattr(settings, "PAYMENTS", {}) or {}
        cfg = payments.get("MERCADOPAGO") or {}

        frontend = (getattr(settings, "FRONTEND_BASE_URL", "") or "").rstrip("/")
        back_urls = None
        if frontend or cfg.get("SUCCESS_URL"):
            back_urls = BackUrls(
                success=cfg.get("SUCCESS_URL") or f"{frontend}/payment/success",
                failure=cfg.get("FAILURE_URL") or f"{frontend}/payment/failure",
                pending=cfg.get("PENDING_URL") or f"{frontend}/payment/pending",
            )

        return cls(
            notification_url=cfg.get("NOTIFICATION_URL") or "",
            back_urls=back_urls,
            statement_descriptor=cfg.get("STATEMENT_DESCRIPTOR") or "",
            preference_ttl_hours=int(cfg.get("PREFERENCE_TTL_HOURS") or 24),
            currency=cfg.get("CURRENCY") or "ARS",
        )


@dataclass(frozen=True)
class WebhookOutcome:
    STATUS_PROCESSED = "processed"
    STATUS_IGNORED = "ignored"
    STATUS_ERROR = "error"

    status: str
    detail: str
    payment_id: Optional[uuid.UUID] = None
    payment_status: str = ""

    @property
    def acknowledged(self) -> bool:
        return True


# ============================================================
# READ HELPERS
# ============================================================


@returns_result
def get_payment(payment_id) -> PaymentView:
    payment = Payment.objects.filter(pk=payment_id).first()
    if payment is None:
        raise NotFoundError(f"Payment {payment_id} not found")
    return build_payment_view(payment)


@returns_result
def list_payments_for_order(order_id) -> tuple[PaymentView, ...]:
    if not Order.objects.filter(pk=order_id).exists():
        raise NotFoundError(f"Order {order_id} not found")
    return tuple(
        build_payment_view(p)
        for p in Payment.objects.filter(order_id=order_id).order_by("-created_at")
    )


def parse_webhook_payload(payload: dict[str, Any]) -> Optional[WebhookNotification]:
    """
    Accepts both notification shapes:
    - {"type": "payment", "action": "...", "data": {"id": "123"}}
    - {"topic": "payment", "id": "123"}   (query-string style)
    Returns None when neither shape is present.
    """
    payload = payload or {}
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}

    if payload.get("type"):
        return WebhookNotification(
            type=str(payload.get("type")).strip().lower(),
            action=str(payload.get("action") or ""),
            data_id=str(data.get("id") or payload.get("data.id") or "").strip(),
        )

    if payload.get("topic"):
        return WebhookNotification(
            type=str(payload.get("topic")).strip().lower(),
            data_id=str(payload.get("id") or "").strip(),
        )

    return None


# ============================================================
# WORKFLOW
# ============================================================


class PaymentWorkflow:
    def __init__(self, provider: PaymentProvider, *, config: Optional[PaymentConfig] = None):
        self.provider = provider
        self.config = config or PaymentConfig.from_settings()

    # ------------------------------------------------------------
    # preference
    # ------------------------------------------------------------

    def create_preference(self, request: CreatePreferenceRequest) -> ProviderPreference:
        """Ask the provider for a checkout preference. Same key, same intent."""
        now = timezone.now()
        external_reference = request.external_reference or default_external_reference(
            request.order_id
        )

        payer = {"email": request.payer.email}
        if request.payer.name:
            payer["name"] = request.payer.name
        if request.payer.surname:
            payer["surname"] = request.payer.surname
        if request.payer.phone:
            payer["phone"] = {"number": request.payer.phone}

        body = {
            "items": [
                {
                    "id": item.id,
                    "title": item.title,
                    "description": item.description,
                    "quantity": item.quantity,
                    # provider expects a JSON number
                    "unit_price": float(_money(item.unit_price)),
                    "currency_id": item.currency_id,
                }
                for item in request.items
            ],
            "payer": payer,
            "external_reference": external_reference,
            "metadata": dict(request.metadata or {}),
            "expires": True,
            "expiration_date_from": now.isoformat(),
            "expiration_date_to": (
                now + timedelta(hours=self.config.preference_ttl_hours)
            ).isoformat(),
        }
        if request.back_urls is not None:
            body["back_urls"] = {
                "success": request.back_urls.success,
                "failure": request.back_urls.failure,
                "pending": request.back_urls.pending,
            }
            body["auto_return"] = "approved"
        if request.notification_url:
            body["notification_url"] = request.notification_url
        if self.config.statement_descriptor:
            body["statement_descriptor"] = self.config.statement_descriptor

        try:
            preference = self.provider.create_preference(
                body, idempotency_key=request.idempotency_key
            )
        except CommerceError:
            logger.exception(
                "Payment preference creation failed",
                extra={"order_id": str(request.order_id)},
            )
            raise

        logger.info(
            "Payment preference created",
            extra={
                "order_id": str(request.order_id),
                "preference_id": preference.id,
                "idempotency_key": request.idempotency_key,
            },
        )
        return preference

    # ------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------

    def _find_existing(self, *, idempotency_key, external_reference) -> Optional[Payment]:
        qs = Payment.objects.select_for_update()
        if idempotency_key:
            payment = qs.filter(idempotency_key=idempotency_key).first()
            if payment is not None:
                return payment
        return qs.filter(external_reference=external_reference).first()

    def _reuse(self, payment: Payment, *, order: Order, preference: ProviderPreference) -> Payment:
        """
        Hand back an existing row for a repeated creation.

        A rejected or cancelled attempt goes back to PENDING under the new
        preference; its old status and provider id are kept in
        metadata["failed_attempts"].
        """
        if payment.order_id != order.id:
            raise ConflictError(
                f"Payment {payment.external_reference} already belongs to another order"
            )
        if payment.is_approved:
            raise ConflictError(
                f"Payment {payment.external_reference} is already approved"
            )

        if payment.preference_id != preference.id:
            fields = ["preference_id", "updated_at"]
            payment.preference_id = preference.id
            if payment.status in RETRYABLE_STATUSES:
                # New checkout attempt: the failed one stays in metadata.
                attempts = list((payment.metadata or {}).get("failed_attempts") or [])
                attempts.append(
                    {
                        "status": payment.status,
                        "provider_payment_id": payment.provider_payment_id,
                    }
                )
                payment.metadata = {**(payment.metadata or {}), "failed_attempts": attempts}
                payment.status = Payment.STATUS_PENDING
                payment.provider_payment_id = ""
                fields += ["status", "provider_payment_id", "metadata"]
            payment.save(update_fields=fields)

        logger.warning(
            "Payment reused for repeated creation",
            extra={
                "payment_id": str(payment.id),
                "idempotency_key": payment.idempotency_key,
                "preference_id": preference.id,
            },
        )
        return payment

    @transaction.atomic
    def save_payment(
        self,
        *,
        order: Order,
        customer: Customer,
        amount: Decimal,
        preference: ProviderPreference,
        idempotency_key: Optional[str],
        external_reference: Optional[str] = None,
        payment_method: str = Payment.METHOD_OTHER,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Payment:
        """
        Persist the Payment for a created preference.

        Same idempotency key (or same external reference) -> the existing row,
        with its preference id refreshed. Otherwise a new PENDING row.
        """
        external_reference = (
            external_reference
            or preference.external_reference
            or default_external_reference(order.id)
        )

        existing = self._find_existing(
            idempotency_key=idempotency_key, external_reference=external_reference
        )
        if existing is not None:
            return self._reuse(existing, order=order, preference=preference)

        if payment_method not in Payment.METHODS:
            payment_method = Payment.METHOD_OTHER

        try:
            with transaction.atomic():
                payment = Payment.objects.create(
                    order=order,
                    customer=customer,
                    amount=_money(amount),
                    currency=self.config.currency,
                    status=Payment.STATUS_PENDING,
                    external_reference=external_reference,
                    preference_id=preference.id,
                    idempotency_key=idempotency_key or None,
                    payment_method=payment_method,
                    metadata={
                        **(metadata or {}),
                        "preference_id": preference.id,
                    },
                )
        except IntegrityError:
            # A concurrent request inserted the same key / reference first.
            existing = self._find_existing(
                idempotency_key=idempotency_key, external_reference=external_reference
            )
            if existing is None:
                raise
            return self._reuse(existing, order=order, preference=preference)

        logger.info(
            "Payment saved",
            extra={
                "payment_id": str(payment.id),
                "order_id": str(order.id),
                "preference_id": preference.id,
            },
        )
        return payment

    # ------------------------------------------------------------
    # create for order
    # ------------------------------------------------------------

    def _preference_items(self, order: Order) -> tuple[PreferenceItem, ...]:
        if order.discount_amount and _money(order.discount_amount) > 0:
            # Lines carry pre-discount prices; charge the order total as one item.
            return (
                PreferenceItem(
                    id=str(order.id),
                    title=f"Order {order.order_no}",
                    quantity=1,
                    unit_price=_money(order.total_amount),
                    currency_id=self.config.currency,
                ),
            )

        return tuple(
            PreferenceItem(
                id=str(item.product_id or item.id),
                title=item.product_name,
                quantity=item.quantity,
                unit_price=_money(item.unit_price),
                currency_id=self.config.currency,
            )
            for item in order.items.all()
        )

    def _check_payable(self, order: Order, data: CreatePaymentInput):
        if data.customer_id is not None and str(order.customer_id) != str(data.customer_id):
            raise InvalidStateError(
                f"Customer {data.customer_id} does not own order {order.order_no}"
            )

        if data.amount is not None and _money(data.amount) != _money(order.total_amount):
            raise InvalidAmountError(
                f"Payment amount ({_money(data.amount)}) does not match "
                f"order total ({_money(order.total_amount)})"
            )

        if order.status.code == OrderStatus.CODE_CANCELLED:
            raise InvalidStateError(f"Order {order.order_no} is cancelled")

        if order.status.code == OrderStatus.CODE_COMPLETED:
            raise ConflictError(f"Order {order.order_no} is already completed")

        if _money(order.total_amount) <= 0:
            raise InvalidAmountError(f"Order {order.order_no} has nothing to pay")

        if Payment.objects.filter(order=order, status=Payment.STATUS_APPROVED).exists():
            raise ConflictError(f"Order {order.order_no} is already paid")

    @returns_result
    def create_payment_for_order(self, data: CreatePaymentInput) -> PaymentCreated:
        order = (
            Order.objects.select_related("customer", "status")
            .filter(pk=data.order_id)
            .first()
        )
        if order is None:
            raise NotFoundError(f"Order {data.order_id} not found")

        self._check_payable(order, data)

        customer = order.customer
        payer = data.payer or PayerInput(email=customer.email, name=customer.name)
        idempotency_key = data.idempotency_key or default_idempotency_key(order.id)
        external_reference = data.external_reference or default_external_reference(order.id)

        preference = self.create_preference(
            CreatePreferenceRequest(
                order_id=order.id,
                items=self._preference_items(order),
                payer=payer,
                back_urls=data.back_urls or self.config.back_urls,
                notification_url=data.notification_url or self.config.notification_url,
                external_reference=external_reference,
                idempotency_key=idempotency_key,
                metadata={**(data.metadata or {}), "order_no": order.order_no},
            )
        )

        payment = self.save_payment(
            order=order,
            customer=customer,
            amount=order.total_amount,
            preference=preference,
            idempotency_key=idempotency_key,
            external_reference=external_reference,
            payment_method=data.payment_method,
            metadata=data.metadata,
        )

        return PaymentCreated(
            payment=build_payment_view(payment),
            preference=build_preference_view(preference),
        )

    # ------------------------------------------------------------
    # reconciliation
    # ------------------------------------------------------------

    def _complete_order(self, payment: Payment, info: ProviderPayment) -> bool:
        if info.transaction_amount is not None and _money(info.transaction_amount) != _money(
            payment.amount
        ):
            logger.error(
                "Approved payment amount mismatch, order not completed",
                extra={
                    "payment_id": str(payment.id),
                    "expected": str(payment.amount),
                    "received": str(info.transaction_amount),
                },
            )
            payment.metadata = {
                **(payment.metadata or {}),
                "amount_mismatch": {
                    "expected": str(_money(payment.amount)),
                    "received": str(_money(info.transaction_amount)),
                },
            }
            payment.save(update_fields=["metadata", "updated_at"])
            return False

        result = update_order_status(
            UpdateOrderStatusInput(
                order_id=payment.order_id,
                status_code=OrderStatus.CODE_COMPLETED,
            )
        )
        if not result.ok:
            logger.warning(
                "Approved payment could not complete its order",
                extra={
                    "payment_id": str(payment.id),
                    "order_id": str(payment.order_id),
                    "error": result.error.message,
                },
            )
            return False

        logger.info(
            "Order completed by approved payment",
            extra={"payment_id": str(payment.id), "order_id": str(payment.order_id)},
        )
        return True

    def _record_extra_provider_payment(self, payment: Payment, info: ProviderPayment):
        logger.error(
            "Another provider payment reported for an approved payment, not applied",
            extra={
                "payment_id": str(payment.id),
                "approved_provider_payment_id": payment.provider_payment_id,
                "provider_payment_id": info.id,
                "status": info.status,
            },
        )

        entry = {
            "id": info.id,
            "status": info.status,
            "transaction_amount": (
                str(info.transaction_amount)
                if info.transaction_amount is not None
                else None
            ),
        }
        metadata = dict(payment.metadata or {})
        extra = list(metadata.get("extra_provider_payments") or [])
        if entry in extra:
            return

        extra.append(entry)
        metadata["extra_provider_payments"] = extra
        payment.metadata = metadata
        payment.save(update_fields=["metadata", "updated_at"])

    def _apply_provider_payment(self, payment: Payment, info: ProviderPayment) -> bool:
        """
        Copy provider state onto a LOCKED payment row.
        Returns True only when this call moved the payment into approved.

        Once approved, the row is bound to the provider payment that approved
        it: other provider payments under the same reference are recorded in
        metadata["extra_provider_payments"] and never applied, and the bound
        one may only move on to refunded / charged_back / cancelled.
        """
        if info.status not in Payment.STATUSES:
            logger.warning(
                "Unknown provider payment status ignored",
                extra={"payment_id": str(payment.id), "status": info.status},
            )
            return False

        if payment.status == info.status and payment.provider_payment_id == info.id:
            logger.info(
                "Payment already up to date",
                extra={"payment_id": str(payment.id), "status": info.status},
            )
            return False

        failed_ids = {
            a.get("provider_payment_id")
            for a in (payment.metadata or {}).get("failed_attempts") or []
        }
        if info.id in failed_ids and info.id != payment.provider_payment_id:
            logger.info(
                "Notification for a superseded attempt ignored",
                extra={"payment_id": str(payment.id), "provider_payment_id": info.id},
            )
            return False

        if payment.is_approved:
            if payment.provider_payment_id and info.id != payment.provider_payment_id:
                self._record_extra_provider_payment(payment, info)
                return False
            if info.status not in APPROVED_EXIT_STATUSES:
                logger.warning(
                    "Approved payment cannot move back to an earlier status",
                    extra={
                        "payment_id": str(payment.id),
                        "status": info.status,
                        "provider_payment_id": info.id,
                    },
                )
                return False

        newly_approved = (
            info.status == Payment.STATUS_APPROVED and not payment.is_approved
        )
        previous = payment.status

        payment.status = info.status
        payment.provider_payment_id = info.id
        if info.payment_type_id in PAYMENT_TYPE_TO_METHOD:
            payment.payment_method = PAYMENT_TYPE_TO_METHOD[info.payment_type_id]
        payment.metadata = {
            **(payment.metadata or {}),
            "provider": {
                "status_detail": info.status_detail,
                "payment_method_id": info.payment_method_id,
                "payment_type_id": info.payment_type_id,
                "transaction_amount": (
                    str(info.transaction_amount)
                    if info.transaction_amount is not None
                    else None
                ),
                "date_approved": info.date_approved,
            },
        }
        if newly_approved:
            payment.approved_at = timezone.now()

        payment.save()

        logger.info(
            "Payment status updated",
            extra={
                "payment_id": str(payment.id),
                "from_status": previous,
                "to_status": info.status,
                "provider_payment_id": info.id,
            },
        )

        if newly_approved:
            self._complete_order(payment, info)
        return newly_approved

    @returns_result
    def verify_payment(self, data: VerifyPaymentInput) -> PaymentVerification:
        if not Payment.objects.filter(pk=data.payment_id).exists():
            raise NotFoundError(f"Payment {data.payment_id} not found")

        info = self.provider.get_payment(data.provider_payment_id)

        with transaction.atomic():
            payment = Payment.objects.select_for_update().get(pk=data.payment_id)

            if info.external_reference and info.external_reference != payment.external_reference:
                raise InvalidStateError(
                    f"Provider payment {info.id} belongs to reference "
                    f"{info.external_reference}, not {payment.external_reference}"
                )

            self._apply_provider_payment(payment, info)

        order_status = (
            Order.objects.filter(pk=payment.order_id)
            .values_list("status__code", flat=True)
            .first()
        )
        return PaymentVerification(
            payment=build_payment_view(payment),
            provider=build_provider_payment_view(info),
            order_status=order_status or "",
        )

    def process_webhook(self, notification: WebhookNotification) -> Optional[Payment]:
        """
        Returns None for ignored notification types.
        Raises NotFoundError when no local payment matches the reference.
        """
        if notification.type != "payment":
            logger.info(
                "Webhook ignored (not a payment notification)",
                extra={"type": notification.type, "action": notification.action},
            )
            return None

        if not notification.data_id:
            raise InvalidStateError("Payment notification without data.id")

        info = self.provider.get_payment(notification.data_id)

        with transaction.atomic():
            payment = (
                Payment.objects.select_for_update()
                .filter(external_reference=info.external_reference)
                .first()
                if info.external_reference
                else None
            )
            if payment is None:
                raise NotFoundError(
                    f"Payment with external reference "
                    f"'{info.external_reference}' not found (provider id {info.id})"
                )

            self._apply_provider_payment(payment, info)

        return payment

    # ------------------------------------------------------------
    # webhook log
    # ------------------------------------------------------------

    def _open_log(
        self,
        payload: dict[str, Any],
        notification: Optional[WebhookNotification],
        delivery: Optional[WebhookDelivery],
    ) -> Optional[WebhookLog]:
        delivery = delivery or WebhookDelivery(body=dict(payload or {}))
        try:
            with transaction.atomic():
                return WebhookLog.objects.create(
                    event_type=notification.type if notification else "",
                    data_id=notification.data_id if notification else "",
                    http_method=delivery.http_method[:8],
                    query_params=dict(delivery.query_params or {}),
                    body=dict(delivery.body or {}),
                    ip_address=delivery.ip_address or None,
                    user_agent=(delivery.user_agent or "")[:255],
                )
        except DatabaseError:
            logger.exception("Webhook delivery could not be logged")
            return None

    def _close_log(self, log: Optional[WebhookLog], outcome: WebhookOutcome):
        if log is None:
            return
        log.processed = outcome.status == WebhookOutcome.STATUS_PROCESSED
        log.outcome = outcome.status
        log.detail = outcome.detail
        log.payment_id = outcome.payment_id
        try:
            with transaction.atomic():
                log.save(
                    update_fields=[
                        "processed",
                        "outcome",
                        "detail",
                        "payment",
                        "updated_at",
                    ]
                )
        except DatabaseError:
            logger.exception(
                "Webhook outcome could not be logged", extra={"log_id": str(log.id)}
            )

    def handle_webhook(
        self,
        payload: dict[str, Any],
        *,
        delivery: Optional[WebhookDelivery] = None,
    ) -> WebhookOutcome:
        """
        Process one notification and acknowledge it, whatever happens.
        Every delivery is written to the webhook log with its outcome.
        """
        notification = parse_webhook_payload(payload)
        log = self._open_log(payload, notification, delivery)
        outcome = self._handle_notification(payload, notification)
        self._close_log(log, outcome)
        return outcome

    def _handle_notification(
        self, payload: dict[str, Any], notification: Optional[WebhookNotification]
    ) -> WebhookOutcome:
        if notification is None:
            logger.warning("Webhook payload not recognised", extra={"keys": sorted(payload or {})})
            return WebhookOutcome(
                status=WebhookOutcome.STATUS_IGNORED,
                detail="Unrecognised notification format",
            )

        try:
            payment = self.process_webhook(notification)
        except CommerceError as exc:
            logger.warning(
                "Webhook not applied",
                extra={
                    "type": notification.type,
                    "data_id": notification.data_id,
                    "error_kind": exc.kind,
                    "error": exc.message,
                },
            )
            return WebhookOutcome(status=WebhookOutcome.STATUS_ERROR, detail=exc.message)
        except Exception:
            logger.exception(
                "Webhook processing crashed",
                extra={"type": notification.type, "data_id": notification.data_id},
            )
            return WebhookOutcome(
                status=WebhookOutcome.STATUS_ERROR, detail="Internal error"
            )

        if payment is None:
            return WebhookOutcome(
                status=WebhookOutcome.STATUS_IGNORED,
                detail=f"Notification type '{notification.type}' ignored",
            )

        return WebhookOutcome(
            status=WebhookOutcome.STATUS_PROCESSED,
            detail="Notification processed",
            payment_id=payment.id,
            payment_status=payment.status,
        )
