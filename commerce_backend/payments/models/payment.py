# payments/models/payment.py

"""
PAYMENT (ONE LOGICAL RECORD PER CHECKOUT INTENT)

Idempotency rules:
- external_reference is unique (defaults to "sale-{order_id}")
- preference_id is unique (returned by the provider)
- idempotency_key is unique when present; NULL means "no dedup key"
- repeated creation with the same key returns the SAME row

Status values mirror the provider's payment statuses. Only the payment
workflow writes them.
"""

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from customers.models import Customer
from orders.models import Order


class Payment(models.Model):
    PROVIDER_MERCADOPAGO = "mercadopago"
    PROVIDER_CHOICES = [
        (PROVIDER_MERCADOPAGO, "Mercado Pago"),
    ]

    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_AUTHORIZED = "authorized"
    STATUS_IN_PROCESS = "in_process"
    STATUS_IN_MEDIATION = "in_mediation"
    STATUS_REJECTED = "rejected"
    STATUS_CANCELLED = "cancelled"
    STATUS_REFUNDED = "refunded"
    STATUS_CHARGED_BACK = "charged_back"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_AUTHORIZED, "Authorized"),
        (STATUS_IN_PROCESS, "In process"),
        (STATUS_IN_MEDIATION, "In mediation"),
        (STATUS_REJECTED, "Rejected"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_REFUNDED, "Refunded"),
        (STATUS_CHARGED_BACK, "Charged back"),
    ]
    STATUSES = {value for value, _ in STATUS_CHOICES}

    METHOD_CREDIT_CARD = "credit_card"
    METHOD_DEBIT_CARD = "debit_card"
    METHOD_TICKET = "ticket"
    METHOD_BANK_TRANSFER = "bank_transfer"
    METHOD_ACCOUNT_MONEY = "account_money"
    METHOD_OTHER = "other"

    METHOD_CHOICES = [
        (METHOD_CREDIT_CARD, "Credit card"),
        (METHOD_DEBIT_CARD, "Debit card"),
        (METHOD_TICKET, "Ticket"),
        (METHOD_BANK_TRANSFER, "Bank transfer"),
        (METHOD_ACCOUNT_MONEY, "Account money"),
        (METHOD_OTHER, "Other"),
    ]
    METHODS = {value for value, _ in METHOD_CHOICES}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        Order,
        on_delete=models.PROTECT,
        related_name="payments",
    )
    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="payments",
    )

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    currency = models.CharField(max_length=8, default="ARS")

    provider = models.CharField(
        max_length=32, choices=PROVIDER_CHOICES, default=PROVIDER_MERCADOPAGO
    )
    status = models.CharField(
        max_length=32, choices=STATUS_CHOICES, default=STATUS_PENDING
    )
    payment_method = models.CharField(
        max_length=32, choices=METHOD_CHOICES, default=METHOD_OTHER
    )

    external_reference = models.CharField(max_length=128, unique=True)
    preference_id = models.CharField(max_length=128, unique=True)
    idempotency_key = models.CharField(
        max_length=128, unique=True, null=True, blank=True
    )

    # Filled once the provider accepts / settles the payment.
    provider_payment_id = models.CharField(max_length=64, blank=True, default="")

    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    approved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["created_at"]),
            models.Index(fields=["status"]),
            models.Index(fields=["provider_payment_id"]),
            models.Index(fields=["order", "created_at"]),
        ]

    @property
    def is_approved(self) -> bool:
        return self.status == self.STATUS_APPROVED

    def __str__(self):
        return f"{self.provider}:{self.external_reference} | {self.status}"
