# payments/services/inputs.py

"""
TYPED PAYMENT OPERATION INPUTS (validated once by the API serializers)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID


@dataclass(frozen=True)
class PayerInput:
    email: str
    name: str = ""
    surname: str = ""
    phone: str = ""


@dataclass(frozen=True)
class BackUrls:
    success: str
    failure: str
    pending: str


@dataclass(frozen=True)
class PreferenceItem:
    id: str
    title: str
    quantity: int
    unit_price: Decimal
    currency_id: str = "ARS"
    description: str = ""


@dataclass(frozen=True)
class CreatePreferenceRequest:
    order_id: UUID
    items: tuple[PreferenceItem, ...]
    payer: PayerInput
    back_urls: Optional[BackUrls] = None
    notification_url: str = ""
    external_reference: Optional[str] = None
    idempotency_key: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CreatePaymentInput:
    order_id: UUID
    payer: Optional[PayerInput] = None
    idempotency_key: Optional[str] = None
    # When given they must match the order (total / owner).
    customer_id: Optional[UUID] = None
    amount: Optional[Decimal] = None
    external_reference: Optional[str] = None
    payment_method: str = "other"
    back_urls: Optional[BackUrls] = None
    notification_url: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class VerifyPaymentInput:
    payment_id: UUID
    provider_payment_id: str


@dataclass(frozen=True)
class WebhookNotification:
    type: str
    action: str = ""
    data_id: str = ""


@dataclass(frozen=True)
class WebhookDelivery:
    """Transport details of one notification, kept in the webhook log."""

    http_method: str = "POST"
    query_params: dict[str, Any] = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: str = ""
