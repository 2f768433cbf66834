# payments/services/read_models.py

"""
PAYMENT READ MODELS

Built from rows / provider responses the caller already holds.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from payments.models import Payment
from payments.services.provider import ProviderPayment, ProviderPreference


@dataclass(frozen=True)
class PaymentView:
    id: UUID
    order_id: UUID
    customer_id: UUID
    amount: Decimal
    currency: str
    provider: str
    status: str
    payment_method: str
    external_reference: str
    preference_id: str
    idempotency_key: Optional[str]
    provider_payment_id: str
    metadata: dict[str, Any]
    created_at: datetime
    updated_at: datetime
    approved_at: Optional[datetime]


@dataclass(frozen=True)
class PreferenceView:
    id: str
    init_point: str
    sandbox_init_point: str


@dataclass(frozen=True)
class ProviderPaymentView:
    id: str
    status: str
    status_detail: str
    external_reference: str
    transaction_amount: Optional[Decimal]


@dataclass(frozen=True)
class PaymentCreated:
    payment: PaymentView
    preference: PreferenceView


@dataclass(frozen=True)
class PaymentVerification:
    payment: PaymentView
    provider: ProviderPaymentView
    order_status: str


def build_payment_view(payment: Payment) -> PaymentView:
    return PaymentView(
        id=payment.id,
        order_id=payment.order_id,
        customer_id=payment.customer_id,
        amount=payment.amount,
        currency=payment.currency,
        provider=payment.provider,
        status=payment.status,
        payment_method=payment.payment_method,
        external_reference=payment.external_reference,
        preference_id=payment.preference_id,
        idempotency_key=payment.idempotency_key,
        provider_payment_id=payment.provider_payment_id,
        metadata=dict(payment.metadata or {}),
        created_at=payment.created_at,
        updated_at=payment.updated_at,
        approved_at=payment.approved_at,
    )


def build_preference_view(preference: ProviderPreference) -> PreferenceView:
    return PreferenceView(
        id=preference.id,
        init_point=preference.init_point,
        sandbox_init_point=preference.sandbox_init_point,
    )


def build_provider_payment_view(info: ProviderPayment) -> ProviderPaymentView:
    return ProviderPaymentView(
        id=info.id,
        status=info.status,
        status_detail=info.status_detail,
        external_reference=info.external_reference,
        transaction_amount=info.transaction_amount,
    )
