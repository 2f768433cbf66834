# payments/services/provider.py

"""
PAYMENT PROVIDER CONTRACT

The payment workflow only depends on this narrow surface:
- create_preference(body, idempotency_key) -> ProviderPreference
- get_payment(provider_payment_id)        -> ProviderPayment

MercadoPagoClient implements it over HTTP; tests pass an in-memory fake.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional, Protocol


@dataclass(frozen=True)
class ProviderPreference:
    id: str
    init_point: str = ""
    sandbox_init_point: str = ""
    external_reference: str = ""
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderPayment:
    id: str
    status: str
    status_detail: str = ""
    external_reference: str = ""
    transaction_amount: Optional[Decimal] = None
    currency_id: str = ""
    payment_method_id: str = ""
    payment_type_id: str = ""
    date_approved: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict)


class PaymentProvider(Protocol):
    def create_preference(
        self, body: dict[str, Any], *, idempotency_key: Optional[str] = None
    ) -> ProviderPreference: ...

    def get_payment(self, provider_payment_id: str) -> ProviderPayment: ...
