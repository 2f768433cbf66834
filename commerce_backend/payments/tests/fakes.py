# payments/tests/fakes.py

from __future__ import annotations

from decimal import Decimal

from commerce.errors import ExternalProviderError
from payments.services.provider import ProviderPayment, ProviderPreference


class FakeProvider:
    """In-memory payment provider. Payments are registered by the test."""

    def __init__(self):
        self.preference_calls = []
        self.payment_calls = []
        self.payments = {}
        self.fail_with = None

    def add_payment(
        self,
        provider_payment_id,
        *,
        status,
        external_reference,
        amount=None,
        payment_type_id="credit_card",
    ):
        self.payments[str(provider_payment_id)] = ProviderPayment(
            id=str(provider_payment_id),
            status=status,
            status_detail="accredited" if status == "approved" else "",
            external_reference=external_reference,
            transaction_amount=Decimal(str(amount)) if amount is not None else None,
            currency_id="ARS",
            payment_method_id="visa",
            payment_type_id=payment_type_id,
        )

    def create_preference(self, body, *, idempotency_key=None):
        if self.fail_with is not None:
            raise self.fail_with
        self.preference_calls.append({"body": body, "idempotency_key": idempotency_key})
        n = len(self.preference_calls)
        return ProviderPreference(
            id=f"pref-{n}",
            init_point=f"https://pay.example/checkout/pref-{n}",
            sandbox_init_point=f"https://sandbox.pay.example/checkout/pref-{n}",
            external_reference=body.get("external_reference", ""),
            raw=body,
        )

    def get_payment(self, provider_payment_id):
        if self.fail_with is not None:
            raise self.fail_with
        self.payment_calls.append(provider_payment_id)
        try:
            return self.payments[str(provider_payment_id)]
        except KeyError:
            raise ExternalProviderError(
                f"Mercado Pago HTTP 404: payment {provider_payment_id} not found"
            ) from None
