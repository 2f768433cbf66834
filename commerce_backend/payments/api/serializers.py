# payments/api/serializers.py

"""
PAYMENT API SERIALIZERS

Input serializers build the typed workflow inputs; output serializers
render the payment read models.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from payments.models import Payment
from payments.services.inputs import (
    BackUrls,
    CreatePaymentInput,
    PayerInput,
    VerifyPaymentInput,
)


# ============================================================
# INPUT
# ============================================================


class PayerSerializer(serializers.Serializer):
    email = serializers.EmailField()
    name = serializers.CharField(required=False, allow_blank=True, default="")
    surname = serializers.CharField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(required=False, allow_blank=True, default="")


class BackUrlsSerializer(serializers.Serializer):
    success = serializers.URLField()
    failure = serializers.URLField()
    pending = serializers.URLField()


class CreatePaymentSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    customer_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.01"),
        required=False,
        allow_null=True,
        default=None,
        help_text="When sent it must equal the order total.",
    )
    payer = PayerSerializer(required=False, allow_null=True, default=None)
    idempotency_key = serializers.CharField(
        max_length=128, required=False, allow_blank=True, default=""
    )
    external_reference = serializers.CharField(
        max_length=128, required=False, allow_blank=True, default=""
    )
    payment_method = serializers.ChoiceField(
        choices=Payment.METHOD_CHOICES, required=False, default=Payment.METHOD_OTHER
    )
    back_urls = BackUrlsSerializer(required=False, allow_null=True, default=None)
    notification_url = serializers.URLField(required=False, allow_blank=True, default="")
    metadata = serializers.JSONField(required=False, default=dict)

    def validate_metadata(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("metadata must be a JSON object")
        return value

    def to_input(self, *, idempotency_key: str = "") -> CreatePaymentInput:
        data = self.validated_data
        payer = data.get("payer")
        back_urls = data.get("back_urls")
        return CreatePaymentInput(
            order_id=data["order_id"],
            customer_id=data.get("customer_id"),
            amount=data.get("amount"),
            payer=PayerInput(**payer) if payer else None,
            idempotency_key=(data.get("idempotency_key") or idempotency_key or None),
            external_reference=data.get("external_reference") or None,
            payment_method=data.get("payment_method") or Payment.METHOD_OTHER,
            back_urls=BackUrls(**back_urls) if back_urls else None,
            notification_url=data.get("notification_url") or None,
            metadata=data.get("metadata") or {},
        )


class VerifyPaymentSerializer(serializers.Serializer):
    provider_payment_id = serializers.CharField(max_length=64)

    def to_input(self, payment_id) -> VerifyPaymentInput:
        return VerifyPaymentInput(
            payment_id=payment_id,
            provider_payment_id=self.validated_data["provider_payment_id"].strip(),
        )


# ============================================================
# OUTPUT
# ============================================================


class PaymentViewSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    order_id = serializers.UUIDField()
    customer_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    currency = serializers.CharField()
    provider = serializers.CharField()
    status = serializers.CharField()
    payment_method = serializers.CharField()
    external_reference = serializers.CharField()
    preference_id = serializers.CharField()
    idempotency_key = serializers.CharField(allow_null=True)
    provider_payment_id = serializers.CharField()
    metadata = serializers.JSONField()
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()
    approved_at = serializers.DateTimeField(allow_null=True)


class PreferenceViewSerializer(serializers.Serializer):
    id = serializers.CharField()
    init_point = serializers.CharField()
    sandbox_init_point = serializers.CharField()


class ProviderPaymentViewSerializer(serializers.Serializer):
    id = serializers.CharField()
    status = serializers.CharField()
    status_detail = serializers.CharField()
    external_reference = serializers.CharField()
    transaction_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, allow_null=True
    )


class PaymentCreatedSerializer(serializers.Serializer):
    payment = PaymentViewSerializer()
    preference = PreferenceViewSerializer()


class PaymentVerificationSerializer(serializers.Serializer):
    payment = PaymentViewSerializer()
    provider = ProviderPaymentViewSerializer()
    order_status = serializers.CharField()
