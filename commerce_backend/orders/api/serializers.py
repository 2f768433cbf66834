# orders/api/serializers.py

"""
ORDER API SERIALIZERS

Input serializers validate field presence/types ONCE and build the typed
input dataclass for the core. Output serializers render the read models
(they read attributes straight off the frozen dataclasses).
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from orders.models import OrderStatus
from orders.services.inputs import (
    CreateOrderInput,
    OrderLineInput,
    QuoteInput,
    QuoteLineInput,
    UpdateOrderStatusInput,
)

ZERO = Decimal("0.00")
HUNDRED = Decimal("100.00")


def _rate_field(**kwargs):
    return serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=ZERO,
        max_value=HUNDRED,
        **kwargs,
    )


def _money_field(**kwargs):
    return serializers.DecimalField(max_digits=12, decimal_places=2, **kwargs)


# ============================================================
# INPUT
# ============================================================


class OrderLineInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = _money_field(
        min_value=ZERO,
        required=False,
        allow_null=True,
        default=None,
        help_text="Tax-inclusive unit price locked at cart time. Derived from the product when omitted.",
    )


class CreateOrderSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    items = OrderLineInputSerializer(many=True, allow_empty=False)
    discount_rate = _rate_field(required=False, default=ZERO)
    coupon_code = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, default=None, max_length=64
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    metadata = serializers.JSONField(required=False, default=dict)

    def validate_metadata(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("metadata must be a JSON object")
        return value

    def to_input(self) -> CreateOrderInput:
        data = self.validated_data
        return CreateOrderInput(
            customer_id=data["customer_id"],
            items=tuple(
                OrderLineInput(
                    product_id=line["product_id"],
                    quantity=line["quantity"],
                    unit_price=line.get("unit_price"),
                )
                for line in data["items"]
            ),
            discount_rate=data["discount_rate"],
            coupon_code=(data.get("coupon_code") or "").strip() or None,
            notes=data["notes"],
            metadata=data["metadata"],
        )


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=32)
    notes = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, default=None
    )

    def to_input(self, order_id) -> UpdateOrderStatusInput:
        data = self.validated_data
        return UpdateOrderStatusInput(
            order_id=order_id,
            status_code=data["status"],
            notes=data["notes"],
        )


class QuoteLineSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class QuoteSerializer(serializers.Serializer):
    items = QuoteLineSerializer(many=True, allow_empty=False)
    discount_rate = _rate_field(required=False, default=ZERO)

    def to_input(self) -> QuoteInput:
        data = self.validated_data
        return QuoteInput(
            items=tuple(
                QuoteLineInput(product_id=line["product_id"], quantity=line["quantity"])
                for line in data["items"]
            ),
            discount_rate=data["discount_rate"],
        )


# ============================================================
# OUTPUT
# ============================================================


class CustomerSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField()
    name = serializers.CharField()
    email = serializers.EmailField()


class StatusSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField()
    code = serializers.CharField()
    name = serializers.CharField()


class OrderLineViewSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    product_id = serializers.UUIDField(allow_null=True)
    product_name = serializers.CharField()
    sku = serializers.CharField()
    quantity = serializers.IntegerField()
    base_unit_price = _money_field()
    tax_rate = _rate_field()
    unit_price = _money_field()
    tax_amount = _money_field()
    subtotal = _money_field()


class OrderViewSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    order_no = serializers.CharField()
    customer = CustomerSummarySerializer()
    status = StatusSummarySerializer()
    lines = OrderLineViewSerializer(many=True)
    subtotal = _money_field()
    tax_amount = _money_field()
    discount_rate = _rate_field()
    discount_amount = _money_field()
    total = _money_field()
    notes = serializers.CharField()
    metadata = serializers.JSONField()
    coupon_code = serializers.CharField()
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class PricedLineSerializer(serializers.Serializer):
    quantity = serializers.IntegerField()
    base_unit_price = _money_field()
    tax_rate = _rate_field()
    unit_price_with_tax = _money_field()
    subtotal = _money_field()
    tax_amount = _money_field()


class OrderPricingSerializer(serializers.Serializer):
    lines = PricedLineSerializer(many=True)
    subtotal = _money_field()
    tax_amount = _money_field()
    discount_rate = _rate_field()
    discount_amount = _money_field()
    total = _money_field()


class DiscountBeforeTaxQuoteSerializer(serializers.Serializer):
    subtotal_before_tax = _money_field()
    subtotal_before_discount = _money_field()
    discount_rate = _rate_field()
    discount_amount = _money_field()
    subtotal_after_discount = _money_field()
    tax_amount = _money_field()
    final_price = _money_field()


class OrderQuoteSerializer(serializers.Serializer):
    pricing = OrderPricingSerializer()
    discount_before_tax = DiscountBeforeTaxQuoteSerializer()


class OrderStatusSerializer(serializers.ModelSerializer):
    can_transition_to = serializers.SlugRelatedField(
        many=True, read_only=True, slug_field="code"
    )

    class Meta:
        model = OrderStatus
        fields = [
            "id",
            "code",
            "name",
            "description",
            "color",
            "sort_order",
            "is_active",
            "is_default",
            "can_transition_to",
        ]
        read_only_fields = fields
