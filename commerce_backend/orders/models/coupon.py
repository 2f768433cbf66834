# orders/models/coupon.py

"""
COUPON

A code that turns into the order's discount rate at creation time.

Rules:
- code is stored upper-case and unique
- percentage coupons: 0 <= discount_value <= 100
- fixed coupons: discount_value is an amount off the tax-inclusive subtotal
- times_used only moves through orders.services.coupons, inside the
  order's transaction
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone


class Coupon(models.Model):
    TYPE_PERCENTAGE = "percentage"
    TYPE_FIXED = "fixed"

    TYPE_CHOICES = [
        (TYPE_PERCENTAGE, "Percentage"),
        (TYPE_FIXED, "Fixed amount"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=64, unique=True)
    description = models.CharField(max_length=255, blank=True, default="")

    discount_type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    discount_value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )

    is_active = models.BooleanField(default=True)
    valid_from = models.DateTimeField(null=True, blank=True)
    valid_until = models.DateTimeField(null=True, blank=True)

    # Compared against the pre-tax subtotal.
    min_purchase_amount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    times_used = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        constraints = [
            models.CheckConstraint(
                condition=Q(discount_value__gte=0), name="coupon_value_non_negative"
            ),
            models.CheckConstraint(
                condition=~Q(discount_type="percentage") | Q(discount_value__lte=100),
                name="coupon_percentage_max_100",
            ),
            models.CheckConstraint(
                condition=Q(usage_limit__isnull=True) | Q(times_used__lte=F("usage_limit")),
                name="coupon_usage_within_limit",
            ),
        ]

    def clean(self):
        if self.discount_type == self.TYPE_PERCENTAGE and self.discount_value > 100:
            raise ValidationError("Percentage discount cannot exceed 100")
        if self.valid_from and self.valid_until and self.valid_from > self.valid_until:
            raise ValidationError("valid_from cannot be after valid_until")

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)

    def is_valid_at(self, when=None) -> bool:
        when = when or timezone.now()
        if not self.is_active:
            return False
        if self.valid_from and when < self.valid_from:
            return False
        if self.valid_until and when > self.valid_until:
            return False
        return True

    @property
    def usage_limit_reached(self) -> bool:
        return self.usage_limit is not None and self.times_used >= self.usage_limit

    def __str__(self):
        return f"{self.code} | {self.discount_type} {self.discount_value}"
