# orders/models/order.py

"""
ORDER (HEADER)

Money fields are written once, at creation, by
orders.services.order_service and never rewritten afterwards.
Only status, notes and metadata move over the order's lifetime, and status
only through orders.services.order_lifecycle.

Invariants:
- total_amount = subtotal_amount - discount_amount
- total_amount >= 0
- 0 <= discount_rate <= 100
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

from customers.models import Customer

from .coupon import Coupon
from .order_status import OrderStatus


class Order(models.Model):
    IMMUTABLE_FIELDS = (
        "customer_id",
        "subtotal_amount",
        "tax_amount",
        "discount_rate",
        "discount_amount",
        "total_amount",
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order_no = models.CharField(
        max_length=64,
        unique=True,
        blank=True,
        help_text="System-generated public order number",
    )

    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="orders",
    )

    status = models.ForeignKey(
        OrderStatus,
        on_delete=models.PROTECT,
        related_name="orders",
    )

    coupon = models.ForeignKey(
        Coupon,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
    )

    subtotal_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    tax_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    discount_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("0.00")
    )
    discount_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    notes = models.TextField(blank=True, default="")
    metadata = models.JSONField(blank=True, default=dict)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["created_at"]),
            models.Index(fields=["order_no"]),
            models.Index(fields=["customer", "created_at"]),
            models.Index(fields=["status", "created_at"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(total_amount__gte=0), name="order_total_non_negative"
            ),
            models.CheckConstraint(
                condition=Q(discount_rate__gte=0) & Q(discount_rate__lte=100),
                name="order_discount_rate_percent_range",
            ),
        ]

    def save(self, *args, **kwargs):
        if not self.order_no:
            prefix = timezone.now().strftime("ORD%Y%m%d")
            self.order_no = f"{prefix}-{uuid.uuid4().hex[:8].upper()}"

        if not self._state.adding:
            self._validate_immutable()

        super().save(*args, **kwargs)

    def _validate_immutable(self):
        previous = (
            Order.objects.filter(pk=self.pk).values(*self.IMMUTABLE_FIELDS).first()
        )
        if previous is None:
            return

        if self.customer_id != previous["customer_id"]:
            raise ValidationError("Order field 'customer' is immutable")

        for field in self.IMMUTABLE_FIELDS[1:]:
            if Decimal(str(getattr(self, field))) != Decimal(str(previous[field])):
                raise ValidationError(f"Order field '{field}' is immutable")

    def __str__(self):
        return f"{self.order_no} | {self.total_amount}"
