# orders/models/order_item.py

"""
ORDER ITEM (IMMUTABLE SNAPSHOT)

One line of an order, frozen at creation time:
- unit_price is the tax-inclusive price actually charged
- subtotal = round2(quantity * unit_price)
- product name / sku / base price / tax rate are copied so the line stays
  readable after the product is edited or deleted

Cancellation never rewrites lines; it restores stock and flips the status.
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from products.models import Product

from .order import Order


class OrderItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.SET_NULL,
        null=True,
        related_name="order_items",
    )

    # Entry order of the line inside the order (display only).
    position = models.PositiveIntegerField(default=0)

    product_name = models.CharField(max_length=255)
    sku = models.CharField(max_length=128, blank=True, default="")

    quantity = models.PositiveIntegerField()

    base_unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2)
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Tax-inclusive unit price charged.",
    )

    tax_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["position", "created_at"]
        indexes = [
            models.Index(fields=["order", "position"]),
            models.Index(fields=["product"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gte=1), name="order_item_quantity_positive"
            ),
            models.CheckConstraint(
                condition=Q(unit_price__gte=0), name="order_item_unit_price_non_negative"
            ),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("OrderItem records are immutable")

        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("OrderItem records are immutable and cannot be deleted")

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"
