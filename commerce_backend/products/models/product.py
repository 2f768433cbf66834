# products/models/product.py

import uuid
from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q


class Product(models.Model):
    """
    Represents a sellable product.

    PRICE MODEL (IMPORTANT):
    - price is the BASE unit price (tax-exclusive)
    - tax_rate is a percent (0-100) applied per product
    - the tax-inclusive price charged is locked into OrderItem at order time

    STOCK MODEL:
    - stock is a plain integer counter, never negative (DB constraint)
    - stock is mutated ONLY via products.services.stock_ledger
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sku = models.CharField(max_length=128, unique=True, db_index=True)
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True, default="")

    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Base unit price, tax-exclusive.",
    )

    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("21.00"),
        validators=[
            MinValueValidator(Decimal("0.00")),
            MaxValueValidator(Decimal("100.00")),
        ],
        help_text="Tax percent applied on top of the base price (e.g. 21.00).",
    )

    stock = models.PositiveIntegerField(default=0)
    low_stock_threshold = models.PositiveIntegerField(default=10)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["sku"]),
            models.Index(fields=["name"]),
            models.Index(fields=["is_active"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(stock__gte=0), name="product_stock_non_negative"
            ),
            models.CheckConstraint(
                condition=Q(price__gte=0), name="product_price_non_negative"
            ),
            models.CheckConstraint(
                condition=Q(tax_rate__gte=0) & Q(tax_rate__lte=100),
                name="product_tax_rate_percent_range",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def clean(self):
        if self.price is None or Decimal(self.price) < 0:
            raise ValidationError("price cannot be negative")

        if self.tax_rate is None:
            raise ValidationError("tax_rate is required")

        if not Decimal("0") <= Decimal(self.tax_rate) <= Decimal("100"):
            raise ValidationError("tax_rate must be between 0 and 100")

    @property
    def price_with_tax(self) -> Decimal:
        """Base price plus tax, rounded half-up to cents."""
        base = Decimal(str(self.price))
        rate = Decimal(str(self.tax_rate)) / Decimal("100")
        return (base * (Decimal("1") + rate)).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )

    @property
    def is_low_stock(self) -> bool:
        return int(self.stock or 0) <= int(self.low_stock_threshold or 0)
