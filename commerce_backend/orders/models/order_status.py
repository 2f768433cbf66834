# orders/models/order_status.py

"""
ORDER STATUS (CONFIGURABLE STATE GRAPH)

Each row is one state. Legal moves are the `can_transition_to` edges.

Rules:
- Exactly one status may be the default (initial) one.
- A status with no outgoing edges is terminal.
- Inactive statuses can never be entered.
"""

import uuid

from django.db import models
from django.db.models import Q


class OrderStatus(models.Model):
    CODE_PENDING = "PENDING"
    CODE_PREPARING = "PREPARING"
    CODE_COMPLETED = "COMPLETED"
    CODE_CANCELLED = "CANCELLED"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=64)
    description = models.CharField(max_length=255, blank=True, default="")

    color = models.CharField(max_length=16, blank=True, default="")
    sort_order = models.PositiveIntegerField(default=0)

    is_active = models.BooleanField(default=True)
    is_default = models.BooleanField(default=False)

    can_transition_to = models.ManyToManyField(
        "self",
        symmetrical=False,
        blank=True,
        related_name="reachable_from",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["sort_order", "code"]
        verbose_name_plural = "order statuses"
        constraints = [
            models.UniqueConstraint(
                fields=["is_default"],
                condition=Q(is_default=True),
                name="order_status_single_default",
            ),
        ]

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)

    @property
    def is_terminal(self) -> bool:
        return not self.can_transition_to.exists()

    def __str__(self):
        return self.code
