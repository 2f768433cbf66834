# payments/models/webhook_log.py

"""
WEBHOOK LOG (ONE ROW PER DELIVERY)

Audit trail of provider notifications, repeated deliveries included.
Written by the payment workflow before processing and completed with the
outcome afterwards. Never edited by hand.
"""

import uuid

from django.db import models

from .payment import Payment


class WebhookLog(models.Model):
    SOURCE_MERCADOPAGO = "mercadopago"
    SOURCE_CHOICES = [
        (SOURCE_MERCADOPAGO, "Mercado Pago"),
    ]

    OUTCOME_PROCESSED = "processed"
    OUTCOME_IGNORED = "ignored"
    OUTCOME_ERROR = "error"

    OUTCOME_CHOICES = [
        (OUTCOME_PROCESSED, "Processed"),
        (OUTCOME_IGNORED, "Ignored"),
        (OUTCOME_ERROR, "Error"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    source = models.CharField(
        max_length=32, choices=SOURCE_CHOICES, default=SOURCE_MERCADOPAGO
    )
    event_type = models.CharField(max_length=64, blank=True, default="")
    data_id = models.CharField(max_length=64, blank=True, default="")

    http_method = models.CharField(max_length=8, blank=True, default="")
    query_params = models.JSONField(default=dict, blank=True)
    body = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True, default="")

    processed = models.BooleanField(default=False)
    outcome = models.CharField(max_length=16, choices=OUTCOME_CHOICES, blank=True, default="")
    detail = models.TextField(blank=True, default="")
    payment = models.ForeignKey(
        Payment,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="webhook_logs",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["created_at"]),
            models.Index(fields=["source", "event_type"]),
            models.Index(fields=["processed"]),
            models.Index(fields=["data_id"]),
        ]

    def __str__(self):
        return f"{self.source}:{self.event_type}:{self.data_id} | {self.outcome or 'received'}"
