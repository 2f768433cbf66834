# customers/models/customer.py

import uuid

from django.db import models


class Customer(models.Model):
    """
    Buyer referenced by orders and payments.

    Orders only need the customer to exist (and be active); profile data
    beyond contact fields is out of scope here.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=50, blank=True, default="")

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["email"]),
        ]

    def __str__(self):
        return f"{self.name} <{self.email}>"
