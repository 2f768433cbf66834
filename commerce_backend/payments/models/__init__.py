# payments/models/__init__.py

from .payment import Payment
from .webhook_log import WebhookLog

__all__ = ["Payment", "WebhookLog"]
