# payments/services/__init__.py

from .payment_workflow import (
    PaymentConfig,
    PaymentWorkflow,
    WebhookOutcome,
    get_payment,
    list_payments_for_order,
)

__all__ = [
    "PaymentConfig",
    "PaymentWorkflow",
    "WebhookOutcome",
    "get_payment",
    "list_payments_for_order",
]
