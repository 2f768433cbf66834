# commerce/errors.py

"""
COMMERCE DOMAIN ERRORS

Centralized error kinds shared by the products, orders and payments services.

Rules:
- Business-rule violations are raised as one of these and never retried.
- Each error carries a stable `kind` and the HTTP status the boundary maps it to.
- Messages name the offending entity and the violated constraint.
"""


class CommerceError(Exception):
    """Base exception for all core business failures."""

    kind = "internal"
    http_status = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__

    def __str__(self):
        return self.message


class NotFoundError(CommerceError):
    """Customer, product, order, status or payment does not exist."""

    kind = "not_found"
    http_status = 404


class InvalidStateError(CommerceError):
    """Inactive entity or an illegal / repeated status transition."""

    kind = "invalid_state"
    http_status = 400


class ProductInactiveError(InvalidStateError):
    pass


class InsufficientStockError(CommerceError):
    kind = "insufficient_stock"
    http_status = 409


class InvalidAmountError(CommerceError):
    """Negative total, out-of-range rate or payment/order amount mismatch."""

    kind = "invalid_amount"
    http_status = 400


class ConflictError(CommerceError):
    """The operation was already done; callers treat it as such."""

    kind = "conflict"
    http_status = 409


class ExternalProviderError(CommerceError):
    """Payment provider call failed or returned an unexpected shape."""

    kind = "external_provider"
    http_status = 502


class InternalError(CommerceError):
    kind = "internal"
    http_status = 500
