"""
Domain-specific exceptions for payments app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses. Gateway and
Slack failures are raised as ``apps.integrations.exceptions.UpstreamServiceError``.
"""


class PaymentsServiceError(Exception):
    """Base exception for all payments service errors."""
    pass


class UnknownMemberError(PaymentsServiceError):
    """Raised when no account matches a Slack user id."""
    pass


class PaymentAccountNotFoundError(PaymentsServiceError):
    """Raised when the account a payment is for does not exist."""
    pass


class CheckoutAccountMismatchError(PaymentsServiceError):
    """Raised when a checkout was created for a different account."""
    pass
