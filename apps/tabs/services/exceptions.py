"""
Domain-specific exceptions for the tabs app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""


class TabsServiceError(Exception):
    """Base exception for all tabs service errors."""
    pass


class AccountNotFoundError(TabsServiceError):
    """Raised when an account does not exist."""
    pass


class ItemNotFoundError(TabsServiceError):
    """Raised when an item does not exist or is not for sale."""
    pass


class TransactionNotFoundError(TabsServiceError):
    """Raised when a transaction does not exist."""
    pass


class DuplicateTransactionError(TabsServiceError):
    """Raised when a transaction with the same id has already been recorded."""

    def __init__(self, transaction_id):
        super().__init__(f"Transaction {transaction_id} already exists")
        self.transaction_id = transaction_id


class InvalidAmountError(TabsServiceError):
    """Raised when a monetary amount is zero or negative."""
    pass
