"""
Tabs app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations go through ``run_in_transaction``.
"""

from .exceptions import (
    TabsServiceError,
    AccountNotFoundError,
    ItemNotFoundError,
    TransactionNotFoundError,
    DuplicateTransactionError,
    InvalidAmountError,
)

from .transactions import run_in_transaction

from .ledger import (
    record_payment,
    record_purchase,
    delete_transaction,
)

from .balances import (
    AccountOrdering,
    EmployeeFilter,
    list_accounts,
    get_account,
    get_account_by_slack_id,
    get_account_transactions,
    get_balance_summary,
)


__all__ = [
    # Exceptions
    'TabsServiceError',
    'AccountNotFoundError',
    'ItemNotFoundError',
    'TransactionNotFoundError',
    'DuplicateTransactionError',
    'InvalidAmountError',

    # Transactions
    'run_in_transaction',

    # Ledger
    'record_payment',
    'record_purchase',
    'delete_transaction',

    # Balances
    'AccountOrdering',
    'EmployeeFilter',
    'list_accounts',
    'get_account',
    'get_account_by_slack_id',
    'get_account_transactions',
    'get_balance_summary',
]
