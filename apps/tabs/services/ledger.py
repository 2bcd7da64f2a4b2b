"""
Payment ledger.

Every change to an account's running totals happens here, in the same
database transaction as the Transaction row it accounts for.
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.db.models import F
from django.utils import timezone

from apps.tabs.models import Account, Item, Transaction, TransactionType, generate_transaction_id

from .exceptions import (
    AccountNotFoundError,
    DuplicateTransactionError,
    InvalidAmountError,
    ItemNotFoundError,
    TransactionNotFoundError,
)
from .transactions import run_in_transaction

logger = logging.getLogger(__name__)


def _lock_account(account_id) -> Account:
    try:
        return Account.objects.select_for_update().get(id=account_id)
    except (Account.DoesNotExist, ValidationError, ValueError):
        raise AccountNotFoundError(f"Account with ID {account_id} not found")


def record_payment(
    *,
    account_id: UUID,
    amount: Decimal,
    transaction_id: Optional[str] = None
) -> Transaction:
    """
    Record a payment exactly once per ``transaction_id``.

    The account row is locked first, so concurrent payments for the same
    account queue up; the transaction primary key catches any insert that
    still slips through.

    Args:
        account_id: UUID of the paying account
        amount: Positive amount paid
        transaction_id: Idempotency key (SumUp checkout reference). A fresh
            UUID is used when omitted, so manual payments never collide.

    Returns:
        The created payment Transaction

    Raises:
        InvalidAmountError: If amount is not positive
        AccountNotFoundError: If the account doesn't exist
        DuplicateTransactionError: If the transaction id was already recorded
    """
    amount = Decimal(str(amount))
    if amount <= 0:
        raise InvalidAmountError(f"Payment amount must be positive, got {amount}")

    transaction_id = transaction_id or generate_transaction_id()

    def _record():
        account = _lock_account(account_id)

        if Transaction.objects.filter(id=transaction_id).exists():
            raise DuplicateTransactionError(transaction_id)

        now = timezone.now()
        try:
            payment = Transaction.objects.create(
                id=transaction_id,
                type=TransactionType.PAYMENT,
                account=account,
                amount=amount,
            )
        except IntegrityError:
            # Lost the primary-key race to a concurrent writer
            raise DuplicateTransactionError(transaction_id)

        Account.objects.filter(id=account.id).update(
            total_paid=F('total_paid') + amount,
            last_payment_at=now,
            updated_at=now,
        )
        return payment

    try:
        payment = run_in_transaction(_record)
    except IntegrityError:
        raise DuplicateTransactionError(transaction_id)

    logger.info('Recorded payment %s of %s for account %s', transaction_id, amount, account_id)
    return payment


def record_purchase(*, account_id: UUID, item_id: int) -> Transaction:
    """
    Record the purchase of one item at its current price.

    Raises:
        AccountNotFoundError: If the account doesn't exist
        ItemNotFoundError: If the item doesn't exist or is unavailable
    """
    def _record():
        try:
            item = Item.objects.get(id=item_id, is_available=True)
        except (Item.DoesNotExist, ValueError):
            raise ItemNotFoundError(f"Item with ID {item_id} not found")

        account = _lock_account(account_id)
        now = timezone.now()
        purchase = Transaction.objects.create(
            type=TransactionType.PURCHASE,
            account=account,
            item=item,
            amount=item.price,
        )
        Account.objects.filter(id=account.id).update(
            total_purchased=F('total_purchased') + item.price,
            last_purchase_at=now,
            updated_at=now,
        )
        return purchase

    purchase = run_in_transaction(_record)
    logger.info('Recorded purchase %s (%s) for account %s', purchase.id, purchase.amount, account_id)
    return purchase


def delete_transaction(*, transaction_id: str) -> None:
    """
    Delete a transaction and reverse its effect on the account totals.

    Raises:
        TransactionNotFoundError: If the transaction doesn't exist
    """
    def _delete():
        try:
            account_id = Transaction.objects.values_list('account_id', flat=True).get(id=transaction_id)
        except Transaction.DoesNotExist:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")

        # Same lock order as record_*: account row first
        _lock_account(account_id)
        try:
            entry = Transaction.objects.select_for_update().get(id=transaction_id)
        except Transaction.DoesNotExist:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")

        total_field = (
            'total_purchased' if entry.type == TransactionType.PURCHASE else 'total_paid'
        )
        Account.objects.filter(id=entry.account_id).update(
            **{total_field: F(total_field) - entry.amount},
            updated_at=timezone.now(),
        )
        entry.delete()
        return entry

    entry = run_in_transaction(_delete)
    logger.info('Deleted %s transaction %s on account %s', entry.type, transaction_id, entry.account_id)
