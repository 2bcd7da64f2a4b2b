"""
Account queries and balance metrics for the dashboard.
"""

from decimal import Decimal
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db.models import Case, DecimalField, ExpressionWrapper, F, Q, QuerySet, Sum, Value, When
from django.db.models.functions import Coalesce

from apps.tabs.models import Account, Transaction

from .exceptions import AccountNotFoundError


class EmployeeFilter:
    ALL = 'all'
    EMPLOYEE = 'employee'
    NON_EMPLOYEE = 'non_employee'

    choices = [ALL, EMPLOYEE, NON_EMPLOYEE]


class AccountOrdering:
    LAST_PURCHASE = 'last_purchase'
    DEBT = 'debt'
    TOTAL_PAID = 'total_paid'

    choices = [LAST_PURCHASE, DEBT, TOTAL_PAID]


_MONEY = DecimalField(max_digits=12, decimal_places=2)
_ZERO = Value(Decimal('0.00'), output_field=_MONEY)


def with_balance(queryset: QuerySet) -> QuerySet:
    """Annotate ``balance_amount`` (paid minus purchased) onto accounts."""
    return queryset.annotate(
        balance_amount=ExpressionWrapper(
            F('total_paid') - F('total_purchased'), output_field=_MONEY
        )
    )


def list_accounts(
    *,
    search: str = '',
    employee: str = EmployeeFilter.ALL,
    ordering: str = AccountOrdering.LAST_PURCHASE
) -> QuerySet:
    """
    Accounts for the dashboard grid.

    Args:
        search: Case-insensitive substring of name or username
        employee: One of EmployeeFilter.choices
        ordering: One of AccountOrdering.choices. ``debt`` puts the largest
            debt (most negative balance) first; the others are descending.
    """
    queryset = with_balance(Account.objects.all())

    if search:
        queryset = queryset.filter(Q(name__icontains=search) | Q(username__icontains=search))

    if employee == EmployeeFilter.EMPLOYEE:
        queryset = queryset.filter(is_employee=True)
    elif employee == EmployeeFilter.NON_EMPLOYEE:
        queryset = queryset.filter(is_employee=False)

    if ordering == AccountOrdering.DEBT:
        return queryset.order_by('balance_amount', 'name')
    if ordering == AccountOrdering.TOTAL_PAID:
        return queryset.order_by('-total_paid', 'name')
    return queryset.order_by(F('last_purchase_at').desc(nulls_last=True), 'name')


def get_account(*, account_id: UUID) -> Account:
    try:
        return with_balance(Account.objects.all()).get(id=account_id)
    except (Account.DoesNotExist, ValidationError, ValueError):
        raise AccountNotFoundError(f"Account with ID {account_id} not found")


def get_account_by_slack_id(*, slack_id: str) -> Account:
    account = Account.objects.filter(slack_id=slack_id).first()
    if account is None:
        raise AccountNotFoundError(f"No account for Slack user {slack_id}")
    return account


def get_account_transactions(*, account_id: UUID) -> QuerySet:
    """Transaction history for one account, newest first."""
    get_account(account_id=account_id)
    return Transaction.objects.filter(account_id=account_id).select_related('item')


def get_balance_summary() -> dict:
    """
    Global balance metrics over all accounts.

    ``total_owed`` sums the debts of accounts with a negative balance,
    split into employee and non-employee debt. ``total_overpaid`` sums the
    credit of accounts with a positive balance.
    """
    debt = F('total_purchased') - F('total_paid')
    owes = Q(total_purchased__gt=F('total_paid'))

    def debt_where(condition):
        return Coalesce(
            Sum(Case(When(condition, then=debt), default=_ZERO, output_field=_MONEY)),
            _ZERO,
        )

    totals = Account.objects.aggregate(
        total_owed=debt_where(owes),
        total_overpaid=Coalesce(
            Sum(Case(
                When(total_paid__gt=F('total_purchased'), then=F('total_paid') - F('total_purchased')),
                default=_ZERO,
                output_field=_MONEY,
            )),
            _ZERO,
        ),
        employee_debt=debt_where(owes & Q(is_employee=True)),
        non_employee_debt=debt_where(owes & Q(is_employee=False)),
    )
    return {key: Decimal(value).quantize(Decimal('0.01')) for key, value in totals.items()}
