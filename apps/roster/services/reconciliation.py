"""
Roster reconciliation service.

Converges stored accounts on the Slack member directory:

- live member without an account -> create
- live member whose employee flag or picture drifted -> update those fields
- account without a live member and without ledger history -> delete
- everything else -> leave alone

Planning is a pure function of the directory and account snapshots, so a
dry run has no effect beyond the returned report. Applying is chunked; each
chunk commits on its own.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from django.db import DatabaseError, transaction
from django.db.models import Exists, OuterRef
from django.utils import timezone

from apps.integrations.conf import get_integration_settings
from apps.integrations.slack import SlackClient, SlackMember
from apps.tabs.models import Account, Transaction

from .exceptions import RosterApplyFailed

logger = logging.getLogger(__name__)

REASON_CREATED = 'New directory member'
REASON_NOT_IN_DIRECTORY = 'Not in directory, no purchases'
REASON_DELETED_IN_DIRECTORY = 'Marked deleted in directory, no purchases'
REASON_HISTORY_SINCE_PLANNING = 'Transactions recorded since planning'

# Account fields kept in sync with Slack after creation
SYNCED_FIELDS = ('is_employee', 'picture_url')


class Outcome:
    DRY_RUN = 'dry_run'
    APPLIED = 'applied'
    PARTIALLY_APPLIED = 'partially_applied'


class OperationKind:
    CREATE = 'create'
    UPDATE = 'update'
    DELETE = 'delete'


@dataclass(frozen=True)
class AccountSnapshot:
    """The parts of an Account that reconciliation reads."""

    id: str
    slack_id: str
    name: str
    is_employee: bool
    picture_url: str
    total_purchased: Decimal
    has_transactions: bool = False

    @classmethod
    def from_account(cls, account: Account) -> 'AccountSnapshot':
        """Snapshot an account loaded through ``snapshot_queryset()``."""
        return cls(
            id=str(account.id),
            slack_id=account.slack_id,
            name=account.name,
            is_employee=account.is_employee,
            picture_url=account.picture_url,
            total_purchased=account.total_purchased,
            has_transactions=account.has_transactions,
        )


def _ledger_history():
    return Exists(Transaction.objects.filter(account=OuterRef('pk')))


def snapshot_queryset():
    """Accounts annotated with ``has_transactions``."""
    return Account.objects.annotate(has_transactions=_ledger_history())


@dataclass(frozen=True)
class Operation:
    kind: str
    slack_id: str
    entry: dict
    account_id: Optional[str] = None
    values: Dict[str, object] = field(default_factory=dict)


@dataclass
class ReconciliationReport:
    """Outcome of a reconciliation run, shaped for the API and the CLI."""

    organization: str
    dry_run: bool
    executed_at: datetime
    operations: List[Operation]
    outcome: str
    applied_operations: int = 0
    # Guarded deletes that found ledger history at apply time
    skipped: List[Operation] = field(default_factory=list)

    def _entries(self, kind):
        skipped = {id(op) for op in self.skipped}
        return [op.entry for op in self.operations if op.kind == kind and id(op) not in skipped]

    def as_dict(self) -> dict:
        created = self._entries(OperationKind.CREATE)
        updated = self._entries(OperationKind.UPDATE)
        deleted = self._entries(OperationKind.DELETE)
        skipped = [dict(op.entry, reason=REASON_HISTORY_SINCE_PLANNING) for op in self.skipped]
        return {
            'outcome': self.outcome,
            'dry_run': self.dry_run,
            'executed_at': self.executed_at.isoformat(),
            'organization': self.organization,
            'summary': {
                'created': len(created),
                'updated': len(updated),
                'deleted': len(deleted),
                'skipped': len(skipped),
                'total': len(created) + len(updated) + len(deleted),
            },
            'details': {
                'created': created,
                'updated': updated,
                'deleted': deleted,
                'skipped': skipped,
            },
            'applied_operations': self.applied_operations,
        }


def is_employee_email(email: str, domains: Iterable[str]) -> bool:
    """True when the email's domain part equals one of ``domains`` (case-insensitive)."""
    local, sep, domain = (email or '').strip().rpartition('@')
    if not sep or not local:
        return False
    return domain.lower() in {d.lower() for d in domains}


def plan_reconciliation(
    members: Iterable[SlackMember],
    accounts: Iterable[AccountSnapshot],
    *,
    employee_domains: Iterable[str],
    employees_only: bool = False
) -> List[Operation]:
    """
    Compute the operations that converge ``accounts`` on ``members``.

    Bots are ignored. Name and username are copied on creation but drift in
    them does not trigger an update. Accounts with purchases or any other
    ledger entry are never deleted.

    Returns:
        Creates, then updates, then deletes; each group ordered by Slack id.
    """
    employee_domains = tuple(employee_domains)
    humans = {member.id: member for member in members if not member.is_bot}
    by_slack_id = {account.slack_id: account for account in accounts}

    creates, updates, deletes = [], [], []

    for slack_id in sorted(humans):
        member = humans[slack_id]
        if member.deleted:
            continue
        employee = is_employee_email(member.email, employee_domains)
        account = by_slack_id.get(slack_id)

        if account is None:
            if employees_only and not employee:
                continue
            values = {
                'slack_id': member.id,
                'name': member.name,
                'username': member.username,
                'picture_url': member.picture_url,
                'is_employee': employee,
            }
            creates.append(Operation(
                kind=OperationKind.CREATE,
                slack_id=slack_id,
                values=values,
                entry={
                    'slack_id': member.id,
                    'name': member.name,
                    'email': member.email,
                    'is_employee': employee,
                    'reason': REASON_CREATED,
                },
            ))
            continue

        wanted = {'is_employee': employee, 'picture_url': member.picture_url}
        changes = [name for name in SYNCED_FIELDS if getattr(account, name) != wanted[name]]
        if changes:
            updates.append(Operation(
                kind=OperationKind.UPDATE,
                slack_id=slack_id,
                account_id=account.id,
                values={name: wanted[name] for name in changes},
                entry={
                    'account_id': account.id,
                    'slack_id': slack_id,
                    'name': account.name,
                    'email': member.email,
                    'changes': changes,
                    'before': {name: getattr(account, name) for name in changes},
                    'after': {name: wanted[name] for name in changes},
                },
            ))

    for slack_id in sorted(by_slack_id):
        account = by_slack_id[slack_id]
        member = humans.get(slack_id)
        if member is not None and not member.deleted:
            continue
        if account.total_purchased > 0 or account.has_transactions:
            continue
        reason = REASON_DELETED_IN_DIRECTORY if member is not None else REASON_NOT_IN_DIRECTORY
        deletes.append(Operation(
            kind=OperationKind.DELETE,
            slack_id=slack_id,
            account_id=account.id,
            entry={
                'account_id': account.id,
                'slack_id': slack_id,
                'name': account.name,
                'reason': reason,
            },
        ))

    return creates + updates + deletes


def _apply_operation(operation: Operation) -> bool:
    """Apply one operation; False when a guarded delete matched nothing."""
    if operation.kind == OperationKind.CREATE:
        Account.objects.create(**operation.values)
        return True
    if operation.kind == OperationKind.UPDATE:
        Account.objects.filter(id=operation.account_id).update(
            **operation.values, updated_at=timezone.now()
        )
        return True

    # The ledger locks the account row before writing, so holding the lock
    # keeps the history check below valid until the delete.
    if Account.objects.select_for_update().filter(id=operation.account_id).first() is None:
        return False
    deleted, _ = Account.objects.filter(
        ~_ledger_history(),
        id=operation.account_id,
        total_purchased=0,
    ).delete()
    if not deleted:
        logger.info('Kept account %s: ledger history appeared after planning', operation.account_id)
    return bool(deleted)


def apply_operations(operations: List[Operation], *, batch_size: int):
    """
    Apply operations in chunks of ``batch_size``, one transaction per chunk.

    Returns:
        ``(applied, skipped)``: the number of operations that took effect and
        the deletes skipped because the account gained history.

    Raises:
        DatabaseError: From the failing chunk. Earlier chunks stay committed;
            the count and skipped deletes committed so far are stored on the
            exception as ``applied_operations`` and ``skipped_operations``.
    """
    batch_size = max(1, batch_size)
    applied = 0
    skipped = []
    for start in range(0, len(operations), batch_size):
        chunk = operations[start:start + batch_size]
        chunk_skipped = []
        try:
            with transaction.atomic():
                for operation in chunk:
                    if not _apply_operation(operation):
                        chunk_skipped.append(operation)
        except DatabaseError as exc:
            exc.applied_operations = applied
            exc.skipped_operations = skipped
            raise
        applied += len(chunk) - len(chunk_skipped)
        skipped.extend(chunk_skipped)
        logger.debug('Roster chunk committed (%d/%d operations)', start + len(chunk), len(operations))
    return applied, skipped


def reconcile(*, client: Optional[SlackClient] = None, dry_run: bool = False) -> ReconciliationReport:
    """
    Reconcile accounts with the Slack directory.

    Args:
        client: Slack client; built from settings when omitted
        dry_run: Compute the report without writing anything

    Returns:
        ReconciliationReport with outcome ``dry_run`` or ``applied``

    Raises:
        DirectoryFetchFailed: If the directory cannot be fetched completely
        RosterApplyFailed: If a chunk fails; carries the partial report
    """
    conf = get_integration_settings()
    if client is None:
        client = SlackClient(get_integration_settings(require=['slack_bot_token']))

    members = client.list_members()
    accounts = [AccountSnapshot.from_account(account) for account in snapshot_queryset()]

    operations = plan_reconciliation(
        members,
        accounts,
        employee_domains=conf.employee_email_domains,
        employees_only=conf.roster_employees_only,
    )
    report = ReconciliationReport(
        organization=conf.organization_name,
        dry_run=dry_run,
        executed_at=timezone.now(),
        operations=operations,
        outcome=Outcome.DRY_RUN if dry_run else Outcome.APPLIED,
    )

    if dry_run:
        logger.info('Roster dry run: %d operation(s) planned', len(operations))
        return report

    try:
        report.applied_operations, report.skipped = apply_operations(
            operations, batch_size=conf.roster_batch_size
        )
    except DatabaseError as exc:
        report.outcome = Outcome.PARTIALLY_APPLIED
        report.applied_operations = getattr(exc, 'applied_operations', 0)
        report.skipped = getattr(exc, 'skipped_operations', [])
        logger.error('Roster sync failed after %d of %d operation(s): %s',
                     report.applied_operations, len(operations), exc)
        raise RosterApplyFailed(
            f'Roster sync failed after {report.applied_operations} of '
            f'{len(operations)} operations: {exc}',
            report=report,
        ) from exc

    summary = report.as_dict()['summary']
    logger.info('Roster sync applied: %(created)d created, %(updated)d updated, '
                '%(deleted)d deleted, %(skipped)d skipped', summary)
    return report
