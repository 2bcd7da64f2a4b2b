"""
Roster reconciliation tests.

Tests cover:
- Create / update / delete decisions and their reasons
- Deletion guard for accounts with purchases or other ledger history
- Guarded deletes skipped at apply time are reported, not counted
- Dry run purity and idempotence of applied runs
- Chunked apply with partial failure
- Management command and API endpoint
"""

import pytest
from decimal import Decimal
from io import StringIO
from unittest.mock import patch
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError
from django.test import override_settings
from django.urls import reverse
from rest_framework import status

from apps.integrations.exceptions import DirectoryFetchFailed
from apps.roster.services import Outcome, RosterApplyFailed, reconcile
from apps.roster.services.reconciliation import (
    AccountSnapshot,
    is_employee_email,
    plan_reconciliation,
)
from apps.tabs.models import Account, Transaction
from apps.tabs.services import record_payment

from .conftest import make_account, member


DOMAINS = ('akeneo.com', 'getakeneo.com')


# =============================================================================
# Classification
# =============================================================================

class TestEmployeeClassification:

    @pytest.mark.parametrize('email, expected', [
        ('a@akeneo.com', True),
        ('b@GetAkeneo.COM', True),
        ('c@gmail.com', False),
        ('d@notakeneo.com', False),
        ('e@akeneo.com.evil.io', False),
        ('', False),
        ('akeneo.com', False),
    ])
    def test_domain_must_match_exactly(self, email, expected):
        assert is_employee_email(email, DOMAINS) is expected


# =============================================================================
# Planning (pure)
# =============================================================================

def snapshot(slack_id, *, is_employee=True, picture_url='', total_purchased='0', name=None,
             has_transactions=False):
    return AccountSnapshot(
        id=f'id-{slack_id}',
        slack_id=slack_id,
        name=name or f'Member {slack_id}',
        is_employee=is_employee,
        picture_url=picture_url,
        total_purchased=Decimal(total_purchased),
        has_transactions=has_transactions,
    )


class TestPlanReconciliation:

    def test_bots_are_ignored(self):
        ops = plan_reconciliation(
            [member('USLACKBOT', is_bot=True), member('B1', 'bot@akeneo.com', is_bot=True)],
            [],
            employee_domains=DOMAINS,
        )

        assert ops == []

    def test_deleted_member_without_account_is_not_created(self):
        ops = plan_reconciliation([member('U1', 'a@akeneo.com', deleted=True)], [], employee_domains=DOMAINS)

        assert ops == []

    def test_non_employee_created_by_default(self):
        ops = plan_reconciliation([member('U2', 'guest@gmail.com')], [], employee_domains=DOMAINS)

        assert [(op.kind, op.values['is_employee']) for op in ops] == [('create', False)]

    def test_employees_only_policy(self):
        ops = plan_reconciliation(
            [member('U1', 'a@akeneo.com'), member('U2', 'guest@gmail.com')],
            [],
            employee_domains=DOMAINS,
            employees_only=True,
        )

        assert [op.slack_id for op in ops] == ['U1']

    def test_update_records_changed_fields_only(self):
        ops = plan_reconciliation(
            [member('U1', 'left@gmail.com', picture_url='https://img/new')],
            [snapshot('U1', is_employee=True, picture_url='https://img/old')],
            employee_domains=DOMAINS,
        )

        assert len(ops) == 1
        entry = ops[0].entry
        assert entry['changes'] == ['is_employee', 'picture_url']
        assert entry['before'] == {'is_employee': True, 'picture_url': 'https://img/old'}
        assert entry['after'] == {'is_employee': False, 'picture_url': 'https://img/new'}

    def test_name_drift_is_not_an_update(self):
        ops = plan_reconciliation(
            [member('U1', 'a@akeneo.com')],
            [snapshot('U1', name='Old Name')],
            employee_domains=DOMAINS,
        )

        assert ops == []

    def test_member_marked_deleted_without_purchases(self):
        ops = plan_reconciliation(
            [member('U1', 'a@akeneo.com', deleted=True)],
            [snapshot('U1')],
            employee_domains=DOMAINS,
        )

        assert [(op.kind, op.entry['reason']) for op in ops] == [
            ('delete', 'Marked deleted in directory, no purchases'),
        ]

    def test_deletion_guard(self):
        ops = plan_reconciliation(
            [member('U1', 'a@akeneo.com', deleted=True)],
            [snapshot('U1', total_purchased='0.01'), snapshot('U9', total_purchased='100')],
            employee_domains=DOMAINS,
        )

        assert ops == []

    def test_account_with_payments_only_is_kept(self):
        ops = plan_reconciliation([], [snapshot('U1', has_transactions=True)], employee_domains=DOMAINS)

        assert ops == []

    def test_bot_account_without_purchases_is_removed(self):
        ops = plan_reconciliation(
            [member('B1', is_bot=True)],
            [snapshot('B1')],
            employee_domains=DOMAINS,
        )

        assert [op.entry['reason'] for op in ops] == ['Not in directory, no purchases']

    def test_operations_are_grouped_and_sorted(self):
        ops = plan_reconciliation(
            [member('U3', 'c@akeneo.com'), member('U1', 'a@akeneo.com'), member('U2', 'b@gmail.com')],
            [snapshot('U2', is_employee=True), snapshot('U0')],
            employee_domains=DOMAINS,
        )

        assert [(op.kind, op.slack_id) for op in ops] == [
            ('create', 'U1'),
            ('create', 'U3'),
            ('update', 'U2'),
            ('delete', 'U0'),
        ]


# =============================================================================
# Reconcile (database)
# =============================================================================

@pytest.mark.django_db
class TestReconcile:

    def test_scenario_new_employee_created(self, directory):
        directory.members = [member('U1', 'a@akeneo.com')]

        report = reconcile(client=directory).as_dict()

        assert report['outcome'] == 'applied'
        assert report['summary'] == {'created': 1, 'updated': 0, 'deleted': 0, 'skipped': 0, 'total': 1}
        assert report['details']['created'][0]['email'] == 'a@akeneo.com'
        assert report['details']['created'][0]['reason'] == 'New directory member'
        assert report['organization'] == 'Akeneo'
        assert Account.objects.get(slack_id='U1').is_employee is True

    def test_scenario_absent_member_without_purchases_deleted(self, directory):
        make_account('U1')

        report = reconcile(client=directory).as_dict()

        assert report['summary']['deleted'] == 1
        assert report['details']['deleted'][0]['reason'] == 'Not in directory, no purchases'
        assert not Account.objects.filter(slack_id='U1').exists()

    def test_scenario_absent_member_with_purchases_kept(self, directory):
        make_account('U1', total_purchased='100.00')

        report = reconcile(client=directory).as_dict()

        assert report['summary']['deleted'] == 0
        assert Account.objects.filter(slack_id='U1').exists()

    def test_update_applied(self, directory):
        make_account('U1', is_employee=True, picture_url='https://img/old')
        directory.members = [member('U1', 'a@gmail.com', picture_url='https://img/new')]

        reconcile(client=directory)

        account = Account.objects.get(slack_id='U1')
        assert account.is_employee is False
        assert account.picture_url == 'https://img/new'

    def test_dry_run_applies_nothing_and_is_repeatable(self, directory):
        make_account('U0')
        make_account('U2', is_employee=False)
        directory.members = [member('U1', 'a@akeneo.com'), member('U2', 'b@akeneo.com')]

        first = reconcile(client=directory, dry_run=True).as_dict()
        second = reconcile(client=directory, dry_run=True).as_dict()

        assert first['outcome'] == 'dry_run'
        assert first['applied_operations'] == 0
        assert first['summary'] == {'created': 1, 'updated': 1, 'deleted': 1, 'skipped': 0, 'total': 3}
        assert first['details'] == second['details']
        assert set(Account.objects.values_list('slack_id', flat=True)) == {'U0', 'U2'}
        assert Account.objects.get(slack_id='U2').is_employee is False

    def test_second_applied_run_changes_nothing(self, directory):
        make_account('U0')
        directory.members = [member('U1', 'a@akeneo.com'), member('U2', 'x@gmail.com')]

        reconcile(client=directory)
        report = reconcile(client=directory).as_dict()

        assert report['summary']['total'] == 0

    def test_directory_failure_applies_nothing(self, directory):
        make_account('U0')
        directory.list_members.side_effect = DirectoryFetchFailed(
            'Failed to fetch Slack users (page 2): no members', service='slack'
        )

        with pytest.raises(DirectoryFetchFailed):
            reconcile(client=directory)

        assert Account.objects.filter(slack_id='U0').exists()

    def test_delete_guard_rechecked_at_apply_time(self, directory):
        account = make_account('U1')

        def purchase_sneaks_in(*args, **kwargs):
            Account.objects.filter(id=account.id).update(total_purchased=Decimal('2.00'))
            return []

        directory.list_members.side_effect = purchase_sneaks_in
        with patch(
            'apps.roster.services.reconciliation.AccountSnapshot.from_account',
            side_effect=lambda a: AccountSnapshot(
                id=str(a.id), slack_id=a.slack_id, name=a.name, is_employee=a.is_employee,
                picture_url=a.picture_url, total_purchased=Decimal('0.00'),
            ),
        ):
            report = reconcile(client=directory)

        assert Account.objects.filter(id=account.id).exists()
        data = report.as_dict()
        assert report.applied_operations == 0
        assert data['summary']['deleted'] == 0
        assert data['summary']['skipped'] == 1
        assert data['details']['deleted'] == []
        assert data['details']['skipped'][0]['slack_id'] == 'U1'
        assert data['details']['skipped'][0]['reason'] == 'Transactions recorded since planning'

    def test_absent_member_with_payment_keeps_payment(self, directory):
        account = make_account('U1')
        record_payment(account_id=account.id, amount=Decimal('5.00'), transaction_id='sumup-ref-1')

        report = reconcile(client=directory).as_dict()

        assert report['summary']['deleted'] == 0
        assert Account.objects.filter(id=account.id).exists()
        assert Transaction.objects.filter(id='sumup-ref-1', account=account).exists()

    def test_payment_recorded_after_planning_blocks_delete(self, directory):
        account = make_account('U1')

        def payment_sneaks_in(*args, **kwargs):
            record_payment(account_id=account.id, amount=Decimal('3.00'), transaction_id='sumup-ref-2')
            return []

        directory.list_members.side_effect = payment_sneaks_in
        with patch(
            'apps.roster.services.reconciliation.AccountSnapshot.from_account',
            side_effect=lambda a: AccountSnapshot(
                id=str(a.id), slack_id=a.slack_id, name=a.name, is_employee=a.is_employee,
                picture_url=a.picture_url, total_purchased=a.total_purchased,
            ),
        ):
            report = reconcile(client=directory).as_dict()

        assert report['summary']['skipped'] == 1
        assert report['summary']['deleted'] == 0
        assert Transaction.objects.filter(id='sumup-ref-2').exists()

    def test_present_member_is_left_alone(self, directory):
        kept = make_account('U1')
        record_payment(account_id=kept.id, amount=Decimal('5.00'), transaction_id='T1')
        directory.members = [member('U1', 'a@akeneo.com')]

        reconcile(client=directory)

        kept.refresh_from_db()
        assert kept.total_paid == Decimal('5.00')


@pytest.mark.django_db
class TestChunkedApply:

    @override_settings(ROSTER_BATCH_SIZE=2)
    def test_all_chunks_applied(self, directory):
        directory.members = [member(f'U{i}', f'u{i}@akeneo.com') for i in range(5)]

        report = reconcile(client=directory)

        assert report.applied_operations == 5
        assert Account.objects.count() == 5

    @override_settings(ROSTER_BATCH_SIZE=2)
    def test_failure_leaves_earlier_chunks_committed(self, directory):
        directory.members = [member(f'U{i}', f'u{i}@akeneo.com') for i in range(5)]
        real_create = Account.objects.create
        calls = []

        def failing_create(**kwargs):
            calls.append(kwargs['slack_id'])
            if len(calls) == 4:
                raise DatabaseError('disk I/O error')
            return real_create(**kwargs)

        with patch.object(Account.objects, 'create', side_effect=failing_create):
            with pytest.raises(RosterApplyFailed) as excinfo:
                reconcile(client=directory)

        report = excinfo.value.report
        assert report.outcome == Outcome.PARTIALLY_APPLIED
        assert report.applied_operations == 2
        assert report.as_dict()['summary']['created'] == 5
        assert set(Account.objects.values_list('slack_id', flat=True)) == {'U0', 'U1'}


# =============================================================================
# Entry points
# =============================================================================

@pytest.mark.django_db
class TestSyncRosterCommand:

    def test_dry_run(self, patched_directory):
        patched_directory.members = [member('U1', 'a@akeneo.com')]
        out = StringIO()

        call_command('sync_roster', '--dry-run', stdout=out)

        assert 'No changes made' in out.getvalue()
        assert 'New directory member' in out.getvalue()
        assert not Account.objects.exists()

    def test_apply(self, patched_directory):
        patched_directory.members = [member('U1', 'a@akeneo.com')]
        out = StringIO()

        call_command('sync_roster', stdout=out)

        assert '1 created' in out.getvalue()
        assert Account.objects.filter(slack_id='U1').exists()

    def test_directory_failure(self, patched_directory):
        patched_directory.list_members.side_effect = DirectoryFetchFailed('boom', service='slack')

        with pytest.raises(CommandError, match='boom'):
            call_command('sync_roster', stdout=StringIO())


@pytest.mark.django_db
class TestSyncRosterEndpoint:
    """Tests for POST /api/roster/sync/"""

    def test_requires_authentication(self, api_client):
        response = api_client.post(reverse('roster:sync'), {}, format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_returns_report(self, authenticated_client, patched_directory):
        patched_directory.members = [member('U1', 'a@akeneo.com')]

        response = authenticated_client.post(reverse('roster:sync'), {}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['outcome'] == 'applied'
        assert response.data['summary']['created'] == 1

    def test_dry_run_flag(self, authenticated_client, patched_directory):
        patched_directory.members = [member('U1', 'a@akeneo.com')]

        response = authenticated_client.post(reverse('roster:sync'), {'dry_run': True}, format='json')

        assert response.data['outcome'] == 'dry_run'
        assert not Account.objects.exists()

    def test_directory_failure_is_bad_gateway(self, authenticated_client, patched_directory):
        patched_directory.list_members.side_effect = DirectoryFetchFailed('slack down', service='slack')

        response = authenticated_client.post(reverse('roster:sync'), {}, format='json')

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.data == {'error': 'slack down'}

    def test_partial_failure_returns_report(self, authenticated_client, patched_directory):
        patched_directory.members = [member('U1', 'a@akeneo.com')]

        with patch('apps.roster.services.reconciliation._apply_operation',
                   side_effect=DatabaseError('locked')):
            response = authenticated_client.post(reverse('roster:sync'), {}, format='json')

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data['report']['outcome'] == 'partially_applied'
        assert response.data['report']['applied_operations'] == 0
