"""
Management command to reconcile accounts with the Slack workspace.

Usage:
    python manage.py sync_roster
    python manage.py sync_roster --dry-run
"""

import json

from django.core.management.base import BaseCommand, CommandError

from apps.integrations.exceptions import DirectoryFetchFailed
from apps.roster.services import RosterApplyFailed, reconcile


class Command(BaseCommand):
    help = 'Create, update and delete accounts to match the Slack member directory'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would change without making changes',
        )
        parser.add_argument(
            '--json',
            action='store_true',
            help='Print the full report as JSON',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']

        try:
            report = reconcile(dry_run=dry_run)
        except DirectoryFetchFailed as e:
            raise CommandError(str(e))
        except RosterApplyFailed as e:
            self.stderr.write(json.dumps(e.report.as_dict(), indent=2))
            raise CommandError(str(e))

        data = report.as_dict()
        if options['json']:
            self.stdout.write(json.dumps(data, indent=2))
            return

        summary = data['summary']
        if summary['total'] == 0 and not summary['skipped']:
            self.stdout.write(self.style.SUCCESS('Roster already in sync. All good!'))
            return

        for entry in data['details']['created']:
            self.stdout.write(f"  + {entry['name']} <{entry['email']}> | {entry['reason']}")
        for entry in data['details']['updated']:
            changes = ', '.join(
                f"{name}: {entry['before'][name]!r} -> {entry['after'][name]!r}"
                for name in entry['changes']
            )
            self.stdout.write(f"  ~ {entry['name']} | {changes}")
        for entry in data['details']['deleted']:
            self.stdout.write(f"  - {entry['name']} ({entry['slack_id']}) | {entry['reason']}")
        for entry in data['details']['skipped']:
            self.stdout.write(f"  = {entry['name']} ({entry['slack_id']}) | kept: {entry['reason']}")

        line = (
            f"\n{summary['created']} created, {summary['updated']} updated, "
            f"{summary['deleted']} deleted"
        )
        if summary['skipped']:
            line += f", {summary['skipped']} kept"
        if dry_run:
            self.stdout.write(self.style.WARNING(f'{line}\n--dry-run mode: No changes made.'))
        else:
            self.stdout.write(self.style.SUCCESS(line))
