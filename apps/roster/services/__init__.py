"""
Roster app services layer.
"""

from .exceptions import (
    RosterServiceError,
    RosterApplyFailed,
)

from .reconciliation import (
    Outcome,
    ReconciliationReport,
    plan_reconciliation,
    reconcile,
)


__all__ = [
    # Exceptions
    'RosterServiceError',
    'RosterApplyFailed',

    # Reconciliation
    'Outcome',
    'ReconciliationReport',
    'plan_reconciliation',
    'reconcile',
]
