"""
Transaction runner.

Ledger writes go through ``run_in_transaction`` so the retry-on-conflict
policy lives in one place.
"""

import logging
import time
from typing import Callable, TypeVar

from django.db import OperationalError, connection, transaction

logger = logging.getLogger(__name__)

T = TypeVar('T')


def run_in_transaction(
    fn: Callable[[], T],
    *,
    attempts: int = 3,
    backoff_base: float = 0.05
) -> T:
    """
    Run ``fn`` inside ``transaction.atomic()`` with retry on lock conflicts.

    Retries on OperationalError (lock timeouts, deadlocks, serialization
    failures) with exponential backoff. Domain errors raised by ``fn`` roll
    the transaction back and propagate immediately.

    When called inside an outer atomic block the conflict cannot be retried
    here (the outer transaction is already doomed), so ``fn`` runs once.

    Raises:
        OperationalError: If every attempt hit a conflict.
    """
    if connection.in_atomic_block:
        with transaction.atomic():
            return fn()

    for attempt in range(attempts):
        try:
            with transaction.atomic():
                return fn()
        except OperationalError as exc:
            if attempt >= attempts - 1:
                raise
            logger.warning('Database conflict (attempt %d/%d), retrying: %s',
                           attempt + 1, attempts, exc)
            time.sleep(backoff_base * (2 ** attempt))
