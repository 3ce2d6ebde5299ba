"""Second step: soft-delete accounts missing from the observed batch."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from accountsync.domain.ports.persistence import StatementTimeout, StorageError

from .errors import (
    ReconciliationError,
    ReconciliationStep,
    ReconciliationTimeoutError,
    StaleMarkError,
)
from .result import Err, Ok, Result

if TYPE_CHECKING:
    from collections.abc import Collection
    from datetime import datetime

    from accountsync.domain.ports.persistence import AccountStore

    from .contracts import Deadline

log = logging.getLogger(__name__)


@dataclass(slots=True)
class StaleMarker:
    """Flag every persisted address absent from the batch as inactive and deleted.

    Runs after :class:`~accountsync.domain.reconciliation.lock.LockAcquirer`, so the
    rows it touches are already locked, and before the upsert. Rows that are
    already soft-deleted are left alone; the returned count is the number of rows
    newly marked stale.
    """

    store: AccountStore
    deadline: Deadline

    def mark_stale(
        self, batch_keys: Collection[str], *, updated_at: datetime
    ) -> Result[int, ReconciliationError]:
        try:
            self.deadline.apply_to(self.store)
            count = self.store.mark_deleted(keep=batch_keys, updated_at=updated_at)
        except StatementTimeout as exc:
            return Err(
                ReconciliationTimeoutError(
                    self.deadline.timeout_ms, step=ReconciliationStep.MARK_AS_DELETED, cause=exc
                )
            )
        except StorageError as exc:
            return Err(StaleMarkError(exc))
        if count:
            log.debug("Marked %d accounts as deleted", count)
        return Ok(count)
