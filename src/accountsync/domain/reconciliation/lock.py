"""First step of a reconciliation: lock every account row in address order."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from accountsync.domain.ports.persistence import StatementTimeout, StorageError

from .errors import (
    LockAcquisitionError,
    ReconciliationError,
    ReconciliationStep,
    ReconciliationTimeoutError,
)
from .result import Err, Ok, Result

if TYPE_CHECKING:
    from accountsync.domain.model import Account
    from accountsync.domain.ports.persistence import AccountStore

    from .contracts import Deadline

log = logging.getLogger(__name__)


@dataclass(slots=True)
class LockAcquirer:
    """Take an exclusive lock on all existing accounts, ascending by address.

    Every reconciliation requests its row locks in this one global order before it
    writes anything, so two runs that overlap on rows queue behind each other
    instead of deadlocking. The wait for those locks counts against the deadline.
    The rows themselves are only used for bookkeeping.
    """

    store: AccountStore
    deadline: Deadline

    def acquire_all(self) -> Result[list[Account], ReconciliationError]:
        try:
            self.deadline.apply_to(self.store)
            accounts = self.store.lock_all()
        except StatementTimeout as exc:
            return Err(
                ReconciliationTimeoutError(
                    self.deadline.timeout_ms,
                    step=ReconciliationStep.ACQUIRE_ALL_ACCOUNTS,
                    cause=exc,
                )
            )
        except StorageError as exc:
            return Err(LockAcquisitionError(exc))
        log.debug("Locked %d accounts", len(accounts))
        return Ok(accounts)
