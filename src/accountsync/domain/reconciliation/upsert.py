"""Third step: write the observed batch with conflict-resolving upserts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import batched
from typing import TYPE_CHECKING, Any

from accountsync.config.reconciliation import DEFAULT_UPSERT_CHUNK_SIZE
from accountsync.domain.ports.persistence import IntegrityViolation, StatementTimeout, StorageError

from .batch import order_batch, validate_batch
from .errors import (
    BatchValidationError,
    ConstraintViolationError,
    ReconciliationError,
    ReconciliationStep,
    ReconciliationTimeoutError,
    UpsertStorageError,
)
from .result import Err, Ok, Result

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from accountsync.domain.model import Account
    from accountsync.domain.ports.persistence import AccountStore

    from .batch import AccountInput
    from .contracts import Deadline, Timestamps
    from .policy import ConflictResolution

log = logging.getLogger(__name__)


@dataclass(slots=True)
class Upserter:
    """Insert-or-update the batch keyed on ``address``.

    Entries are written strictly in ascending address order, chunk by chunk, so
    the row locks taken by the writes follow the same order as the initial lock
    acquisition. That holds for newly inserted rows too. Every chunk gets only
    what is left of the deadline.
    """

    store: AccountStore
    deadline: Deadline
    chunk_size: int = DEFAULT_UPSERT_CHUNK_SIZE

    @staticmethod
    def prepare(
        batch: Iterable[AccountInput | Mapping[str, Any]],
    ) -> Result[list[AccountInput], BatchValidationError]:
        """Validate, deduplicate (last entry wins) and sort ``batch``."""

        validated = validate_batch(batch)
        if isinstance(validated, Err):
            return validated
        return Ok(order_batch(validated.value))

    def upsert(
        self,
        entries: Sequence[AccountInput],
        *,
        conflict_resolution: ConflictResolution,
        timestamps: Timestamps,
    ) -> Result[list[Account], ReconciliationError]:
        """Write ``entries``, which must already be prepared, and return the stored rows."""

        try:
            for chunk in batched(entries, self.chunk_size):
                self.deadline.apply_to(self.store)
                self.store.upsert(
                    chunk, conflict_resolution=conflict_resolution, timestamps=timestamps
                )
            self.deadline.apply_to(self.store)
            written = self.store.fetch([entry.address for entry in entries])
        except IntegrityViolation as exc:
            return Err(ConstraintViolationError(exc, address=exc.address))
        except StatementTimeout as exc:
            return Err(
                ReconciliationTimeoutError(
                    self.deadline.timeout_ms, step=ReconciliationStep.INSERT_ACCOUNTS, cause=exc
                )
            )
        except StorageError as exc:
            return Err(UpsertStorageError(exc))
        log.debug("Upserted %d accounts", len(written))
        return Ok(written)
