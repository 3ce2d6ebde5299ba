"""Atomic account reconciliation: lock, soft-delete absentees, upsert the batch."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from accountsync.domain.ports.persistence import StorageError

from .contracts import Deadline, ReconciliationSummary
from .errors import (
    CommitError,
    ReconciliationCancelledError,
    ReconciliationError,
    ReconciliationStep,
    ReconciliationTimeoutError,
)
from .lock import LockAcquirer
from .result import Err, Ok, Result
from .stale import StaleMarker
from .upsert import Upserter

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

    from accountsync.domain.ports.persistence import AccountStore
    from accountsync.domain.ports.unit_of_work import AccountUnitOfWork

    from .batch import AccountInput
    from .contracts import ReconcileOptions

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ReconciliationTransaction:
    """Converge the account table onto one observed batch, all or nothing.

    The three steps share a single unit of work and a single deadline. The first
    failing step stops the run, the unit of work is rolled back and the tagged
    error is returned; a successful run commits once at the end.
    """

    unit_of_work: Callable[[], AccountUnitOfWork]
    clock: Callable[[], float] = time.monotonic

    def run(
        self,
        batch: Iterable[AccountInput | Mapping[str, Any]],
        options: ReconcileOptions,
    ) -> Result[ReconciliationSummary, ReconciliationError]:
        prepared = Upserter.prepare(batch)
        if isinstance(prepared, Err):
            log.warning("Rejected account batch: %s", prepared.error)
            return prepared
        entries = prepared.value
        deadline = Deadline.start(options.timeout_ms, self.clock)

        with self.unit_of_work() as uow:
            result = self._reconcile(uow.repositories.accounts, entries, options, deadline)
            if isinstance(result, Ok):
                result = self._commit(uow, options, deadline, result.value)
            if isinstance(result, Err):
                uow.rollback()
                log.warning(
                    "Account reconciliation rolled back at %s: %s",
                    result.error.step,
                    result.error,
                )
                return result

        summary = result.value
        log.info(
            "Reconciled %d accounts (%d inserted, %d updated, %d skipped, %d marked deleted)",
            len(entries),
            len(summary.inserted),
            len(summary.updated),
            len(summary.skipped),
            summary.marked_stale,
        )
        return result

    def _reconcile(
        self,
        store: AccountStore,
        entries: Sequence[AccountInput],
        options: ReconcileOptions,
        deadline: Deadline,
    ) -> Result[ReconciliationSummary, ReconciliationError]:
        if interrupted := self._interrupted(
            ReconciliationStep.ACQUIRE_ALL_ACCOUNTS, options, deadline
        ):
            return interrupted
        locked = LockAcquirer(store, deadline).acquire_all()
        if isinstance(locked, Err):
            return locked

        keys = [entry.address for entry in entries]
        if interrupted := self._interrupted(
            ReconciliationStep.MARK_AS_DELETED, options, deadline
        ):
            return interrupted
        marked = StaleMarker(store, deadline).mark_stale(
            keys, updated_at=options.timestamps.updated_at
        )
        if isinstance(marked, Err):
            return marked

        if interrupted := self._interrupted(
            ReconciliationStep.INSERT_ACCOUNTS, options, deadline
        ):
            return interrupted
        written = Upserter(store, deadline, options.chunk_size).upsert(
            entries,
            conflict_resolution=options.conflict_resolution,
            timestamps=options.timestamps,
        )
        if isinstance(written, Err):
            return written

        existing = {account.address for account in locked.value}
        present = tuple(key for key in keys if key in existing)
        untouched = options.conflict_resolution.is_noop
        return Ok(
            ReconciliationSummary(
                locked=tuple(account.address for account in locked.value),
                marked_stale=marked.value,
                inserted=tuple(key for key in keys if key not in existing),
                updated=() if untouched else present,
                skipped=present if untouched else (),
                accounts=written.value,
            )
        )

    def _commit(
        self,
        uow: AccountUnitOfWork,
        options: ReconcileOptions,
        deadline: Deadline,
        summary: ReconciliationSummary,
    ) -> Result[ReconciliationSummary, ReconciliationError]:
        if interrupted := self._interrupted(
            ReconciliationStep.COMMIT, options, deadline
        ):
            return interrupted
        try:
            uow.commit()
        except StorageError as exc:
            return Err(CommitError(exc))
        return Ok(summary)

    def _interrupted(
        self, step: ReconciliationStep, options: ReconcileOptions, deadline: Deadline
    ) -> Err[ReconciliationError] | None:
        if options.cancel is not None and options.cancel.is_set():
            return Err(ReconciliationCancelledError(step=step))
        if deadline.remaining_ms() <= 0:
            return Err(ReconciliationTimeoutError(options.timeout_ms, step=step))
        return None
