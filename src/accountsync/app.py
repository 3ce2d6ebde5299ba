"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING, Any

from accountsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyAccountUnitOfWork,
    is_started,
    startup,
)
from accountsync.config import get_reconciliation_config
from accountsync.domain.ports.unit_of_work import AccountUnitOfWork
from accountsync.domain.reconciliation import (
    ConflictResolution,
    ReconcileOptions,
    ReconciliationTransaction,
    Timestamps,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from threading import Event

    from accountsync.domain.model import Account
    from accountsync.domain.reconciliation import (
        AccountInput,
        ReconciliationError,
        ReconciliationSummary,
        Result,
    )

UnitOfWorkFactory = Callable[[], AccountUnitOfWork]


log = getLogger(__name__)


def reconcile_accounts(
    batch: Iterable[AccountInput | Mapping[str, Any]],
    *,
    timestamps: Timestamps | None = None,
    conflict_resolution: ConflictResolution | None = None,
    timeout_ms: int | None = None,
    cancel: Event | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    database_uri: str | None = None,
) -> Result[ReconciliationSummary, ReconciliationError]:
    """Converge the stored accounts onto ``batch`` using the configured adapters.

    Without explicit ``timestamps`` every touched row is stamped with the current
    UTC time.
    """

    effective_uow = unit_of_work_factory or _default_unit_of_work(database_uri)
    config = get_reconciliation_config()
    options = ReconcileOptions(
        timestamps=timestamps or Timestamps.now(),
        conflict_resolution=conflict_resolution or ConflictResolution.default(),
        timeout_ms=timeout_ms or config.timeout_ms,
        chunk_size=config.upsert_chunk_size,
        cancel=cancel,
    )
    log.info(
        "Starting account reconciliation: timeout_ms=%s, chunk_size=%s, conflict=%s",
        options.timeout_ms,
        options.chunk_size,
        options.conflict_resolution,
    )
    return ReconciliationTransaction(effective_uow).run(batch, options)


def lookup_account(
    address: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    database_uri: str | None = None,
) -> Account | None:
    """Return the stored account for ``address``, soft-deleted ones included."""

    effective_uow = unit_of_work_factory or _default_unit_of_work(database_uri)
    with effective_uow() as uow:
        return uow.repositories.accounts.get(address)


def _default_unit_of_work(database_uri: str | None) -> UnitOfWorkFactory:
    if not is_started():
        startup(database_uri=database_uri)
    return SqlAlchemyAccountUnitOfWork
