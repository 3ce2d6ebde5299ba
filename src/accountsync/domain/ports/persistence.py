"""Ports for persisting accounts."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence
    from datetime import datetime

    from accountsync.domain.model import Account
    from accountsync.domain.reconciliation.batch import AccountInput
    from accountsync.domain.reconciliation.contracts import Timestamps
    from accountsync.domain.reconciliation.policy import ConflictResolution


class StorageError(Exception):
    """Raised by an :class:`AccountStore` when the backing database rejects an operation."""


class IntegrityViolation(StorageError):
    """Raised when written rows break a uniqueness or type constraint."""

    def __init__(self, message: str, *, address: str | None = None) -> None:
        super().__init__(message)
        self.address = address


class StatementTimeout(StorageError):
    """Raised when the database cancelled a statement for running past its timeout."""


@runtime_checkable
class AccountStore(Protocol):
    """Persistence contract for the account table.

    Implementations raise :class:`StorageError` subclasses; the reconciliation
    steps turn them into tagged results.
    """

    def get(self, address: str) -> Account | None: ...

    def fetch(self, addresses: Collection[str]) -> list[Account]:
        """Return the rows for ``addresses`` ordered by address."""
        ...

    def lock_all(self) -> list[Account]:
        """Return every row ordered by address, holding an exclusive lock on each."""
        ...

    def mark_deleted(self, *, keep: Collection[str], updated_at: datetime) -> int:
        """Soft-delete live rows whose address is not in ``keep``; return the row count."""
        ...

    def upsert(
        self,
        entries: Sequence[AccountInput],
        *,
        conflict_resolution: ConflictResolution,
        timestamps: Timestamps,
    ) -> None:
        """Insert ``entries`` in the given order, resolving address conflicts."""
        ...

    def set_statement_timeout(self, timeout_ms: int) -> None:
        """Bound the following statements, lock waits included, to ``timeout_ms``."""
        ...
