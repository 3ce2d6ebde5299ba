"""Errors raised (or returned) by the reconciliation transaction.

Every error carries the :class:`ReconciliationStep` it originated from so callers
can tell a failed lock acquisition apart from a failed stale update or upsert.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class ReconciliationStep(StrEnum):
    VALIDATE_BATCH = "validate_batch"
    ACQUIRE_ALL_ACCOUNTS = "acquire_all_accounts"
    MARK_AS_DELETED = "mark_as_deleted"
    INSERT_ACCOUNTS = "insert_accounts"
    COMMIT = "commit"


class ReconciliationError(Exception):
    """Base class for failures of a reconciliation run."""

    def __init__(
        self,
        message: str,
        *,
        step: ReconciliationStep,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(f"{step}: {message}")
        self.step = step
        self.cause = cause


@dataclass(frozen=True, slots=True)
class EntryIssue:
    """One malformed batch entry."""

    index: int
    address: str | None
    message: str

    def __str__(self) -> str:
        where = f"#{self.index}" if self.address is None else f"#{self.index} ({self.address})"
        return f"{where}: {self.message}"


class BatchValidationError(ReconciliationError):
    """Raised when batch entries are malformed; nothing has been written."""

    def __init__(self, issues: Sequence[EntryIssue]) -> None:
        self.issues = tuple(issues)
        details = "; ".join(str(issue) for issue in self.issues)
        super().__init__(
            f"{len(self.issues)} invalid entries: {details}",
            step=ReconciliationStep.VALIDATE_BATCH,
        )


class LockAcquisitionError(ReconciliationError):
    """Raised when the account rows could not be locked."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(
            f"could not lock accounts: {cause}",
            step=ReconciliationStep.ACQUIRE_ALL_ACCOUNTS,
            cause=cause,
        )


class StaleMarkError(ReconciliationError):
    """Raised when the bulk soft-delete of absent accounts failed."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(
            f"could not mark absent accounts as deleted: {cause}",
            step=ReconciliationStep.MARK_AS_DELETED,
            cause=cause,
        )


class ConstraintViolationError(ReconciliationError):
    """Raised when the store rejects upserted rows on integrity grounds."""

    def __init__(self, cause: BaseException, *, address: str | None) -> None:
        self.address = address
        subject = f"account {address}" if address is not None else "accounts"
        super().__init__(
            f"constraint violated while writing {subject}: {cause}",
            step=ReconciliationStep.INSERT_ACCOUNTS,
            cause=cause,
        )


class UpsertStorageError(ReconciliationError):
    """Raised for non-integrity storage failures while upserting."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(
            f"could not write accounts: {cause}",
            step=ReconciliationStep.INSERT_ACCOUNTS,
            cause=cause,
        )


class ReconciliationTimeoutError(ReconciliationError):
    """Raised when the run exceeded its wall-clock budget."""

    def __init__(
        self, timeout_ms: int, *, step: ReconciliationStep, cause: BaseException | None = None
    ) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(f"exceeded timeout of {timeout_ms} ms", step=step, cause=cause)


class ReconciliationCancelledError(ReconciliationError):
    """Raised when the caller cancelled the run before commit."""

    def __init__(self, *, step: ReconciliationStep) -> None:
        super().__init__("cancelled by caller", step=step)


class CommitError(ReconciliationError):
    """Raised when the final commit failed."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(
            f"commit failed: {cause}", step=ReconciliationStep.COMMIT, cause=cause
        )
