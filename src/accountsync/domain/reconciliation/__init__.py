"""Reconciliation of the account table against an observed batch.

One run is a single transaction made of three steps:
1) lock every existing account, ascending by address
2) soft-delete accounts absent from the batch
3) upsert the batch, ascending by address, with a conflict resolution policy
"""

from __future__ import annotations

from .batch import AccountInput, order_batch, validate_batch
from .contracts import Deadline, ReconcileOptions, ReconciliationSummary, Timestamps
from .errors import (
    BatchValidationError,
    CommitError,
    ConstraintViolationError,
    EntryIssue,
    LockAcquisitionError,
    ReconciliationCancelledError,
    ReconciliationError,
    ReconciliationStep,
    ReconciliationTimeoutError,
    StaleMarkError,
    UpsertStorageError,
)
from .lock import LockAcquirer
from .policy import ConflictResolution
from .result import Err, Ok, Result
from .stale import StaleMarker
from .transaction import ReconciliationTransaction
from .upsert import Upserter

__all__ = [
    "AccountInput",
    "BatchValidationError",
    "CommitError",
    "ConflictResolution",
    "ConstraintViolationError",
    "Deadline",
    "EntryIssue",
    "Err",
    "LockAcquirer",
    "LockAcquisitionError",
    "Ok",
    "ReconcileOptions",
    "ReconciliationCancelledError",
    "ReconciliationError",
    "ReconciliationStep",
    "ReconciliationSummary",
    "ReconciliationTimeoutError",
    "ReconciliationTransaction",
    "Result",
    "StaleMarkError",
    "StaleMarker",
    "Timestamps",
    "Upserter",
    "UpsertStorageError",
    "order_batch",
    "validate_batch",
]
