"""Inputs and outputs of a reconciliation run."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from accountsync.config.reconciliation import DEFAULT_TIMEOUT_MS, DEFAULT_UPSERT_CHUNK_SIZE
from accountsync.domain.ports.persistence import StatementTimeout

from .policy import ConflictResolution

if TYPE_CHECKING:
    from collections.abc import Callable
    from threading import Event

    from accountsync.domain.model import Account
    from accountsync.domain.ports.persistence import AccountStore


@dataclass(frozen=True, slots=True)
class Timestamps:
    """The ``inserted_at``/``updated_at`` pair stamped on every touched row."""

    inserted_at: datetime
    updated_at: datetime

    @classmethod
    def now(cls) -> Timestamps:
        moment = datetime.now(tz=UTC)
        return cls(inserted_at=moment, updated_at=moment)


@dataclass(frozen=True, slots=True)
class Deadline:
    """Wall-clock budget shared by every statement of one run.

    Each statement is given only what is left of the budget, so the run as a
    whole cannot outlive ``timeout_ms`` however many statements it issues.
    """

    timeout_ms: int
    expires_at: float
    clock: Callable[[], float] = time.monotonic

    @classmethod
    def start(cls, timeout_ms: int, clock: Callable[[], float] = time.monotonic) -> Deadline:
        return cls(timeout_ms=timeout_ms, expires_at=clock() + timeout_ms / 1000, clock=clock)

    def remaining_ms(self) -> int:
        return max(0, math.ceil((self.expires_at - self.clock()) * 1000))

    def apply_to(self, store: AccountStore) -> None:
        """Bound the next statements on ``store`` by the remaining budget.

        Raises :class:`StatementTimeout` once the budget is spent.
        """

        remaining = self.remaining_ms()
        if remaining <= 0:
            raise StatementTimeout(f"reconciliation budget of {self.timeout_ms} ms spent")
        store.set_statement_timeout(remaining)


@dataclass(frozen=True, slots=True)
class ReconcileOptions:
    timestamps: Timestamps
    conflict_resolution: ConflictResolution = field(default_factory=ConflictResolution.default)
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    chunk_size: int = DEFAULT_UPSERT_CHUNK_SIZE
    cancel: Event | None = None

    def __post_init__(self) -> None:
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")


@dataclass(slots=True)
class ReconciliationSummary:
    """What a successful run locked, soft-deleted and wrote.

    ``updated`` lists existing addresses the conflict policy rewrote; under a
    policy that leaves existing rows alone they are listed in ``skipped``.
    """

    locked: tuple[str, ...] = ()
    marked_stale: int = 0
    inserted: tuple[str, ...] = ()
    updated: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()
    accounts: list[Account] = field(default_factory=list)
