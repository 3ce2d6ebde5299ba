"""Reusable fakes and builders for account reconciliation tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from accountsync.domain.model import Account, AccountType
from accountsync.domain.ports.unit_of_work import AccountRepositories

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence
    from datetime import datetime
    from types import TracebackType

    from accountsync.domain.ports.persistence import StorageError
    from accountsync.domain.reconciliation import AccountInput, ConflictResolution, Timestamps


def make_entry(address: str, **overrides: Any) -> dict[str, Any]:
    """Return a raw batch entry with all value fields populated."""

    entry: dict[str, Any] = {
        "address": address,
        "account_type": "normal",
        "gold": 0,
        "usd": 0,
        "locked_gold": 0,
        "notice_period": 0,
        "rewards": 0,
    }
    entry.update(overrides)
    return entry


def make_account(address: str, **overrides: Any) -> Account:
    values: dict[str, Any] = {"address": address, "account_type": AccountType.NORMAL}
    values.update(overrides)
    return Account(**values)


@dataclass
class InMemoryAccountStore:
    """Dictionary-backed store that can be told to fail individual operations."""

    rows: dict[str, Account] = field(default_factory=dict)
    failures: dict[str, BaseException] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    upserted_chunks: list[list[str]] = field(default_factory=list)
    statement_timeouts: list[int] = field(default_factory=list)

    def seed(self, *accounts: Account) -> None:
        for account in accounts:
            self.rows[account.address] = account

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        failure = self.failures.get(operation)
        if failure is not None:
            raise failure

    def get(self, address: str) -> Account | None:
        self._record("get")
        return self.rows.get(address)

    def fetch(self, addresses: Collection[str]) -> list[Account]:
        self._record("fetch")
        return [self.rows[address] for address in sorted(set(addresses)) if address in self.rows]

    def lock_all(self) -> list[Account]:
        self._record("lock_all")
        return [self.rows[address] for address in sorted(self.rows)]

    def mark_deleted(self, *, keep: Collection[str], updated_at: datetime) -> int:
        self._record("mark_deleted")
        keep_set = set(keep)
        count = 0
        for address, account in self.rows.items():
            if address in keep_set or (account.is_deleted and not account.is_active):
                continue
            account.is_active = False
            account.is_deleted = True
            account.updated_at = updated_at
            count += 1
        return count

    def upsert(
        self,
        entries: Sequence[AccountInput],
        *,
        conflict_resolution: ConflictResolution,
        timestamps: Timestamps,
    ) -> None:
        self._record("upsert")
        self.upserted_chunks.append([entry.address for entry in entries])
        for entry in entries:
            existing = self.rows.get(entry.address)
            if existing is None:
                self.rows[entry.address] = Account(
                    **entry.row(),
                    inserted_at=timestamps.inserted_at,
                    updated_at=timestamps.updated_at,
                )
                continue
            for name in conflict_resolution.fields:
                setattr(existing, name, getattr(entry, name))
            if conflict_resolution.revive:
                existing.is_active = True
                existing.is_deleted = False
            if conflict_resolution.touch:
                existing.updated_at = timestamps.updated_at

    def set_statement_timeout(self, timeout_ms: int) -> None:
        self._record("set_statement_timeout")
        self.statement_timeouts.append(timeout_ms)

    @property
    def statement_timeout_ms(self) -> int | None:
        return self.statement_timeouts[-1] if self.statement_timeouts else None


@dataclass
class FakeUnitOfWork:
    """Unit of work around an :class:`InMemoryAccountStore` recording its outcome."""

    store: InMemoryAccountStore
    commit_failure: StorageError | None = None
    committed: bool = False
    rolled_back: bool = False
    entered: int = 0

    @property
    def repositories(self) -> AccountRepositories:
        return AccountRepositories(accounts=self.store)

    def __enter__(self) -> FakeUnitOfWork:
        self.entered += 1
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        return False

    def commit(self) -> None:
        if self.commit_failure is not None:
            raise self.commit_failure
        self.committed = True

    def rollback(self) -> None:
        self.rolled_back = True
