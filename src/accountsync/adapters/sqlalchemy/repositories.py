"""Account store backed by a SQLAlchemy session."""

from __future__ import annotations

import json
from contextlib import contextmanager
from itertools import batched
from typing import TYPE_CHECKING, Any, Final, cast

from sqlalchemy import String, all_, bindparam, false, func, or_, select, text, true, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError, SQLAlchemyError

from accountsync.adapters.sqlalchemy.mappings import account_table
from accountsync.domain.model import Account
from accountsync.domain.ports.persistence import (
    IntegrityViolation,
    StatementTimeout,
    StorageError,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Iterator, Sequence
    from datetime import datetime

    from sqlalchemy.engine import CursorResult
    from sqlalchemy.orm import Session
    from sqlalchemy.sql.dml import Insert
    from sqlalchemy.sql.elements import ColumnElement

    from accountsync.domain.reconciliation.batch import AccountInput
    from accountsync.domain.reconciliation.contracts import Timestamps
    from accountsync.domain.reconciliation.policy import ConflictResolution

FETCH_CHUNK_SIZE: Final[int] = 500
# read by the SQLite "begin" listener before it issues BEGIN IMMEDIATE
BUSY_TIMEOUT_OPTION: Final[str] = "accountsync_busy_timeout_ms"
DEFAULT_BUSY_TIMEOUT_MS: Final[int] = 5_000
# query_canceled (statement_timeout) and lock_not_available (lock_timeout)
_TIMEOUT_SQLSTATES: Final[frozenset[str]] = frozenset({"57014", "55P03"})

_INSERTS: Final[dict[str, Callable[..., Insert]]] = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SqlAlchemyAccountStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    @property
    def dialect_name(self) -> str:
        return self.session.get_bind().dialect.name

    def get(self, address: str) -> Account | None:
        with translate_errors():
            return self.session.get(Account, address, populate_existing=True)

    def fetch(self, addresses: Collection[str]) -> list[Account]:
        accounts: list[Account] = []
        with translate_errors():
            for chunk in batched(sorted(set(addresses)), FETCH_CHUNK_SIZE):
                stmt = (
                    select(Account)
                    .where(account_table.c.address.in_(chunk))
                    .order_by(account_table.c.address)
                    .execution_options(populate_existing=True)
                )
                accounts.extend(self.session.execute(stmt).scalars())
        return accounts

    def lock_all(self) -> list[Account]:
        stmt = (
            select(Account)
            .order_by(account_table.c.address)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        with translate_errors():
            return list(self.session.execute(stmt).scalars())

    def mark_deleted(self, *, keep: Collection[str], updated_at: datetime) -> int:
        stmt = (
            update(account_table)
            .where(self._absent_from(keep))
            .where(or_(account_table.c.is_deleted == false(), account_table.c.is_active == true()))
            .values(is_active=False, is_deleted=True, updated_at=updated_at)
        )
        with translate_errors():
            result = cast("CursorResult[Any]", self.session.execute(stmt))
        return result.rowcount

    def upsert(
        self,
        entries: Sequence[AccountInput],
        *,
        conflict_resolution: ConflictResolution,
        timestamps: Timestamps,
    ) -> None:
        if not entries:
            return
        insert = _INSERTS.get(self.dialect_name)
        if insert is None:
            raise StorageError(f"Upserts are not supported on {self.dialect_name!r}")

        rows = [
            {
                **entry.row(),
                "is_active": True,
                "is_deleted": False,
                "inserted_at": timestamps.inserted_at,
                "updated_at": timestamps.updated_at,
            }
            for entry in entries
        ]
        stmt = insert(account_table).values(rows)
        if conflict_resolution.is_noop:
            stmt = stmt.on_conflict_do_nothing(index_elements=[account_table.c.address])
        else:
            excluded = stmt.excluded
            assignments = {name: excluded[name] for name in conflict_resolution.fields}
            if conflict_resolution.revive:
                assignments["is_active"] = excluded.is_active
                assignments["is_deleted"] = excluded.is_deleted
            if conflict_resolution.touch:
                assignments["updated_at"] = excluded.updated_at
            stmt = stmt.on_conflict_do_update(
                index_elements=[account_table.c.address], set_=assignments
            )

        with translate_errors([entry.address for entry in entries]):
            self.session.execute(stmt)

    def set_statement_timeout(self, timeout_ms: int) -> None:
        with translate_errors():
            if self.dialect_name == "postgresql":
                self.session.execute(
                    text("SELECT set_config('statement_timeout', :timeout, true)"),
                    {"timeout": f"{int(timeout_ms)}ms"},
                )
            elif self.dialect_name == "sqlite":
                self._set_busy_timeout(timeout_ms)

    def _set_busy_timeout(self, timeout_ms: int) -> None:
        if not self.session.in_transaction():
            # the wait for BEGIN IMMEDIATE is the lock wait, so bound it up front
            self.session.connection(execution_options={BUSY_TIMEOUT_OPTION: int(timeout_ms)})
            return
        self.session.execute(text(f"PRAGMA busy_timeout = {int(timeout_ms)}"))

    def _absent_from(self, keep: Collection[str]) -> ColumnElement[bool]:
        """Match addresses outside ``keep`` using a single bound parameter.

        An expanded ``NOT IN`` list would exceed the bind parameter limits of
        both backends for large batches.
        """

        keys = sorted(set(keep))
        address = account_table.c.address
        if self.dialect_name == "postgresql":
            return address != all_(bindparam("keep", keys, type_=postgresql.ARRAY(String)))
        if self.dialect_name == "sqlite":
            values = func.json_each(json.dumps(keys)).table_valued("value")
            return address.not_in(select(values.c.value))
        return address.not_in(keys)


@contextmanager
def translate_errors(addresses: Sequence[str] = ()) -> Iterator[None]:
    """Re-raise SQLAlchemy errors as the storage errors of the persistence port."""

    try:
        yield
    except (IntegrityError, DataError) as exc:
        raise IntegrityViolation(
            str(exc.orig), address=_conflicting_address(exc, addresses)
        ) from exc
    except DBAPIError as exc:
        if _is_timeout(exc):
            raise StatementTimeout(str(exc.orig)) from exc
        raise StorageError(str(exc.orig)) from exc
    except SQLAlchemyError as exc:
        raise StorageError(str(exc)) from exc


def _is_timeout(exc: DBAPIError) -> bool:
    orig = exc.orig
    # psycopg exposes ``sqlstate``, psycopg2 ``pgcode``
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _TIMEOUT_SQLSTATES:
        return True
    return "database is locked" in str(orig)


def _conflicting_address(exc: DBAPIError, addresses: Sequence[str]) -> str | None:
    diag = getattr(exc.orig, "diag", None)
    detail = getattr(diag, "message_detail", None) or ""
    message = f"{exc.orig} {detail}"
    for address in addresses:
        if address in message:
            return address
    if len(addresses) == 1:
        return addresses[0]
    return None
