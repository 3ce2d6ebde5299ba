from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import text

from accountsync.adapters.sqlalchemy.repositories import (
    BUSY_TIMEOUT_OPTION,
    DEFAULT_BUSY_TIMEOUT_MS,
)
from accountsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyAccountUnitOfWork,
    StartupError,
    build_engine,
    is_started,
    shutdown,
    startup,
)
from accountsync.domain.reconciliation import ConflictResolution, Upserter
from tests.helpers.accounts import make_entry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine

    from accountsync.domain.reconciliation import Timestamps


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyAccountUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = build_engine("sqlite+pysqlite:///:memory:")
    engine_b = build_engine("sqlite+pysqlite:///:memory:")

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert is_started()
    with SqlAlchemyAccountUnitOfWork() as uow:
        assert uow.session.get_bind() is engine_b


def test_startup_creates_account_table() -> None:
    startup(database_uri="sqlite+pysqlite:///:memory:", force=True)

    with SqlAlchemyAccountUnitOfWork() as uow:
        tables = uow.session.execute(
            text("SELECT name FROM sqlite_master WHERE type = 'table'")
        ).scalars()
        assert {"account", "alembic_version"} <= set(tables)


def test_unit_of_work_commits_upserts(sqlite_engine: Engine, timestamps: Timestamps) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyAccountUnitOfWork() as uow:
        uow.repositories.accounts.upsert(
            Upserter.prepare([make_entry("0xa", gold=3)]).unwrap(),
            conflict_resolution=ConflictResolution.default(),
            timestamps=timestamps,
        )
        uow.commit()

    with SqlAlchemyAccountUnitOfWork() as uow:
        account = uow.repositories.accounts.get("0xa")
        assert account is not None
        assert account.gold == 3


def test_unit_of_work_rolls_back_on_exception(
    sqlite_engine: Engine, timestamps: Timestamps
) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(RuntimeError), SqlAlchemyAccountUnitOfWork() as uow:
        uow.repositories.accounts.upsert(
            Upserter.prepare([make_entry("0xa")]).unwrap(),
            conflict_resolution=ConflictResolution.default(),
            timestamps=timestamps,
        )
        raise RuntimeError("abort")

    with SqlAlchemyAccountUnitOfWork() as uow:
        assert uow.repositories.accounts.get("0xa") is None


def test_sqlite_transactions_begin_immediate(sqlite_engine: Engine) -> None:
    with sqlite_engine.connect() as connection:
        connection.execute(text("SELECT 1"))
        assert connection.connection.dbapi_connection is not None
        assert connection.connection.dbapi_connection.in_transaction  # type: ignore[union-attr]


def test_begin_applies_busy_timeout_execution_option(sqlite_engine: Engine) -> None:
    with sqlite_engine.connect().execution_options(**{BUSY_TIMEOUT_OPTION: 2_500}) as connection:
        busy_timeout = connection.exec_driver_sql("PRAGMA busy_timeout").scalar_one()

    assert busy_timeout == 2_500


def test_begin_restores_default_busy_timeout(sqlite_engine: Engine) -> None:
    with sqlite_engine.connect().execution_options(**{BUSY_TIMEOUT_OPTION: 2_500}) as connection:
        connection.exec_driver_sql("SELECT 1")
    with sqlite_engine.connect() as connection:
        busy_timeout = connection.exec_driver_sql("PRAGMA busy_timeout").scalar_one()

    assert busy_timeout == DEFAULT_BUSY_TIMEOUT_MS
