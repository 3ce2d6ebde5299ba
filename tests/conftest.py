from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from accountsync.adapters.sqlalchemy import start_mappers
from accountsync.adapters.sqlalchemy.migrations import upgrade_head
from accountsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyAccountUnitOfWork,
    build_engine,
    shutdown,
    startup,
)
from accountsync.domain.reconciliation import Timestamps

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def timestamps() -> Timestamps:
    moment = datetime(2025, 10, 19, 12, 0, tzinfo=UTC)
    return Timestamps(inserted_at=moment, updated_at=moment)


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = build_engine("sqlite+pysqlite:///:memory:")
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyAccountUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyAccountUnitOfWork:
        return SqlAlchemyAccountUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()
