"""SQLAlchemy-backed unit of work for account reconciliation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from accountsync.adapters.sqlalchemy.mappings import start_mappers
from accountsync.adapters.sqlalchemy.migrations import upgrade_head
from accountsync.adapters.sqlalchemy.repositories import (
    BUSY_TIMEOUT_OPTION,
    DEFAULT_BUSY_TIMEOUT_MS,
    SqlAlchemyAccountStore,
    translate_errors,
)
from accountsync.config import get_database_config
from accountsync.domain.ports.unit_of_work import AccountRepositories, RepositoryCollection

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call accountsync.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def build_engine(database_uri: str, **kwargs: Any) -> Engine:
    """Create an engine suitable for reconciliation runs.

    SQLite has no row locks, so its transactions are started with
    ``BEGIN IMMEDIATE``: the database write lock is taken up front and concurrent
    reconciliations queue on the busy timeout instead of failing mid-transaction.
    A connection opened with the ``BUSY_TIMEOUT_OPTION`` execution option waits
    that many milliseconds for the lock; others use ``DEFAULT_BUSY_TIMEOUT_MS``.
    """

    engine = create_engine(database_uri, future=True, **kwargs)
    if engine.dialect.name == "sqlite":
        _use_immediate_transactions(engine)
    return engine


def _use_immediate_transactions(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection: Any, connection_record: Any) -> None:  # pyright: ignore[reportUnusedFunction]
        _ = connection_record
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(connection: Connection) -> None:  # pyright: ignore[reportUnusedFunction]
        options = connection.get_execution_options()
        busy_timeout = int(options.get(BUSY_TIMEOUT_OPTION, DEFAULT_BUSY_TIMEOUT_MS))
        connection.exec_driver_sql(f"PRAGMA busy_timeout = {busy_timeout}")
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, schema, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or build_engine(database_uri or get_database_config().uri)
    start_mappers()
    upgrade_head(engine=resolved_engine)
    _STATE.engine = resolved_engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections."""

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        return False

    def commit(self) -> None:
        with translate_errors():
            self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyAccountUnitOfWork(BaseSqlAlchemyUnitOfWork[AccountRepositories]):
    """Unit of work wrapping one account reconciliation transaction."""

    def _build_repositories(self, session: Session) -> AccountRepositories:
        return AccountRepositories(accounts=SqlAlchemyAccountStore(session))


if TYPE_CHECKING:
    from accountsync.domain.ports.unit_of_work import AccountUnitOfWork

    _uow_check: AccountUnitOfWork = SqlAlchemyAccountUnitOfWork()
