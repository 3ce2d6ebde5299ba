"""SQLAlchemy adapter package for accountsync."""

from __future__ import annotations

from .mappings import account_table, mapper_registry, start_mappers
from .repositories import SqlAlchemyAccountStore
from .unit_of_work import (
    SqlAlchemyAccountUnitOfWork,
    StartupError,
    build_engine,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyAccountStore",
    "SqlAlchemyAccountUnitOfWork",
    "StartupError",
    "account_table",
    "build_engine",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
