"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import AccountStore, IntegrityViolation, StatementTimeout, StorageError
from .unit_of_work import (
    AccountRepositories,
    AccountUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AccountRepositories",
    "AccountStore",
    "AccountUnitOfWork",
    "IntegrityViolation",
    "RepositoryCollection",
    "StatementTimeout",
    "StorageError",
    "UnitOfWork",
]
