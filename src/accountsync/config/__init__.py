"""Application configuration helpers."""

from __future__ import annotations

from .env import positive_int_env
from .errors import ConfigurationError
from .logging import configure_logging
from .reconciliation import (
    DEFAULT_TIMEOUT_MS,
    DEFAULT_UPSERT_CHUNK_SIZE,
    ReconciliationConfig,
    get_reconciliation_config,
)
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "DEFAULT_UPSERT_CHUNK_SIZE",
    "ConfigurationError",
    "DatabaseConfig",
    "ReconciliationConfig",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_reconciliation_config",
    "get_storage_config",
    "positive_int_env",
]
