"""Reconciliation defaults for the account import path."""

from __future__ import annotations

from dataclasses import dataclass

from .env import positive_int_env

DEFAULT_TIMEOUT_MS = 60_000
DEFAULT_UPSERT_CHUNK_SIZE = 500


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    upsert_chunk_size: int = DEFAULT_UPSERT_CHUNK_SIZE


def get_reconciliation_config() -> ReconciliationConfig:
    return ReconciliationConfig(
        timeout_ms=positive_int_env("ACCOUNTSYNC_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
        upsert_chunk_size=positive_int_env(
            "ACCOUNTSYNC_UPSERT_CHUNK_SIZE", DEFAULT_UPSERT_CHUNK_SIZE
        ),
    )
