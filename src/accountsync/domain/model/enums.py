"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class AccountType(StrEnum):
    NORMAL = "normal"
    VALIDATOR = "validator"
    GROUP = "group"
