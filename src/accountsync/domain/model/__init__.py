"""Domain model for reconciled accounts."""

from __future__ import annotations

from .account import VALUE_FIELDS, Account
from .enums import AccountType

__all__ = ["VALUE_FIELDS", "Account", "AccountType"]
