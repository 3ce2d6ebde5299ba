"""The account aggregate reconciled by the import path."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from datetime import datetime

    from .enums import AccountType

VALUE_FIELDS: Final[tuple[str, ...]] = (
    "account_type",
    "gold",
    "usd",
    "locked_gold",
    "notice_period",
    "rewards",
)
"""Mutable fields carried by every observed account state."""


@dataclass(eq=False, kw_only=True)
class Account:
    """Persisted account state keyed by its on-chain address.

    ``address`` is immutable once created. The balance fields are replaced
    wholesale whenever the address shows up in an observed batch; rows are only
    ever soft-deleted.
    """

    address: str
    account_type: AccountType
    gold: int = 0
    usd: int = 0
    locked_gold: int = 0
    notice_period: int = 0
    rewards: int = 0
    is_active: bool = True
    is_deleted: bool = False
    inserted_at: datetime | None = None
    updated_at: datetime | None = None

    def __repr__(self) -> str:
        flags = "deleted" if self.is_deleted else ("active" if self.is_active else "inactive")
        return f"Account(address={self.address!r}, type={self.account_type}, {flags})"
