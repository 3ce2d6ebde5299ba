"""Conflict resolution applied when an upserted address already exists."""

from __future__ import annotations

from dataclasses import dataclass

from accountsync.domain.model import VALUE_FIELDS


@dataclass(frozen=True, slots=True)
class ConflictResolution:
    """Which columns an upsert overwrites on an existing row.

    ``fields`` are copied from the incoming row, ``revive`` resets
    ``is_active``/``is_deleted`` so a soft-deleted address comes back, and
    ``touch`` refreshes ``updated_at``. A policy that changes nothing turns the
    upsert into ``ON CONFLICT DO NOTHING``.
    """

    fields: tuple[str, ...] = VALUE_FIELDS
    revive: bool = True
    touch: bool = True

    def __post_init__(self) -> None:
        unknown = sorted(set(self.fields) - set(VALUE_FIELDS))
        if unknown:
            raise ValueError(f"Unknown account fields in conflict resolution: {unknown}")

    @classmethod
    def default(cls) -> ConflictResolution:
        return cls()

    @classmethod
    def balances_only(cls) -> ConflictResolution:
        """Overwrite the value fields but leave the active/deleted flags alone."""
        return cls(revive=False)

    @classmethod
    def nothing(cls) -> ConflictResolution:
        return cls(fields=(), revive=False, touch=False)

    @property
    def is_noop(self) -> bool:
        return not (self.fields or self.revive or self.touch)
