"""Validation and ordering of an observed batch of account states."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError

from accountsync.domain.model import AccountType

from .errors import BatchValidationError, EntryIssue
from .result import Err, Ok, Result

if TYPE_CHECKING:
    from collections.abc import Iterable

Address = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]
Amount = Annotated[int, Field(ge=0)]


class AccountInput(BaseModel):
    """One observed account state as handed over by the upstream scraper."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    address: Address
    account_type: AccountType
    gold: Amount
    usd: Amount
    locked_gold: Amount
    notice_period: Amount
    rewards: Amount

    def row(self) -> dict[str, Any]:
        return self.model_dump()


def validate_batch(
    batch: Iterable[AccountInput | Mapping[str, Any]],
) -> Result[list[AccountInput], BatchValidationError]:
    """Validate every entry, reporting all offending entries at once."""

    entries: list[AccountInput] = []
    issues: list[EntryIssue] = []
    for index, raw in enumerate(batch):
        if isinstance(raw, AccountInput):
            entries.append(raw)
            continue
        try:
            entries.append(AccountInput.model_validate(raw))
        except ValidationError as exc:
            issues.append(
                EntryIssue(index=index, address=_raw_address(raw), message=_describe(exc))
            )
    if issues:
        return Err(BatchValidationError(issues))
    return Ok(entries)


def order_batch(entries: Iterable[AccountInput]) -> list[AccountInput]:
    """Deduplicate by address (last occurrence wins) and sort ascending by address."""

    by_address: dict[str, AccountInput] = {}
    for entry in entries:
        by_address[entry.address] = entry
    return [by_address[address] for address in sorted(by_address)]


def _raw_address(raw: object) -> str | None:
    value = raw.get("address") if isinstance(raw, Mapping) else getattr(raw, "address", None)
    return value if isinstance(value, str) and value.strip() else None


def _describe(exc: ValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors(include_url=False):
        location = ".".join(str(part) for part in error["loc"]) or "entry"
        parts.append(f"{location}: {error['msg']}")
    return ", ".join(parts)
