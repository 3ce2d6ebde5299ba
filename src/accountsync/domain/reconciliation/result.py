"""Tagged result values returned by reconciliation steps."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Never


@dataclass(frozen=True, slots=True)
class Ok[T]:
    value: T

    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err[E: Exception]:
    error: E

    def is_ok(self) -> bool:
        return False

    def unwrap(self) -> Never:
        raise self.error


type Result[T, E: Exception] = Ok[T] | Err[E]
