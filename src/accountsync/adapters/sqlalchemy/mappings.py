"""SQLAlchemy mapping metadata for the account table."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import Decimal
from functools import cache
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Numeric,
    String,
    Table,
    TypeDecorator,
    false,
    orm,
    true,
)
from sqlalchemy.orm import configure_mappers

from accountsync.domain.model import Account, AccountType

if TYPE_CHECKING:
    from sqlalchemy.types import TypeEngine

log = logging.getLogger(__name__)

ADDRESS_LENGTH = 64
UINT256_DIGITS = 78


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class UInt256(TypeDecorator[int]):
    """Unsigned 256-bit integer (wei amounts).

    PostgreSQL stores it as ``NUMERIC(100, 0)``. SQLite would coerce large numbers
    to floating point, so there the value is kept as decimal text.
    """

    impl = Numeric(100, 0)
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(UINT256_DIGITS))
        return dialect.type_descriptor(Numeric(100, 0))

    def process_bind_param(self, value: int | None, dialect: Dialect) -> str | Decimal | None:
        if value is None:
            return None
        if dialect.name == "sqlite":
            return str(int(value))
        return Decimal(int(value))

    def process_result_value(
        self, value: str | Decimal | int | None, dialect: Dialect
    ) -> int | None:
        _ = dialect
        if value is None:
            return None
        return int(value)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

account_table = Table(
    "account",
    mapper_registry.metadata,
    Column("address", String(ADDRESS_LENGTH), primary_key=True),
    Column("account_type", Enum(AccountType, native_enum=False), nullable=False),
    Column("gold", UInt256, nullable=False, default=0),
    Column("usd", UInt256, nullable=False, default=0),
    Column("locked_gold", UInt256, nullable=False, default=0),
    Column("notice_period", UInt256, nullable=False, default=0),
    Column("rewards", UInt256, nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True, server_default=true()),
    Column("is_deleted", Boolean, nullable=False, default=False, server_default=false()),
    Column("inserted_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")
    mapper_registry.map_imperatively(Account, account_table)
    configure_mappers()
    return mapper_registry
