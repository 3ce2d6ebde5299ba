"""create account table

Revision ID: 5b1e0c7d9a42
Revises:
Create Date: 2025-10-19 09:12:44.318027

"""

from __future__ import annotations

from typing import TYPE_CHECKING

import sqlalchemy as sa
from alembic import op

from accountsync.adapters.sqlalchemy.mappings import ADDRESS_LENGTH, UInt256, UTCDateTime

if TYPE_CHECKING:
    from collections.abc import Sequence

revision: str = "5b1e0c7d9a42"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "account",
        sa.Column("address", sa.String(ADDRESS_LENGTH), nullable=False),
        sa.Column(
            "account_type",
            sa.Enum("NORMAL", "VALIDATOR", "GROUP", name="accounttype", native_enum=False),
            nullable=False,
        ),
        sa.Column("gold", UInt256(), nullable=False),
        sa.Column("usd", UInt256(), nullable=False),
        sa.Column("locked_gold", UInt256(), nullable=False),
        sa.Column("notice_period", UInt256(), nullable=False),
        sa.Column("rewards", UInt256(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("inserted_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("address", name=op.f("pk_account")),
    )


def downgrade() -> None:
    op.drop_table("account")
