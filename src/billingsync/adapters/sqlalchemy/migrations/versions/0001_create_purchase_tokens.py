"""create purchase_tokens

Revision ID: 0001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from billingsync.adapters.sqlalchemy.mappings import UTCDateTime

revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "purchase_tokens",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("purchase_token", sa.String(), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "pending",
                "access_granted",
                "expired",
                name="purchase_token_status",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("expiry_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_purchase_tokens")),
        sa.UniqueConstraint("purchase_token", name=op.f("uq_purchase_tokens_purchase_token")),
    )
    with op.batch_alter_table("purchase_tokens", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_purchase_tokens_user_id"), ["user_id"], unique=False)
        batch_op.create_index(batch_op.f("ix_purchase_tokens_status"), ["status"], unique=False)


def downgrade() -> None:
    with op.batch_alter_table("purchase_tokens", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_purchase_tokens_status"))
        batch_op.drop_index(batch_op.f("ix_purchase_tokens_user_id"))

    op.drop_table("purchase_tokens")
