# ruff: noqa: I001
"""Ledger accounts and imported transactions.

Revision ID: 0001_ledger_core
Revises: None
Create Date: 2025-03-20
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_ledger_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    # ledger_accounts
    op.create_table(
        "ledger_accounts",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("balance", sa.Numeric(18, 2), nullable=True),
        sa.Column("last_import_date", sa.Date(), nullable=True),
        sa.Column("extra", sa.JSON(), nullable=True),
        *_timestamps(),
    )

    # ledger_transactions
    op.create_table(
        "ledger_transactions",
        sa.Column(
            "id",
            sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
            primary_key=True,
            autoincrement=True,
        ),
        sa.Column("account_id", sa.String(64), nullable=False),
        sa.Column("import_source", sa.String(), nullable=False),
        sa.Column("dedup_key", sa.String(), nullable=False),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("merchant", sa.String(), nullable=True),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("reference", sa.String(), nullable=True),
        sa.Column("category_suggestion", sa.String(), nullable=True),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["account_id"],
            ["ledger_accounts.id"],
            name="fk_ledger_tx_account",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("account_id", "dedup_key", name="uq_ledger_tx_account_dedup"),
        sa.CheckConstraint("amount >= 0", name="ck_ledger_tx_amount_non_negative"),
        sa.CheckConstraint(
            "type IN ('income', 'expense', 'investment')", name="ck_ledger_tx_type"
        ),
    )

    op.create_index(
        "ix_ledger_transactions_date", "ledger_transactions", ["transaction_date"], unique=False
    )
    op.create_index(
        "ix_ledger_transactions_source", "ledger_transactions", ["import_source"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_ledger_transactions_source", table_name="ledger_transactions")
    op.drop_index("ix_ledger_transactions_date", table_name="ledger_transactions")
    op.drop_table("ledger_transactions")
    op.drop_table("ledger_accounts")
