# ruff: noqa: I001
"""Card reconciliation core tables.

Revision ID: 0001_rc_core
Revises: None
Create Date: 2026-10-18
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_rc_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    # rc_cards
    op.create_table(
        "rc_cards",
        sa.Column("name", sa.String(), primary_key=True),
        sa.Column("subaccount", sa.String(), nullable=False),
        _created_at(),
    )

    # rc_accounting_parameters (one row per card + motive)
    coordinate_cols = [
        sa.Column(name, sa.String(), nullable=False, server_default="")
        for name in (
            "debit_account",
            "credit_account",
            "debit_subaccount",
            "credit_subaccount",
            "fund",
            "debit_department",
            "credit_department",
            "debit_restriction",
            "credit_restriction",
        )
    ]
    op.create_table(
        "rc_accounting_parameters",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("card_name", sa.String(), nullable=False),
        sa.Column("motive", sa.Text(), nullable=False),
        *coordinate_cols,
        _created_at(),
    )
    op.create_index("ix_rc_params_card_name", "rc_accounting_parameters", ["card_name"])

    # rc_ignored_items (durable "don't show this again" per card + competency)
    op.create_table(
        "rc_ignored_items",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("card_name", sa.String(), nullable=False),
        sa.Column("competency", sa.String(length=7), nullable=False),
        sa.Column("item_kind", sa.String(length=16), nullable=False),
        sa.Column("item_id", sa.String(), nullable=False),
        _created_at(),
        sa.UniqueConstraint(
            "card_name",
            "competency",
            "item_kind",
            "item_id",
            name="uq_rc_ignored_card_comp_item",
        ),
    )


def downgrade() -> None:
    op.drop_table("rc_ignored_items")
    op.drop_index("ix_rc_params_card_name", table_name="rc_accounting_parameters")
    op.drop_table("rc_accounting_parameters")
    op.drop_table("rc_cards")
