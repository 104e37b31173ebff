from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Configuration: rc_cards
# ---------------------------


class RcCard(Base):
    __tablename__ = "rc_cards"

    name: Mapped[str] = mapped_column(String, primary_key=True)
    # Ledger subaccount printed next to the card name in listings; it is a
    # label only and never used to resolve accounting parameters.
    subaccount: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------
# Configuration: rc_accounting_parameters
# ---------------------------


class RcAccountingParameter(Base):
    __tablename__ = "rc_accounting_parameters"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    # Matched case-insensitively against the session card; deliberately not a
    # foreign key so parameters survive a card being renamed or removed.
    card_name: Mapped[str] = mapped_column(String, nullable=False)
    motive: Mapped[str] = mapped_column(Text, nullable=False)
    debit_account: Mapped[str] = mapped_column(String, nullable=False, server_default="")
    credit_account: Mapped[str] = mapped_column(String, nullable=False, server_default="")
    debit_subaccount: Mapped[str] = mapped_column(String, nullable=False, server_default="")
    credit_subaccount: Mapped[str] = mapped_column(String, nullable=False, server_default="")
    fund: Mapped[str] = mapped_column(String, nullable=False, server_default="")
    debit_department: Mapped[str] = mapped_column(String, nullable=False, server_default="")
    credit_department: Mapped[str] = mapped_column(String, nullable=False, server_default="")
    debit_restriction: Mapped[str] = mapped_column(String, nullable=False, server_default="")
    credit_restriction: Mapped[str] = mapped_column(String, nullable=False, server_default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (Index("ix_rc_params_card_name", "card_name"),)


# ---------------------------
# Overrides: rc_ignored_items
# ---------------------------


class RcIgnoredItem(Base):
    __tablename__ = "rc_ignored_items"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    card_name: Mapped[str] = mapped_column(String, nullable=False)
    # Competency as ``YYYY-MM``.
    competency: Mapped[str] = mapped_column(String(7), nullable=False)
    # "transaction" or "allocation"; ids are only unique within one kind.
    item_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    item_id: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "card_name",
            "competency",
            "item_kind",
            "item_id",
            name="uq_rc_ignored_card_comp_item",
        ),
    )


__all__ = [
    "Base",
    "RcCard",
    "RcAccountingParameter",
    "RcIgnoredItem",
]
