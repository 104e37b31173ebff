"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the card reconciliation models used by
``card_reconciliation``.
"""

from .reconciliation import Base, RcAccountingParameter, RcCard, RcIgnoredItem

__all__ = [
    "Base",
    "RcAccountingParameter",
    "RcCard",
    "RcIgnoredItem",
]
