"""Data models for ``card_reconciliation``.

Entities supplied by the extraction and configuration collaborators are frozen
dataclasses: they are created once per extraction event and never mutated.
Their *classification* (ignored / exported) lives in side tables
(:mod:`card_reconciliation.ignore_registry` and
:mod:`card_reconciliation.export_ledger`), never on the entity itself.

Amounts are :class:`~decimal.Decimal` to keep the cent arithmetic used by the
matcher and the serializer exact. Dates are kept as the raw strings delivered
by the extraction collaborator (``DD/MM/YY``, ``DD/MM/YYYY`` or ISO) because
period classification must fail open on malformed values rather than reject
the item.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, NamedTuple

# ---------------------------------------------------------------------------
# Source items
# ---------------------------------------------------------------------------


class EntryOrigin(enum.StrEnum):
    """Which collection a source item (and the entry built from it) comes from."""

    TRANSACTION = "transaction"
    ALLOCATION = "allocation"


class SourceRef(NamedTuple):
    """Identity of a source item.

    Ids are only unique within their own collection (the statement and the
    allocation report are extracted separately), so every side table keys
    items by ``(kind, id)``.
    """

    kind: EntryOrigin
    id: str

    def __str__(self) -> str:
        return f"{self.kind}:{self.id}"

    @classmethod
    def parse(cls, text: str, *, default_kind: EntryOrigin | None = None) -> SourceRef:
        """Parse ``transaction:ID`` / ``allocation:ID``; bare ids need ``default_kind``."""

        value = text.strip()
        for kind in EntryOrigin:
            prefix = f"{kind}:"
            if value.startswith(prefix) and len(value) > len(prefix):
                return cls(kind, value[len(prefix) :])
        if default_kind is None or not value:
            raise ValueError(f"not an item reference: {text!r}")
        return cls(default_kind, value)


def to_decimal(raw: Any) -> Decimal:
    """Coerce ``raw`` to ``Decimal`` via ``str`` so floats keep their repr."""

    if isinstance(raw, Decimal):
        return raw
    return Decimal(str(raw))


@dataclass(frozen=True, slots=True)
class Transaction:
    """A charge billed on the card statement (always positive)."""

    id: str
    date: str
    description: str
    amount: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))

    @property
    def ref(self) -> SourceRef:
        return SourceRef(EntryOrigin.TRANSACTION, self.id)


@dataclass(frozen=True, slots=True)
class Allocation:
    """An accounting allocation line.

    ``posting_date`` (the accounting date), when present, governs competency
    classification; otherwise ``date`` (the fact date) is used. ``amount`` is
    normalized to its absolute value on construction.
    """

    id: str
    date: str
    description: str
    amount: Decimal
    posting_date: str | None = None
    cost_center: str | None = None
    batch: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", abs(to_decimal(self.amount)))

    @property
    def ref(self) -> SourceRef:
        return SourceRef(EntryOrigin.ALLOCATION, self.id)

    @property
    def effective_date(self) -> str:
        if self.posting_date is not None and self.posting_date.strip():
            return self.posting_date
        return self.date


type SourceItem = Transaction | Allocation


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Card:
    name: str
    subaccount: str


@dataclass(frozen=True, slots=True)
class AccountingParameter:
    """Debit/credit coordinates configured for one card and one motive."""

    id: str
    card_name: str
    motive: str
    debit_account: str = ""
    credit_account: str = ""
    debit_subaccount: str = ""
    credit_subaccount: str = ""
    fund: str = ""
    debit_department: str = ""
    credit_department: str = ""
    debit_restriction: str = ""
    credit_restriction: str = ""


# ---------------------------------------------------------------------------
# Reconciliation output
# ---------------------------------------------------------------------------

# Matching is binary; the score is a constant tag, not a confidence metric.
MATCH_SCORE = 100


class ReconciledPair(NamedTuple):
    """A statement transaction paired with the allocation that settles it."""

    transaction: Transaction
    allocation: Allocation
    match_score: int = MATCH_SCORE


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Output of the matching engine over in-period allocations only."""

    reconciled: tuple[ReconciledPair, ...]
    unmatched_transactions: tuple[Transaction, ...]
    unmatched_allocations: tuple[Allocation, ...]


@dataclass(frozen=True, slots=True)
class ReconciliationResult:
    """Full classification of one card/competency session.

    Every non-ignored allocation appears in exactly one of ``reconciled``,
    ``unmatched_allocations`` (in period) or ``out_of_period_allocations``.
    Ignored items are excluded from all three but kept here for un-ignoring.
    """

    reconciled: tuple[ReconciledPair, ...]
    unmatched_transactions: tuple[Transaction, ...]
    unmatched_allocations: tuple[Allocation, ...]
    out_of_period_allocations: tuple[Allocation, ...]
    ignored_transactions: tuple[Transaction, ...] = ()
    ignored_allocations: tuple[Allocation, ...] = ()


# ---------------------------------------------------------------------------
# Ledger entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AccountingEntry:
    """One double-entry record; expands to a debit and a credit ledger line.

    ``narrative`` holds the raw description(s). Transaction-origin prefixes are
    applied by the serializer, not stored here.
    """

    date: str
    narrative: str
    amount: Decimal
    debit_account: str
    credit_account: str
    debit_subaccount: str
    credit_subaccount: str
    fund: str
    debit_department: str
    credit_department: str
    debit_restriction: str
    credit_restriction: str
    origin: EntryOrigin = EntryOrigin.ALLOCATION
    sources: tuple[SourceRef, ...] = ()


__all__ = [
    "AccountingEntry",
    "AccountingParameter",
    "Allocation",
    "Card",
    "EntryOrigin",
    "MATCH_SCORE",
    "MatchResult",
    "ReconciledPair",
    "ReconciliationResult",
    "SourceItem",
    "SourceRef",
    "Transaction",
    "to_decimal",
]
