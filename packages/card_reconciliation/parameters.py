"""Resolve accounting parameters for a card and an export intent.

Each intent maps to keywords searched (case-insensitive substring) in the
free-text ``motive`` of the card's configured parameters. The first parameter
in configuration order whose motive contains any keyword wins. When several
parameters of one card match the same intent the outcome therefore depends on
configuration order; that is kept as-is rather than guessed at.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping, Sequence

from .models import AccountingParameter


class Intent(enum.StrEnum):
    PENDING_TRANSACTION = "pending-transaction"
    ALLOCATION_SETTLEMENT = "allocation-settlement"
    RETURN_TO_CARD = "return-to-card"
    NOTE_ALREADY_POSTED = "note-already-posted"


DEFAULT_INTENT_KEYWORDS: Mapping[Intent, tuple[str, ...]] = {
    Intent.PENDING_TRANSACTION: ("pendente",),
    Intent.ALLOCATION_SETTLEMENT: ("presta", "aloca"),
    Intent.RETURN_TO_CARD: ("devolver",),
    Intent.NOTE_ALREADY_POSTED: ("acertar",),
}


def normalize_card_name(name: str) -> str:
    return name.strip().lower()


def parameters_for_card(
    parameters: Iterable[AccountingParameter], card_name: str
) -> list[AccountingParameter]:
    key = normalize_card_name(card_name)
    return [p for p in parameters if normalize_card_name(p.card_name) == key]


def resolve_parameter(
    parameters: Sequence[AccountingParameter],
    card_name: str,
    intent: Intent,
    *,
    keywords: Mapping[Intent, Sequence[str]] | None = None,
) -> AccountingParameter | None:
    """Return the first parameter of ``card_name`` whose motive fits ``intent``."""

    table = keywords if keywords is not None else DEFAULT_INTENT_KEYWORDS
    words = [w.lower() for w in table.get(intent, ())]
    if not words:
        return None
    for p in parameters_for_card(parameters, card_name):
        motive = (p.motive or "").lower()
        if any(w in motive for w in words):
            return p
    return None


def describe_keywords(
    intent: Intent, keywords: Mapping[Intent, Sequence[str]] | None = None
) -> str:
    """Human-readable keyword list for "no parameters configured" messages."""

    table = keywords if keywords is not None else DEFAULT_INTENT_KEYWORDS
    return " or ".join(f'"{w}"' for w in table.get(intent, ()))


__all__ = [
    "DEFAULT_INTENT_KEYWORDS",
    "Intent",
    "describe_keywords",
    "normalize_card_name",
    "parameters_for_card",
    "resolve_parameter",
]
