"""Build double-entry accounting records from selected source items.

Two modes:

- per item (:func:`build_entries`): one entry per transaction/allocation;
- grouped (:func:`build_grouped_entry`): one entry for a caller-selected set,
  summing amounts, dated by the first item, narrating all descriptions.

Parameters are resolved per call from the card + intent. Entries whose debit
account comes out empty (no parameter matched, or the matched one has no debit
account) are dropped and reported by source reference so callers can tell the user
how many items lack configuration.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from .logging_setup import get_logger
from .models import (
    AccountingEntry,
    AccountingParameter,
    EntryOrigin,
    SourceItem,
    SourceRef,
)
from .parameters import Intent, resolve_parameter

logger = get_logger("card_reconciliation.entries")

NARRATIVE_MAX_LENGTH = 200
GROUP_SEPARATOR = " / "


@dataclass(frozen=True, slots=True)
class BuildResult:
    entries: tuple[AccountingEntry, ...]
    # Sources that produced no entry because no parameter resolved.
    dropped: tuple[SourceRef, ...] = ()

    @property
    def dropped_count(self) -> int:
        return len(self.dropped)

    @property
    def sources(self) -> tuple[SourceRef, ...]:
        return tuple(ref for e in self.entries for ref in e.sources)


def origin_of(item: SourceItem) -> EntryOrigin:
    return item.ref.kind


def make_entry(
    *,
    date: str,
    narrative: str,
    amount: Decimal,
    parameter: AccountingParameter | None,
    origin: EntryOrigin,
    sources: Sequence[SourceRef],
) -> AccountingEntry:
    """Combine item data with resolved coordinates (empty when unresolved)."""

    p = parameter
    return AccountingEntry(
        date=date,
        narrative=narrative,
        amount=amount,
        debit_account=p.debit_account if p else "",
        credit_account=p.credit_account if p else "",
        debit_subaccount=p.debit_subaccount if p else "",
        credit_subaccount=p.credit_subaccount if p else "",
        fund=p.fund if p else "",
        debit_department=p.debit_department if p else "",
        credit_department=p.credit_department if p else "",
        debit_restriction=p.debit_restriction if p else "",
        credit_restriction=p.credit_restriction if p else "",
        origin=origin,
        sources=tuple(sources),
    )


def build_entries(
    items: Sequence[SourceItem],
    *,
    parameters: Sequence[AccountingParameter],
    card_name: str,
    intent: Intent,
    keywords: Mapping[Intent, Sequence[str]] | None = None,
) -> BuildResult:
    """Build one entry per item, dropping items without debit coordinates."""

    param = resolve_parameter(parameters, card_name, intent, keywords=keywords)
    kept: list[AccountingEntry] = []
    dropped: list[SourceRef] = []
    for item in items:
        entry = make_entry(
            date=item.date,
            narrative=item.description,
            amount=item.amount,
            parameter=param,
            origin=origin_of(item),
            sources=(item.ref,),
        )
        if entry.debit_account == "":
            dropped.append(item.ref)
            continue
        kept.append(entry)

    if dropped:
        logger.warning(
            "%d item(s) for card %r had no parameters configured for %s",
            len(dropped),
            card_name,
            intent,
        )
    return BuildResult(entries=tuple(kept), dropped=tuple(dropped))


def group_narrative(
    items: Sequence[SourceItem],
    *,
    max_length: int = NARRATIVE_MAX_LENGTH,
    separator: str = GROUP_SEPARATOR,
) -> str:
    text = separator.join(it.description.strip() for it in items if it.description.strip())
    return text[:max_length]


def build_grouped_entry(
    items: Sequence[SourceItem],
    *,
    parameters: Sequence[AccountingParameter],
    card_name: str,
    intent: Intent,
    keywords: Mapping[Intent, Sequence[str]] | None = None,
    max_length: int = NARRATIVE_MAX_LENGTH,
) -> BuildResult:
    """Collapse ``items`` into a single entry under one parameter resolution.

    The entry is tagged as transaction-origin only when every item is a
    statement transaction; mixed or allocation-only groups keep their joined
    narrative unprefixed.
    """

    if not items:
        return BuildResult(entries=())

    param = resolve_parameter(parameters, card_name, intent, keywords=keywords)
    origins = {origin_of(it) for it in items}
    origin = (
        EntryOrigin.TRANSACTION
        if origins == {EntryOrigin.TRANSACTION}
        else EntryOrigin.ALLOCATION
    )
    entry = make_entry(
        date=items[0].date,
        narrative=group_narrative(items, max_length=max_length),
        amount=sum((it.amount for it in items), Decimal("0")),
        parameter=param,
        origin=origin,
        sources=[it.ref for it in items],
    )
    if entry.debit_account == "":
        logger.warning(
            "Grouped export of %d item(s) for card %r had no parameters configured for %s",
            len(items),
            card_name,
            intent,
        )
        return BuildResult(entries=(), dropped=entry.sources)
    return BuildResult(entries=(entry,))


__all__ = [
    "BuildResult",
    "GROUP_SEPARATOR",
    "NARRATIVE_MAX_LENGTH",
    "build_entries",
    "build_grouped_entry",
    "group_narrative",
    "make_entry",
    "origin_of",
]
