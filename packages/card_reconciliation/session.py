"""One card/competency reconciliation session.

The session owns the inputs of a single view (statement transactions,
allocation lines, the card's accounting parameters) together with the two
override tables: the persisted :class:`IgnoreRegistry` and the in-memory
:class:`ExportLedger`. Classification is recomputed through the pure
:func:`~card_reconciliation.matching.reconcile` whenever an input, the
competency or the ignore set changes; everything else is derived from its
result.

Export actions
--------------
Each action names the pool it draws from, the intent used to resolve
accounting parameters and the suffix of the generated file:

=====================  =============================  =========================
action                 pool                           intent
=====================  =============================  =========================
pending-transactions   statement items left unmatched ``PENDING_TRANSACTION``
return-to-card         statement items left unmatched ``RETURN_TO_CARD``
allocation-settlement  in-period allocations          ``ALLOCATION_SETTLEMENT``
out-of-period          allocations of another period  ``NOTE_ALREADY_POSTED``
=====================  =============================  =========================

Grouped exports take their intent from the action but may select from every
pool in :data:`GROUPABLE_POOLS`, so a statement item and an allocation can be
settled by a single entry.

Items already exported in this session are filtered out before building, and
only the sources of entries actually emitted are marked as exported, so items
dropped for lack of configuration can be exported again once parameters are
added.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .competency import Competency
from .entries import BuildResult, build_entries, build_grouped_entry
from .export_ledger import ExportLedger
from .ignore_registry import IgnoreRegistry
from .logging_setup import get_logger
from .matching import reconcile
from .models import (
    AccountingEntry,
    AccountingParameter,
    Allocation,
    ReconciliationResult,
    SourceItem,
    SourceRef,
    Transaction,
)
from .parameters import Intent, describe_keywords, parameters_for_card
from .serializers import (
    DEFAULT_ROWS_PER_PAGE,
    export_filename,
    render_ledger_csv,
    render_report,
)

logger = get_logger("card_reconciliation.session")


# ---------------------------------------------------------------------------
# Pools, actions and outcomes
# ---------------------------------------------------------------------------


class Pool(enum.StrEnum):
    """Named views over a :class:`ReconciliationResult`."""

    RECONCILED = "reconciled"
    PENDING_TRANSACTIONS = "pending-transactions"
    PENDING_ALLOCATIONS = "pending-allocations"
    OUT_OF_PERIOD = "out-of-period"
    IGNORED = "ignored"


# Pools whose items are still awaiting a ledger entry.
GROUPABLE_POOLS: tuple[Pool, ...] = (
    Pool.PENDING_TRANSACTIONS,
    Pool.PENDING_ALLOCATIONS,
    Pool.OUT_OF_PERIOD,
)


def pool_items(result: ReconciliationResult, pool: Pool) -> tuple[SourceItem, ...]:
    match pool:
        case Pool.RECONCILED:
            return tuple(p.transaction for p in result.reconciled)
        case Pool.PENDING_TRANSACTIONS:
            return result.unmatched_transactions
        case Pool.PENDING_ALLOCATIONS:
            return result.unmatched_allocations
        case Pool.OUT_OF_PERIOD:
            return result.out_of_period_allocations
        case Pool.IGNORED:
            return (*result.ignored_transactions, *result.ignored_allocations)
    raise ValueError(f"Unknown pool: {pool!r}")


class ExportAction(enum.StrEnum):
    PENDING_TRANSACTIONS = "pending-transactions"
    RETURN_TO_CARD = "return-to-card"
    ALLOCATION_SETTLEMENT = "allocation-settlement"
    OUT_OF_PERIOD = "out-of-period"


@dataclass(frozen=True, slots=True)
class ActionSpec:
    pool: Pool
    intent: Intent
    suffix: str


ACTIONS: Mapping[ExportAction, ActionSpec] = {
    ExportAction.PENDING_TRANSACTIONS: ActionSpec(
        Pool.PENDING_TRANSACTIONS, Intent.PENDING_TRANSACTION, "fatura_pendentes"
    ),
    ExportAction.RETURN_TO_CARD: ActionSpec(
        Pool.PENDING_TRANSACTIONS, Intent.RETURN_TO_CARD, "devolucao_cartao"
    ),
    ExportAction.ALLOCATION_SETTLEMENT: ActionSpec(
        Pool.PENDING_ALLOCATIONS, Intent.ALLOCATION_SETTLEMENT, "prestacao_contas"
    ),
    ExportAction.OUT_OF_PERIOD: ActionSpec(
        Pool.OUT_OF_PERIOD, Intent.NOTE_ALREADY_POSTED, "fora_competencia"
    ),
}

GROUPED_SUFFIX = "agrupado"


class ExportStatus(enum.StrEnum):
    OK = "ok"
    # Nothing eligible: empty selection or every item already exported.
    NOTHING_TO_EXPORT = "nothing-to-export"
    # Eligible items exist but none resolved debit coordinates.
    NO_PARAMETERS = "no-parameters"


@dataclass(frozen=True, slots=True)
class ExportOutcome:
    status: ExportStatus
    action: ExportAction
    entries: tuple[AccountingEntry, ...] = ()
    content: bytes = b""
    filename: str | None = None
    # Eligible items left out for lack of parameters.
    dropped: tuple[SourceRef, ...] = ()
    # Selected items that are not awaiting export (reconciled, ignored, unknown).
    skipped: tuple[SourceRef, ...] = ()
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ExportStatus.OK

    @property
    def dropped_count(self) -> int:
        return len(self.dropped)

    def write_to(self, out_dir: Path) -> Path:
        """Write the generated file into ``out_dir`` and return its path."""

        if not self.ok or self.filename is None:
            raise ValueError(f"{self.action}: nothing to write ({self.status})")
        out_dir.mkdir(parents=True, exist_ok=True)
        target = out_dir / self.filename
        target.write_bytes(self.content)
        return target


def _skipped_note(skipped: Sequence[SourceRef]) -> str:
    if not skipped:
        return ""
    listed = ", ".join(str(r) for r in skipped)
    return f" {len(skipped)} selected item(s) not awaiting export: {listed}."


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class ReconciliationSession:
    """Stateful facade over the pure reconciliation and export pipeline."""

    def __init__(
        self,
        card_name: str,
        competency: Competency,
        *,
        transactions: Iterable[Transaction] = (),
        allocations: Iterable[Allocation] = (),
        parameters: Iterable[AccountingParameter] = (),
        ignore_registry: IgnoreRegistry | None = None,
        export_ledger: ExportLedger | None = None,
        keywords: Mapping[Intent, Sequence[str]] | None = None,
    ) -> None:
        self._card_name = card_name
        self._competency = competency
        self._transactions: tuple[Transaction, ...] = tuple(transactions)
        self._allocations: tuple[Allocation, ...] = tuple(allocations)
        self._parameters: tuple[AccountingParameter, ...] = tuple(
            parameters_for_card(parameters, card_name)
        )
        self.ignore_registry = ignore_registry if ignore_registry is not None else IgnoreRegistry()
        self.export_ledger = export_ledger if export_ledger is not None else ExportLedger()
        self.keywords = keywords
        self._version = 0
        self._cache_key: tuple[int, Competency, frozenset[SourceRef]] | None = None
        self._cache: ReconciliationResult | None = None

    # ---- inputs --------------------------------------------------------

    @property
    def card_name(self) -> str:
        return self._card_name

    @property
    def competency(self) -> Competency:
        return self._competency

    @competency.setter
    def competency(self, value: Competency) -> None:
        """Switch period; the ignore set is reloaded for the new key."""

        if value == self._competency:
            return
        self._competency = value
        self.ignore_registry.reload(self._card_name, value)

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self._transactions

    @property
    def allocations(self) -> tuple[Allocation, ...]:
        return self._allocations

    @property
    def parameters(self) -> tuple[AccountingParameter, ...]:
        return self._parameters

    def set_transactions(self, transactions: Iterable[Transaction]) -> None:
        """Replace the statement items (a new extraction event)."""

        self._transactions = tuple(transactions)
        self._version += 1

    def set_allocations(self, allocations: Iterable[Allocation]) -> None:
        self._allocations = tuple(allocations)
        self._version += 1

    def set_parameters(self, parameters: Iterable[AccountingParameter]) -> None:
        self._parameters = tuple(parameters_for_card(parameters, self._card_name))

    # ---- classification -----------------------------------------------

    def reconciliation(self) -> ReconciliationResult:
        key = (self._version, self._competency, self.ignore_registry.ids)
        if self._cache is None or self._cache_key != key:
            self._cache = reconcile(
                self._transactions,
                self._allocations,
                key[2],
                self._competency,
            )
            self._cache_key = key
        return self._cache

    def items(self, pool: Pool) -> tuple[SourceItem, ...]:
        return pool_items(self.reconciliation(), pool)

    def pending(self, action: ExportAction) -> list[SourceItem]:
        """Items of the action's pool not yet exported in this session."""

        return self.export_ledger.pending(list(self.items(ACTIONS[action].pool)))

    def selectable(self) -> list[SourceItem]:
        """Items of every groupable pool not yet exported, in listing order."""

        items = [it for pool in GROUPABLE_POOLS for it in self.items(pool)]
        return self.export_ledger.pending(items)

    def resolve_selection(self, tokens: Iterable[str]) -> tuple[list[SourceRef], list[str]]:
        """Map user tokens to loaded items.

        ``transaction:ID`` and ``allocation:ID`` name an item explicitly; a bare
        id resolves when exactly one loaded item carries it. Returns the
        references and the tokens that are unknown or ambiguous.
        """

        known = [it.ref for it in (*self._transactions, *self._allocations)]
        known_set = set(known)
        by_id: dict[str, list[SourceRef]] = {}
        for ref in known:
            by_id.setdefault(ref.id, []).append(ref)

        refs: list[SourceRef] = []
        unresolved: list[str] = []
        for token in tokens:
            try:
                ref = SourceRef.parse(token)
            except ValueError:
                matches = by_id.get(token.strip(), [])
                if len(matches) != 1:
                    unresolved.append(token)
                    continue
                ref = matches[0]
            if ref not in known_set:
                unresolved.append(token)
                continue
            refs.append(ref)
        return refs, unresolved

    def toggle_ignore(self, ref: SourceRef) -> bool:
        return self.ignore_registry.toggle(self._card_name, self._competency, ref)

    def reset_exported(self, refs: Iterable[SourceRef] | None = None) -> int:
        """Make exported items (all, or ``refs``) eligible for export again."""

        n = self.export_ledger.reset(refs)
        logger.info("Reset %d exported item(s) for %s/%s", n, self._card_name, self._competency)
        return n

    # ---- export --------------------------------------------------------

    def export(self, action: ExportAction) -> ExportOutcome:
        """Build one entry per pending item of ``action``'s pool."""

        spec = ACTIONS[action]
        items = self.pending(action)
        if not items:
            return self._nothing(action, self.items(spec.pool))

        built = build_entries(
            items,
            parameters=self._parameters,
            card_name=self._card_name,
            intent=spec.intent,
            keywords=self.keywords,
        )
        return self._finish(action, built, suffix=spec.suffix)

    def export_grouped(self, refs: Iterable[SourceRef], action: ExportAction) -> ExportOutcome:
        """Collapse the selected items into one entry under ``action``'s intent.

        The selection may mix statement items and allocations from any pool
        in :data:`GROUPABLE_POOLS`; it is ordered as those pools list their
        items. Selected items outside those pools are reported as skipped.
        """

        spec = ACTIONS[action]
        wanted = dict.fromkeys(refs)
        available = {it.ref: it for pool in GROUPABLE_POOLS for it in self.items(pool)}
        selected = [it for ref, it in available.items() if ref in wanted]
        skipped = tuple(ref for ref in wanted if ref not in available)
        if skipped:
            logger.warning("Grouped %s skipped %d item(s): %s", action, len(skipped), skipped)

        items = self.export_ledger.pending(selected)
        if not items:
            return self._nothing(action, selected, skipped=skipped)

        built = build_grouped_entry(
            items,
            parameters=self._parameters,
            card_name=self._card_name,
            intent=spec.intent,
            keywords=self.keywords,
        )
        return self._finish(
            action, built, suffix=f"{spec.suffix}_{GROUPED_SUFFIX}", skipped=skipped
        )

    def _nothing(
        self,
        action: ExportAction,
        candidates: Sequence[SourceItem],
        *,
        skipped: tuple[SourceRef, ...] = (),
    ) -> ExportOutcome:
        if candidates:
            message = f"Nothing to export: all {len(candidates)} item(s) were already exported."
        else:
            message = "Nothing to export: no items selected."
        message += _skipped_note(skipped)
        logger.info("%s for %s/%s: %s", action, self._card_name, self._competency, message)
        return ExportOutcome(
            status=ExportStatus.NOTHING_TO_EXPORT,
            action=action,
            skipped=skipped,
            message=message,
        )

    def _finish(
        self,
        action: ExportAction,
        built: BuildResult,
        *,
        suffix: str,
        skipped: tuple[SourceRef, ...] = (),
    ) -> ExportOutcome:
        intent = ACTIONS[action].intent
        if not built.entries:
            message = (
                f'No accounting parameters configured for card "{self._card_name}" '
                f"with a motive containing {describe_keywords(intent, self.keywords)}."
            )
            return ExportOutcome(
                status=ExportStatus.NO_PARAMETERS,
                action=action,
                dropped=built.dropped,
                skipped=skipped,
                message=message,
            )

        self.export_ledger.mark_exported(built.sources)
        filename = export_filename(self._card_name, self._competency, suffix)
        n = len(built.entries)
        message = f"Exported {n} entr{'y' if n == 1 else 'ies'} to {filename}."
        if built.dropped_count:
            message += (
                f" {built.dropped_count} item(s) skipped: no parameters for "
                f"{describe_keywords(intent, self.keywords)}."
            )
        message += _skipped_note(skipped)
        logger.info("%s for %s/%s: %s", action, self._card_name, self._competency, message)
        return ExportOutcome(
            status=ExportStatus.OK,
            action=action,
            entries=built.entries,
            content=render_ledger_csv(built.entries),
            filename=filename,
            dropped=built.dropped,
            skipped=skipped,
            message=message,
        )

    # ---- report --------------------------------------------------------

    def report(
        self,
        pool: Pool,
        *,
        rows_per_page: int = DEFAULT_ROWS_PER_PAGE,
        generated_at: datetime | None = None,
        width: int = 100,
    ) -> str:
        return render_report(
            self.items(pool),
            card_name=self._card_name,
            competency=self._competency,
            generated_at=generated_at,
            rows_per_page=rows_per_page,
            width=width,
        )


__all__ = [
    "ACTIONS",
    "ActionSpec",
    "ExportAction",
    "ExportOutcome",
    "ExportStatus",
    "GROUPABLE_POOLS",
    "GROUPED_SUFFIX",
    "Pool",
    "ReconciliationSession",
    "pool_items",
]
