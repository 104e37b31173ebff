"""Amount matching and the pure reconciliation pipeline.

``match_by_amount`` pairs statement transactions with in-period allocations of
equal amount (within one cent). It is greedy and order-dependent, not a global
optimum: transactions are visited from last to first and each takes the first
remaining allocation, in list order, whose amount is within tolerance. Given
stable input order the output is deterministic.

``reconcile`` composes ignore filtering, competency classification and
matching. It holds no state and may be re-run on every input change.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence
from decimal import Decimal

from .competency import Competency, split_by_competency
from .logging_setup import get_logger
from .models import (
    Allocation,
    MatchResult,
    ReconciledPair,
    ReconciliationResult,
    SourceRef,
    Transaction,
)

logger = get_logger("card_reconciliation.matching")

AMOUNT_TOLERANCE = Decimal("0.01")


def amounts_match(a: Decimal, b: Decimal, *, tolerance: Decimal = AMOUNT_TOLERANCE) -> bool:
    return abs(a - b) < tolerance


def match_by_amount(
    transactions: Sequence[Transaction],
    allocations: Sequence[Allocation],
    *,
    tolerance: Decimal = AMOUNT_TOLERANCE,
) -> MatchResult:
    """Pair transactions and allocations 1:1 by amount.

    Complexity is O(n*m); the lists come from a single statement and a single
    allocation report, so they stay in the tens to low hundreds.
    """

    remaining_tx: list[Transaction] = list(transactions)
    remaining_al: list[Allocation] = list(allocations)
    reconciled: list[ReconciledPair] = []

    for i in range(len(remaining_tx) - 1, -1, -1):
        tx = remaining_tx[i]
        match_idx = next(
            (
                j
                for j, al in enumerate(remaining_al)
                if amounts_match(al.amount, tx.amount, tolerance=tolerance)
            ),
            None,
        )
        if match_idx is None:
            continue
        al = remaining_al.pop(match_idx)
        del remaining_tx[i]
        reconciled.append(ReconciledPair(transaction=tx, allocation=al))

    return MatchResult(
        reconciled=tuple(reconciled),
        unmatched_transactions=tuple(remaining_tx),
        unmatched_allocations=tuple(remaining_al),
    )


def reconcile(
    transactions: Iterable[Transaction],
    allocations: Iterable[Allocation],
    ignored: Collection[SourceRef],
    competency: Competency,
) -> ReconciliationResult:
    """Classify one card/competency session.

    1) Drop ignored transactions and allocations (kept aside for display).
    2) Split surviving allocations into in-period and out-of-period.
    3) Match transactions against the in-period subset only.
    """

    tx_list = list(transactions)
    al_list = list(allocations)

    active_tx = [t for t in tx_list if t.ref not in ignored]
    active_al = [a for a in al_list if a.ref not in ignored]
    ignored_tx = tuple(t for t in tx_list if t.ref in ignored)
    ignored_al = tuple(a for a in al_list if a.ref in ignored)

    in_period, out_of_period = split_by_competency(active_al, competency)
    matched = match_by_amount(active_tx, in_period)

    logger.debug(
        "Reconciled %s: %d pairs, %d pending transactions, %d pending allocations, "
        "%d out of period, %d ignored",
        competency,
        len(matched.reconciled),
        len(matched.unmatched_transactions),
        len(matched.unmatched_allocations),
        len(out_of_period),
        len(ignored_tx) + len(ignored_al),
    )

    return ReconciliationResult(
        reconciled=matched.reconciled,
        unmatched_transactions=matched.unmatched_transactions,
        unmatched_allocations=matched.unmatched_allocations,
        out_of_period_allocations=tuple(out_of_period),
        ignored_transactions=ignored_tx,
        ignored_allocations=ignored_al,
    )


__all__ = [
    "AMOUNT_TOLERANCE",
    "amounts_match",
    "match_by_amount",
    "reconcile",
]
