"""Session-scoped record of source items already turned into ledger rows.

Unlike the ignore registry this is never persisted: a fresh session starts
with an empty ledger. Exported items still take part in matching and display;
they are only filtered out of the next export computation. Items are keyed by
:class:`~card_reconciliation.models.SourceRef`, so a transaction and an
allocation sharing an id are tracked separately.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TypeVar

from .models import Allocation, SourceRef, Transaction

_ItemT = TypeVar("_ItemT", bound=Transaction | Allocation)


class ExportLedger:
    def __init__(self) -> None:
        self._refs: set[SourceRef] = set()

    def mark_exported(self, refs: Iterable[SourceRef]) -> None:
        self._refs.update(refs)

    def is_exported(self, ref: SourceRef) -> bool:
        return ref in self._refs

    def pending(self, items: Sequence[_ItemT]) -> list[_ItemT]:
        """Return the items not yet exported, preserving order."""

        return [it for it in items if it.ref not in self._refs]

    def reset(self, refs: Iterable[SourceRef] | None = None) -> int:
        """Forget all exported items, or only ``refs``; return how many were forgotten."""

        before = len(self._refs)
        if refs is None:
            self._refs.clear()
        else:
            self._refs.difference_update(refs)
        return before - len(self._refs)

    def __len__(self) -> int:
        return len(self._refs)


__all__ = ["ExportLedger"]
