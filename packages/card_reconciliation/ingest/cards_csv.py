"""Import the card registry from a two-column sheet (``Nome,Subconta``)."""

from __future__ import annotations

from collections.abc import Iterable
from os import PathLike

from ..logging_setup import get_logger
from ..models import Card
from .utils import iter_data_rows

logger = get_logger("card_reconciliation.ingest.cards_csv")

CARDS_HEADER = ("Nome", "Subconta")
CARDS_TEMPLATE = (
    ",".join(CARDS_HEADER)
    + "\n"
    + "Bradesco Infinite - COAG,767902\n"
    + "Santander - Sede,6637\n"
)


def read_cards_csv(
    path: str | PathLike[str],
    *,
    existing: Iterable[str] = (),
    encoding: str | None = None,
) -> list[Card]:
    """Return the new cards found in ``path``.

    Rows with an empty name or subaccount are skipped, as are cards already
    registered (``existing``) or repeated earlier in the same file.
    """

    seen = set(existing)
    out: list[Card] = []
    for line_no, cells in iter_data_rows(path, encoding=encoding):
        if len(cells) < 2:
            logger.debug("Skipping line %d: expected 2 columns, got %d", line_no, len(cells))
            continue
        name, subaccount = cells[0], cells[1]
        if not name or not subaccount or name in seen:
            continue
        seen.add(name)
        out.append(Card(name=name, subaccount=subaccount))
    return out


__all__ = ["CARDS_HEADER", "CARDS_TEMPLATE", "read_cards_csv"]
