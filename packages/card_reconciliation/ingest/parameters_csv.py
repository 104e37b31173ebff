"""Import accounting parameters from an eleven-column sheet.

Column order::

    Cartao, Motivo, ContaDebito, ContaCredito, SubcontaDebito, SubcontaCredito,
    Fundo, DepartamentoDebito, DepartamentoCredito, RestricaoDebito, RestricaoCredito

Rows referring to a card that is not registered are skipped with a log line;
rows with fewer than eleven columns are skipped silently.
"""

from __future__ import annotations

from collections.abc import Iterable
from os import PathLike

from ..logging_setup import get_logger
from ..models import AccountingParameter
from .utils import iter_data_rows

logger = get_logger("card_reconciliation.ingest.parameters_csv")

PARAMETERS_HEADER = (
    "Cartao",
    "Motivo",
    "ContaDebito",
    "ContaCredito",
    "SubcontaDebito",
    "SubcontaCredito",
    "Fundo",
    "DepartamentoDebito",
    "DepartamentoCredito",
    "RestricaoDebito",
    "RestricaoCredito",
)
PARAMETERS_TEMPLATE = (
    ",".join(PARAMETERS_HEADER)
    + "\n"
    + "Bradesco Infinite - COAG,Lançar na prestação de contas,2139009,2139090,"
    + "767902,767902,10,1310001,1310001,0A,0A\n"
)


def read_parameters_csv(
    path: str | PathLike[str],
    *,
    known_cards: Iterable[str],
    encoding: str | None = None,
) -> list[AccountingParameter]:
    cards = set(known_cards)
    out: list[AccountingParameter] = []
    skipped: set[str] = set()
    for line_no, cells in iter_data_rows(path, encoding=encoding):
        if len(cells) < len(PARAMETERS_HEADER):
            continue
        card = cells[0]
        if card not in cards:
            skipped.add(card)
            continue
        out.append(
            AccountingParameter(
                id=f"line-{line_no}",
                card_name=card,
                motive=cells[1],
                debit_account=cells[2],
                credit_account=cells[3],
                debit_subaccount=cells[4],
                credit_subaccount=cells[5],
                fund=cells[6],
                debit_department=cells[7],
                credit_department=cells[8],
                debit_restriction=cells[9],
                credit_restriction=cells[10],
            )
        )
    if skipped:
        logger.warning(
            "Skipped parameters for unregistered card(s): %s", ", ".join(sorted(skipped))
        )
    return out


__all__ = ["PARAMETERS_HEADER", "PARAMETERS_TEMPLATE", "read_parameters_csv"]
