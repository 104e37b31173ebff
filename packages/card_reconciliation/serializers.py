"""Renderers for accounting entries and source items.

Ledger import file
------------------
The delimited output is imported as-is by the accounting system, so the column
order and the literal first line are a compatibility contract:

- line 1: the control token ``1322``;
- line 2: the column header;
- per entry, a debit line and a credit line::

    account;subaccount;fund;department;restriction;cents;N;"narrative"

  The credit line carries the credit coordinates and the negated amount.

Text is UTF-8 preceded by a byte-order mark so spreadsheet tools keep accented
characters. Cents are rounded half-up.

Report
------
A paginated plain-text report rendered with ``rich`` tables: a title block
(card, competency, generation timestamp), one row per *source item* and a
page footer. The batch column appears when any item carries a batch.
"""

from __future__ import annotations

import io
import math
import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from rich import box
from rich.console import Console
from rich.table import Table

from .competency import Competency
from .models import AccountingEntry, Allocation, EntryOrigin, SourceItem

# ---------------------------------------------------------------------------
# Ledger import file
# ---------------------------------------------------------------------------

CONTROL_TOKEN = "1322"
LEDGER_HEADER = "Conta;Subconta;Fundo;Departamento;Restricao;Valor;Referencia;Historico"
REFERENCE_FLAG = "N"
TRANSACTION_NARRATIVE_TAG = "Cartão Corporativo"
BOM = "\ufeff"


def to_cents(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_narrative(entry: AccountingEntry) -> str:
    if entry.origin is EntryOrigin.TRANSACTION:
        return f"{TRANSACTION_NARRATIVE_TAG} - {entry.date} - {entry.narrative}"
    return entry.narrative


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def ledger_lines(entry: AccountingEntry) -> tuple[str, str]:
    """Return the ``(debit, credit)`` lines for one entry."""

    cents = to_cents(entry.amount)
    narrative = _quote(format_narrative(entry))
    debit = ";".join(
        [
            entry.debit_account,
            entry.debit_subaccount,
            entry.fund,
            entry.debit_department,
            entry.debit_restriction,
            str(cents),
            REFERENCE_FLAG,
            narrative,
        ]
    )
    credit = ";".join(
        [
            entry.credit_account,
            entry.credit_subaccount,
            entry.fund,
            entry.credit_department,
            entry.credit_restriction,
            str(-cents),
            REFERENCE_FLAG,
            narrative,
        ]
    )
    return debit, credit


def render_ledger_text(entries: Sequence[AccountingEntry]) -> str:
    lines = [CONTROL_TOKEN, LEDGER_HEADER]
    for entry in entries:
        lines.extend(ledger_lines(entry))
    return "\n".join(lines)


def render_ledger_csv(entries: Sequence[AccountingEntry]) -> bytes:
    """Encode the ledger import file (BOM + UTF-8)."""

    return (BOM + render_ledger_text(entries)).encode("utf-8")


def export_filename(
    card_name: str, competency: Competency, suffix: str | None = None
) -> str:
    """``{cardName}_{competencyTag}[_suffix].csv`` with whitespace as ``_``."""

    card = re.sub(r"\s+", "_", card_name.strip())
    parts = [card, competency.tag]
    if suffix:
        parts.append(re.sub(r"\s+", "_", suffix.strip()))
    return "_".join(parts) + ".csv"


# ---------------------------------------------------------------------------
# Paginated report
# ---------------------------------------------------------------------------

REPORT_TITLE = "Relatório de Conciliação - Cartão Corporativo"
DEFAULT_ROWS_PER_PAGE = 40


def format_brl(amount: Decimal) -> str:
    """Format as Brazilian currency, e.g. ``R$ 1.234,56``."""

    q = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if q < 0 else ""
    text = f"{abs(q):,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"{sign}R$ {text}"


@dataclass(frozen=True, slots=True)
class ReportRow:
    date: str
    description: str
    amount: Decimal
    batch: str | None = None


def report_rows(items: Sequence[SourceItem]) -> list[ReportRow]:
    return [
        ReportRow(
            date=it.date,
            description=it.description,
            amount=it.amount,
            batch=it.batch if isinstance(it, Allocation) else None,
        )
        for it in items
    ]


def _render(renderables: Sequence[object], width: int) -> str:
    buf = io.StringIO()
    console = Console(
        file=buf,
        width=width,
        color_system=None,
        force_terminal=False,
        highlight=False,
        markup=False,
        emoji=False,
    )
    for r in renderables:
        console.print(r)
    return buf.getvalue()


def render_report_pages(
    items: Sequence[SourceItem],
    *,
    card_name: str,
    competency: Competency,
    generated_at: datetime | None = None,
    rows_per_page: int = DEFAULT_ROWS_PER_PAGE,
    include_batch: bool | None = None,
    title: str = REPORT_TITLE,
    width: int = 100,
) -> list[str]:
    """Render one string per page; the last page carries the totals."""

    rows = report_rows(items)
    per_page = max(1, rows_per_page)
    n_pages = max(1, math.ceil(len(rows) / per_page))
    with_batch = include_batch if include_batch is not None else any(r.batch for r in rows)
    stamp = (generated_at or datetime.now()).strftime("%d/%m/%Y %H:%M")
    total = sum((r.amount for r in rows), Decimal("0"))

    pages: list[str] = []
    for page_idx in range(n_pages):
        chunk = rows[page_idx * per_page : (page_idx + 1) * per_page]

        table = Table(box=box.SIMPLE_HEAD, expand=True, show_edge=False)
        table.add_column("Data", no_wrap=True)
        table.add_column("Descrição", overflow="fold", ratio=1)
        if with_batch:
            table.add_column("Lote", no_wrap=True)
        table.add_column("Valor", justify="right", no_wrap=True)
        for r in chunk:
            cells = [r.date, r.description]
            if with_batch:
                cells.append(r.batch or "")
            cells.append(format_brl(r.amount))
            table.add_row(*cells)
        if not chunk:
            table.add_row("", "Nenhum item.", *([""] if with_batch else []), "")

        header = [
            title,
            f"Cartão: {card_name}",
            f"Competência: {competency.label}",
            f"Gerado em: {stamp}",
        ]
        footer = [f"Página {page_idx + 1}/{n_pages}"]
        if page_idx == n_pages - 1:
            footer.insert(0, f"Total: {len(rows)} item(ns) - {format_brl(total)}")

        pages.append(_render(["\n".join(header), table, "\n".join(footer)], width))
    return pages


def render_report(
    items: Sequence[SourceItem],
    *,
    card_name: str,
    competency: Competency,
    generated_at: datetime | None = None,
    rows_per_page: int = DEFAULT_ROWS_PER_PAGE,
    include_batch: bool | None = None,
    title: str = REPORT_TITLE,
    width: int = 100,
) -> str:
    """Render all pages separated by form feeds."""

    pages = render_report_pages(
        items,
        card_name=card_name,
        competency=competency,
        generated_at=generated_at,
        rows_per_page=rows_per_page,
        include_batch=include_batch,
        title=title,
        width=width,
    )
    return "\f".join(pages)


__all__ = [
    "BOM",
    "CONTROL_TOKEN",
    "DEFAULT_ROWS_PER_PAGE",
    "LEDGER_HEADER",
    "REFERENCE_FLAG",
    "REPORT_TITLE",
    "ReportRow",
    "TRANSACTION_NARRATIVE_TAG",
    "export_filename",
    "format_brl",
    "format_narrative",
    "ledger_lines",
    "render_ledger_csv",
    "render_ledger_text",
    "render_report",
    "render_report_pages",
    "report_rows",
    "to_cents",
]
