# ruff: noqa: I001
"""CLI for the ``card_reconciliation`` package.

Command handlers (``cmd_*``) return a process exit code and report failures
as ``Error: ...`` on stderr; the Typer wrappers below only parse options and
exit with that code. Environment variables (``DATABASE_URL``,
``CARD_RECONCILIATION_LOG_LEVEL``, ``CARD_RECONCILIATION_REPORT_PAGE_SIZE``)
are loaded from a local ``.env`` with ``python-dotenv``.

A session is assembled from two extraction payloads (JSON) plus the card's
accounting parameters and persisted ignore set from the database. Accounting
parameters may instead be read from a CSV sheet with ``--parameters-csv``.
Each command builds a fresh session; ``shell`` keeps one open so the export
ledger spans several exports. Cards and parameters are managed with
``cards``/``add-card``/``remove-card`` and
``parameters``/``add-parameter``/``remove-parameter``.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from typer.models import OptionInfo

from .competency import Competency
from .logging_setup import configure_logging, get_logger
from .models import AccountingParameter, EntryOrigin, SourceRef
from .serializers import DEFAULT_ROWS_PER_PAGE, format_brl
from .session import ExportAction, ExportStatus, Pool, ReconciliationSession
from .shell import items_table, summary_table

logger = get_logger("card_reconciliation.cli")

_PAGE_SIZE_ENV = "CARD_RECONCILIATION_REPORT_PAGE_SIZE"


# ---- Small module-level helpers used by CLI commands -------------------------


def _resolve_page_size(option: int | None) -> int:
    """Rows per report page: option, then env var, then the default."""

    if option is not None and option > 0:
        return option
    env_val = os.getenv(_PAGE_SIZE_ENV)
    try:
        size = int(env_val) if env_val else None
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", _PAGE_SIZE_ENV, env_val)
        size = None
    if size is not None and size > 0:
        return size
    return DEFAULT_ROWS_PER_PAGE


def _load_parameters(
    card_name: str, *, database_url: str | None, parameters_csv: Path | None
) -> list[AccountingParameter]:
    if parameters_csv is not None:
        from .ingest.parameters_csv import read_parameters_csv

        return read_parameters_csv(parameters_csv, known_cards=[card_name])

    from db.client import session_scope
    from .persistence import load_parameters

    with session_scope(database_url=database_url) as s:
        return load_parameters(s, card_name=card_name)


def _build_session(
    *,
    card: str,
    competency: str,
    transactions: Path | None,
    allocations: Path | None,
    database_url: str | None,
    parameters_csv: Path | None = None,
) -> ReconciliationSession:
    """Load payloads, parameters and the ignore set into a session.

    Raises on malformed input or database failures; callers translate the
    exception into an exit code.
    """

    from .ignore_registry import IgnoreRegistry
    from .ingest.extraction import load_allocations, load_transactions
    from .persistence import SqlIgnoreStore

    comp = Competency.parse(competency)
    txs = load_transactions(transactions) if transactions is not None else []
    als = load_allocations(allocations) if allocations is not None else []
    params = _load_parameters(card, database_url=database_url, parameters_csv=parameters_csv)

    registry = IgnoreRegistry.load(SqlIgnoreStore(database_url), card, comp)

    return ReconciliationSession(
        card,
        comp,
        transactions=txs,
        allocations=als,
        parameters=params,
        ignore_registry=registry,
    )


# ---- Command handlers ---------------------------------------------------------


def cmd_reconcile(
    *,
    card: str,
    competency: str,
    transactions: Path | None,
    allocations: Path | None,
    database_url: str | None = None,
    details: bool = True,
) -> int:
    """Print the classification of one card/competency session."""

    try:
        session = _build_session(
            card=card,
            competency=competency,
            transactions=transactions,
            allocations=allocations,
            database_url=database_url,
        )
    except FileNotFoundError as e:
        print(f"Error: File not found: {e.filename}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: failed to load session: {e}", file=sys.stderr)
        return 1

    result = session.reconciliation()
    console = Console(highlight=False, markup=False, soft_wrap=False)
    console.print(summary_table(session, result))
    if not details:
        return 0

    if result.reconciled:
        pairs = Table(title="Conciliados", title_justify="left")
        pairs.add_column("Fatura", no_wrap=True)
        pairs.add_column("Alocação", no_wrap=True)
        pairs.add_column("Descrição", overflow="fold")
        pairs.add_column("Valor", justify="right", no_wrap=True)
        for p in result.reconciled:
            pairs.add_row(
                p.transaction.id,
                p.allocation.id,
                p.transaction.description,
                format_brl(p.transaction.amount),
            )
        console.print(pairs)
    sections = [
        ("Fatura pendente", result.unmatched_transactions, False),
        ("Alocações pendentes", result.unmatched_allocations, True),
        ("Fora da competência", result.out_of_period_allocations, True),
    ]
    for title, items, with_batch in sections:
        if items:
            console.print(items_table(title, items, with_batch=with_batch))
    return 0


def cmd_export(
    *,
    card: str,
    competency: str,
    actions: list[ExportAction],
    transactions: Path | None,
    allocations: Path | None,
    out_dir: Path,
    database_url: str | None = None,
    parameters_csv: Path | None = None,
    group_ids: list[str] | None = None,
    interactive: bool = False,
) -> int:
    """Write one ledger import file per action.

    Actions run in order against one session, so an item exported by an
    earlier action is not exported again by a later one. ``group_ids`` (or
    ``interactive``) collapses the selected items into a single entry and
    takes exactly one action.
    """

    grouped = group_ids is not None or interactive
    if grouped and len(actions) != 1:
        print("Error: a grouped export takes exactly one --action", file=sys.stderr)
        return 1

    try:
        session = _build_session(
            card=card,
            competency=competency,
            transactions=transactions,
            allocations=allocations,
            database_url=database_url,
            parameters_csv=parameters_csv,
        )
    except FileNotFoundError as e:
        print(f"Error: File not found: {e.filename}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: failed to load session: {e}", file=sys.stderr)
        return 1

    if grouped:
        if interactive:
            from .term_ui import select_items

            refs = [it.ref for it in select_items(session.selectable())]
        else:
            refs, unresolved = session.resolve_selection(group_ids or [])
            if unresolved:
                print(
                    "Error: unknown or ambiguous item(s): " + ", ".join(unresolved),
                    file=sys.stderr,
                )
                return 1
        outcomes = [session.export_grouped(refs, actions[0])]
    else:
        outcomes = [session.export(a) for a in actions]

    code = 0
    for outcome in outcomes:
        if outcome.ok:
            try:
                target = outcome.write_to(out_dir)
            except OSError as e:
                print(f"Error: failed to write export file: {e}", file=sys.stderr)
                code = 1
                continue
            print(outcome.message)
            print(str(target))
        elif outcome.status is ExportStatus.NO_PARAMETERS:
            print(f"Error: {outcome.message}", file=sys.stderr)
            code = 1
        else:
            print(outcome.message)
    return code


def cmd_report(
    *,
    card: str,
    competency: str,
    pool: Pool,
    transactions: Path | None,
    allocations: Path | None,
    database_url: str | None = None,
    out: Path | None = None,
    page_size: int | None = None,
) -> int:
    try:
        session = _build_session(
            card=card,
            competency=competency,
            transactions=transactions,
            allocations=allocations,
            database_url=database_url,
        )
    except FileNotFoundError as e:
        print(f"Error: File not found: {e.filename}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: failed to load session: {e}", file=sys.stderr)
        return 1

    text = session.report(pool, rows_per_page=_resolve_page_size(page_size))
    if out is None:
        print(text)
        return 0
    try:
        out.write_text(text, encoding="utf-8")
    except OSError as e:
        print(f"Error: failed to write report: {e}", file=sys.stderr)
        return 1
    print(str(out))
    return 0


def cmd_ignore(
    *,
    card: str,
    competency: str,
    item_ids: list[str],
    kind: EntryOrigin = EntryOrigin.TRANSACTION,
    database_url: str | None = None,
) -> int:
    """Toggle the persisted ignore flag of each item.

    Bare ids are read as ``kind``; ``transaction:ID`` / ``allocation:ID`` name
    the kind explicitly.
    """

    from .ignore_registry import IgnoreRegistry
    from .persistence import SqlIgnoreStore

    try:
        refs = [SourceRef.parse(i, default_kind=kind) for i in item_ids]
        comp = Competency.parse(competency)
        registry = IgnoreRegistry.load(SqlIgnoreStore(database_url), card, comp)
    except Exception as e:
        print(f"Error: failed to load ignored items: {e}", file=sys.stderr)
        return 1

    for ref in refs:
        now_ignored = registry.toggle(card, comp, ref)
        print(f"{ref}\t{'ignored' if now_ignored else 'restored'}")

    if registry.pending_sync:
        print(
            "Error: failed to persist: " + ", ".join(sorted(str(r) for r in registry.pending_sync)),
            file=sys.stderr,
        )
        return 1
    return 0


def cmd_import_cards(csv_path: Path, *, database_url: str | None = None) -> int:
    import csv

    from db.client import session_scope
    from .ingest.cards_csv import read_cards_csv
    from .persistence import add_cards, load_cards

    try:
        with session_scope(database_url=database_url) as s:
            existing = [c.name for c in load_cards(s)]
            cards = read_cards_csv(csv_path, existing=existing)
            added = add_cards(s, cards)
    except FileNotFoundError:
        print(f"Error: File not found: {csv_path}", file=sys.stderr)
        return 1
    except csv.Error as e:
        print(f"Error: Failed to parse CSV: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: card import failed: {e}", file=sys.stderr)
        return 1
    print(f"Imported {added} card(s).")
    return 0


def cmd_import_parameters(csv_path: Path, *, database_url: str | None = None) -> int:
    import csv

    from db.client import session_scope
    from .ingest.parameters_csv import read_parameters_csv
    from .persistence import add_parameters, load_cards

    try:
        with session_scope(database_url=database_url) as s:
            known = [c.name for c in load_cards(s)]
            params = read_parameters_csv(csv_path, known_cards=known)
            added = add_parameters(s, params)
    except FileNotFoundError:
        print(f"Error: File not found: {csv_path}", file=sys.stderr)
        return 1
    except csv.Error as e:
        print(f"Error: Failed to parse CSV: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: parameter import failed: {e}", file=sys.stderr)
        return 1
    print(f"Imported {added} parameter(s).")
    return 0


def cmd_cards(*, database_url: str | None = None) -> int:
    from db.client import session_scope
    from .persistence import load_cards

    try:
        with session_scope(database_url=database_url) as s:
            cards = load_cards(s)
    except Exception as e:
        print(f"Error: failed to load cards: {e}", file=sys.stderr)
        return 1

    table = Table(title="Cartões", title_justify="left")
    table.add_column("Nome")
    table.add_column("Subconta", no_wrap=True)
    for c in cards:
        table.add_row(c.name, c.subaccount)
    Console(highlight=False, markup=False, soft_wrap=False).print(table)
    return 0


def cmd_add_card(name: str, subaccount: str, *, database_url: str | None = None) -> int:
    from db.client import session_scope
    from .models import Card
    from .persistence import add_cards

    name, subaccount = name.strip(), subaccount.strip()
    if not name or not subaccount:
        print("Error: card name and subaccount are required", file=sys.stderr)
        return 1
    try:
        with session_scope(database_url=database_url) as s:
            added = add_cards(s, [Card(name=name, subaccount=subaccount)])
    except Exception as e:
        print(f"Error: failed to add card: {e}", file=sys.stderr)
        return 1
    if not added:
        print(f"Card already registered: {name}")
        return 0
    print(f"Added card: {name}")
    return 0


def cmd_remove_card(name: str, *, database_url: str | None = None) -> int:
    from db.client import session_scope
    from .persistence import remove_card

    try:
        with session_scope(database_url=database_url) as s:
            removed = remove_card(s, name)
    except Exception as e:
        print(f"Error: failed to remove card: {e}", file=sys.stderr)
        return 1
    if not removed:
        print(f"Error: card not found: {name}", file=sys.stderr)
        return 1
    print(f"Removed card: {name}")
    return 0


def cmd_parameters(*, card: str | None = None, database_url: str | None = None) -> int:
    """List accounting parameters in resolution order."""

    from db.client import session_scope
    from .persistence import load_parameters

    try:
        with session_scope(database_url=database_url) as s:
            params = load_parameters(s, card_name=card)
    except Exception as e:
        print(f"Error: failed to load parameters: {e}", file=sys.stderr)
        return 1

    table = Table(title="Parâmetros contábeis", title_justify="left")
    table.add_column("Id", no_wrap=True)
    table.add_column("Cartão")
    table.add_column("Motivo", overflow="fold")
    table.add_column("Débito", no_wrap=True)
    table.add_column("Crédito", no_wrap=True)
    table.add_column("Fundo", no_wrap=True)
    for p in params:
        debit = "/".join(v for v in (p.debit_account, p.debit_subaccount) if v)
        credit = "/".join(v for v in (p.credit_account, p.credit_subaccount) if v)
        table.add_row(p.id, p.card_name, p.motive, debit, credit, p.fund)
    Console(highlight=False, markup=False, soft_wrap=False).print(table)
    return 0


def cmd_add_parameter(parameter: AccountingParameter, *, database_url: str | None = None) -> int:
    """Add one parameter for a registered card."""

    from db.client import session_scope
    from .parameters import normalize_card_name
    from .persistence import add_parameters, load_cards

    if not parameter.motive.strip():
        print("Error: motive is required", file=sys.stderr)
        return 1
    try:
        with session_scope(database_url=database_url) as s:
            known = {normalize_card_name(c.name) for c in load_cards(s)}
            if normalize_card_name(parameter.card_name) not in known:
                print(f"Error: card not registered: {parameter.card_name}", file=sys.stderr)
                return 1
            add_parameters(s, [parameter])
    except Exception as e:
        print(f"Error: failed to add parameter: {e}", file=sys.stderr)
        return 1
    print(f"Added parameter for {parameter.card_name}: {parameter.motive}")
    return 0


def cmd_remove_parameter(parameter_id: str, *, database_url: str | None = None) -> int:
    from db.client import session_scope
    from .persistence import remove_parameter

    try:
        with session_scope(database_url=database_url) as s:
            removed = remove_parameter(s, parameter_id)
    except Exception as e:
        print(f"Error: failed to remove parameter: {e}", file=sys.stderr)
        return 1
    if not removed:
        print(f"Error: parameter not found: {parameter_id}", file=sys.stderr)
        return 1
    print(f"Removed parameter {parameter_id}")
    return 0


def cmd_shell(
    *,
    card: str,
    competency: str,
    transactions: Path | None,
    allocations: Path | None,
    out_dir: Path,
    database_url: str | None = None,
    parameters_csv: Path | None = None,
    page_size: int | None = None,
) -> int:
    """Open the interactive shell over one session."""

    from .shell import run_shell

    try:
        session = _build_session(
            card=card,
            competency=competency,
            transactions=transactions,
            allocations=allocations,
            database_url=database_url,
            parameters_csv=parameters_csv,
        )
    except FileNotFoundError as e:
        print(f"Error: File not found: {e.filename}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: failed to load session: {e}", file=sys.stderr)
        return 1
    return run_shell(session, out_dir=out_dir, rows_per_page=_resolve_page_size(page_size))


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Reconcile corporate-card statements against accounting allocations and "
        "generate ledger import files. Loads DATABASE_URL from a local .env."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
CARD_OPTION: OptionInfo = typer.Option(..., "--card", help="Card name as registered.")
COMPETENCY_OPTION: OptionInfo = typer.Option(
    ..., "--competency", help="Accounting period as YYYY-MM."
)
TRANSACTIONS_OPTION: OptionInfo = typer.Option(
    "--transactions", help="JSON payload with the statement transactions.", dir_okay=False
)
ALLOCATIONS_OPTION: OptionInfo = typer.Option(
    "--allocations", help="JSON payload with the allocation report.", dir_okay=False
)
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    "--database-url", help="Override DATABASE_URL (falls back to env var)."
)


@app.command("reconcile")
def reconcile_cmd(
    card: Annotated[str, CARD_OPTION],
    competency: Annotated[str, COMPETENCY_OPTION],
    transactions: Annotated[Path | None, TRANSACTIONS_OPTION] = None,
    allocations: Annotated[Path | None, ALLOCATIONS_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    details: bool = typer.Option(True, help="Print one table per group."),
) -> None:
    """Classify statement items and allocations for one card and competency."""

    raise typer.Exit(
        cmd_reconcile(
            card=card,
            competency=competency,
            transactions=transactions,
            allocations=allocations,
            database_url=database_url,
            details=details,
        )
    )


@app.command("export")
def export_cmd(
    card: Annotated[str, CARD_OPTION],
    competency: Annotated[str, COMPETENCY_OPTION],
    action: list[ExportAction] = typer.Option(
        ..., "--action", help="What to export; repeat to run several actions in order."
    ),
    transactions: Annotated[Path | None, TRANSACTIONS_OPTION] = None,
    allocations: Annotated[Path | None, ALLOCATIONS_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    out_dir: Path = typer.Option(
        Path("."), "--out-dir", help="Directory for the generated file.", file_okay=False
    ),
    parameters_csv: Path | None = typer.Option(
        None, "--parameters-csv", help="Read accounting parameters from a CSV sheet."
    ),
    group: str | None = typer.Option(
        None,
        "--group",
        help="Comma-separated ids (or transaction:ID / allocation:ID) to collapse into one entry.",
    ),
    interactive: bool = typer.Option(
        False, "--interactive", help="Pick the items to group from a prompt."
    ),
) -> None:
    """Generate ledger import files for the given export actions.

    Items exported by one action are skipped by the later actions of the same
    invocation. Nothing is remembered between invocations: running the same
    action again regenerates the file. Use the ``shell`` command to keep one
    session open across several exports.
    """

    group_ids = [g.strip() for g in group.split(",") if g.strip()] if group else None
    raise typer.Exit(
        cmd_export(
            card=card,
            competency=competency,
            actions=action,
            transactions=transactions,
            allocations=allocations,
            out_dir=out_dir,
            database_url=database_url,
            parameters_csv=parameters_csv,
            group_ids=group_ids,
            interactive=interactive,
        )
    )


@app.command("report")
def report_cmd(
    card: Annotated[str, CARD_OPTION],
    competency: Annotated[str, COMPETENCY_OPTION],
    pool: Pool = typer.Option(Pool.PENDING_TRANSACTIONS, "--pool", help="Items to list."),
    transactions: Annotated[Path | None, TRANSACTIONS_OPTION] = None,
    allocations: Annotated[Path | None, ALLOCATIONS_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    out: Path | None = typer.Option(None, "--out", help="Write the report to a file."),
    page_size: int | None = typer.Option(
        None, "--page-size", help=f"Rows per page (env {_PAGE_SIZE_ENV}, default 40)."
    ),
) -> None:
    """Render a paginated report of one group of items."""

    raise typer.Exit(
        cmd_report(
            card=card,
            competency=competency,
            pool=pool,
            transactions=transactions,
            allocations=allocations,
            database_url=database_url,
            out=out,
            page_size=page_size,
        )
    )


@app.command("ignore")
def ignore_cmd(
    item_ids: Annotated[
        list[str], typer.Argument(help="Item ids, or transaction:ID / allocation:ID.")
    ],
    card: Annotated[str, CARD_OPTION],
    competency: Annotated[str, COMPETENCY_OPTION],
    kind: EntryOrigin = typer.Option(
        EntryOrigin.TRANSACTION, "--kind", help="Kind of the bare ids."
    ),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Toggle whether items are ignored for the card and competency."""

    raise typer.Exit(
        cmd_ignore(
            card=card,
            competency=competency,
            item_ids=item_ids,
            kind=kind,
            database_url=database_url,
        )
    )


@app.command("shell")
def shell_cmd(
    card: Annotated[str, CARD_OPTION],
    competency: Annotated[str, COMPETENCY_OPTION],
    transactions: Annotated[Path | None, TRANSACTIONS_OPTION] = None,
    allocations: Annotated[Path | None, ALLOCATIONS_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    out_dir: Path = typer.Option(
        Path("."), "--out-dir", help="Directory for generated files.", file_okay=False
    ),
    parameters_csv: Path | None = typer.Option(
        None, "--parameters-csv", help="Read accounting parameters from a CSV sheet."
    ),
    page_size: int | None = typer.Option(
        None, "--page-size", help=f"Rows per report page (env {_PAGE_SIZE_ENV}, default 40)."
    ),
) -> None:
    """Work on one session interactively (export, group, ignore, reset, report)."""

    raise typer.Exit(
        cmd_shell(
            card=card,
            competency=competency,
            transactions=transactions,
            allocations=allocations,
            out_dir=out_dir,
            database_url=database_url,
            parameters_csv=parameters_csv,
            page_size=page_size,
        )
    )


@app.command("cards")
def cards_cmd(database_url: Annotated[str | None, DATABASE_URL_OPTION] = None) -> None:
    """List registered cards."""

    raise typer.Exit(cmd_cards(database_url=database_url))


@app.command("add-card")
def add_card_cmd(
    name: Annotated[str, typer.Argument(help="Card name.")],
    subaccount: Annotated[str, typer.Argument(help="Ledger subaccount.")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Register one card."""

    raise typer.Exit(cmd_add_card(name, subaccount, database_url=database_url))


@app.command("remove-card")
def remove_card_cmd(
    name: Annotated[str, typer.Argument(help="Card name.")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Unregister one card; its parameters are kept."""

    raise typer.Exit(cmd_remove_card(name, database_url=database_url))


@app.command("parameters")
def parameters_cmd(
    card: str | None = typer.Option(None, "--card", help="Only this card's parameters."),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """List accounting parameters in resolution order."""

    raise typer.Exit(cmd_parameters(card=card, database_url=database_url))


@app.command("add-parameter")
def add_parameter_cmd(
    card: Annotated[str, CARD_OPTION],
    motive: str = typer.Option(..., "--motive", help="Motive; its keywords select the intent."),
    debit_account: str = typer.Option("", "--debit-account"),
    credit_account: str = typer.Option("", "--credit-account"),
    debit_subaccount: str = typer.Option("", "--debit-subaccount"),
    credit_subaccount: str = typer.Option("", "--credit-subaccount"),
    fund: str = typer.Option("", "--fund"),
    debit_department: str = typer.Option("", "--debit-department"),
    credit_department: str = typer.Option("", "--credit-department"),
    debit_restriction: str = typer.Option("", "--debit-restriction"),
    credit_restriction: str = typer.Option("", "--credit-restriction"),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Add one accounting parameter for a registered card."""

    parameter = AccountingParameter(
        id="",
        card_name=card.strip(),
        motive=motive.strip(),
        debit_account=debit_account.strip(),
        credit_account=credit_account.strip(),
        debit_subaccount=debit_subaccount.strip(),
        credit_subaccount=credit_subaccount.strip(),
        fund=fund.strip(),
        debit_department=debit_department.strip(),
        credit_department=credit_department.strip(),
        debit_restriction=debit_restriction.strip(),
        credit_restriction=credit_restriction.strip(),
    )
    raise typer.Exit(cmd_add_parameter(parameter, database_url=database_url))


@app.command("remove-parameter")
def remove_parameter_cmd(
    parameter_id: Annotated[str, typer.Argument(help="Id shown by 'parameters'.")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Delete one accounting parameter."""

    raise typer.Exit(cmd_remove_parameter(parameter_id, database_url=database_url))


@app.command("import-cards")
def import_cards_cmd(
    csv_path: Annotated[Path, typer.Argument(help="Nome,Subconta sheet.", dir_okay=False)],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Register the cards listed in a CSV sheet."""

    raise typer.Exit(cmd_import_cards(csv_path, database_url=database_url))


@app.command("import-parameters")
def import_parameters_cmd(
    csv_path: Annotated[Path, typer.Argument(help="Eleven-column parameters sheet.", dir_okay=False)],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Add accounting parameters for registered cards from a CSV sheet."""

    raise typer.Exit(cmd_import_parameters(csv_path, database_url=database_url))


@app.command("init-db")
def init_db_cmd(
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Create missing tables directly from the ORM models (local SQLite files)."""

    from db.client import create_schema

    try:
        engine = create_schema(database_url=database_url)
    except Exception as e:
        print(f"Error: failed to create schema: {e}", file=sys.stderr)
        raise typer.Exit(1) from e
    print(f"Schema ready on {engine.url.render_as_string(hide_password=True)}")


@app.command("template")
def template_cmd(
    kind: Annotated[str, typer.Argument(help="'cards' or 'parameters'.")],
    out: Path = typer.Option(..., "--out", help="Where to write the template.", dir_okay=False),
) -> None:
    """Write an example CSV sheet for the import commands."""

    from .ingest.cards_csv import CARDS_TEMPLATE
    from .ingest.parameters_csv import PARAMETERS_TEMPLATE
    from .ingest.utils import write_template

    templates = {"cards": CARDS_TEMPLATE, "parameters": PARAMETERS_TEMPLATE}
    text = templates.get(kind.strip().lower())
    if text is None:
        print(f"Error: unknown template {kind!r}; use 'cards' or 'parameters'.", file=sys.stderr)
        raise typer.Exit(1)
    print(str(write_template(out, text)))


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, "--log-level", help="Override CARD_RECONCILIATION_LOG_LEVEL."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


if __name__ == "__main__":  # pragma: no cover
    app()
