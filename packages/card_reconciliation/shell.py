"""Interactive session shell (prompt_toolkit + rich).

A single :class:`~card_reconciliation.session.ReconciliationSession` stays
alive for the whole loop, so the export ledger keeps an item from being
exported twice until ``reset`` is issued. See :data:`HELP` for the commands.
"""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from pathlib import Path

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from rich.console import Console
from rich.table import Table

from .logging_setup import get_logger
from .models import ReconciliationResult, SourceItem
from .serializers import DEFAULT_ROWS_PER_PAGE, format_brl
from .session import ExportAction, ExportOutcome, Pool, ReconciliationSession

logger = get_logger("card_reconciliation.shell")

COMMANDS = ("summary", "list", "export", "group", "ignore", "reset", "report", "help", "quit")
PROMPT = "conciliação> "

HELP = """\
  summary                 counts per group
  list POOL               items of one group
  export ACTION           one entry per pending item
  group ACTION TOKEN...   one entry for the selected items
  ignore TOKEN...         toggle the persisted ignore flag
  reset [TOKEN...]        make exported items exportable again
  report POOL             paginated report
  help | quit

TOKEN is an item id, or transaction:ID / allocation:ID when a transaction
and an allocation share the id."""


# ---- tables shared with the CLI ----------------------------------------------


def items_table(title: str, items: Sequence[SourceItem], *, with_batch: bool = False) -> Table:
    table = Table(title=title, title_justify="left")
    table.add_column("Id", no_wrap=True)
    table.add_column("Data", no_wrap=True)
    table.add_column("Descrição", overflow="fold")
    if with_batch:
        table.add_column("Lote", no_wrap=True)
    table.add_column("Valor", justify="right", no_wrap=True)
    for it in items:
        cells = [it.id, it.date, it.description]
        if with_batch:
            cells.append(getattr(it, "batch", None) or "")
        cells.append(format_brl(it.amount))
        table.add_row(*cells)
    return table


def summary_table(session: ReconciliationSession, result: ReconciliationResult) -> Table:
    summary = Table(title=f"{session.card_name} - {session.competency.label}", title_justify="left")
    summary.add_column("Grupo")
    summary.add_column("Itens", justify="right")
    summary.add_row("Conciliados", str(len(result.reconciled)))
    summary.add_row("Fatura pendente", str(len(result.unmatched_transactions)))
    summary.add_row("Alocações pendentes", str(len(result.unmatched_allocations)))
    summary.add_row("Fora da competência", str(len(result.out_of_period_allocations)))
    summary.add_row(
        "Ignorados",
        str(len(result.ignored_transactions) + len(result.ignored_allocations)),
    )
    return summary


# ---- command dispatch ----------------------------------------------------------


class ShellError(ValueError):
    pass


def _action(word: str) -> ExportAction:
    try:
        return ExportAction(word)
    except ValueError:
        choices = ", ".join(a.value for a in ExportAction)
        raise ShellError(f"unknown action {word!r}; choose one of: {choices}") from None


def _pool(word: str) -> Pool:
    try:
        return Pool(word)
    except ValueError:
        choices = ", ".join(p.value for p in Pool)
        raise ShellError(f"unknown group {word!r}; choose one of: {choices}") from None


def _report_outcome(console: Console, outcome: ExportOutcome, out_dir: Path) -> None:
    if outcome.ok:
        target = outcome.write_to(out_dir)
        console.print(outcome.message)
        console.print(str(target))
    else:
        console.print(outcome.message)


def handle_command(
    session: ReconciliationSession,
    line: str,
    *,
    out_dir: Path,
    console: Console,
    rows_per_page: int = DEFAULT_ROWS_PER_PAGE,
) -> bool:
    """Run one shell command; return ``False`` when the loop should stop.

    Usage errors raise :class:`ShellError`; file errors propagate as ``OSError``.
    """

    try:
        words = shlex.split(line)
    except ValueError as e:
        raise ShellError(str(e)) from e
    if not words:
        return True
    cmd, args = words[0].lower(), words[1:]

    match cmd:
        case "quit" | "exit":
            return False
        case "help":
            console.print(HELP, markup=False)
        case "summary":
            console.print(summary_table(session, session.reconciliation()))
        case "list":
            if len(args) != 1:
                raise ShellError("usage: list POOL")
            pool = _pool(args[0])
            items = session.items(pool)
            with_batch = any(getattr(it, "batch", None) for it in items)
            console.print(items_table(pool.value, items, with_batch=with_batch))
        case "export":
            if len(args) != 1:
                raise ShellError("usage: export ACTION")
            _report_outcome(console, session.export(_action(args[0])), out_dir)
        case "group":
            if len(args) < 2:
                raise ShellError("usage: group ACTION TOKEN...")
            action = _action(args[0])
            refs, unresolved = session.resolve_selection(args[1:])
            if unresolved:
                raise ShellError("unknown or ambiguous item(s): " + ", ".join(unresolved))
            _report_outcome(console, session.export_grouped(refs, action), out_dir)
        case "ignore":
            if not args:
                raise ShellError("usage: ignore TOKEN...")
            refs, unresolved = session.resolve_selection(args)
            if unresolved:
                raise ShellError("unknown or ambiguous item(s): " + ", ".join(unresolved))
            for ref in refs:
                state = "ignored" if session.toggle_ignore(ref) else "restored"
                console.print(f"{ref}\t{state}")
        case "reset":
            refs = None
            if args:
                refs, unresolved = session.resolve_selection(args)
                if unresolved:
                    raise ShellError("unknown or ambiguous item(s): " + ", ".join(unresolved))
            n = session.reset_exported(refs)
            console.print(f"{n} item(s) can be exported again.")
        case "report":
            if len(args) != 1:
                raise ShellError("usage: report POOL")
            console.print(session.report(_pool(args[0]), rows_per_page=rows_per_page))
        case _:
            raise ShellError(f"unknown command {cmd!r}; type 'help'")
    return True


def run_shell(
    session: ReconciliationSession,
    *,
    out_dir: Path,
    console: Console | None = None,
    prompt_session: PromptSession | None = None,
    rows_per_page: int = DEFAULT_ROWS_PER_PAGE,
) -> int:
    """Read commands until ``quit`` or end of input; return an exit code."""

    console = console or Console(highlight=False, markup=False, soft_wrap=False)
    sess: PromptSession = prompt_session or PromptSession()
    completer = WordCompleter(
        [*COMMANDS, *(a.value for a in ExportAction), *(p.value for p in Pool)],
        ignore_case=True,
        WORD=True,
    )

    console.print(summary_table(session, session.reconciliation()))
    while True:
        try:
            line = sess.prompt(PROMPT, completer=completer)
        except (EOFError, KeyboardInterrupt):
            break
        try:
            if not handle_command(
                session, line, out_dir=out_dir, console=console, rows_per_page=rows_per_page
            ):
                break
        except ShellError as e:
            console.print(f"Error: {e}")
        except OSError as e:
            logger.warning("Shell command %r failed: %s", line, e)
            console.print(f"Error: {e}")

    if session.ignore_registry.pending_sync:
        pending = ", ".join(sorted(str(r) for r in session.ignore_registry.pending_sync))
        console.print(f"Error: failed to persist: {pending}")
        return 1
    return 0


__all__ = [
    "COMMANDS",
    "HELP",
    "ShellError",
    "handle_command",
    "items_table",
    "run_shell",
    "summary_table",
]
