from __future__ import annotations

import io
from pathlib import Path

import pytest
from prompt_toolkit import PromptSession
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput
from rich.console import Console

from card_reconciliation.competency import Competency
from card_reconciliation.ignore_registry import IgnoreRegistry
from card_reconciliation.session import ReconciliationSession
from card_reconciliation.shell import ShellError, handle_command, run_shell

from tests.helpers.factories import CARD, DEFAULT_PARAMETERS, al, aref, tref, tx

PENDING_FILE = "Bradesco_Infinite_-_COAG_Mar2024_fatura_pendentes.csv"


def _session() -> ReconciliationSession:
    return ReconciliationSession(
        CARD,
        Competency(2024, 3),
        transactions=[tx("A", "100.00", description="Hotel"), tx("B", "50.00")],
        allocations=[al("X", "50.00"), al("Y", "30.00"), al("Z", "70.00")],
        parameters=DEFAULT_PARAMETERS,
        ignore_registry=IgnoreRegistry(),
    )


def _console() -> tuple[Console, io.StringIO]:
    buf = io.StringIO()
    return Console(file=buf, width=200, soft_wrap=True, highlight=False, markup=False), buf


def test_shell_keeps_one_ledger_until_reset(tmp_path: Path):
    s = _session()
    console, buf = _console()
    script = [
        "export pending-transactions",
        "export pending-transactions",
        "reset",
        "export pending-transactions",
        "group allocation-settlement Y Z",
        "ignore B",
        "frobnicate",
        "quit",
    ]

    with create_pipe_input() as pipe:
        pipe.send_text("".join(f"{line}\r" for line in script))
        sess = PromptSession(input=pipe, output=DummyOutput())
        code = run_shell(s, out_dir=tmp_path, console=console, prompt_session=sess)

    out = buf.getvalue()
    assert code == 0
    assert out.count(f"Exported 1 entry to {PENDING_FILE}.") == 2
    assert "Nothing to export: all 1 item(s) were already exported." in out
    assert "1 item(s) can be exported again." in out
    assert "_prestacao_contas_agrupado.csv" in out
    assert "Error: unknown command 'frobnicate'; type 'help'" in out
    assert (tmp_path / PENDING_FILE).exists()
    assert s.export_ledger.is_exported(aref("Y"))
    assert s.ignore_registry.is_ignored(tref("B"))


def test_handle_command_lists_and_stops(tmp_path: Path):
    s = _session()
    console, buf = _console()

    assert handle_command(s, "list pending-allocations", out_dir=tmp_path, console=console)
    assert handle_command(s, "   ", out_dir=tmp_path, console=console)
    assert not handle_command(s, "quit", out_dir=tmp_path, console=console)

    out = buf.getvalue()
    assert "Y" in out and "Z" in out
    assert "Alocação X" not in out


def test_handle_command_reset_selected_items(tmp_path: Path):
    s = _session()
    console, buf = _console()
    handle_command(s, "export allocation-settlement", out_dir=tmp_path, console=console)

    handle_command(s, "reset allocation:Y", out_dir=tmp_path, console=console)

    assert not s.export_ledger.is_exported(aref("Y"))
    assert s.export_ledger.is_exported(aref("Z"))


@pytest.mark.parametrize(
    "line, message",
    [
        ("group allocation-settlement", "usage: group ACTION TOKEN..."),
        ("export settle-everything", "unknown action 'settle-everything'"),
        ("list everything", "unknown group 'everything'"),
        ("group out-of-period Q", "unknown or ambiguous item(s): Q"),
        ('ignore "A', "No closing quotation"),
    ],
)
def test_handle_command_rejects_bad_input(tmp_path: Path, line: str, message: str):
    console, _ = _console()
    with pytest.raises(ShellError) as exc:
        handle_command(_session(), line, out_dir=tmp_path, console=console)
    assert message in str(exc.value)
