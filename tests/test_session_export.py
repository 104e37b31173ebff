from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from card_reconciliation.competency import Competency
from card_reconciliation.ignore_registry import IgnoreRegistry
from card_reconciliation.models import SourceRef
from card_reconciliation.session import (
    ExportAction,
    ExportStatus,
    Pool,
    ReconciliationSession,
)

from tests.helpers.factories import CARD, DEFAULT_PARAMETERS, al, aref, param, tref, tx

MARCH = Competency(2024, 3)


class DictIgnoreStore:
    def __init__(self, refs: dict[tuple[str, str], list[SourceRef]]) -> None:
        self.data = refs

    def get_ignored_ids(self, card_name: str, competency: str) -> list[SourceRef]:
        return list(self.data.get((card_name, competency), []))

    def add_ignored_id(self, card_name: str, competency: str, ref: SourceRef) -> None:
        self.data.setdefault((card_name, competency), []).append(ref)

    def remove_ignored_id(self, card_name: str, competency: str, ref: SourceRef) -> None:
        self.data.get((card_name, competency), []).remove(ref)


def _session(**kw) -> ReconciliationSession:
    defaults = dict(
        transactions=[tx("A", "100.00", description="Hotel"), tx("B", "50.00")],
        allocations=[
            al("X", "50.00"),
            al("Y", "30.00", description="Hotel"),
            al("Z", "70.00", description="Passagem"),
            al("L", "12.00", posting_date="02/04/24"),
        ],
        parameters=DEFAULT_PARAMETERS,
    )
    defaults.update(kw)
    return ReconciliationSession(CARD, MARCH, **defaults)


def _csv_lines(content: bytes) -> list[str]:
    return content.decode("utf-8-sig").split("\n")


def test_pools_follow_reconciliation():
    s = _session()
    assert [t.id for t in s.items(Pool.RECONCILED)] == ["B"]
    assert [t.id for t in s.items(Pool.PENDING_TRANSACTIONS)] == ["A"]
    assert [a.id for a in s.items(Pool.PENDING_ALLOCATIONS)] == ["Y", "Z"]
    assert [a.id for a in s.items(Pool.OUT_OF_PERIOD)] == ["L"]
    assert s.items(Pool.IGNORED) == ()


def test_export_pending_transactions_then_nothing_left():
    s = _session()

    first = s.export(ExportAction.PENDING_TRANSACTIONS)
    assert first.status is ExportStatus.OK
    assert first.filename == "Bradesco_Infinite_-_COAG_Mar2024_fatura_pendentes.csv"
    assert [e.sources for e in first.entries] == [(tref("A"),)]
    lines = _csv_lines(first.content)
    assert lines[2] == '2139009;767902;10;1310001;0A;10000;N;"Cartão Corporativo - 10/03/24 - Hotel"'
    assert lines[3].startswith("2139090;767902;10;1310001;0A;-10000;N;")
    assert s.export_ledger.is_exported(tref("A"))

    second = s.export(ExportAction.PENDING_TRANSACTIONS)
    assert second.status is ExportStatus.NOTHING_TO_EXPORT
    assert second.entries == ()
    assert second.content == b""
    assert "already exported" in second.message


def test_exported_items_share_the_ledger_across_actions_but_stay_visible():
    s = _session()
    s.export(ExportAction.PENDING_TRANSACTIONS)

    again = s.export(ExportAction.RETURN_TO_CARD)
    assert again.status is ExportStatus.NOTHING_TO_EXPORT
    assert [t.id for t in s.items(Pool.PENDING_TRANSACTIONS)] == ["A"]


def test_missing_parameters_report_no_parameters_and_mark_nothing():
    s = _session(parameters=[param("Pendente", card="Outro cartão")])

    out = s.export(ExportAction.ALLOCATION_SETTLEMENT)
    assert out.status is ExportStatus.NO_PARAMETERS
    assert out.dropped == (aref("Y"), aref("Z"))
    assert out.dropped_count == 2
    assert '"presta" or "aloca"' in out.message
    assert len(s.export_ledger) == 0

    s.set_parameters(DEFAULT_PARAMETERS)
    retry = s.export(ExportAction.ALLOCATION_SETTLEMENT)
    assert retry.status is ExportStatus.OK
    assert retry.filename == "Bradesco_Infinite_-_COAG_Mar2024_prestacao_contas.csv"
    assert [e.narrative for e in retry.entries] == ["Hotel", "Passagem"]


def test_grouped_export_collapses_selection_into_one_entry():
    s = _session()

    refs, unresolved = s.resolve_selection(["Z", "Y", "not-in-pool"])
    assert unresolved == ["not-in-pool"]

    out = s.export_grouped(refs, ExportAction.ALLOCATION_SETTLEMENT)
    assert out.status is ExportStatus.OK
    assert out.filename == "Bradesco_Infinite_-_COAG_Mar2024_prestacao_contas_agrupado.csv"
    assert len(out.entries) == 1
    lines = _csv_lines(out.content)
    assert len(lines) == 4
    assert lines[2] == '3110001;767902;10;1310001;0A;10000;N;"Hotel / Passagem"'
    assert lines[3] == '2139090;767902;10;1310001;0A;-10000;N;"Hotel / Passagem"'

    again = s.export_grouped([aref("Y"), aref("Z")], ExportAction.ALLOCATION_SETTLEMENT)
    assert again.status is ExportStatus.NOTHING_TO_EXPORT
    assert s.export(ExportAction.ALLOCATION_SETTLEMENT).status is ExportStatus.NOTHING_TO_EXPORT


def test_grouped_export_with_empty_selection():
    out = _session().export_grouped([], ExportAction.PENDING_TRANSACTIONS)
    assert out.status is ExportStatus.NOTHING_TO_EXPORT
    assert out.message == "Nothing to export: no items selected."


def test_out_of_period_export_uses_note_already_posted_parameters():
    out = _session().export(ExportAction.OUT_OF_PERIOD)
    assert out.status is ExportStatus.OK
    assert out.entries[0].debit_account == "3110002"
    assert out.filename.endswith("_fora_competencia.csv")


def test_toggle_ignore_reclassifies_and_invalidates_cache():
    s = _session(ignore_registry=IgnoreRegistry())
    before = s.reconciliation()
    assert s.reconciliation() is before

    assert s.toggle_ignore(tref("A")) is True
    after = s.reconciliation()
    assert after is not before
    assert after.unmatched_transactions == ()
    assert [t.id for t in s.items(Pool.IGNORED)] == ["A"]
    assert s.export(ExportAction.PENDING_TRANSACTIONS).status is ExportStatus.NOTHING_TO_EXPORT

    s.toggle_ignore(tref("A"))
    assert [t.id for t in s.items(Pool.PENDING_TRANSACTIONS)] == ["A"]


def test_new_extraction_replaces_inputs():
    s = _session()
    s.set_transactions([tx("C", "30.00")])
    assert [p.transaction.id for p in s.reconciliation().reconciled] == ["C"]


def test_report_lists_pool_items():
    text = _session().report(Pool.PENDING_ALLOCATIONS, rows_per_page=1)
    assert text.count("\f") == 1
    assert "Total: 2 item(ns) - R$ 100,00" in text


def test_grouped_export_mixes_statement_items_and_allocations():
    s = _session()

    out = s.export_grouped([aref("Y"), tref("A")], ExportAction.ALLOCATION_SETTLEMENT)

    assert out.status is ExportStatus.OK
    assert out.skipped == ()
    assert len(out.entries) == 1
    entry = out.entries[0]
    assert entry.amount == Decimal("130.00")
    assert entry.sources == (tref("A"), aref("Y"))
    assert entry.date == "10/03/24"
    assert _csv_lines(out.content)[2] == '3110001;767902;10;1310001;0A;13000;N;"Hotel / Hotel"'
    assert s.export_ledger.is_exported(tref("A"))
    assert s.export_ledger.is_exported(aref("Y"))
    assert s.export(ExportAction.PENDING_TRANSACTIONS).status is ExportStatus.NOTHING_TO_EXPORT
    assert [e.sources for e in s.export(ExportAction.ALLOCATION_SETTLEMENT).entries] == [
        (aref("Z"),)
    ]


def test_grouped_export_reports_items_outside_the_pending_pools():
    s = _session()

    out = s.export_grouped(
        [aref("Z"), tref("B"), aref("nope")], ExportAction.ALLOCATION_SETTLEMENT
    )

    assert out.status is ExportStatus.OK
    assert [e.sources for e in out.entries] == [(aref("Z"),)]
    assert out.skipped == (tref("B"), aref("nope"))
    assert "2 selected item(s) not awaiting export: transaction:B, allocation:nope." in out.message
    assert not s.export_ledger.is_exported(tref("B"))

    only_skipped = s.export_grouped([tref("B")], ExportAction.ALLOCATION_SETTLEMENT)
    assert only_skipped.status is ExportStatus.NOTHING_TO_EXPORT
    assert only_skipped.skipped == (tref("B"),)


def test_same_id_in_statement_and_allocations_is_exported_independently():
    s = _session(transactions=[tx("1", "10.00")], allocations=[al("1", "25.00")])

    first = s.export(ExportAction.PENDING_TRANSACTIONS)
    assert [e.sources for e in first.entries] == [(tref("1"),)]

    second = s.export(ExportAction.ALLOCATION_SETTLEMENT)
    assert second.status is ExportStatus.OK
    assert [e.sources for e in second.entries] == [(aref("1"),)]


def test_ignoring_a_statement_item_keeps_the_allocation_with_the_same_id():
    s = _session(
        transactions=[tx("1", "10.00")],
        allocations=[al("1", "25.00")],
        ignore_registry=IgnoreRegistry(),
    )

    s.toggle_ignore(tref("1"))

    assert [it.ref for it in s.items(Pool.IGNORED)] == [tref("1")]
    assert [a.ref for a in s.items(Pool.PENDING_ALLOCATIONS)] == [aref("1")]


def test_bare_ids_resolve_only_when_unambiguous():
    s = _session(transactions=[tx("1", "10.00"), tx("2", "3.00")], allocations=[al("1", "25.00")])

    refs, unresolved = s.resolve_selection(["1", "2", "allocation:1", "transaction:9"])

    assert refs == [tref("2"), aref("1")]
    assert unresolved == ["1", "transaction:9"]


def test_changing_competency_reclassifies_and_reloads_ignored_items():
    store = DictIgnoreStore({(CARD, "2024-04"): [tref("A")]})
    s = _session(ignore_registry=IgnoreRegistry.load(store, CARD, MARCH))
    assert [p.allocation.id for p in s.reconciliation().reconciled] == ["X"]
    assert s.items(Pool.IGNORED) == ()

    s.competency = Competency(2024, 4)

    april = s.reconciliation()
    assert april.reconciled == ()
    assert [a.id for a in april.out_of_period_allocations] == ["X", "Y", "Z"]
    assert [a.id for a in april.unmatched_allocations] == ["L"]
    assert [t.id for t in april.ignored_transactions] == ["A"]
    assert [t.id for t in april.unmatched_transactions] == ["B"]

    s.competency = MARCH
    assert [p.allocation.id for p in s.reconciliation().reconciled] == ["X"]
    assert s.items(Pool.IGNORED) == ()


def test_reset_makes_exported_items_eligible_again():
    s = _session()
    s.export(ExportAction.PENDING_TRANSACTIONS)
    s.export(ExportAction.ALLOCATION_SETTLEMENT)

    assert s.reset_exported([tref("A")]) == 1
    assert s.export(ExportAction.PENDING_TRANSACTIONS).ok
    assert not s.export(ExportAction.ALLOCATION_SETTLEMENT).ok

    assert s.reset_exported() == 3
    assert s.export(ExportAction.ALLOCATION_SETTLEMENT).ok


def test_only_successful_outcomes_write_a_file(tmp_path: Path):
    s = _session()

    done = s.export(ExportAction.PENDING_TRANSACTIONS)
    target = done.write_to(tmp_path / "out")
    assert target == tmp_path / "out" / done.filename
    assert target.read_bytes() == done.content

    nothing = s.export(ExportAction.PENDING_TRANSACTIONS)
    assert not nothing.ok
    with pytest.raises(ValueError, match="nothing to write"):
        nothing.write_to(tmp_path / "out")
