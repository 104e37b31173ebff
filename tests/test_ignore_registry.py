from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from card_reconciliation.competency import Competency
from card_reconciliation.ignore_registry import IgnoreRegistry
from card_reconciliation.models import SourceRef
from card_reconciliation.persistence import SqlIgnoreStore

from tests.helpers.db import bootstrap_sqlite_db
from tests.helpers.factories import aref, tref

CARD = "Santander - Sede"
MARCH = Competency(2024, 3)


class RecordingStore:
    def __init__(self, refs: dict[tuple[str, str], list[SourceRef]] | None = None) -> None:
        self.data = {k: list(v) for k, v in (refs or {}).items()}
        self.calls: list[tuple[str, str, str, SourceRef]] = []

    def get_ignored_ids(self, card_name: str, competency: str) -> list[SourceRef]:
        return list(self.data.get((card_name, competency), []))

    def add_ignored_id(self, card_name: str, competency: str, ref: SourceRef) -> None:
        self.calls.append(("add", card_name, competency, ref))
        refs = self.data.setdefault((card_name, competency), [])
        if ref not in refs:
            refs.append(ref)

    def remove_ignored_id(self, card_name: str, competency: str, ref: SourceRef) -> None:
        self.calls.append(("remove", card_name, competency, ref))
        refs = self.data.get((card_name, competency), [])
        if ref in refs:
            refs.remove(ref)


class FailingStore(RecordingStore):
    def __init__(self) -> None:
        super().__init__()
        self.fail = True

    def add_ignored_id(self, card_name: str, competency: str, ref: SourceRef) -> None:
        if self.fail:
            raise ConnectionError("store offline")
        super().add_ignored_id(card_name, competency, ref)


def test_double_toggle_restores_membership():
    store = RecordingStore()
    reg = IgnoreRegistry(store)

    assert reg.toggle(CARD, MARCH, tref("t1")) is True
    assert reg.is_ignored(tref("t1"))
    assert reg.toggle(CARD, MARCH, tref("t1")) is False
    assert not reg.is_ignored(tref("t1"))
    assert store.calls == [
        ("add", CARD, "2024-03", tref("t1")),
        ("remove", CARD, "2024-03", tref("t1")),
    ]


def test_transaction_and_allocation_with_same_id_are_distinct():
    reg = IgnoreRegistry(RecordingStore())

    reg.toggle(CARD, MARCH, tref("7"))

    assert reg.is_ignored(tref("7"))
    assert not reg.is_ignored(aref("7"))
    assert reg.toggle(CARD, MARCH, aref("7")) is True
    assert reg.ids == frozenset({tref("7"), aref("7")})


def test_load_reads_refs_for_card_and_competency():
    store = RecordingStore(
        {(CARD, "2024-03"): [tref("a"), aref("b")], (CARD, "2024-04"): [tref("c")]}
    )
    reg = IgnoreRegistry.load(store, CARD, MARCH)
    assert reg.ids == frozenset({tref("a"), aref("b")})
    assert tref("c") not in reg
    assert len(reg) == 2


def test_reload_switches_to_another_competency():
    store = RecordingStore({(CARD, "2024-03"): [tref("a")], (CARD, "2024-04"): [aref("b")]})
    reg = IgnoreRegistry.load(store, CARD, MARCH)

    reg.reload(CARD, Competency(2024, 4))

    assert reg.ids == frozenset({aref("b")})
    assert reg.pending_sync == frozenset()


def test_reload_without_store_keeps_memory():
    reg = IgnoreRegistry(ids=[tref("x")])
    reg.reload(CARD, Competency(2024, 4))
    assert reg.ids == frozenset({tref("x")})


def test_load_propagates_store_errors():
    class Broken(RecordingStore):
        def get_ignored_ids(self, card_name: str, competency: str) -> list[SourceRef]:
            raise ConnectionError("down")

    with pytest.raises(ConnectionError):
        IgnoreRegistry.load(Broken(), CARD, MARCH)


def test_failed_persistence_is_logged_and_not_rolled_back(caplog: pytest.LogCaptureFixture):
    store = FailingStore()
    reg = IgnoreRegistry(store)

    with caplog.at_level(logging.WARNING, logger="card_reconciliation"):
        assert reg.toggle(CARD, MARCH, tref("t1")) is True

    assert reg.is_ignored(tref("t1"))
    assert reg.pending_sync == frozenset({tref("t1")})
    assert any("Failed to persist ignore toggle" in r.getMessage() for r in caplog.records)

    # A later successful attempt for the same item clears the pending flag.
    store.fail = False
    reg.toggle(CARD, MARCH, tref("t1"))
    reg.toggle(CARD, MARCH, tref("t1"))
    assert reg.is_ignored(tref("t1"))
    assert reg.pending_sync == frozenset()


def test_registry_without_store_is_memory_only():
    reg = IgnoreRegistry(ids=[tref("x")])
    assert reg.toggle(CARD, MARCH, tref("x")) is False
    assert reg.toggle(CARD, MARCH, tref("y")) is True
    assert reg.ids == frozenset({tref("y")})


def test_executor_persists_in_background():
    store = RecordingStore()
    with ThreadPoolExecutor(max_workers=1) as pool:
        reg = IgnoreRegistry(store, executor=pool)
        reg.toggle(CARD, MARCH, aref("a1"))
        reg.toggle(CARD, MARCH, aref("a2"))
        # In-memory state is updated before the store call completes.
        assert reg.ids == frozenset({aref("a1"), aref("a2")})
    assert store.get_ignored_ids(CARD, "2024-03") == [aref("a1"), aref("a2")]


def test_sql_store_roundtrip(tmp_path: Path):
    url = bootstrap_sqlite_db(tmp_path / "rc.db")
    store = SqlIgnoreStore(url)

    store.add_ignored_id(CARD, "2024-03", tref("t1"))
    store.add_ignored_id(CARD, "2024-03", tref("t1"))  # idempotent
    store.add_ignored_id(CARD, "2024-03", aref("a9"))
    store.add_ignored_id(CARD, "2024-04", tref("t1"))
    store.add_ignored_id("Outro cartão", "2024-03", tref("t2"))

    assert store.get_ignored_ids(CARD, "2024-03") == [tref("t1"), aref("a9")]

    store.remove_ignored_id(CARD, "2024-03", tref("t1"))
    store.remove_ignored_id(CARD, "2024-03", tref("missing"))  # no-op
    assert store.get_ignored_ids(CARD, "2024-03") == [aref("a9")]
    assert store.get_ignored_ids(CARD, "2024-04") == [tref("t1")]

    reg = IgnoreRegistry.load(store, CARD, MARCH)
    reg.toggle(CARD, MARCH, aref("a9"))
    assert store.get_ignored_ids(CARD, "2024-03") == []


def test_sql_store_keeps_both_kinds_for_one_id(tmp_path: Path):
    store = SqlIgnoreStore(bootstrap_sqlite_db(tmp_path / "rc.db"))

    store.add_ignored_id(CARD, "2024-03", tref("1"))
    store.add_ignored_id(CARD, "2024-03", aref("1"))
    assert store.get_ignored_ids(CARD, "2024-03") == [tref("1"), aref("1")]

    store.remove_ignored_id(CARD, "2024-03", tref("1"))
    assert store.get_ignored_ids(CARD, "2024-03") == [aref("1")]
