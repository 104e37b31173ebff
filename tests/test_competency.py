from __future__ import annotations

from datetime import date

import pytest

from card_reconciliation.competency import (
    Competency,
    is_in_competency,
    parse_item_date,
    split_by_competency,
)

from tests.helpers.factories import al


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("15/03/24", date(2024, 3, 15)),
        ("5/3/2024", date(2024, 3, 5)),
        ("2024-03-15", date(2024, 3, 15)),
        ("2024-03-15T10:00:00", date(2024, 3, 15)),
        (" 01/12/23 ", date(2023, 12, 1)),
    ],
)
def test_parse_item_date_accepts_known_formats(raw, expected):
    assert parse_item_date(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "15-03", "31/02/24", "aa/bb/cc", "15/03"])
def test_parse_item_date_returns_none_when_malformed(raw):
    assert parse_item_date(raw) is None


def test_fact_date_in_target_month_is_in_period():
    assert is_in_competency(al("X", "10", date="15/03/24"), Competency(2024, 3))


def test_posting_date_overrides_fact_date():
    item = al("X", "10", date="28/03/24", posting_date="02/04/24")
    assert not is_in_competency(item, Competency(2024, 3))
    assert is_in_competency(item, Competency(2024, 4))


def test_blank_posting_date_falls_back_to_fact_date():
    item = al("X", "10", date="15/03/24", posting_date="  ")
    assert is_in_competency(item, Competency(2024, 3))


def test_malformed_dates_fail_open():
    assert is_in_competency(al("X", "10", date="sem data"), Competency(2024, 3))
    assert is_in_competency(al("Y", "10", date="15/03/24", posting_date="??"), Competency(1999, 1))


def test_same_month_of_another_year_is_out_of_period():
    assert not is_in_competency(al("X", "10", date="15/03/23"), Competency(2024, 3))


def test_split_preserves_order():
    items = [
        al("a", "1", date="01/03/24"),
        al("b", "1", date="01/04/24"),
        al("c", "1", date="bad"),
        al("d", "1", date="31/03/24"),
    ]
    in_period, out_of_period = split_by_competency(items, Competency(2024, 3))
    assert [i.id for i in in_period] == ["a", "c", "d"]
    assert [i.id for i in out_of_period] == ["b"]


def test_competency_parse_and_labels():
    comp = Competency.parse("2024-03")
    assert comp == Competency(2024, 3)
    assert comp.key == str(comp) == "2024-03"
    assert comp.tag == "Mar2024"
    assert comp.label == "Mar / 2024"
    assert Competency(2023, 12) < comp


@pytest.mark.parametrize("value", ["2024", "03/2024", "2024-13", ""])
def test_competency_parse_rejects_invalid_values(value):
    with pytest.raises(ValueError):
        Competency.parse(value)
