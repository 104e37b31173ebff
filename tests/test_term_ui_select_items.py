import contextlib

import pytest
from prompt_toolkit import PromptSession
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput

from card_reconciliation.term_ui import (
    SelectionError,
    parse_selection,
    select_items,
    selection_tokens,
)

from tests.helpers.factories import al, tx

ITEMS = [al("a1", "30"), al("a2", "70"), al("a3", "5")]


@contextlib.contextmanager
def pipe_session():
    with create_pipe_input() as pipe:
        sess = PromptSession(input=pipe, output=DummyOutput())
        yield pipe, sess


def test_comma_separated_ids_are_returned_in_list_order():
    with pipe_session() as (pipe, sess):
        pipe.send_text("a3,a1\r")
        assert select_items(ITEMS, session=sess) == [ITEMS[0], ITEMS[2]]


def test_star_selects_everything():
    with pipe_session() as (pipe, sess):
        pipe.send_text("*\r")
        assert select_items(ITEMS, session=sess) == ITEMS


def test_empty_input_selects_nothing():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\r")
        assert select_items(ITEMS, session=sess) == []


def test_parse_selection_accepts_spaces_and_repeats():
    assert parse_selection(" a2  a1, a2 ", ["a1", "a2", "a3"]) == ["a1", "a2"]


def test_parse_selection_rejects_unknown_ids():
    with pytest.raises(SelectionError, match="a9"):
        parse_selection("a1,a9", ["a1", "a2"])


def test_shared_ids_are_typed_with_their_kind():
    shared_tx, shared_al, other = tx("1", "10"), al("1", "25"), al("2", "5")
    mixed = [shared_tx, shared_al, other]

    assert list(selection_tokens(mixed)) == ["transaction:1", "allocation:1", "2"]

    with pipe_session() as (pipe, sess):
        pipe.send_text("allocation:1 2\r")
        assert select_items(mixed, session=sess) == [shared_al, other]
