"""Tiny terminal UI helpers (prompt_toolkit-based).

Kept apart from the session logic so the prompt can be driven from tests with
a pipe input and a dummy output.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Sequence

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.validation import ValidationError, Validator

from .models import SourceItem
from .serializers import format_brl

SELECT_ALL = "*"
_SPLIT_RE = re.compile(r"[,\s]+")


class SelectionError(ValueError):
    pass


def parse_selection(text: str, known_ids: Sequence[str]) -> list[str]:
    """Split ``text`` into ids, keeping ``known_ids`` order and dropping repeats.

    ``*`` selects everything. Unknown ids raise :class:`SelectionError`.
    """

    tokens = [t for t in _SPLIT_RE.split(text.strip()) if t]
    if SELECT_ALL in tokens:
        return list(known_ids)
    known = set(known_ids)
    unknown = [t for t in tokens if t not in known]
    if unknown:
        raise SelectionError("Unknown id(s): " + ", ".join(unknown))
    chosen = set(tokens)
    return [i for i in known_ids if i in chosen]


def describe_item(item: SourceItem) -> str:
    return f"{item.date}  {format_brl(item.amount)}  {item.description}"


def selection_tokens(items: Sequence[SourceItem]) -> dict[str, SourceItem]:
    """Token typed for each item: its id, or ``kind:id`` when the id is shared."""

    counts = Counter(it.id for it in items)
    return {(it.id if counts[it.id] == 1 else str(it.ref)): it for it in items}


def select_items(
    items: Sequence[SourceItem],
    *,
    message: str = "Ids to group (comma separated, * for all, Esc to cancel): ",
    session: PromptSession | None = None,
) -> list[SourceItem]:
    """Prompt for a subset of ``items`` by id; return the chosen items in list order.

    Returns an empty list when canceled or when nothing is typed.
    """

    tokens = selection_tokens(items)
    ids = list(tokens)
    completer = WordCompleter(
        [*ids, SELECT_ALL],
        meta_dict={tok: describe_item(it) for tok, it in tokens.items()},
        ignore_case=False,
        match_middle=False,
        sentence=False,
    )

    kb = KeyBindings()

    @kb.add("escape")
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result="")

    class _SelectionValidator(Validator):
        def validate(self, document) -> None:
            try:
                parse_selection(document.text, ids)
            except SelectionError as e:
                raise ValidationError(message=str(e)) from e

    if session is None:
        sess: PromptSession = PromptSession(key_bindings=kb)
    else:
        sess = PromptSession(
            input=getattr(session, "input", None),
            output=getattr(session, "output", None),
            key_bindings=kb,
        )

    result = sess.prompt(
        message,
        completer=completer,
        validator=_SelectionValidator(),
        validate_while_typing=False,
        key_bindings=kb,
    )
    if not result:
        return []
    return [tokens[tok] for tok in parse_selection(result, ids)]


__all__ = [
    "SELECT_ALL",
    "SelectionError",
    "describe_item",
    "parse_selection",
    "select_items",
    "selection_tokens",
]
