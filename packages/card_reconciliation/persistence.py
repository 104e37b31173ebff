"""Persistence integration for card_reconciliation.

Reads and writes the configuration tables (cards, accounting parameters) and
the ignore overrides owned by ``libs/db``. Functions taking a ``session`` run
inside the caller's transaction; :class:`SqlIgnoreStore` opens a short
transaction per call through :func:`db.client.session_scope` so it can back an
:class:`~card_reconciliation.ignore_registry.IgnoreRegistry` directly.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from db.client import session_scope
from db.models.reconciliation import RcAccountingParameter, RcCard, RcIgnoredItem

from .models import AccountingParameter, Card, EntryOrigin, SourceRef

_COORDINATE_FIELDS = (
    "debit_account",
    "credit_account",
    "debit_subaccount",
    "credit_subaccount",
    "fund",
    "debit_department",
    "credit_department",
    "debit_restriction",
    "credit_restriction",
)


# ---- cards ------------------------------------------------------------------


def load_cards(session: Session) -> list[Card]:
    rows = session.execute(select(RcCard).order_by(RcCard.name)).scalars()
    return [Card(name=r.name, subaccount=r.subaccount) for r in rows]


def add_cards(session: Session, cards: Iterable[Card]) -> int:
    """Insert cards whose name is not registered yet; return how many were added."""

    existing = set(session.execute(select(RcCard.name)).scalars())
    added = 0
    for card in cards:
        if card.name in existing:
            continue
        session.add(RcCard(name=card.name, subaccount=card.subaccount))
        existing.add(card.name)
        added += 1
    session.flush()
    return added


def remove_card(session: Session, name: str) -> bool:
    """Delete a card by exact name; its parameters are kept."""

    res = session.execute(delete(RcCard).where(RcCard.name == name))
    return bool(res.rowcount)


# ---- accounting parameters --------------------------------------------------


def _to_parameter(row: RcAccountingParameter) -> AccountingParameter:
    return AccountingParameter(
        id=str(row.id),
        card_name=row.card_name,
        motive=row.motive,
        **{f: getattr(row, f) or "" for f in _COORDINATE_FIELDS},
    )


def load_parameters(session: Session, *, card_name: str | None = None) -> list[AccountingParameter]:
    """Return parameters in configuration (insertion) order.

    Order matters: the resolver picks the first matching motive.
    """

    stmt = select(RcAccountingParameter).order_by(RcAccountingParameter.id)
    rows = session.execute(stmt).scalars()
    params = [_to_parameter(r) for r in rows]
    if card_name is None:
        return params
    key = card_name.strip().lower()
    return [p for p in params if p.card_name.strip().lower() == key]


def add_parameters(session: Session, parameters: Iterable[AccountingParameter]) -> int:
    added = 0
    for p in parameters:
        session.add(
            RcAccountingParameter(
                card_name=p.card_name,
                motive=p.motive,
                **{f: getattr(p, f) for f in _COORDINATE_FIELDS},
            )
        )
        added += 1
    session.flush()
    return added


def remove_parameter(session: Session, parameter_id: str) -> bool:
    try:
        pk = int(parameter_id)
    except ValueError:
        return False
    res = session.execute(delete(RcAccountingParameter).where(RcAccountingParameter.id == pk))
    return bool(res.rowcount)


# ---- ignore overrides ---------------------------------------------------------


class SqlIgnoreStore:
    """Ignore-set persistence keyed by ``(card_name, competency)``.

    Rows are keyed by item kind and id. ``add_ignored_id`` is idempotent;
    ``remove_ignored_id`` of an absent item is a no-op. Concurrent writers
    follow last-write-wins.
    """

    def __init__(self, database_url: str | None = None) -> None:
        self._database_url = database_url

    def get_ignored_ids(self, card_name: str, competency: str) -> list[SourceRef]:
        with session_scope(database_url=self._database_url) as session:
            stmt = (
                select(RcIgnoredItem.item_kind, RcIgnoredItem.item_id)
                .where(
                    RcIgnoredItem.card_name == card_name,
                    RcIgnoredItem.competency == competency,
                )
                .order_by(RcIgnoredItem.id)
            )
            rows = session.execute(stmt).all()
            return [SourceRef(EntryOrigin(kind), item_id) for kind, item_id in rows]

    def add_ignored_id(self, card_name: str, competency: str, ref: SourceRef) -> None:
        with session_scope(database_url=self._database_url) as session:
            exists = session.execute(
                select(RcIgnoredItem.id).where(
                    RcIgnoredItem.card_name == card_name,
                    RcIgnoredItem.competency == competency,
                    RcIgnoredItem.item_kind == str(ref.kind),
                    RcIgnoredItem.item_id == ref.id,
                )
            ).first()
            if exists is None:
                session.add(
                    RcIgnoredItem(
                        card_name=card_name,
                        competency=competency,
                        item_kind=str(ref.kind),
                        item_id=ref.id,
                    )
                )

    def remove_ignored_id(self, card_name: str, competency: str, ref: SourceRef) -> None:
        with session_scope(database_url=self._database_url) as session:
            session.execute(
                delete(RcIgnoredItem).where(
                    RcIgnoredItem.card_name == card_name,
                    RcIgnoredItem.competency == competency,
                    RcIgnoredItem.item_kind == str(ref.kind),
                    RcIgnoredItem.item_id == ref.id,
                )
            )


__all__ = [
    "SqlIgnoreStore",
    "add_cards",
    "add_parameters",
    "load_cards",
    "load_parameters",
    "remove_card",
    "remove_parameter",
]
