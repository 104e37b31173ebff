"""Load extraction payloads (statement transactions and allocation reports).

The extraction collaborator delivers JSON shaped as::

    {"transactions": [{"id": "...", "date": "15/03/24", "description": "...", "amount": 100.0}]}
    {"allocations": [{"id": "...", "date": "...", "postingDate": "...", "description": "...",
                      "amount": -100.0, "costCenter": "...", "batch": "..."}]}

A bare JSON list is accepted as well. Rows are validated with pydantic; a
missing ``id`` is replaced by a positional one (``tx-0``, ``al-3``, ...) so every
item can be ignored and exported individually. Amounts may be numbers or
strings, including Brazilian formatting (``1.234,56``); allocation amounts
are stored as absolute values by :class:`~card_reconciliation.models.Allocation`.
"""

from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from os import PathLike
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models import Allocation, Transaction


def _coerce_amount(v: Any) -> Any:
    if isinstance(v, str):
        s = v.strip().replace("R$", "").replace(" ", "")
        if "," in s:
            s = s.replace(".", "").replace(",", ".")
        try:
            return Decimal(s)
        except InvalidOperation as e:
            raise ValueError(f"invalid amount: {v!r}") from e
    if isinstance(v, float):
        return Decimal(str(v))
    return v


class _ItemPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, populate_by_name=True)

    id: str | None = None
    date: str = ""
    description: str = ""
    amount: Decimal

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, v: Any) -> str | None:
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, v: Any) -> Any:
        return _coerce_amount(v)


class TransactionPayload(_ItemPayload):
    pass


class AllocationPayload(_ItemPayload):
    posting_date: str | None = Field(default=None, alias="postingDate")
    cost_center: str | None = Field(default=None, alias="costCenter")
    batch: str | None = None

    @field_validator("posting_date", "cost_center", "batch", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> str | None:
        if v is None:
            return None
        s = str(v).strip()
        return s or None


class TransactionsDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    transactions: list[TransactionPayload]


class AllocationsDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    allocations: list[AllocationPayload]


def parse_transactions(data: Any) -> list[Transaction]:
    """Validate a decoded payload and return :class:`Transaction` objects."""

    if isinstance(data, list):
        data = {"transactions": data}
    doc = TransactionsDocument.model_validate(data)
    return [
        Transaction(
            id=row.id or f"tx-{idx}",
            date=row.date,
            description=row.description,
            amount=row.amount,
        )
        for idx, row in enumerate(doc.transactions)
    ]


def parse_allocations(data: Any) -> list[Allocation]:
    if isinstance(data, list):
        data = {"allocations": data}
    doc = AllocationsDocument.model_validate(data)
    return [
        Allocation(
            id=row.id or f"al-{idx}",
            date=row.date,
            description=row.description,
            amount=row.amount,
            posting_date=row.posting_date,
            cost_center=row.cost_center,
            batch=row.batch,
        )
        for idx, row in enumerate(doc.allocations)
    ]


def _read_json(path: str | PathLike[str]) -> Any:
    p = Path(path)
    with p.open(encoding="utf-8-sig") as f:
        return json.load(f)


def load_transactions(path: str | PathLike[str]) -> list[Transaction]:
    return parse_transactions(_read_json(path))


def load_allocations(path: str | PathLike[str]) -> list[Allocation]:
    return parse_allocations(_read_json(path))


__all__ = [
    "AllocationPayload",
    "TransactionPayload",
    "load_allocations",
    "load_transactions",
    "parse_allocations",
    "parse_transactions",
]
