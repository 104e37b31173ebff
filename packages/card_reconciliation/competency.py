"""Competency (accounting period) parsing and allocation classification.

An allocation belongs to the target competency when the month and year of its
effective date (posting date when present, else fact date) equal the target's.
Dates that cannot be parsed classify as in-period: an allocation with missing
or garbled data must stay visible in the pending-allocation view instead of
being silently moved out of it.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from .models import Allocation

# Portuguese abbreviations, as printed on statements and in export file names.
MONTH_ABBREVIATIONS: tuple[str, ...] = (
    "Jan",
    "Fev",
    "Mar",
    "Abr",
    "Mai",
    "Jun",
    "Jul",
    "Ago",
    "Set",
    "Out",
    "Nov",
    "Dez",
)

_COMPETENCY_RE = re.compile(r"^\s*(\d{4})-(\d{1,2})\s*$")
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")


@dataclass(frozen=True, slots=True, order=True)
class Competency:
    """A ``(year, month)`` accounting period."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Competency month must be within 1..12, got {self.month}")

    @classmethod
    def parse(cls, value: str) -> Competency:
        """Parse ``YYYY-MM`` (the value used as persistence key)."""

        m = _COMPETENCY_RE.match(value or "")
        if not m:
            raise ValueError(f"Invalid competency {value!r}; expected YYYY-MM")
        return cls(int(m.group(1)), int(m.group(2)))

    @classmethod
    def of(cls, d: date) -> Competency:
        return cls(d.year, d.month)

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def tag(self) -> str:
        """Three-letter month abbreviation plus four-digit year (``Mar2024``)."""

        return f"{MONTH_ABBREVIATIONS[self.month - 1]}{self.year:04d}"

    @property
    def label(self) -> str:
        return f"{MONTH_ABBREVIATIONS[self.month - 1]} / {self.year:04d}"

    def __str__(self) -> str:
        return self.key


def parse_item_date(raw: str | None) -> date | None:
    """Parse a source-item date; return ``None`` when malformed or empty.

    Accepts ``D/M/YY`` and ``D/M/YYYY`` (two-digit years expand to ``20YY``)
    and ISO ``YYYY-MM-DD`` (optionally followed by a time part).
    """

    if raw is None:
        return None
    s = raw.strip()
    if not s:
        return None

    iso = _ISO_DATE_RE.match(s)
    if iso:
        parts = [int(p) for p in iso.groups()]
        year, month, day = parts
    else:
        pieces = s.split()[0].split("/")
        if len(pieces) != 3 or not all(p.strip().isdigit() for p in pieces):
            return None
        day, month, year = (int(p) for p in pieces)
        if len(pieces[2].strip()) <= 2:
            year += 2000
    try:
        return date(year, month, day)
    except ValueError:
        return None


def is_in_competency(allocation: Allocation, competency: Competency) -> bool:
    parsed = parse_item_date(allocation.effective_date)
    if parsed is None:
        return True
    return parsed.month == competency.month and parsed.year == competency.year


def split_by_competency(
    allocations: Iterable[Allocation], competency: Competency
) -> tuple[list[Allocation], list[Allocation]]:
    """Return ``(in_period, out_of_period)`` preserving input order."""

    in_period: list[Allocation] = []
    out_of_period: list[Allocation] = []
    for al in allocations:
        (in_period if is_in_competency(al, competency) else out_of_period).append(al)
    return in_period, out_of_period


__all__ = [
    "Competency",
    "MONTH_ABBREVIATIONS",
    "is_in_competency",
    "parse_item_date",
    "split_by_competency",
]
