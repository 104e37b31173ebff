"""Shared helpers for the configuration CSV adapters.

Configuration sheets are usually exported from spreadsheet tools on Windows,
so the text is decoded as UTF-8 when valid and ISO-8859-1 otherwise. The
delimiter is ``;`` when the header line contains one, else ``,``.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterator
from os import PathLike
from pathlib import Path

LEGACY_ENCODING = "iso-8859-1"


def decode_text(raw: bytes, *, encoding: str | None = None) -> str:
    if encoding is not None:
        return raw.decode(encoding)
    if raw.startswith(b"\xef\xbb\xbf"):
        return raw.decode("utf-8-sig")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode(LEGACY_ENCODING)


def sniff_delimiter(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return ";" if ";" in line else ","
    return ","


def clean_cell(value: str) -> str:
    return value.replace('"', "").strip()


def iter_data_rows(
    path: str | PathLike[str], *, encoding: str | None = None
) -> Iterator[tuple[int, list[str]]]:
    """Yield ``(line_number, cells)`` for each non-empty row after the header."""

    text = decode_text(Path(path).read_bytes(), encoding=encoding)
    reader = csv.reader(io.StringIO(text), delimiter=sniff_delimiter(text))
    header_seen = False
    for row in reader:
        if not any(c.strip() for c in row):
            continue
        if not header_seen:
            header_seen = True
            continue
        yield reader.line_num, [clean_cell(c) for c in row]


def write_template(path: str | PathLike[str], text: str) -> Path:
    """Write a UTF-8 (BOM) CSV template so spreadsheet tools keep accents."""

    p = Path(path)
    p.write_bytes(("\ufeff" + text).encode("utf-8"))
    return p


__all__ = [
    "LEGACY_ENCODING",
    "clean_cell",
    "decode_text",
    "iter_data_rows",
    "sniff_delimiter",
    "write_template",
]
