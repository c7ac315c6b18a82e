"""A1-style coordinate helpers."""

from __future__ import annotations

import re

_A1_RE = re.compile(r"^([A-Za-z]+)([0-9]+)$")


def column_label(col: int) -> str:
    """1-based column index -> letters (1 -> "A", 27 -> "AA")."""
    if col < 1:
        raise ValueError(f"Column index must be >= 1, got {col}")
    letters: list[str] = []
    while col > 0:
        col, rem = divmod(col - 1, 26)
        letters.append(chr(ord("A") + rem))
    return "".join(reversed(letters))


def column_index(label: str) -> int:
    """Letters -> 1-based column index ("A" -> 1, "AA" -> 27)."""
    index = 0
    for ch in label.upper():
        if not "A" <= ch <= "Z":
            raise ValueError(f"Invalid column label: {label!r}")
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index


def normalize_cell_id(cell_id: str) -> str:
    """Strip and uppercase a cell id like ``" b12"`` -> ``"B12"``."""
    return cell_id.strip().upper()


def is_cell_id(text: str) -> bool:
    """True for a well-formed A1 reference with a row of at least 1."""
    try:
        a1_to_rowcol(text)
    except ValueError:
        return False
    return True


def a1_to_rowcol(ref: str) -> tuple[int, int]:
    """Convert ``"B3"`` into 1-based ``(row, col)`` = ``(3, 2)``."""
    m = _A1_RE.match(ref.strip())
    if not m:
        raise ValueError(f"Invalid cell reference: {ref!r}")
    row = int(m.group(2))
    if row < 1:
        raise ValueError(f"Invalid cell reference: {ref!r}")
    return row, column_index(m.group(1))


def rowcol_to_a1(row: int, col: int) -> str:
    """Convert 1-based ``(row, col)`` into ``"B3"``."""
    if row < 1:
        raise ValueError(f"Row index must be >= 1, got {row}")
    return f"{column_label(col)}{row}"
