"""Sheet: the host side of the engine - text edits, display, sizing, snapshots."""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Iterator
from typing import Any

from gridcalc._utils import column_label, is_cell_id, normalize_cell_id, rowcol_to_a1
from gridcalc.calc._graph import DependencyGraph
from gridcalc.calc._parser import FormulaParseError, parse_formula
from gridcalc.calc._protocol import RecalcResult
from gridcalc.calc._values import (
    EMPTY,
    BooleanValue,
    CellValue,
    EmptyValue,
    ErrorValue,
    NumberValue,
    StringValue,
    display_text,
    format_number,
)

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = 8
DEFAULT_ROWS = 8
DEFAULT_COLUMN_WIDTH = 80
DEFAULT_ROW_HEIGHT = 48
MIN_COLUMN_WIDTH = 40
MIN_ROW_HEIGHT = 32

# What the host accepts as a plain number: 12, -3.5, .5, 1e3, Infinity.
_NUMBER_RE = re.compile(r"^[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|Infinity)$")
_BOOLEAN_RE = re.compile(r"^(?:TRUE|FALSE)$", re.IGNORECASE)


class SnapshotError(ValueError):
    """A saved sheet snapshot is malformed."""


def parse_literal(text: str) -> CellValue:
    """Classify non-formula text: number, then boolean, then string."""
    if _NUMBER_RE.match(text):
        return NumberValue(float(text.replace("Infinity", "inf")))
    if _BOOLEAN_RE.match(text):
        return BooleanValue(text.upper() == "TRUE")
    return StringValue(text)


class Sheet:
    """A fixed-size grid bound to one :class:`DependencyGraph`.

    Usage::

        sheet = Sheet()
        sheet["A1"] = "2"
        sheet["B1"] = "=A1*3"
        sheet.display("B1")  # "6"
        saved = sheet.to_json()
        restored = Sheet.from_json(saved)
    """

    __slots__ = ("_engine", "_texts", "column_widths", "row_heights", "note")

    def __init__(
        self,
        columns: int = DEFAULT_COLUMNS,
        rows: int = DEFAULT_ROWS,
        engine: DependencyGraph | None = None,
        note: str = "",
    ) -> None:
        if columns < 1 or rows < 1:
            raise ValueError(f"Sheet needs at least one column and row, got {columns}x{rows}")
        self._engine = engine if engine is not None else DependencyGraph()
        # cell id -> text as typed (stripped), for re-editing and snapshots
        self._texts: dict[str, str] = {}
        self.column_widths: list[int] = [DEFAULT_COLUMN_WIDTH] * columns
        self.row_heights: list[int] = [DEFAULT_ROW_HEIGHT] * rows
        # shown in A1 while that cell is empty
        self.note = note

    @property
    def engine(self) -> DependencyGraph:
        return self._engine

    @property
    def column_labels(self) -> list[str]:
        return [column_label(i) for i in range(1, len(self.column_widths) + 1)]

    @property
    def row_labels(self) -> list[int]:
        return list(range(1, len(self.row_heights) + 1))

    # ------------------------------------------------------------------
    # Cell access
    # ------------------------------------------------------------------

    def __getitem__(self, key: str) -> CellValue:
        """``sheet['A1']`` -> the cell's current value."""
        return self._engine.get_cell(self._key(key)).value

    def __setitem__(self, key: str, text: str) -> None:
        """``sheet['A1'] = '=B1+1'`` - shorthand for :meth:`edit`."""
        self.edit(key, text)

    def edit(self, cell_id: str, text: str) -> RecalcResult:
        """Apply a user's text edit to a cell.

        Empty text clears the cell.  Text starting with ``=`` is parsed as a
        formula; a parse failure is stored as an error value.  Anything else
        is a number, a boolean (``TRUE``/``FALSE``) or a string, in that order.
        """
        key = self._key(cell_id)
        text = text.strip()
        if not text:
            self._texts.pop(key, None)
            return self._engine.set_value(key, EMPTY)

        self._texts[key] = text
        if text.startswith("="):
            try:
                expr = parse_formula(text[1:])
            except FormulaParseError as e:
                logger.debug("Cannot parse %r in %s: %s", text, key, e)
                return self._engine.set_value(key, ErrorValue(str(e)))
            return self._engine.set_formula(key, expr, text)
        return self._engine.set_value(key, parse_literal(text))

    def clear(self, cell_id: str) -> RecalcResult:
        return self.edit(cell_id, "")

    def display(self, cell_id: str) -> str:
        """Text rendered in the grid for *cell_id*.

        An empty A1 shows the sheet's :attr:`note`.
        """
        key = self._key(cell_id)
        value = self._engine.get_cell(key).value
        if key == "A1" and isinstance(value, EmptyValue):
            return self.note
        return display_text(value)

    def editor_text(self, cell_id: str) -> str:
        """Text placed in the cell editor when the user starts editing."""
        return self._text_of(self._key(cell_id))

    def _text_of(self, key: str) -> str:
        if key in self._texts:
            return self._texts[key]
        node = self._engine.get_cell(key)
        if node.raw:
            return node.raw
        value = node.value
        if isinstance(value, NumberValue):
            return format_number(value.value)
        if isinstance(value, BooleanValue):
            return "TRUE" if value.value else "FALSE"
        if isinstance(value, StringValue):
            return value.value
        return ""

    def iter_rows(self) -> Iterator[list[str]]:
        """Yield each grid row as a list of display strings."""
        n_cols = len(self.column_widths)
        for row in self.row_labels:
            yield [self.display(rowcol_to_a1(row, col)) for col in range(1, n_cols + 1)]

    def _key(self, cell_id: str) -> str:
        key = normalize_cell_id(cell_id)
        if not is_cell_id(key):
            raise ValueError(f"Invalid cell id: {cell_id!r}")
        return key

    # ------------------------------------------------------------------
    # Sizing
    # ------------------------------------------------------------------

    def resize_column(self, index: int, width: int) -> int:
        """Set a 0-based column's width, clamped to ``MIN_COLUMN_WIDTH``."""
        self.column_widths[index] = max(MIN_COLUMN_WIDTH, int(width))
        return self.column_widths[index]

    def resize_row(self, index: int, height: int) -> int:
        """Set a 0-based row's height, clamped to ``MIN_ROW_HEIGHT``."""
        self.row_heights[index] = max(MIN_ROW_HEIGHT, int(height))
        return self.row_heights[index]

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def to_snapshot(self) -> dict[str, Any]:
        """Raw text of every non-empty cell plus column widths and row heights."""
        cells: dict[str, str] = {}
        for cell_id in self._engine:
            text = self._text_of(cell_id)
            if text:
                cells[cell_id] = text
        return {
            "cells": cells,
            "columnWidths": list(self.column_widths),
            "rowHeights": list(self.row_heights),
        }

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(self.to_snapshot(), **kwargs)

    @classmethod
    def from_snapshot(
        cls,
        data: Any,
        engine: DependencyGraph | None = None,
        note: str = "",
    ) -> Sheet:
        """Rebuild a sheet by replaying every saved text through :meth:`edit`."""
        if not isinstance(data, dict):
            raise SnapshotError("Snapshot must be an object")
        cells = data.get("cells", {})
        widths = data.get("columnWidths", [DEFAULT_COLUMN_WIDTH] * DEFAULT_COLUMNS)
        heights = data.get("rowHeights", [DEFAULT_ROW_HEIGHT] * DEFAULT_ROWS)
        if not isinstance(cells, dict):
            raise SnapshotError("Snapshot 'cells' must be an object")
        for name, sizes in (("columnWidths", widths), ("rowHeights", heights)):
            if not isinstance(sizes, list) or not sizes:
                raise SnapshotError(f"Snapshot {name!r} must be a non-empty list")
            if not all(isinstance(s, (int, float)) and not isinstance(s, bool) for s in sizes):
                raise SnapshotError(f"Snapshot {name!r} must contain numbers")
            if not all(isinstance(s, int) or math.isfinite(s) for s in sizes):
                raise SnapshotError(f"Snapshot {name!r} must contain finite numbers")

        sheet = cls(columns=len(widths), rows=len(heights), engine=engine, note=note)
        for i, width in enumerate(widths):
            sheet.resize_column(i, width)
        for i, height in enumerate(heights):
            sheet.resize_row(i, height)

        for cell_id, text in cells.items():
            if not isinstance(cell_id, str) or not isinstance(text, str):
                raise SnapshotError(f"Bad snapshot entry: {cell_id!r}")
            if not is_cell_id(cell_id):
                raise SnapshotError(f"Bad snapshot cell id: {cell_id!r}")
            sheet.edit(cell_id, text)
        logger.debug("Restored %d cells from snapshot", len(cells))
        return sheet

    @classmethod
    def from_json(
        cls,
        text: str | bytes,
        engine: DependencyGraph | None = None,
        note: str = "",
    ) -> Sheet:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SnapshotError(f"Snapshot is not valid JSON: {e}") from e
        return cls.from_snapshot(data, engine=engine, note=note)
