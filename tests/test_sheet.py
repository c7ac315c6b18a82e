"""Tests for the Sheet host layer: edits, display, sizing and snapshots."""

from __future__ import annotations

import json

import pytest

from gridcalc import (
    EMPTY,
    BooleanValue,
    DependencyGraph,
    ErrorValue,
    NumberValue,
    Sheet,
    SnapshotError,
    StringValue,
)
from gridcalc._sheet import MIN_COLUMN_WIDTH, MIN_ROW_HEIGHT, parse_literal
from gridcalc._utils import (
    a1_to_rowcol,
    column_index,
    column_label,
    is_cell_id,
    rowcol_to_a1,
)


class TestParseLiteral:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("42", NumberValue(42)),
            ("-3.5", NumberValue(-3.5)),
            (".5", NumberValue(0.5)),
            ("1e3", NumberValue(1000)),
            ("Infinity", NumberValue(float("inf"))),
            ("true", BooleanValue(True)),
            ("FALSE", BooleanValue(False)),
            ("hello", StringValue("hello")),
            ("nan", StringValue("nan")),
            ("12abc", StringValue("12abc")),
        ],
    )
    def test_classification(self, text: str, expected) -> None:
        assert parse_literal(text) == expected


class TestEdit:
    def test_number(self) -> None:
        sheet = Sheet()
        sheet["A1"] = "12"
        assert sheet["A1"] == NumberValue(12)

    def test_formula(self) -> None:
        sheet = Sheet()
        sheet["A1"] = "2"
        sheet["B1"] = "=A1*3"
        assert sheet["B1"] == NumberValue(6)
        assert sheet.engine.get_cell("B1").raw == "=A1*3"

    def test_whitespace_stripped(self) -> None:
        sheet = Sheet()
        sheet["A1"] = "  = 1 + 1 "
        assert sheet["A1"] == NumberValue(2)
        assert sheet.editor_text("A1") == "= 1 + 1"

    def test_parse_error_becomes_error_value(self) -> None:
        sheet = Sheet()
        sheet["A1"] = "=1+"
        assert sheet["A1"] == ErrorValue("Unexpected end of formula")
        assert sheet.display("A1") == "Unexpected end of formula"

    def test_overly_nested_formula_becomes_error_value(self) -> None:
        sheet = Sheet()
        sheet["B1"] = "=A1+1"
        sheet["A1"] = "=" + "(" * 5000 + "1" + ")" * 5000
        assert sheet["A1"] == ErrorValue("Formula nested too deeply")
        assert sheet["B1"] == ErrorValue("Formula nested too deeply")

    def test_long_formula_evaluates(self) -> None:
        sheet = Sheet()
        sheet["A1"] = "=" + "+".join(["1"] * 1200)
        assert sheet.display("A1") == "1200"

    def test_parse_error_propagates_to_readers(self) -> None:
        sheet = Sheet()
        sheet["B1"] = "=A1+1"
        sheet["A1"] = "=SUM"
        assert sheet["B1"] == ErrorValue("Expected call syntax")

    def test_empty_text_clears(self) -> None:
        sheet = Sheet()
        sheet["A1"] = "5"
        sheet["B1"] = "=A1"
        sheet["A1"] = "   "
        assert sheet["A1"] == EMPTY
        assert sheet["B1"] == NumberValue(0)
        assert sheet.editor_text("A1") == ""

    def test_clear(self) -> None:
        sheet = Sheet()
        sheet["C3"] = "x"
        sheet.clear("c3")
        assert sheet["C3"] == EMPTY

    def test_lowercase_ids(self) -> None:
        sheet = Sheet()
        sheet["a1"] = "4"
        sheet["b1"] = "=a1+1"
        assert sheet["B1"] == NumberValue(5)

    def test_invalid_id(self) -> None:
        sheet = Sheet()
        with pytest.raises(ValueError, match="Invalid cell id"):
            sheet["11"] = "3"

    def test_returns_recalc_result(self) -> None:
        sheet = Sheet()
        sheet["B1"] = "=A1*2"
        result = sheet.edit("A1", "3")
        assert result.changed == {"A1", "B1"}

    def test_cycle_rejected(self) -> None:
        sheet = Sheet()
        sheet["A1"] = "=B1"
        sheet["B1"] = "=A1"
        assert sheet.display("B1") == "Cycle detected"
        assert sheet.editor_text("B1") == "=A1"


class TestDisplay:
    @pytest.mark.parametrize(
        ("text", "shown"),
        [
            ("6", "6"),
            ("1.5", "1.5"),
            ("=1/0", "Infinity"),
            ("=(0-1)/0", "-Infinity"),
            ("=0/0", "NaN"),
            ("true", "TRUE"),
            ("words", "words"),
            ("=FOO()", "Unknown function: FOO"),
        ],
    )
    def test_values(self, text: str, shown: str) -> None:
        sheet = Sheet()
        sheet["A1"] = text
        assert sheet.display("A1") == shown

    def test_empty(self) -> None:
        assert Sheet().display("H8") == ""

    def test_note_in_empty_a1(self) -> None:
        sheet = Sheet(note="Quarterly totals")
        assert sheet.display("a1") == "Quarterly totals"
        assert sheet.display("B1") == ""
        assert sheet.editor_text("A1") == ""
        assert next(sheet.iter_rows())[0] == "Quarterly totals"

    def test_note_hidden_once_a1_has_value(self) -> None:
        sheet = Sheet(note="Quarterly totals")
        sheet["A1"] = "5"
        assert sheet.display("A1") == "5"
        sheet.clear("A1")
        assert sheet.display("A1") == "Quarterly totals"

    def test_note_not_saved(self) -> None:
        sheet = Sheet(note="Quarterly totals")
        assert sheet.to_snapshot()["cells"] == {}
        restored = Sheet.from_json(sheet.to_json(), note="Restored")
        assert restored.display("A1") == "Restored"

    def test_editor_text_for_engine_values(self) -> None:
        """Values set straight on the engine render for editing."""
        sheet = Sheet()
        sheet.engine.set_value("A1", NumberValue(2.0))
        sheet.engine.set_value("A2", BooleanValue(False))
        assert sheet.editor_text("A1") == "2"
        assert sheet.editor_text("A2") == "FALSE"

    def test_iter_rows(self) -> None:
        sheet = Sheet(columns=2, rows=2)
        sheet["A1"] = "1"
        sheet["B2"] = "=A1+1"
        assert list(sheet.iter_rows()) == [["1", ""], ["", "2"]]


class TestSizing:
    def test_defaults(self) -> None:
        sheet = Sheet()
        assert sheet.column_labels == ["A", "B", "C", "D", "E", "F", "G", "H"]
        assert sheet.row_labels == [1, 2, 3, 4, 5, 6, 7, 8]
        assert sheet.column_widths == [80] * 8
        assert sheet.row_heights == [48] * 8

    def test_resize_clamps(self) -> None:
        sheet = Sheet()
        assert sheet.resize_column(0, 10) == MIN_COLUMN_WIDTH
        assert sheet.resize_row(7, 5) == MIN_ROW_HEIGHT
        assert sheet.resize_column(1, 120) == 120

    def test_resize_out_of_range(self) -> None:
        with pytest.raises(IndexError):
            Sheet().resize_column(8, 100)

    def test_needs_one_cell(self) -> None:
        with pytest.raises(ValueError):
            Sheet(columns=0)


class TestSnapshot:
    def _sample(self) -> Sheet:
        sheet = Sheet()
        sheet["A1"] = "2"
        sheet["B1"] = "=A1*3"
        sheet["C1"] = "=B1+1"
        sheet["D1"] = "note"
        sheet["E1"] = "=1+"
        sheet.resize_column(1, 150)
        sheet.resize_row(2, 60)
        return sheet

    def test_shape(self) -> None:
        snap = self._sample().to_snapshot()
        assert snap["cells"] == {
            "A1": "2",
            "B1": "=A1*3",
            "C1": "=B1+1",
            "D1": "note",
            "E1": "=1+",
        }
        assert snap["columnWidths"][1] == 150
        assert snap["rowHeights"][2] == 60

    def test_empty_cells_omitted(self) -> None:
        sheet = Sheet()
        sheet["A1"] = "=Z9"
        sheet["B1"] = "x"
        sheet["B1"] = ""
        assert sheet.to_snapshot()["cells"] == {"A1": "=Z9"}

    def test_row_zero_reference_is_skipped(self) -> None:
        sheet = Sheet()
        sheet["A1"] = "=A0+1"
        assert sheet["A1"] == NumberValue(1)
        assert sheet.to_snapshot()["cells"] == {"A1": "=A0+1"}

    def test_json_restores_values(self) -> None:
        restored = Sheet.from_json(self._sample().to_json())
        assert restored["C1"] == NumberValue(7)
        assert restored["D1"] == StringValue("note")
        assert restored["E1"] == ErrorValue("Unexpected end of formula")
        assert restored.column_widths[1] == 150
        assert restored.row_heights[2] == 60

    def test_replay_order_independent(self) -> None:
        data = {"cells": {"C1": "=B1+1", "B1": "=A1*3", "A1": "2"}}
        restored = Sheet.from_snapshot(data)
        assert restored["C1"] == NumberValue(7)

    def test_uses_given_engine(self) -> None:
        engine = DependencyGraph()
        sheet = Sheet.from_snapshot({"cells": {"A1": "1"}}, engine=engine)
        assert sheet.engine is engine
        assert engine.get_cell("A1").value == NumberValue(1)

    def test_sheet_size_from_snapshot(self) -> None:
        data = {"cells": {}, "columnWidths": [80, 90, 100], "rowHeights": [48]}
        restored = Sheet.from_snapshot(data)
        assert restored.column_labels == ["A", "B", "C"]
        assert restored.row_labels == [1]

    @pytest.mark.parametrize(
        "data",
        [
            [],
            {"cells": []},
            {"cells": {"A1": 3}},
            {"cells": {"not a cell": "1"}},
            {"columnWidths": []},
            {"rowHeights": ["tall"]},
        ],
    )
    def test_malformed(self, data) -> None:
        with pytest.raises(SnapshotError):
            Sheet.from_snapshot(data)

    @pytest.mark.parametrize(
        "text",
        [
            '{"cells": {}, "columnWidths": [Infinity], "rowHeights": [48]}',
            '{"cells": {}, "columnWidths": [80], "rowHeights": [NaN]}',
            '{"cells": {}, "columnWidths": [80], "rowHeights": [-Infinity]}',
        ],
    )
    def test_non_finite_sizes(self, text: str) -> None:
        with pytest.raises(SnapshotError, match="finite"):
            Sheet.from_json(text)

    def test_invalid_json(self) -> None:
        with pytest.raises(SnapshotError, match="not valid JSON"):
            Sheet.from_json("{nope")

    def test_to_json_kwargs(self) -> None:
        text = Sheet().to_json(sort_keys=True)
        assert json.loads(text)["cells"] == {}


class TestUtils:
    def test_column_labels(self) -> None:
        assert column_label(1) == "A"
        assert column_label(26) == "Z"
        assert column_label(27) == "AA"
        assert column_index("ab") == 28

    def test_a1_round_trip(self) -> None:
        assert a1_to_rowcol("C12") == (12, 3)
        assert rowcol_to_a1(12, 3) == "C12"

    def test_invalid(self) -> None:
        with pytest.raises(ValueError):
            a1_to_rowcol("12C")
        with pytest.raises(ValueError):
            column_label(0)
        assert not is_cell_id("A0")
        assert is_cell_id(" b7 ")
