"""gridcalc - reactive spreadsheet formula engine.

Usage::

    from gridcalc import Sheet

    sheet = Sheet()
    sheet["A1"] = "2"
    sheet["B1"] = "=A1*3"
    sheet["C1"] = "=SUM(A1,B1)"
    print(sheet.display("C1"))  # 8

    sheet["A1"] = "5"
    print(sheet.display("C1"))  # 20

Lower level, the engine works on parsed expression trees::

    from gridcalc.calc import DependencyGraph, NumberValue, parse_formula

    graph = DependencyGraph()
    graph.set_value("A1", NumberValue(5))
    graph.set_formula("B1", parse_formula("A1+1"), "=A1+1")
    graph.get_cell("B1").value  # NumberValue(value=6.0)
"""

from gridcalc._sheet import Sheet, SnapshotError
from gridcalc.calc import (
    EMPTY,
    BooleanValue,
    CellValue,
    DependencyGraph,
    EmptyValue,
    ErrorValue,
    FormulaError,
    FormulaParseError,
    NumberValue,
    StringValue,
    parse_formula,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "BooleanValue",
    "CellValue",
    "DependencyGraph",
    "EMPTY",
    "EmptyValue",
    "ErrorValue",
    "FormulaError",
    "FormulaParseError",
    "NumberValue",
    "Sheet",
    "SnapshotError",
    "StringValue",
    "parse_formula",
]
