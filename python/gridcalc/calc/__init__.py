"""gridcalc.calc - Formula parsing, dependency tracking and evaluation."""

from gridcalc.calc._evaluator import EvaluationError, evaluate
from gridcalc.calc._functions import FunctionRegistry
from gridcalc.calc._graph import CellNode, DependencyGraph
from gridcalc.calc._parser import (
    Binary,
    Call,
    Expr,
    FormulaError,
    FormulaParseError,
    Literal,
    Ref,
    parse_expr_from_string,
    parse_formula,
    references,
)
from gridcalc.calc._protocol import CalcEngine, CellDelta, RecalcResult
from gridcalc.calc._values import (
    CYCLE_MESSAGE,
    EMPTY,
    BooleanValue,
    CellValue,
    EmptyValue,
    ErrorValue,
    NumberValue,
    StringValue,
)

__all__ = [
    "Binary",
    "BooleanValue",
    "CYCLE_MESSAGE",
    "CalcEngine",
    "Call",
    "CellDelta",
    "CellNode",
    "CellValue",
    "DependencyGraph",
    "EMPTY",
    "EmptyValue",
    "ErrorValue",
    "EvaluationError",
    "Expr",
    "FormulaError",
    "FormulaParseError",
    "FunctionRegistry",
    "Literal",
    "NumberValue",
    "RecalcResult",
    "Ref",
    "StringValue",
    "evaluate",
    "parse_expr_from_string",
    "parse_formula",
    "references",
]
