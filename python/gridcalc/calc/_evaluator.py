"""Expression evaluator: walks a parsed formula against current cell values.

Evaluation failures never escape :func:`evaluate`.  They are raised as
:class:`EvaluationError` while walking the tree and converted into an
:class:`~gridcalc.calc._values.ErrorValue` at the top, so one bad formula
cannot abort recomputation of unrelated cells.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any, Callable

from gridcalc.calc._functions import FunctionRegistry
from gridcalc.calc._parser import Binary, Call, Expr, FormulaError, Literal, Ref
from gridcalc.calc._values import (
    BooleanValue,
    CellValue,
    EmptyValue,
    ErrorValue,
    NumberValue,
    StringValue,
    format_number,
    wrap,
)

if TYPE_CHECKING:
    from gridcalc.calc._graph import CellNode

logger = logging.getLogger(__name__)

CellLookup = Callable[[str], CellValue]

_DEFAULT_FUNCTIONS = FunctionRegistry()


class EvaluationError(FormulaError):
    """Raised while walking a formula; always captured into the cell."""


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


def _divide(left: float, right: float) -> float:
    """IEEE 754 division: ``x/0`` is signed infinity, ``0/0`` is NaN."""
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


def _as_text(val: Any) -> str:
    if isinstance(val, bool):
        return "true" if val else "false"
    if isinstance(val, (int, float)):
        return format_number(float(val))
    return str(val)


def _binary_op(left: Any, op: str, right: Any) -> Any:
    """Apply an arithmetic operator to two unwrapped values."""
    if isinstance(left, str) or isinstance(right, str):
        if op == '+':
            return _as_text(left) + _as_text(right)
        raise EvaluationError(f"Cannot apply {op} to string")
    if op == '+':
        return left + right
    if op == '-':
        return left - right
    if op == '*':
        return left * right
    if op == '/':
        return _divide(float(left), float(right))
    raise EvaluationError(f"Unknown operator: {op}")


# ---------------------------------------------------------------------------
# Tree walk
# ---------------------------------------------------------------------------


def _unwrap(cell: str, value: CellValue) -> Any:
    if isinstance(value, ErrorValue):
        raise EvaluationError(value.message)
    if isinstance(value, EmptyValue):
        return 0.0
    if isinstance(value, (NumberValue, StringValue, BooleanValue)):
        return value.value
    raise EvaluationError(f"Unsupported value in {cell}")


def evaluate_expr(expr: Expr, lookup: CellLookup, functions: FunctionRegistry) -> Any:
    """Evaluate *expr* to a raw Python value, raising on failure.

    The tree is walked post-order with an explicit stack, so long operator
    chains (which parse as left-deep trees) never touch the recursion limit.
    Operands are evaluated left to right.
    """
    # (node, operands_ready); finished operand values collect on ``results``.
    pending: list[tuple[Expr, bool]] = [(expr, False)]
    results: list[Any] = []
    while pending:
        node, ready = pending.pop()
        if isinstance(node, Literal):
            results.append(node.value)
        elif isinstance(node, Ref):
            results.append(_unwrap(node.cell, lookup(node.cell)))
        elif isinstance(node, Binary):
            if ready:
                right = results.pop()
                left = results.pop()
                results.append(_binary_op(left, node.op, right))
            else:
                pending.append((node, True))
                pending.append((node.right, False))
                pending.append((node.left, False))
        elif isinstance(node, Call):
            func = functions.get(node.fn)
            if func is None:
                raise EvaluationError(f"Unknown function: {node.fn}")
            if ready:
                split = len(results) - len(node.args)
                args = results[split:]
                del results[split:]
                results.append(func(args))
            else:
                pending.append((node, True))
                pending.extend((arg, False) for arg in reversed(node.args))
        else:
            raise EvaluationError(f"Unsupported expression: {node!r}")
    return results[0]


def evaluate(
    node: CellNode,
    lookup: CellLookup,
    functions: FunctionRegistry | None = None,
) -> CellValue:
    """Compute the value of *node*.

    A node without a formula keeps its stored value.  Errors raised during
    the walk, including errors propagated from referenced cells, become an
    ``ErrorValue`` carrying the message.
    """
    if node.formula is None:
        return node.value

    registry = functions if functions is not None else _DEFAULT_FUNCTIONS
    try:
        result = evaluate_expr(node.formula, lookup, registry)
    except Exception as e:
        logger.debug("Evaluation of %s failed: %s", node.id, e)
        return ErrorValue(str(e))
    return wrap(result)
