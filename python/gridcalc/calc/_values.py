"""Cell values: a closed tagged union of immutable records.

Every cell holds exactly one of :class:`NumberValue`, :class:`StringValue`,
:class:`BooleanValue`, :class:`ErrorValue` or :class:`EmptyValue`.  Each
variant carries a ``kind`` tag matching the names used by the host page
(``"number"``, ``"string"``, ``"boolean"``, ``"error"``, ``"empty"``).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, ClassVar, Union


@dataclass(frozen=True)
class NumberValue:
    value: float
    kind: ClassVar[str] = "number"


@dataclass(frozen=True)
class StringValue:
    value: str
    kind: ClassVar[str] = "string"


@dataclass(frozen=True)
class BooleanValue:
    value: bool
    kind: ClassVar[str] = "boolean"


@dataclass(frozen=True)
class ErrorValue:
    """An evaluation failure captured into a cell."""

    message: str
    kind: ClassVar[str] = "error"


@dataclass(frozen=True)
class EmptyValue:
    kind: ClassVar[str] = "empty"


CellValue = Union[NumberValue, StringValue, BooleanValue, ErrorValue, EmptyValue]

EMPTY = EmptyValue()

CYCLE_MESSAGE = "Cycle detected"
UNSUPPORTED_RESULT_MESSAGE = "Unsupported result"


def wrap(result: Any) -> CellValue:
    """Tag a raw Python evaluation result.

    ``bool`` is checked before numbers because it subclasses ``int``.
    """
    if isinstance(result, bool):
        return BooleanValue(result)
    if isinstance(result, (int, float)):
        return NumberValue(float(result))
    if isinstance(result, str):
        return StringValue(result)
    return ErrorValue(UNSUPPORTED_RESULT_MESSAGE)


def same_value(a: CellValue, b: CellValue) -> bool:
    """Value equality where two NaN numbers count as the same value."""
    if isinstance(a, NumberValue) and isinstance(b, NumberValue):
        return a.value == b.value or (math.isnan(a.value) and math.isnan(b.value))
    return a == b


def format_number(value: float) -> str:
    """Shortest display form of a float: ``6``, ``1.5``, ``Infinity``, ``NaN``."""
    value = float(value)
    if value != value:
        return "NaN"
    if value == float("inf"):
        return "Infinity"
    if value == float("-inf"):
        return "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def display_text(value: CellValue) -> str:
    """Text shown in a grid cell for *value*."""
    if isinstance(value, ErrorValue):
        return value.message
    if isinstance(value, NumberValue):
        return format_number(value.value)
    if isinstance(value, BooleanValue):
        return "TRUE" if value.value else "FALSE"
    if isinstance(value, StringValue):
        return value.value
    return ""
