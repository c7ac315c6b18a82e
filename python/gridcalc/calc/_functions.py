"""Function registry and builtin implementations for formula evaluation."""

from __future__ import annotations

from typing import Any, Callable

# ---------------------------------------------------------------------------
# Builtin implementations - each takes a list of evaluated argument values.
# ---------------------------------------------------------------------------


def _coerce_numeric(values: list[Any]) -> list[float]:
    """Coerce values to floats, skipping text.

    Booleans count as 1/0, matching arithmetic on unwrapped cell values.
    """
    result: list[float] = []
    for v in values:
        if isinstance(v, (bool, int, float)):
            result.append(float(v))
        # Skip str
    return result


def _builtin_sum(args: list[Any]) -> float:
    return sum(_coerce_numeric(args))


_BUILTINS: dict[str, Callable[[list[Any]], Any]] = {
    "SUM": _builtin_sum,
}


class FunctionRegistry:
    """Registry of callable function implementations.

    Starts with builtins and can be extended with custom functions.
    """

    def __init__(self) -> None:
        self._functions: dict[str, Callable[[list[Any]], Any]] = dict(_BUILTINS)

    def register(self, name: str, func: Callable[[list[Any]], Any]) -> None:
        self._functions[name.upper()] = func

    def get(self, name: str) -> Callable[[list[Any]], Any] | None:
        return self._functions.get(name.upper())

    def has(self, name: str) -> bool:
        return name.upper() in self._functions

    @property
    def supported_functions(self) -> frozenset[str]:
        return frozenset(self._functions.keys())
