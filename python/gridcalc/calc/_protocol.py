"""CalcEngine protocol and result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from gridcalc.calc._values import CellValue

if TYPE_CHECKING:
    from gridcalc.calc._graph import CellNode
    from gridcalc.calc._parser import Expr


@dataclass(frozen=True)
class CellDelta:
    """A single cell's value change from one edit."""

    cell_id: str
    old_value: CellValue
    new_value: CellValue
    raw: str | None = None  # the formula text that produced new_value


@dataclass(frozen=True)
class RecalcResult:
    """Outcome of one mutation and its recompute pass."""

    cell_id: str  # the edited cell
    deltas: tuple[CellDelta, ...]  # cells whose value changed
    evaluated_cells: int = 0  # dirty nodes visited by the pass
    rejected: bool = False  # formula refused because of a cycle

    @property
    def changed(self) -> frozenset[str]:
        return frozenset(d.cell_id for d in self.deltas)


@runtime_checkable
class CalcEngine(Protocol):
    """Protocol for reactive cell stores."""

    def get_cell(self, cell_id: str) -> CellNode:
        """Return the node for *cell_id*, creating an empty one if needed."""
        ...

    def set_value(self, cell_id: str, value: CellValue) -> RecalcResult:
        """Assign a plain value and recompute dependents."""
        ...

    def set_formula(
        self, cell_id: str, expr: Expr, raw: str | None = None,
    ) -> RecalcResult:
        """Install a parsed formula and recompute dependents."""
        ...
