"""Reactive dependency graph: one node per cell, bidirectional edges."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field

from gridcalc.calc._evaluator import evaluate
from gridcalc.calc._functions import FunctionRegistry
from gridcalc.calc._parser import Expr, references
from gridcalc.calc._protocol import CellDelta, RecalcResult
from gridcalc.calc._values import CYCLE_MESSAGE, EMPTY, CellValue, ErrorValue, same_value

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class CellNode:
    """A cell in the graph.

    ``deps`` are the cells this formula reads; ``users`` are the cells whose
    formulas read this one.  Both sides are only mutated by
    :class:`DependencyGraph`.
    """

    id: str
    formula: Expr | None = None
    raw: str | None = None
    value: CellValue = EMPTY
    deps: set[str] = field(default_factory=set)
    users: set[str] = field(default_factory=set)
    dirty: bool = False


class DependencyGraph:
    """Tracks cell nodes and recomputes dirty formulas after every edit.

    All cell ids use uppercase A1 form.  With ``single_sweep=True`` the
    recompute pass visits dirty nodes once in creation order, which can leave
    deep chains stale until a later edit; the default evaluates dirty nodes in
    topological order so every chain converges in one pass.
    """

    __slots__ = ("cells", "functions", "single_sweep")

    def __init__(
        self,
        functions: FunctionRegistry | None = None,
        single_sweep: bool = False,
    ) -> None:
        # cell id -> node, in creation order
        self.cells: dict[str, CellNode] = {}
        self.functions = functions if functions is not None else FunctionRegistry()
        self.single_sweep = single_sweep

    def __contains__(self, cell_id: object) -> bool:
        return isinstance(cell_id, str) and cell_id.strip().upper() in self.cells

    def __len__(self) -> int:
        return len(self.cells)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self.cells))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_cell(self, cell_id: str) -> CellNode:
        """Return the node for *cell_id*, creating an empty one on first use."""
        key = cell_id.strip().upper()
        node = self.cells.get(key)
        if node is None:
            node = CellNode(key)
            self.cells[key] = node
        return node

    def set_value(self, cell_id: str, value: CellValue) -> RecalcResult:
        """Assign a plain value, then recompute everything downstream."""
        node = self.get_cell(cell_id)
        old_value = node.value
        self._detach(node)
        node.formula = None
        node.raw = None
        node.value = value
        return self._propagate(node, old_value)

    def set_formula(self, cell_id: str, expr: Expr, raw: str | None = None) -> RecalcResult:
        """Install a parsed formula on *cell_id*.

        The whole dependency set is cycle-checked before any edge is
        committed.  A rejected formula leaves the cell holding
        ``ErrorValue("Cycle detected")`` with no formula and no edges, and
        runs no recompute pass.
        """
        node = self.get_cell(cell_id)
        old_value = node.value
        self._detach(node)

        deps = {d.upper() for d in references(expr)}
        for dep in sorted(deps):
            if self._creates_cycle(node.id, dep):
                logger.debug("Rejected formula for %s: %s reaches it", node.id, dep)
                node.formula = None
                node.raw = None
                node.value = ErrorValue(CYCLE_MESSAGE)
                node.dirty = False
                deltas: tuple[CellDelta, ...] = ()
                if not same_value(node.value, old_value):
                    deltas = (CellDelta(node.id, old_value, node.value, raw),)
                return RecalcResult(node.id, deltas, rejected=True)

        for dep in deps:
            node.deps.add(dep)
            self.get_cell(dep).users.add(node.id)
        node.formula = expr
        node.raw = raw
        return self._propagate(node, old_value)

    def dependents(self, cell_id: str) -> list[str]:
        """Every cell that transitively reads *cell_id*, breadth-first."""
        start = self.cells.get(cell_id.strip().upper())
        if start is None:
            return []
        order: list[str] = []
        visited: set[str] = {start.id}
        queue: deque[str] = deque(sorted(start.users))
        while queue:
            cur = queue.popleft()
            if cur in visited:
                continue
            visited.add(cur)
            order.append(cur)
            queue.extend(sorted(self.cells[cur].users))
        return order

    def recompute(self) -> list[str]:
        """Evaluate every dirty node once and clear its flag.

        Returns the ids evaluated, in evaluation order.
        """
        order = self._evaluation_order()
        for cell_id in order:
            node = self.cells[cell_id]
            node.value = evaluate(node, self._lookup, self.functions)
            node.dirty = False
        return order

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lookup(self, cell_id: str) -> CellValue:
        return self.get_cell(cell_id).value

    def _detach(self, node: CellNode) -> None:
        """Drop *node*'s outgoing edges on both sides."""
        for dep in node.deps:
            self.get_cell(dep).users.discard(node.id)
        node.deps.clear()

    def _propagate(self, node: CellNode, old_value: CellValue) -> RecalcResult:
        self._mark_dirty_downstream(node.id)
        before = {cid: n.value for cid, n in self.cells.items() if n.dirty}
        before[node.id] = old_value
        evaluated = self.recompute()

        deltas: list[CellDelta] = []
        for cell_id in evaluated:
            current = self.cells[cell_id]
            if not same_value(current.value, before[cell_id]):
                deltas.append(CellDelta(cell_id, before[cell_id], current.value, current.raw))
        return RecalcResult(node.id, tuple(deltas), evaluated_cells=len(evaluated))

    def _mark_dirty_downstream(self, cell_id: str) -> None:
        """Mark *cell_id* and all of its transitive users dirty (BFS)."""
        queue: deque[str] = deque([cell_id])
        visited: set[str] = set()
        while queue:
            cur = queue.popleft()
            if cur in visited:
                continue
            visited.add(cur)
            node = self.get_cell(cur)
            node.dirty = True
            queue.extend(node.users)

    def _creates_cycle(self, start: str, dep: str) -> bool:
        """True if adding the edge ``start -> dep`` would close a cycle.

        Depth-first search from *dep* along existing ``deps`` edges; each node
        is visited at most once.
        """
        stack = [dep]
        visited: set[str] = set()
        while stack:
            cur = stack.pop()
            if cur == start:
                return True
            if cur in visited:
                continue
            visited.add(cur)
            node = self.cells.get(cur)
            if node is not None:
                stack.extend(node.deps)
        return False

    def _evaluation_order(self) -> list[str]:
        """Dirty node ids in the order the recompute pass evaluates them.

        Topological mode uses Kahn's algorithm over the dirty subgraph,
        seeded in creation order.
        """
        dirty = [cid for cid, n in self.cells.items() if n.dirty]
        if self.single_sweep or len(dirty) <= 1:
            return dirty

        dirty_set = set(dirty)
        in_degree: dict[str, int] = {
            cid: len(self.cells[cid].deps & dirty_set) for cid in dirty
        }
        queue: deque[str] = deque(cid for cid in dirty if in_degree[cid] == 0)
        order: list[str] = []
        while queue:
            cid = queue.popleft()
            order.append(cid)
            for user in sorted(self.cells[cid].users):
                if user in dirty_set:
                    in_degree[user] -= 1
                    if in_degree[user] == 0:
                        queue.append(user)

        if len(order) != len(dirty):
            # Unreachable while cycles are refused at assignment.
            placed = set(order)
            order.extend(cid for cid in dirty if cid not in placed)
        return order
