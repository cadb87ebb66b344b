"""Best-first GOAP planner and plan analysis utilities."""

from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from goaploop.io.logging import StructuredLogger

from .actions import Action
from .errors import NoPlanFoundError, SearchBudgetExceededError
from .models import PlanAnalysis, PlannerSettings, SearchStats

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from collections.abc import Iterable

    from .state import WorldState

_REASON_FOUND = "found"
_REASON_FRONTIER = "frontier_exhausted"
_REASON_COST = "cost_limit"
_REASON_ITERATIONS = "iteration_limit"


class Plan(BaseModel):
    """An ordered sequence of actions found by the planner."""

    actions: tuple[Action, ...] = ()
    cost: float = 0.0
    iterations: int = 0

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def names(self) -> list[str]:
        """Return the action names in execution order."""
        return [action.name for action in self.actions]

    @property
    def is_empty(self) -> bool:
        """Return ``True`` when no action is required."""
        return not self.actions

    def simulate(self, start: WorldState) -> WorldState:
        """Apply every action in order from ``start`` and return the result."""
        state = start
        for action in self.actions:
            state = action.apply(state)
        return state


@dataclass(order=True, slots=True)
class PlanNode:
    """Search frontier entry ordered by ``(f, sequence)``."""

    f: float
    sequence: int
    state: WorldState = field(compare=False)
    action: Action | None = field(default=None, compare=False)
    parent: PlanNode | None = field(default=None, compare=False)
    g: float = field(default=0.0, compare=False)
    h: int = field(default=0, compare=False)

    def path(self) -> list[Action]:
        """Walk parent links back to the root and return the actions in order."""
        actions: list[Action] = []
        node: PlanNode | None = self
        while node is not None and node.action is not None:
            actions.append(node.action)
            node = node.parent
        actions.reverse()
        return actions


def _default_logger() -> StructuredLogger:
    return StructuredLogger(name="goaploop.planner", level="WARNING")


class Planner:
    """Hold an action repertoire and search it for low-cost plans."""

    def __init__(
        self,
        actions: Iterable[Action] = (),
        *,
        settings: PlannerSettings | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Create a planner with an optional initial repertoire."""
        self._settings = settings or PlannerSettings()
        self._logger = logger or _default_logger()
        self._actions: dict[str, Action] = {}
        self._last_search: SearchStats | None = None
        self.add_actions(actions)

    @property
    def settings(self) -> PlannerSettings:
        """Return the planner limits."""
        return self._settings

    @property
    def actions(self) -> list[Action]:
        """Return a snapshot of the repertoire in registration order."""
        return list(self._actions.values())

    @property
    def last_search(self) -> SearchStats | None:
        """Return diagnostics for the most recent :meth:`generate_plan` call."""
        return self._last_search

    def add_action(self, action: Action) -> None:
        """Register ``action``, replacing any action with the same name."""
        if not isinstance(action, Action):
            msg = f"expected Action, got {type(action).__name__}"
            raise TypeError(msg)
        replaced = action.name in self._actions
        self._actions[action.name] = action
        self._logger.debug("action registered", action=action.name, replaced=replaced)

    def add_actions(self, actions: Iterable[Action]) -> None:
        """Register several actions in order."""
        for action in actions:
            self.add_action(action)

    def remove_action(self, name: str) -> Action | None:
        """Remove and return the action called ``name`` if present."""
        return self._actions.pop(name, None)

    def get_action(self, name: str) -> Action | None:
        """Return the action called ``name`` or ``None``."""
        return self._actions.get(name)

    def generate_plan(self, start: WorldState, goal: WorldState) -> Plan | None:
        """Search for a plan turning ``start`` into a state satisfying ``goal``.

        Nodes are expanded by ascending ``f = g + h`` with ties resolved in
        insertion order, so identical inputs always yield identical plans. The
        first dequeued node satisfying the goal wins. Returns ``None`` when the
        frontier empties or the iteration cap is reached.
        """
        settings = self._settings
        conditions = goal.facts
        repertoire = list(self._actions.values())

        sequence = 0
        h0 = start.distance_to(goal)
        frontier: list[PlanNode] = [PlanNode(f=float(h0), sequence=sequence, state=start, h=h0)]
        closed: set[str] = set()
        iterations = 0
        expanded = 0
        pruned = 0

        while frontier:
            if iterations >= settings.max_iterations:
                return self._fail(_REASON_ITERATIONS, iterations, expanded, pruned)
            iterations += 1
            node = heapq.heappop(frontier)

            if node.state.satisfies(conditions):
                actions = node.path()
                self._last_search = SearchStats(
                    found=True,
                    iterations=iterations,
                    expanded=expanded,
                    pruned=pruned,
                    reason=_REASON_FOUND,
                )
                self._logger.info(
                    "plan found",
                    actions=[action.name for action in actions],
                    cost=node.g,
                    iterations=iterations,
                )
                return Plan(actions=tuple(actions), cost=node.g, iterations=iterations)

            key = node.state.canonical_key()
            if key in closed:
                continue
            closed.add(key)
            expanded += 1

            for action in repertoire:
                if not action.is_applicable(node.state):
                    continue
                g = node.g + action.cost
                if g > settings.max_cost:
                    pruned += 1
                    continue
                successor = action.apply(node.state)
                if successor.canonical_key() in closed:
                    continue
                h = successor.distance_to(goal)
                sequence += 1
                heapq.heappush(
                    frontier,
                    PlanNode(
                        f=g + h,
                        sequence=sequence,
                        state=successor,
                        action=action,
                        parent=node,
                        g=g,
                        h=h,
                    ),
                )

        reason = _REASON_COST if pruned else _REASON_FRONTIER
        return self._fail(reason, iterations, expanded, pruned)

    def require_plan(self, start: WorldState, goal: WorldState) -> Plan:
        """Return a plan or raise :class:`NoPlanFoundError`."""
        plan = self.generate_plan(start, goal)
        if plan is not None:
            return plan
        reason = self._last_search.reason if self._last_search else _REASON_FRONTIER
        if reason in (_REASON_COST, _REASON_ITERATIONS):
            raise SearchBudgetExceededError(reason)
        raise NoPlanFoundError(reason)

    def analyze_plan(self, plan: Plan) -> PlanAnalysis:
        """Summarise cost, expected duration and parallelisable runs of ``plan``."""
        settings = self._settings
        duration = sum(
            settings.duration_ms.get(action.strategy, settings.default_duration_ms)
            for action in plan.actions
        )
        return PlanAnalysis(
            total_cost=sum(action.cost for action in plan.actions),
            action_count=len(plan.actions),
            strategies=[action.strategy for action in plan.actions],
            estimated_duration_ms=duration,
            parallelizable_groups=[
                [action.name for action in group] for group in self.parallelizable_groups(plan)
            ],
        )

    def parallelizable_groups(self, plan: Plan) -> list[list[Action]]:
        """Greedily split ``plan`` into runs of mutually non-conflicting actions.

        Only runs holding more than one action are returned; the grouping keeps
        plan order and never exceeds ``max_group_size``.
        """
        limit = self._settings.max_group_size
        groups: list[list[Action]] = []
        current: list[Action] = []

        for action in plan.actions:
            fits = all(not action.conflicts_with(member) for member in current)
            if fits and len(current) < limit:
                current.append(action)
                continue
            if len(current) > 1:
                groups.append(current)
            current = [action]

        if len(current) > 1:
            groups.append(current)
        return groups

    def _fail(self, reason: str, iterations: int, expanded: int, pruned: int) -> None:
        self._last_search = SearchStats(
            found=False,
            iterations=iterations,
            expanded=expanded,
            pruned=pruned,
            reason=reason,
        )
        self._logger.warning(
            "no plan found",
            reason=reason,
            iterations=iterations,
            expanded=expanded,
            pruned=pruned,
        )


__all__ = ["Plan", "PlanNode", "Planner"]
