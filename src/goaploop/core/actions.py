"""Action model: preconditions, effects, cost and execution strategy."""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .errors import ActionExecutionError, PreconditionError, UnknownExecutionTypeError
from .models import ActionDefinition, ActionResult, ExecutionStrategy
from .state import PropositionValue, WorldState

ActionCallback = Callable[[Mapping[str, str], WorldState], Any]
"""Executor signature: ``(params, live_state) -> result``, sync or async."""


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    """Information handed to an action while it executes."""

    state: WorldState
    metadata: dict[str, Any] = field(default_factory=dict)


class Action(BaseModel):
    """A named transition from one world state to another."""

    name: str = Field(min_length=1)
    preconditions: dict[str, PropositionValue] = Field(default_factory=dict)
    effects: dict[str, PropositionValue] = Field(default_factory=dict)
    cost: float = Field(default=1.0, ge=0.0)
    strategy: str = ExecutionStrategy.deterministic.value
    params: dict[str, str] = Field(default_factory=dict)
    rationale: str | None = None
    executor: ActionCallback | None = Field(default=None, exclude=True, repr=False)
    reasoner: ActionCallback | None = Field(default=None, exclude=True, repr=False)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_definition(
        cls,
        definition: ActionDefinition,
        *,
        executor: ActionCallback | None = None,
        reasoner: ActionCallback | None = None,
    ) -> Action:
        """Create an action from a validated configuration entry."""
        return cls(
            **definition.model_dump(),
            executor=executor,
            reasoner=reasoner,
        )

    def __hash__(self) -> int:
        return hash(self.name)

    def is_applicable(self, state: WorldState) -> bool:
        """Return ``True`` when ``state`` satisfies every precondition."""
        return state.satisfies(self.preconditions)

    def apply(self, state: WorldState) -> WorldState:
        """Return the successor of ``state`` after this action's effects."""
        missing = state.unmet(self.preconditions)
        if missing:
            raise PreconditionError(self.name, missing)
        return state.apply_effects(self.effects)

    def conflicts_with(self, other: Action) -> bool:
        """Return ``True`` when the two actions cannot safely run side by side."""
        effects = set(self.effects)
        other_effects = set(other.effects)
        return bool(
            effects & set(other.preconditions)
            or other_effects & set(self.preconditions)
            or effects & other_effects,
        )

    async def execute(self, context: ExecutionContext) -> ActionResult:
        """Run the action's callbacks according to its strategy.

        The world state is never modified here; callers apply effects once
        execution has succeeded.
        """
        try:
            strategy = ExecutionStrategy(self.strategy)
        except ValueError as exc:
            raise UnknownExecutionTypeError(self.name, self.strategy) from exc

        if strategy is ExecutionStrategy.deterministic:
            output, simulated = await self._run_deterministic(context)
        elif strategy is ExecutionStrategy.reasoning:
            output, simulated = await self._run_reasoning(context)
        else:
            reasoning_output, reasoning_simulated = await self._run_reasoning(context)
            code_output, code_simulated = await self._run_deterministic(context)
            output = {"reasoning": reasoning_output, "deterministic": code_output}
            simulated = reasoning_simulated and code_simulated

        return ActionResult(action=self.name, strategy=strategy, output=output, simulated=simulated)

    async def _run_deterministic(self, context: ExecutionContext) -> tuple[Any, bool]:
        if self.executor is None:
            return {"success": True, "type": ExecutionStrategy.deterministic.value}, True
        return await self._invoke(self.executor, context), False

    async def _run_reasoning(self, context: ExecutionContext) -> tuple[Any, bool]:
        if self.reasoner is None:
            simulated = {
                "success": True,
                "type": ExecutionStrategy.reasoning.value,
                "insights": f"Generated insights for {self.name}",
            }
            return simulated, True
        return await self._invoke(self.reasoner, context), False

    async def _invoke(self, callback: ActionCallback, context: ExecutionContext) -> Any:
        try:
            result = callback(dict(self.params), context.state)
            if inspect.isawaitable(result):
                result = await result
        except ActionExecutionError:
            raise
        except Exception as exc:
            raise ActionExecutionError(self.name, str(exc) or type(exc).__name__) from exc
        if result is False:
            raise ActionExecutionError(self.name, "executor reported failure")
        return result


__all__ = ["Action", "ActionCallback", "ExecutionContext"]
