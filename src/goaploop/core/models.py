"""Core data models for goaploop."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
import typing

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .state import PropositionValue


class ExecutionStrategy(str, Enum):
    """How an action is carried out once selected."""

    deterministic = "deterministic"
    reasoning = "reasoning"
    combined = "combined"


class LoopPhase(str, Enum):
    """Phase of the OODA cycle the execution loop is currently in."""

    observing = "observing"
    orienting = "orienting"
    deciding = "deciding"
    acting = "acting"


class LoopStatus(str, Enum):
    """Lifecycle status of an execution loop."""

    idle = "idle"
    running = "running"
    completed = "completed"
    aborted = "aborted"
    stopped = "stopped"


class DecisionKind(str, Enum):
    """Outcome of the Decide phase."""

    continue_ = "continue"
    replan = "replan"
    complete = "complete"


class HistoryKind(str, Enum):
    """Kinds of records kept in the execution history."""

    action = "action"
    plan_updated = "plan_updated"


def _default_durations() -> dict[str, int]:
    return {
        ExecutionStrategy.deterministic.value: 100,
        ExecutionStrategy.combined.value: 150,
        ExecutionStrategy.reasoning.value: 200,
    }


class PlannerSettings(BaseModel):
    """Limits and tables used by the planner."""

    max_cost: float = Field(default=20.0, ge=0.0)
    max_iterations: int = Field(default=1000, gt=0)
    max_group_size: int = Field(default=3, ge=1)
    duration_ms: dict[str, int] = Field(default_factory=_default_durations)
    default_duration_ms: int = Field(default=100, ge=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


class LoopSettings(BaseModel):
    """Runtime limits and telemetry options for the execution loop."""

    max_cycles: int = Field(default=100, gt=0)
    cycle_delay_sec: float = Field(default=0.5, ge=0.0)
    action_timeout_sec: float | None = Field(default=None, gt=0.0)
    telemetry_namespace: str = "goap"
    telemetry_ttl_sec: int = Field(default=604800, gt=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


class SearchStats(BaseModel):
    """Diagnostics recorded for the most recent search."""

    found: bool
    iterations: int = 0
    expanded: int = 0
    pruned: int = 0
    reason: str = "found"

    model_config = ConfigDict(frozen=True, extra="forbid")


class PlanAnalysis(BaseModel):
    """Post-hoc summary of a plan."""

    total_cost: float
    action_count: int
    strategies: list[str]
    estimated_duration_ms: int
    parallelizable_groups: list[list[str]] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="forbid")


class ActionResult(BaseModel):
    """Outcome returned by a successful action execution."""

    action: str
    strategy: ExecutionStrategy
    output: typing.Any = None
    simulated: bool = False

    model_config = ConfigDict(frozen=True, extra="forbid")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class HistoryEntry(BaseModel):
    """One append-only record of the execution history."""

    kind: HistoryKind = HistoryKind.action
    step: int | None = None
    action: str
    result: typing.Any = None
    error: str | None = None
    new_plan: tuple[str, ...] = ()
    timestamp: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when the entry does not record an error."""
        return self.error is None


class ActionDefinition(BaseModel):
    """Declarative description of an action as read from configuration."""

    name: str = Field(min_length=1)
    preconditions: dict[str, PropositionValue] = Field(default_factory=dict)
    effects: dict[str, PropositionValue] = Field(default_factory=dict)
    cost: float = Field(default=1.0, ge=0.0)
    strategy: str = ExecutionStrategy.deterministic.value
    params: dict[str, str] = Field(default_factory=dict)
    rationale: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


def _empty_definitions() -> list[ActionDefinition]:
    return []


class Config(BaseModel):
    """Top level scenario configuration validated from TOML files."""

    start: dict[str, PropositionValue] = Field(default_factory=dict)
    goal: dict[str, PropositionValue]
    actions: list[ActionDefinition] = Field(default_factory=_empty_definitions)
    planner: PlannerSettings = Field(default_factory=PlannerSettings)
    loop: LoopSettings = Field(default_factory=LoopSettings)

    model_config = ConfigDict(extra="forbid")

    @field_validator("actions")
    @classmethod
    def _unique_action_names(cls, value: list[ActionDefinition]) -> list[ActionDefinition]:
        """Reject scenarios declaring the same action name twice."""
        seen: set[str] = set()
        for definition in value:
            if definition.name in seen:
                msg = f"duplicate action name: {definition.name}"
                raise ValueError(msg)
            seen.add(definition.name)
        return value


__all__ = [
    "ActionDefinition",
    "ActionResult",
    "Config",
    "DecisionKind",
    "ExecutionStrategy",
    "HistoryEntry",
    "HistoryKind",
    "LoopPhase",
    "LoopSettings",
    "LoopStatus",
    "PlanAnalysis",
    "PlannerSettings",
    "SearchStats",
]
