"""Core GOAP components for goaploop."""

from .actions import Action, ActionCallback, ExecutionContext
from .errors import (
    ActionExecutionError,
    GoapError,
    NoPlanFoundError,
    PreconditionError,
    SearchBudgetExceededError,
    UnknownExecutionTypeError,
)
from .loop import (
    Decision,
    ExecutionLoop,
    LoopOutcome,
    Observation,
    Orientation,
    StateObserver,
    run_loop,
)
from .models import (
    ActionDefinition,
    ActionResult,
    Config,
    DecisionKind,
    ExecutionStrategy,
    HistoryEntry,
    HistoryKind,
    LoopPhase,
    LoopSettings,
    LoopStatus,
    PlanAnalysis,
    PlannerSettings,
    SearchStats,
)
from .planner import Plan, PlanNode, Planner
from .state import PropositionValue, WorldState

__all__ = [
    "Action",
    "ActionCallback",
    "ActionDefinition",
    "ActionExecutionError",
    "ActionResult",
    "Config",
    "Decision",
    "DecisionKind",
    "ExecutionContext",
    "ExecutionLoop",
    "ExecutionStrategy",
    "GoapError",
    "HistoryEntry",
    "HistoryKind",
    "LoopOutcome",
    "LoopPhase",
    "LoopSettings",
    "LoopStatus",
    "NoPlanFoundError",
    "Observation",
    "Orientation",
    "Plan",
    "PlanAnalysis",
    "PlanNode",
    "Planner",
    "PlannerSettings",
    "PreconditionError",
    "PropositionValue",
    "SearchBudgetExceededError",
    "SearchStats",
    "StateObserver",
    "UnknownExecutionTypeError",
    "WorldState",
    "run_loop",
]
