"""OODA execution loop: run a plan step by step and replan when it goes stale."""

from __future__ import annotations

import asyncio
import inspect
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from goaploop.io.logging import StructuredLogger

from .actions import ExecutionContext
from .errors import ActionExecutionError
from .models import (
    DecisionKind,
    HistoryEntry,
    HistoryKind,
    LoopPhase,
    LoopSettings,
    LoopStatus,
)

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from collections.abc import Awaitable

    from goaploop.io.memory import MemorySink

    from .actions import Action
    from .models import ActionResult
    from .planner import Plan, Planner
    from .state import WorldState


class StateObserver(Protocol):
    """Callable returning a fresh snapshot of the real world state."""

    def __call__(self) -> WorldState | Awaitable[WorldState]:
        """Collect the most recent :class:`WorldState`."""
        ...


@dataclass(frozen=True, slots=True)
class Observation:
    """Snapshot taken during the Observe phase."""

    step: int
    total_steps: int
    last_entry: HistoryEntry | None
    anomalies: tuple[str, ...]
    expected_state: WorldState
    observed_state: WorldState


@dataclass(frozen=True, slots=True)
class Orientation:
    """Assessment produced by the Orient phase."""

    state_changed: bool
    plan_valid: bool
    goal_reachable: bool
    needs_replanning: bool


@dataclass(frozen=True, slots=True)
class Decision:
    """Choice made by the Decide phase."""

    kind: DecisionKind
    reason: str


@dataclass(frozen=True, slots=True)
class LoopOutcome:
    """Final report of a loop run, including the full history."""

    status: LoopStatus
    reason: str
    state: WorldState
    plan: Plan | None
    history: tuple[HistoryEntry, ...]
    decisions: tuple[Decision, ...]
    cycles: int

    @property
    def completed(self) -> bool:
        """Return ``True`` when the goal was reached."""
        return self.status is LoopStatus.completed


def _default_logger() -> StructuredLogger:
    return StructuredLogger(name="goaploop.loop", level="WARNING")


class ExecutionLoop:
    """Drive a plan through repeated Observe, Orient, Decide and Act cycles.

    Actions run strictly one at a time. A failed action is recorded in the
    history and triggers a replan on the next cycle rather than stopping the
    loop; only a replan that finds no plan aborts the run.
    """

    def __init__(
        self,
        planner: Planner,
        *,
        settings: LoopSettings | None = None,
        logger: StructuredLogger | None = None,
        observer: StateObserver | None = None,
        sink: MemorySink | None = None,
    ) -> None:
        """Initialise the loop with its injected collaborators."""
        self._planner = planner
        self._settings = settings or LoopSettings()
        self._logger = logger or _default_logger()
        self._observer = observer
        self._sink = sink

        self._plan: Plan | None = None
        self._step = 0
        self._state: WorldState | None = None
        self._goal: WorldState | None = None
        self._history: list[HistoryEntry] = []
        self._decisions: list[Decision] = []
        self._status = LoopStatus.idle
        self._phase = LoopPhase.observing
        self._reason = ""
        self._cycles = 0
        self._stop_requested = False
        self._run_id = uuid.uuid4().hex[:12]
        self._event_index = 0

    @property
    def planner(self) -> Planner:
        """Return the planner used for replanning."""
        return self._planner

    @property
    def plan(self) -> Plan | None:
        """Return the plan currently being executed."""
        return self._plan

    @property
    def step(self) -> int:
        """Return the index of the next action in the current plan."""
        return self._step

    @property
    def state(self) -> WorldState:
        """Return the live world state."""
        return self._require(self._state)

    @property
    def goal(self) -> WorldState:
        """Return the goal the loop is working towards."""
        return self._require(self._goal)

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        """Return the execution history in append order."""
        return tuple(self._history)

    @property
    def decisions(self) -> tuple[Decision, ...]:
        """Return every decision taken so far."""
        return tuple(self._decisions)

    @property
    def status(self) -> LoopStatus:
        """Return the lifecycle status."""
        return self._status

    @property
    def phase(self) -> LoopPhase:
        """Return the OODA phase most recently entered."""
        return self._phase

    @property
    def cycles(self) -> int:
        """Return the number of completed OODA cycles."""
        return self._cycles

    def stop(self) -> None:
        """Request the loop to stop before its next cycle."""
        self._stop_requested = True
        self._logger.info("stop requested", cycles=self._cycles)

    def add_action(self, action: Action) -> None:
        """Register a new action with the planner while the loop runs."""
        self._planner.add_action(action)
        self._logger.info("action added during execution", action=action.name)

    def update_goal(self, goal: WorldState) -> None:
        """Replace the goal; the next Orient phase re-validates the plan."""
        self._goal = goal
        self._logger.info("goal updated", goal=goal.as_dict())

    def reset(self, plan: Plan | None, start: WorldState, goal: WorldState) -> None:
        """Prepare a fresh run from ``start`` towards ``goal``.

        When ``plan`` is ``None`` one is generated; if that fails the loop is
        left in the aborted state.
        """
        self._state = start
        self._goal = goal
        self._step = 0
        self._history = []
        self._decisions = []
        self._cycles = 0
        self._stop_requested = False
        self._reason = ""
        self._phase = LoopPhase.observing

        if plan is None:
            plan = self._planner.generate_plan(start, goal)
        if plan is None:
            self._plan = None
            self._finish(LoopStatus.aborted, "no plan found")
            return

        self._plan = plan
        self._status = LoopStatus.running
        self._logger.info("plan adopted", actions=plan.names, cost=plan.cost)
        self._emit("plan_generated", {"actions": plan.names, "cost": plan.cost})

    async def run(self, plan: Plan | None, start: WorldState, goal: WorldState) -> LoopOutcome:
        """Execute ``plan`` from ``start`` until the goal is reached or the run ends."""
        if self._status is LoopStatus.running:
            msg = "execution loop is already running"
            raise RuntimeError(msg)
        self.reset(plan, start, goal)
        return await self.run_until_done()

    async def run_until_done(self) -> LoopOutcome:
        """Keep cycling until the loop leaves the running state."""
        try:
            while self._status is LoopStatus.running:
                if self._stop_requested:
                    self._finish(LoopStatus.stopped, "stop requested")
                    break
                if self._cycles >= self._settings.max_cycles:
                    self._finish_at_cycle_limit()
                    break
                await self.cycle()
                if self._status is LoopStatus.running:
                    await asyncio.sleep(self._settings.cycle_delay_sec)
        except asyncio.CancelledError:
            if self._status is LoopStatus.running:
                self._finish(LoopStatus.stopped, "cancelled")
            raise
        except BaseException as error:
            if self._status is LoopStatus.running:
                self._finish(LoopStatus.aborted, f"{type(error).__name__}: {error}")
            raise
        return self.outcome()

    def _finish_at_cycle_limit(self) -> None:
        # The cap may land right after the last step, before Decide saw it.
        if self.state.satisfies(self.goal.facts):
            self._finish(LoopStatus.completed, "goal reached at cycle limit")
        else:
            self._finish(LoopStatus.aborted, "cycle limit reached")

    async def cycle(self) -> Decision:
        """Run a single Observe, Orient, Decide, Act pass."""
        self._cycles += 1
        self._phase = LoopPhase.observing
        observation = await self.observe()
        self._phase = LoopPhase.orienting
        orientation = self.orient(observation)
        self._phase = LoopPhase.deciding
        decision = self.decide(orientation)
        self._decisions.append(decision)
        self._phase = LoopPhase.acting
        await self.act(decision)
        return decision

    async def observe(self) -> Observation:
        """Snapshot progress and pull a fresh state from the observer."""
        expected = self.state
        observed = expected
        if self._observer is not None:
            fresh = self._observer()
            if inspect.isawaitable(fresh):
                fresh = await fresh
            observed = fresh
            self._state = observed

        last_entry = self._history[-1] if self._history else None
        observation = Observation(
            step=self._step,
            total_steps=len(self._plan.actions) if self._plan else 0,
            last_entry=last_entry,
            anomalies=self._detect_anomalies(last_entry),
            expected_state=expected,
            observed_state=observed,
        )
        self._logger.debug(
            "observe",
            step=observation.step,
            total_steps=observation.total_steps,
            anomalies=list(observation.anomalies),
        )
        return observation

    def orient(self, observation: Observation) -> Orientation:
        """Decide whether the current plan still leads to the goal."""
        state_changed = (
            observation.expected_state.canonical_key() != observation.observed_state.canonical_key()
        )
        plan_valid = self.is_plan_still_valid()
        goal_reachable = plan_valid or self.is_goal_still_reachable()
        needs_replanning = (
            state_changed
            or not plan_valid
            or not goal_reachable
            or bool(observation.anomalies)
        )
        orientation = Orientation(
            state_changed=state_changed,
            plan_valid=plan_valid,
            goal_reachable=goal_reachable,
            needs_replanning=needs_replanning,
        )
        self._logger.debug(
            "orient",
            state_changed=state_changed,
            plan_valid=plan_valid,
            goal_reachable=goal_reachable,
            needs_replanning=needs_replanning,
        )
        return orientation

    def decide(self, orientation: Orientation) -> Decision:
        """Choose between replanning, completing and continuing."""
        if orientation.needs_replanning:
            decision = Decision(DecisionKind.replan, self._replan_reason(orientation))
        elif self._plan is None or self._step >= len(self._plan.actions):
            decision = Decision(DecisionKind.complete, "all actions completed")
        else:
            decision = Decision(DecisionKind.continue_, "plan execution proceeding normally")
        self._logger.debug("decide", decision=decision.kind.value, reason=decision.reason)
        return decision

    async def act(self, decision: Decision) -> None:
        """Carry out ``decision``."""
        if decision.kind is DecisionKind.replan:
            self._replan(decision.reason)
        elif decision.kind is DecisionKind.continue_:
            await self._execute_next()
        else:
            self._finish(LoopStatus.completed, decision.reason)

    def is_plan_still_valid(self) -> bool:
        """Return ``True`` when the remaining actions still reach the goal.

        The remaining actions are simulated in order from the live state, so
        later actions may depend on the effects of earlier ones.
        """
        if self._plan is None:
            return False
        simulated = self.state
        for action in self._plan.actions[self._step:]:
            if not action.is_applicable(simulated):
                return False
            simulated = action.apply(simulated)
        return simulated.satisfies(self.goal.facts)

    def is_goal_still_reachable(self) -> bool:
        """Return ``True`` when the planner can still find any plan."""
        return self._planner.generate_plan(self.state, self.goal) is not None

    def outcome(self) -> LoopOutcome:
        """Return the current report of the run."""
        return LoopOutcome(
            status=self._status,
            reason=self._reason,
            state=self.state,
            plan=self._plan,
            history=self.history,
            decisions=self.decisions,
            cycles=self._cycles,
        )

    def _detect_anomalies(self, last_entry: HistoryEntry | None) -> tuple[str, ...]:
        if last_entry is not None and last_entry.kind is HistoryKind.action and last_entry.error:
            return (f"action failure: {last_entry.action}",)
        return ()

    def _replan_reason(self, orientation: Orientation) -> str:
        if orientation.state_changed:
            return "state changed unexpectedly"
        if not orientation.goal_reachable:
            return "goal unreachable with current plan"
        if not orientation.plan_valid:
            return "remaining plan no longer valid"
        return "anomaly observed"

    def _replan(self, reason: str) -> None:
        self._logger.info("replanning", reason=reason, state=self.state.as_dict())
        plan = self._planner.generate_plan(self.state, self.goal)
        if plan is None:
            search = self._planner.last_search
            cause = search.reason if search is not None else "frontier_exhausted"
            self._logger.error("replanning failed", cause=cause)
            self._finish(LoopStatus.aborted, f"no plan found ({cause})")
            return

        self._plan = plan
        self._step = 0
        self._history.append(
            HistoryEntry(
                kind=HistoryKind.plan_updated,
                action=HistoryKind.plan_updated.value,
                new_plan=tuple(plan.names),
            ),
        )
        self._logger.info("plan updated", actions=plan.names, cost=plan.cost)
        self._emit("replanned", {"reason": reason, "actions": plan.names, "cost": plan.cost})

    async def _execute_next(self) -> None:
        plan = self._require(self._plan)
        action = plan.actions[self._step]
        step = self._step
        self._logger.info(
            "executing action",
            step=step + 1,
            total_steps=len(plan.actions),
            action=action.name,
            strategy=action.strategy,
        )
        try:
            result = await self._run_action(action)
        except ActionExecutionError as error:
            self._history.append(HistoryEntry(step=step, action=action.name, error=error.message))
            self._logger.error("action failed", action=action.name, error=error.message)
            self._emit("step_executed", {"step": step, "action": action.name, "error": error.message})
            return

        self._state = action.apply(self.state)
        self._step += 1
        self._history.append(HistoryEntry(step=step, action=action.name, result=result))
        self._logger.info("action completed", action=action.name)
        self._emit("step_executed", {"step": step, "action": action.name, "error": None})

    async def _run_action(self, action: Action) -> ActionResult:
        context = ExecutionContext(state=self.state, metadata={"step": self._step})
        timeout = self._settings.action_timeout_sec
        if timeout is None:
            return await action.execute(context)
        try:
            return await asyncio.wait_for(action.execute(context), timeout=timeout)
        except TimeoutError as exc:
            raise ActionExecutionError(action.name, f"timed out after {timeout}s") from exc

    def _finish(self, status: LoopStatus, reason: str) -> None:
        self._status = status
        self._reason = reason
        log = self._logger.info if status is LoopStatus.completed else self._logger.warning
        log("loop finished", status=status.value, reason=reason, cycles=self._cycles)
        self._emit(
            "loop_finished",
            {"status": status.value, "reason": reason, "history_length": len(self._history)},
        )

    def _emit(self, event: str, payload: dict[str, Any]) -> None:
        if self._sink is None:
            return
        self._event_index += 1
        key = f"{self._run_id}/{self._event_index:04d}-{event}"
        try:
            self._sink.store(
                self._settings.telemetry_namespace,
                key,
                {"event": event, **payload},
                self._settings.telemetry_ttl_sec,
            )
        except Exception as error:
            self._logger.warning("telemetry store failed", event=event, error=str(error))

    @staticmethod
    def _require(value: Any) -> Any:
        if value is None:
            msg = "execution loop has not been started"
            raise RuntimeError(msg)
        return value


async def run_loop(
    planner: Planner,
    plan: Plan | None,
    start: WorldState,
    goal: WorldState,
    *,
    settings: LoopSettings | None = None,
    logger: StructuredLogger | None = None,
    observer: StateObserver | None = None,
    sink: MemorySink | None = None,
) -> LoopOutcome:
    """Run an :class:`ExecutionLoop` to completion and return its outcome."""
    loop = ExecutionLoop(planner, settings=settings, logger=logger, observer=observer, sink=sink)
    return await loop.run(plan, start, goal)


__all__ = [
    "Decision",
    "ExecutionLoop",
    "LoopOutcome",
    "Observation",
    "Orientation",
    "StateObserver",
    "run_loop",
]
