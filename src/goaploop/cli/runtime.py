"""Helpers shared across CLI commands for planning and execution."""

from __future__ import annotations

import io
import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from goaploop.core.actions import Action, ActionCallback
from goaploop.core.errors import ActionExecutionError
from goaploop.core.loop import ExecutionLoop
from goaploop.core.models import Config, ExecutionStrategy
from goaploop.core.planner import Planner
from goaploop.core.state import WorldState
from goaploop.io import InMemorySink, StructuredLogger, load_config

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping
    from pathlib import Path


@dataclass(slots=True)
class ScenarioContext:
    """Container bundling CLI dependencies for planning and execution."""

    config: Config
    logger: StructuredLogger
    planner: Planner
    start: WorldState
    goal: WorldState
    sink: InMemorySink = field(default_factory=InMemorySink)

    def build_loop(self) -> ExecutionLoop:
        """Return an execution loop wired to this scenario."""
        return ExecutionLoop(
            self.planner,
            settings=self.config.loop,
            logger=self.logger.child("loop"),
            sink=self.sink,
        )


def load_cli_config(
    scenario: Path,
    *,
    max_cycles: int | None = None,
    cycle_delay: float | None = None,
) -> Config:
    """Load ``scenario`` applying loop overrides given on the command line."""
    loop_overrides: dict[str, Any] = {}
    if max_cycles is not None:
        loop_overrides["max_cycles"] = max_cycles
    if cycle_delay is not None:
        loop_overrides["cycle_delay_sec"] = cycle_delay
    overrides = {"loop": loop_overrides} if loop_overrides else None
    return load_config(path=scenario, overrides=overrides)


def fail_once(name: str) -> ActionCallback:
    """Return a callback that fails on its first call and succeeds afterwards."""
    calls = {"count": 0}

    def callback(params: Mapping[str, str], state: WorldState) -> dict[str, Any]:
        del params, state
        calls["count"] += 1
        if calls["count"] == 1:
            raise ActionExecutionError(name, "forced failure")
        return {"success": True, "attempt": calls["count"]}

    return callback


def build_actions(config: Config, failures: Collection[str] = ()) -> list[Action]:
    """Materialise the configured actions, forcing one failure for ``failures``."""
    actions: list[Action] = []
    for definition in config.actions:
        executor: ActionCallback | None = None
        reasoner: ActionCallback | None = None
        if definition.name in failures:
            if definition.strategy == ExecutionStrategy.reasoning.value:
                reasoner = fail_once(definition.name)
            else:
                executor = fail_once(definition.name)
        actions.append(Action.from_definition(definition, executor=executor, reasoner=reasoner))
    return actions


def build_scenario_context(
    config: Config,
    *,
    json_logs: bool,
    silence_logs: bool,
    failures: Collection[str] = (),
) -> ScenarioContext:
    """Assemble the context required by CLI commands."""
    stream = io.StringIO() if silence_logs else sys.stderr
    logger = StructuredLogger(name="goaploop.cli", json_mode=json_logs, stream=stream)
    planner = Planner(
        build_actions(config, failures),
        settings=config.planner,
        logger=logger.child("planner"),
    )
    return ScenarioContext(
        config=config,
        logger=logger,
        planner=planner,
        start=WorldState.of(config.start),
        goal=WorldState.of(config.goal),
    )


__all__ = [
    "ScenarioContext",
    "build_actions",
    "build_scenario_context",
    "fail_once",
    "load_cli_config",
]
