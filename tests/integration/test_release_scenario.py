"""End-to-end release pipeline: config file to plan to OODA execution."""

from __future__ import annotations

import pytest

from goaploop.cli.runtime import build_scenario_context
from goaploop.core import HistoryKind, LoopStatus
from goaploop.io.config import load_config

RELEASE_TOML = """
[start]
repository_url = true

[goal]
application_built = true

[planner]
max_cost = 30
max_iterations = 5000

[loop]
cycle_delay_sec = 0.0
max_cycles = 60

[[actions]]
name = "analyze_codebase"
preconditions = { repository_cloned = true }
effects = { code_analyzed = true, complexity_known = true }
cost = 2
strategy = "combined"

[[actions]]
name = "clone_repository"
preconditions = { repository_url = true }
effects = { repository_cloned = true }
cost = 1

[[actions]]
name = "write_unit_tests"
preconditions = { code_analyzed = true }
effects = { unit_tests_written = true }
cost = 3
strategy = "reasoning"

[[actions]]
name = "run_tests"
preconditions = { unit_tests_written = true, dependencies_installed = true }
effects = { tests_passed = true }
cost = 2

[[actions]]
name = "install_dependencies"
preconditions = { repository_cloned = true }
effects = { dependencies_installed = true }
cost = 2

[[actions]]
name = "security_audit"
preconditions = { dependencies_installed = true }
effects = { security_verified = true }
cost = 2
strategy = "combined"

[[actions]]
name = "build_application"
preconditions = { tests_passed = true, security_verified = true }
effects = { application_built = true }
cost = 3
"""


def test_release_plan_is_sound_and_complete() -> None:
    """Every required step appears once and the plan reaches the goal."""
    context = build_scenario_context(load_config(data=RELEASE_TOML), json_logs=True, silence_logs=True)

    plan = context.planner.require_plan(context.start, context.goal)

    assert plan.cost == 15
    assert sorted(plan.names) == sorted(action.name for action in context.config.actions)
    assert plan.names[0] == "clone_repository"
    assert plan.names[-1] == "build_application"
    assert plan.simulate(context.start).satisfies(context.goal.facts)

    analysis = context.planner.analyze_plan(plan)
    assert analysis.total_cost == 15
    assert analysis.action_count == 7


@pytest.mark.asyncio
async def test_release_loop_recovers_from_test_failure() -> None:
    """A failing test run is replanned around and the build still completes."""
    context = build_scenario_context(
        load_config(data=RELEASE_TOML),
        json_logs=True,
        silence_logs=True,
        failures=("run_tests", "security_audit"),
    )
    loop = context.build_loop()

    outcome = await loop.run(None, context.start, context.goal)

    assert outcome.status is LoopStatus.completed
    assert outcome.state.get("application_built") is True
    failures = [entry.action for entry in outcome.history if entry.error is not None]
    assert sorted(failures) == ["run_tests", "security_audit"]
    updates = [entry for entry in outcome.history if entry.kind is HistoryKind.plan_updated]
    assert len(updates) == 2
    executed = [
        entry.action
        for entry in outcome.history
        if entry.kind is HistoryKind.action and entry.error is None
    ]
    assert len(executed) == 7
    namespace = context.config.loop.telemetry_namespace
    assert context.sink.entries(namespace)[-1].value["status"] == "completed"
