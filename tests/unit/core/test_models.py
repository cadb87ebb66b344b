"""Tests for core pydantic models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from goaploop.core import (
    Action,
    ActionDefinition,
    Config,
    HistoryEntry,
    HistoryKind,
    LoopSettings,
    Plan,
    PlannerSettings,
)


def test_settings_defaults() -> None:
    """Default limits match the documented values."""
    planner = PlannerSettings()
    loop = LoopSettings()

    assert planner.max_cost == 20
    assert planner.max_iterations == 1000
    assert planner.max_group_size == 3
    assert loop.max_cycles == 100
    assert loop.cycle_delay_sec == 0.5
    assert loop.action_timeout_sec is None
    assert loop.telemetry_ttl_sec == 604800


def test_settings_reject_invalid_limits() -> None:
    """Non-positive caps are rejected."""
    with pytest.raises(ValidationError):
        PlannerSettings(max_iterations=0)
    with pytest.raises(ValidationError):
        LoopSettings(max_cycles=0)


def test_config_rejects_duplicate_action_names() -> None:
    """Scenario files must not declare an action twice."""
    with pytest.raises(ValidationError, match="duplicate action name"):
        Config(
            goal={"done": True},
            actions=[ActionDefinition(name="a"), ActionDefinition(name="a")],
        )


def test_config_requires_goal() -> None:
    """A scenario without goal is invalid."""
    with pytest.raises(ValidationError):
        Config.model_validate({"start": {}})


def test_plan_dump_excludes_callbacks() -> None:
    """Serialised plans carry the action data but never the callbacks."""

    def executor(params: object, state: object) -> str:
        del params, state
        return "ok"

    plan = Plan(actions=(Action(name="a", effects={"x": True}, executor=executor),), cost=1)

    dumped = plan.model_dump(mode="json")

    assert dumped["actions"][0]["name"] == "a"
    assert "executor" not in dumped["actions"][0]
    assert plan.names == ["a"]


def test_history_entry_round_trip() -> None:
    """History entries survive a JSON round trip."""
    entry = HistoryEntry(kind=HistoryKind.plan_updated, action="plan_updated", new_plan=("a", "b"))

    reloaded = HistoryEntry.model_validate_json(entry.model_dump_json())

    assert reloaded == entry
    assert reloaded.succeeded
