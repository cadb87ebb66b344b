"""Shared fixtures for the goaploop test suite."""
from __future__ import annotations

import io
from typing import TYPE_CHECKING

import pytest

from goaploop.core import Action, LoopSettings, Planner, WorldState
from goaploop.io.logging import StructuredLogger

if TYPE_CHECKING:
    from collections.abc import Callable

    ActionFactory = Callable[..., Action]


def make_action(
    name: str,
    preconditions: dict[str, object] | None = None,
    effects: dict[str, object] | None = None,
    cost: float = 1.0,
    **kwargs: object,
) -> Action:
    """Build an action with compact positional arguments."""
    return Action(
        name=name,
        preconditions=preconditions or {},
        effects=effects or {},
        cost=cost,
        **kwargs,
    )


@pytest.fixture
def action_factory() -> ActionFactory:
    """Expose :func:`make_action` to tests."""
    return make_action


@pytest.fixture
def linear_actions() -> list[Action]:
    """Create, code and deploy chain with a total cost of 6."""
    return [
        make_action("create", {}, {"exists": True}, 1),
        make_action("code", {"exists": True}, {"coded": True}, 3),
        make_action("deploy", {"coded": True}, {"deployed": True}, 2),
    ]


@pytest.fixture
def planner(linear_actions: list[Action]) -> Planner:
    """Planner loaded with the linear chain."""
    return Planner(linear_actions)


@pytest.fixture
def empty_state() -> WorldState:
    """The empty world state."""
    return WorldState()


@pytest.fixture
def deployed_goal() -> WorldState:
    """Goal requiring a deployment."""
    return WorldState.of(deployed=True)


@pytest.fixture
def fast_loop_settings() -> LoopSettings:
    """Loop settings without inter-cycle delay."""
    return LoopSettings(cycle_delay_sec=0.0, max_cycles=50)


@pytest.fixture
def log_stream() -> io.StringIO:
    """In-memory stream capturing logger output."""
    return io.StringIO()


@pytest.fixture
def json_logger(log_stream: io.StringIO) -> StructuredLogger:
    """JSON-mode logger writing to ``log_stream``."""
    return StructuredLogger(name="goaploop.test", json_mode=True, stream=log_stream)

