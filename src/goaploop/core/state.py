"""Immutable world-state representation used by the planner."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr

PropositionValue = StrictBool | StrictInt | StrictFloat | StrictStr | None
"""Primitive value a single proposition may hold."""

Conditions = Mapping[str, Any]
"""Partial proposition mapping used for preconditions, effects and goals."""

ABSENT: bool = False


def same_value(left: Any, right: Any) -> bool:
    """Return ``True`` when both values have the same type and compare equal.

    Plain ``==`` treats ``False`` as ``0`` and ``True`` as ``1``, which would let
    an absent proposition satisfy an integer condition of zero.
    """
    return type(left) is type(right) and left == right


class WorldState(BaseModel):
    """A set of named propositions describing the world at one point in time.

    Unknown propositions read as ``False``. Instances are never mutated; every
    update returns a new state so that hypothetical futures explored during
    search cannot interfere with each other.
    """

    facts: dict[str, PropositionValue] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def of(cls, facts: Conditions | None = None, /, **extra: Any) -> WorldState:
        """Build a state from a mapping and/or keyword propositions."""
        merged: dict[str, Any] = dict(facts or {})
        merged.update(extra)
        return cls(facts=merged)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WorldState):
            return NotImplemented
        return self.canonical_key() == other.canonical_key()

    def __hash__(self) -> int:
        return hash(self.canonical_key())

    def get(self, key: str) -> Any:
        """Return the value of ``key`` or ``False`` when it is absent."""
        return self.facts.get(key, ABSENT)

    def set(self, key: str, value: Any) -> WorldState:
        """Return a copy of this state with ``key`` set to ``value``."""
        return self.apply_effects({key: value})

    def satisfies(self, conditions: Conditions) -> bool:
        """Return ``True`` when every proposition in ``conditions`` matches."""
        return all(same_value(self.get(key), value) for key, value in conditions.items())

    def unmet(self, conditions: Conditions) -> dict[str, Any]:
        """Return the subset of ``conditions`` this state does not satisfy."""
        return {key: value for key, value in conditions.items() if not same_value(self.get(key), value)}

    def apply_effects(self, effects: Conditions) -> WorldState:
        """Return a new state with ``effects`` written over this state."""
        if not effects:
            return self
        updated = dict(self.facts)
        updated.update(effects)
        return type(self)(facts=updated)

    def distance_to(self, goal: WorldState) -> int:
        """Count the goal propositions whose value differs in this state.

        This is a mismatch count rather than an admissible estimate: a single
        action may fix several propositions at once, so plans found with it are
        low-cost but not guaranteed optimal.
        """
        return sum(1 for key, value in goal.facts.items() if not same_value(self.get(key), value))

    def canonical_key(self) -> str:
        """Return a stable serialisation independent of insertion order."""
        return json.dumps(self.facts, sort_keys=True, separators=(",", ":"))

    def clone(self) -> WorldState:
        """Return an equal, independent copy of this state."""
        return type(self)(facts=dict(self.facts))

    def as_dict(self) -> dict[str, Any]:
        """Return the propositions as a plain dictionary."""
        return dict(self.facts)


__all__ = ["ABSENT", "Conditions", "PropositionValue", "WorldState", "same_value"]
