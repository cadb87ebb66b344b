from __future__ import annotations

import pathlib
from typing import Any

import pytest
from pydantic import ValidationError

from goaploop.core.models import Config
from goaploop.io.config import load_config


SAMPLE_TOML = """
[start]
exists = false

[goal]
deployed = true

[planner]
max_cost = 15
max_iterations = 500

[loop]
max_cycles = 40
cycle_delay_sec = 0.0

[[actions]]
name = "create"
effects = { exists = true }
cost = 1

[[actions]]
name = "code"
preconditions = { exists = true }
effects = { coded = true }
cost = 3
strategy = "reasoning"
rationale = "Write the implementation"

[[actions]]
name = "deploy"
preconditions = { coded = true }
effects = { deployed = true }
cost = 2
params = { target = "staging" }
"""


def test_load_config_from_path(tmp_path: pathlib.Path) -> None:
    """Loading from disk should produce a validated Config instance."""
    config_path = tmp_path / "scenario.toml"
    config_path.write_text(SAMPLE_TOML)

    config = load_config(path=config_path)

    assert isinstance(config, Config)
    assert config.goal == {"deployed": True}
    assert config.start == {"exists": False}
    assert [action.name for action in config.actions] == ["create", "code", "deploy"]
    assert config.actions[1].strategy == "reasoning"
    assert config.actions[2].params == {"target": "staging"}
    assert config.planner.max_cost == 15
    assert config.loop.max_cycles == 40


def test_load_config_from_data_defaults_start() -> None:
    """Inline data works and a missing start section means the empty state."""
    config = load_config(data=b'[goal]\nready = true\n')

    assert config.start == {}
    assert config.actions == []
    assert config.loop.max_cycles == 100


def test_load_config_with_overrides(tmp_path: pathlib.Path) -> None:
    """Overrides should merge into the loaded configuration."""
    config_path = tmp_path / "scenario.toml"
    config_path.write_text(SAMPLE_TOML)

    config = load_config(path=config_path, overrides={"loop": {"max_cycles": 5}})

    assert config.loop.max_cycles == 5
    assert config.loop.cycle_delay_sec == 0.0


def test_exactly_one_source_required() -> None:
    """Passing both or neither source is rejected."""
    with pytest.raises(ValueError, match="exactly one"):
        load_config()
    with pytest.raises(ValueError, match="exactly one"):
        load_config(path="x.toml", data="")


def test_invalid_config_raises_validation_error() -> None:
    """Invalid settings should surface as ValidationError."""
    invalid_toml = SAMPLE_TOML.replace("cost = 3", "cost = -3")

    with pytest.raises(ValidationError):
        load_config(data=invalid_toml)


def test_unknown_section_is_rejected() -> None:
    """Unexpected top-level keys are not silently ignored."""
    with pytest.raises(ValidationError):
        load_config(data=SAMPLE_TOML + "\n[extras]\nfoo = 1\n")


def test_malformed_toml_raises_value_error() -> None:
    """TOML syntax errors surface as ValueError."""
    with pytest.raises(ValueError, match="Invalid TOML"):
        load_config(data="[goal\n")


def test_missing_config_file_raises(tmp_path: pathlib.Path) -> None:
    """Referencing a missing file should raise FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_config(path=tmp_path / "missing.toml")


def test_directory_config_path_raises_value_error(tmp_path: pathlib.Path) -> None:
    """A directory provided as config path should raise a ValueError."""
    directory = tmp_path / "config_dir"
    directory.mkdir()

    with pytest.raises(ValueError, match="not a file"):
        load_config(path=directory)


def test_unreadable_config_path_raises_value_error(
    tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Unreadable configuration files should surface as ValueError."""
    config_path = tmp_path / "scenario.toml"
    config_path.write_text(SAMPLE_TOML)

    original_read_text = pathlib.Path.read_text

    def fake_read_text(self: pathlib.Path, *args: Any, **kwargs: Any) -> str:
        if self == config_path:
            raise PermissionError("Permission denied")
        return original_read_text(self, *args, **kwargs)

    monkeypatch.setattr(pathlib.Path, "read_text", fake_read_text)

    with pytest.raises(ValueError, match="scenario.toml"):
        load_config(path=config_path)
