"""Scenario configuration loading for goaploop."""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, cast

from goaploop.core.models import Config


def load_config(
    *,
    path: Path | str | None = None,
    data: str | bytes | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Config:
    """Load and validate a scenario from TOML data.

    Exactly one of ``path`` or ``data`` must be provided. ``overrides`` is deep
    merged into the parsed document before validation, which lets the CLI and
    tests patch individual settings such as ``loop.max_cycles``.
    """
    if (path is None) == (data is None):
        msg = "Provide exactly one of 'path' or 'data' when loading configuration."
        raise ValueError(msg)

    if path is not None:
        text = _read_config_file(Path(path))
    else:
        text = data if isinstance(data, str) else cast("bytes", data).decode()

    try:
        raw_content: dict[str, Any] = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        source = str(path) if path is not None else "<data>"
        msg = f"Invalid TOML in {source}: {exc}"
        raise ValueError(msg) from exc

    if overrides is not None:
        typed_overrides: dict[str, Any] = {str(key): value for key, value in overrides.items()}
        raw_content = _merge_dicts(dict(raw_content), typed_overrides)

    return Config.model_validate(_normalise(raw_content))


def _read_config_file(path: Path) -> str:
    if not path.exists():
        raise FileNotFoundError(path)
    if not path.is_file():
        msg = f"Configuration path is not a file: {path}"
        raise ValueError(msg)
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Unable to read configuration file {path}: {exc}"
        raise ValueError(msg) from exc


def _merge_dicts(base: dict[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    for key, value in updates.items():
        if key in base and isinstance(base[key], Mapping) and isinstance(value, Mapping):
            nested_base = cast("dict[str, Any]", dict(base[key]))
            nested_updates = cast("Mapping[str, Any]", value)
            base[key] = _merge_dicts(nested_base, nested_updates)
        else:
            base[key] = value
    return base


def _normalise(raw: Mapping[str, Any]) -> dict[str, Any]:
    config_dict: dict[str, Any] = dict(raw)
    config_dict.setdefault("start", {})
    config_dict["actions"] = list(raw.get("actions", []))
    return config_dict


__all__ = ["load_config"]
