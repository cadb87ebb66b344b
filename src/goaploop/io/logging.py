"""Structured logging for planner and execution-loop events."""

from __future__ import annotations

import json
import re
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, TextIO, cast

from pydantic import BaseModel, SecretStr, field_validator

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}

# Reasoning callbacks often carry provider credentials in their params.
_SECRET_PATTERNS = (
    (re.compile(r"(api[_-]?key|token|secret|password)([=:]\s*)\S+", re.IGNORECASE), r"\1\2***"),
    (re.compile(r"bearer\s+\S+", re.IGNORECASE), "Bearer ***"),
    (re.compile(r"\bsk-[A-Za-z0-9_-]{8,}"), "sk-***"),
)


class _MaskedText(BaseModel):
    """Model that masks credentials embedded in log text."""

    text: SecretStr

    @field_validator("text", mode="before")
    @classmethod
    def _mask(cls, value: Any) -> str:
        text = str(value)
        for pattern, replacement in _SECRET_PATTERNS:
            text = pattern.sub(replacement, text)
        return text


def mask_secrets(text: str) -> str:
    """Return ``text`` with credential fragments replaced by ``***``."""
    return _MaskedText.model_validate({"text": text}).text.get_secret_value()


def _mask_value(value: Any) -> Any:
    if isinstance(value, str):
        return mask_secrets(value)
    if isinstance(value, Mapping):
        typed_mapping = cast("Mapping[Any, Any]", value)
        return {key: _mask_value(item) for key, item in typed_mapping.items()}
    if isinstance(value, (list, tuple)):
        typed_items = cast("list[Any]", value)
        return [_mask_value(item) for item in typed_items]
    return value


class StructuredLogger:
    """Logger emitting JSON lines or single-line text records to a stream."""

    def __init__(
        self,
        *,
        name: str,
        json_mode: bool = False,
        stream: TextIO | None = None,
        level: str = "DEBUG",
    ) -> None:
        """Initialise the logger; records below ``level`` are dropped."""
        if level.upper() not in _LEVELS:
            msg = f"unknown log level: {level}"
            raise ValueError(msg)
        self._name = name
        self._json_mode = json_mode
        self._stream: TextIO = stream or sys.stderr
        self._threshold = _LEVELS[level.upper()]

    @property
    def name(self) -> str:
        """Return the logger name."""
        return self._name

    @property
    def json_mode(self) -> bool:
        """Return whether JSON mode is enabled."""
        return self._json_mode

    def child(self, suffix: str) -> StructuredLogger:
        """Return a logger sharing this stream under ``name.suffix``."""
        level = next(key for key, value in _LEVELS.items() if value == self._threshold)
        return StructuredLogger(
            name=f"{self._name}.{suffix}",
            json_mode=self._json_mode,
            stream=self._stream,
            level=level,
        )

    def debug(self, message: str, **fields: Any) -> None:
        """Log a DEBUG-level message."""
        self._emit("DEBUG", message, fields)

    def info(self, message: str, **fields: Any) -> None:
        """Log an INFO-level message."""
        self._emit("INFO", message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        """Log a WARNING-level message."""
        self._emit("WARNING", message, fields)

    def error(self, message: str, **fields: Any) -> None:
        """Log an ERROR-level message."""
        self._emit("ERROR", message, fields)

    def _emit(self, level: str, message: str, fields: dict[str, Any]) -> None:
        if _LEVELS[level] < self._threshold:
            return
        timestamp = datetime.now(UTC).isoformat()
        masked_message = mask_secrets(message)
        masked_fields = {key: _mask_value(value) for key, value in fields.items()}
        if self._json_mode:
            payload: dict[str, Any] = {
                "timestamp": timestamp,
                "level": level,
                "logger": self._name,
                "message": masked_message,
            }
            payload.update(masked_fields)
            self._stream.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
        else:
            line = f"[{timestamp}] {level:<7} {self._name}: {masked_message}"
            if masked_fields:
                extras = " ".join(
                    f"{key}={json.dumps(value, ensure_ascii=False, default=str)}"
                    for key, value in masked_fields.items()
                )
                line = f"{line} | {extras}"
            self._stream.write(line + "\n")
        self._stream.flush()


__all__ = ["StructuredLogger", "mask_secrets"]
