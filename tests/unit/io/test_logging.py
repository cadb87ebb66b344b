from __future__ import annotations

import io
import json
from typing import Any

import pytest

from goaploop.io.logging import StructuredLogger, mask_secrets


def read_json_lines(buffer: io.StringIO) -> list[dict[str, Any]]:
    """Parse the contents of the buffer into JSON objects."""
    buffer.seek(0)
    return [json.loads(line) for line in buffer.read().splitlines() if line]


def test_structured_logger_outputs_json_lines() -> None:
    """JSON mode should emit one JSON object per line."""
    stream = io.StringIO()
    logger = StructuredLogger(name="goaploop", json_mode=True, stream=stream)

    logger.info("plan found", actions=["create", "code"], cost=4.0)
    logger.error("action failed", action="deploy")

    records = read_json_lines(stream)
    assert len(records) == 2
    first, second = records
    assert first["level"] == "INFO"
    assert first["logger"] == "goaploop"
    assert first["actions"] == ["create", "code"]
    assert first["cost"] == 4.0
    assert "timestamp" in first
    assert second["level"] == "ERROR"
    assert second["action"] == "deploy"


def test_structured_logger_text_mode() -> None:
    """Text mode should produce a single newline-terminated line."""
    stream = io.StringIO()
    logger = StructuredLogger(name="goaploop", stream=stream)

    logger.info("loop finished", status="completed")

    output = stream.getvalue()
    assert "INFO" in output
    assert "loop finished" in output
    assert 'status="completed"' in output
    assert output.count("\n") == 1


def test_level_threshold_drops_lower_records() -> None:
    """Records below the configured level are not written."""
    stream = io.StringIO()
    logger = StructuredLogger(name="goaploop", stream=stream, level="warning")

    logger.debug("noise")
    logger.info("more noise")
    logger.warning("kept")

    assert stream.getvalue().count("\n") == 1
    assert "kept" in stream.getvalue()


def test_unknown_level_is_rejected() -> None:
    """Only the four supported levels are accepted."""
    with pytest.raises(ValueError, match="unknown log level"):
        StructuredLogger(name="goaploop", level="TRACE")


def test_child_logger_shares_stream() -> None:
    """Child loggers extend the name and write to the parent stream."""
    stream = io.StringIO()
    parent = StructuredLogger(name="goaploop", json_mode=True, stream=stream)

    parent.child("planner").info("hello")

    assert read_json_lines(stream)[0]["logger"] == "goaploop.planner"


def test_structured_logger_masks_sensitive_data() -> None:
    """Credentials in messages and nested fields are masked."""
    stream = io.StringIO()
    logger = StructuredLogger(name="goaploop", json_mode=True, stream=stream)
    secret_key = "api_key" + "=" + "abcd1234"
    bearer = "Bearer " + "eyJhbGciOi"

    logger.info(
        "calling reasoner with " + secret_key,
        params={"auth": bearer, "nested": [secret_key]},
    )

    record = read_json_lines(stream)[0]
    assert record["message"] == "calling reasoner with api_key=***"
    assert record["params"]["auth"] == "Bearer ***"
    assert record["params"]["nested"] == ["api_key=***"]


def test_mask_secrets_leaves_plain_text() -> None:
    """Text without credentials is unchanged."""
    assert mask_secrets("plan found in 3 iterations") == "plan found in 3 iterations"
