"""Write-only telemetry sink contract and an in-memory implementation."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from collections.abc import Callable


class MemorySink(Protocol):
    """External append-only store receiving structured loop events."""

    def store(self, namespace: str, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Persist ``value`` under ``namespace``/``key`` for ``ttl_seconds``."""
        ...


@dataclass(frozen=True, slots=True)
class MemoryRecord:
    """A stored value and its absolute expiry time."""

    namespace: str
    key: str
    value: Any
    expires_at: float | None


class InMemorySink:
    """Dictionary backed :class:`MemorySink` honouring per-entry TTLs."""

    def __init__(self, *, clock: Callable[[], float] | None = None) -> None:
        """Create an empty sink; ``clock`` defaults to :func:`time.monotonic`."""
        self._clock = clock or time.monotonic
        self._records: dict[tuple[str, str], MemoryRecord] = {}

    def store(self, namespace: str, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store ``value``, overwriting any previous entry with the same key."""
        if ttl_seconds is not None and ttl_seconds <= 0:
            msg = "ttl_seconds must be positive"
            raise ValueError(msg)
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        self._records[(namespace, key)] = MemoryRecord(namespace, key, value, expires_at)

    def get(self, namespace: str, key: str) -> Any | None:
        """Return the live value for ``namespace``/``key`` or ``None``."""
        self._purge()
        record = self._records.get((namespace, key))
        return record.value if record is not None else None

    def keys(self, namespace: str) -> list[str]:
        """Return the live keys of ``namespace`` in insertion order."""
        self._purge()
        return [key for (space, key) in self._records if space == namespace]

    def entries(self, namespace: str) -> list[MemoryRecord]:
        """Return the live records of ``namespace`` in insertion order."""
        self._purge()
        return [record for record in self._records.values() if record.namespace == namespace]

    def _purge(self) -> None:
        now = self._clock()
        expired = [
            slot for slot, record in self._records.items()
            if record.expires_at is not None and record.expires_at <= now
        ]
        for slot in expired:
            del self._records[slot]


__all__ = ["InMemorySink", "MemoryRecord", "MemorySink"]
