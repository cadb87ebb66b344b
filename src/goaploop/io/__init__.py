"""Input/output helpers for goaploop."""

from .config import load_config
from .logging import StructuredLogger
from .memory import InMemorySink, MemorySink

__all__ = ["InMemorySink", "MemorySink", "StructuredLogger", "load_config"]
