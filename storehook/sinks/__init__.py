"""Event sink factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import StorehookConfig, load_config
from .base import BaseEventSink
from .inmemory import InMemoryEventSink


def get_sink(
    backend: Optional[str] = None, config: Optional[StorehookConfig] = None
) -> BaseEventSink:
    """Factory function to get the configured event sink."""

    config = config or load_config()
    backend = (backend or os.getenv("STOREHOOK_SINK") or config.sink.backend).lower()

    if backend == "inmemory":
        return InMemoryEventSink()
    else:
        raise ValueError(f"Unsupported sink backend: {backend}")


__all__ = ["BaseEventSink", "InMemoryEventSink", "get_sink"]
