"""In-memory event sink for testing."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque, List

from ..models import SubscriptionWebhookReceived
from .base import BaseEventSink


class InMemoryEventSink(BaseEventSink):
    """Simple in-process queue for unit tests."""

    def __init__(self) -> None:
        self._events: Deque[SubscriptionWebhookReceived] = deque()
        self._lock = asyncio.Lock()

    async def publish(self, event: SubscriptionWebhookReceived) -> None:
        """Append event to the in-memory queue."""
        async with self._lock:
            self._events.append(event)

    async def drain(self) -> List[SubscriptionWebhookReceived]:
        """Remove and return every queued event in publish order."""
        async with self._lock:
            events = list(self._events)
            self._events.clear()
        return events

    def __len__(self) -> int:
        return len(self._events)
