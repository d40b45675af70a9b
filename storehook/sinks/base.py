"""Base interface for delivering accepted webhook events downstream."""

from __future__ import annotations

import abc

from ..models import SubscriptionWebhookReceived


class BaseEventSink(metaclass=abc.ABCMeta):
    """Abstract outbound channel for accepted notifications."""

    async def connect(self) -> None:
        """Open connection to the downstream system (no-op by default)."""
        pass

    async def disconnect(self) -> None:
        """Close connection to the downstream system (no-op by default)."""
        pass

    @abc.abstractmethod
    async def publish(self, event: SubscriptionWebhookReceived) -> None:
        """Hand one accepted event to the downstream system."""
        raise NotImplementedError
