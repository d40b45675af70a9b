"""Receiving side of the pipeline: dispatch, log and forward accepted events."""

from __future__ import annotations

import logging
from typing import Optional

from .decoding import RawPayload
from .dispatch import WebhookDispatcher
from .models import DispatchResult, SubscriptionWebhookReceived
from .sinks import BaseEventSink

logger = logging.getLogger(__name__)

_PAYLOAD_LOG_LIMIT = 512


def _preview(raw: RawPayload) -> str:
    text = raw.decode("utf-8", "replace") if isinstance(raw, (bytes, bytearray)) else raw
    if len(text) > _PAYLOAD_LOG_LIMIT:
        return text[:_PAYLOAD_LOG_LIMIT] + "..."
    return text


class WebhookReceiver:
    """Handles one delivery end to end for an HTTP layer or a CLI."""

    def __init__(self, dispatcher: WebhookDispatcher, sink: BaseEventSink) -> None:
        self._dispatcher = dispatcher
        self._sink = sink

    async def receive(
        self, raw: RawPayload, platform: Optional[str] = None
    ) -> DispatchResult:
        """Dispatch ``raw`` and publish the resulting event when accepted.

        Rejections are logged and returned; nothing is published for them.
        """
        result = self._dispatcher.dispatch(raw, platform=platform)
        if result.event is None:
            rejections = result.error.rejections if result.error else {}
            logger.error(
                f"Webhook processing error: {rejections} payload={_preview(raw)}"
            )
            return result

        event = result.event
        logger.info(
            f"{event.platform} webhook received: event_type={event.event_type} "
            f"subscription_id={event.subscription_id} status={event.status.value}"
        )
        await self._sink.publish(
            SubscriptionWebhookReceived(
                platform=event.platform or "unknown", webhook_data=event.to_dict()
            )
        )
        return result
