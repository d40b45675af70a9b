"""Webhook dispatcher for storehook."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from .config import StorehookConfig, load_config
from .decoding import RawPayload
from .errors import NoHandlerMatched, WebhookError
from .handlers import AppleWebhookHandler, GoogleWebhookHandler, WebhookHandler
from .keys import KeyResolver
from .models import DispatchError, DispatchResult
from .verification import SignatureVerifier

logger = logging.getLogger(__name__)


class WebhookDispatcher:
    """Routes a raw notification to the first handler that accepts it.

    Handlers are tried in registration order. The first one whose
    verification succeeds owns the request and its classification is
    returned unchanged, including ignored and failed statuses. Handlers are
    registered while the dispatcher is assembled and not changed afterwards.
    """

    def __init__(self, handlers: Optional[Sequence[WebhookHandler]] = None) -> None:
        self._handlers: List[WebhookHandler] = []
        for handler in handlers or []:
            self.register_handler(handler)

    def register_handler(self, handler: WebhookHandler) -> None:
        """Append ``handler`` to the registry."""
        if any(h.platform == handler.platform for h in self._handlers):
            raise ValueError(f"Handler for platform {handler.platform} already registered")
        self._handlers.append(handler)

    @property
    def platforms(self) -> List[str]:
        return [h.platform for h in self._handlers]

    def dispatch(self, raw: RawPayload, platform: Optional[str] = None) -> DispatchResult:
        """Verify and classify ``raw``.

        Args:
            raw: The delivered notification body.
            platform: Optional hint restricting the attempt to one handler.

        Returns:
            A result holding the canonical event, or a ``no_handler_matched``
            error with the rejection code reported by each handler tried.
        """
        candidates = self._handlers
        if platform is not None:
            candidates = [h for h in self._handlers if h.platform == platform]
            if not candidates:
                raise ValueError(f"No handler registered for platform: {platform}")

        rejections: Dict[str, str] = {}
        for handler in candidates:
            logger.debug(f"Trying {handler.platform} handler")
            try:
                claims = handler.verify(raw)
            except WebhookError as exc:
                logger.debug(f"{handler.platform} handler rejected payload [{exc.code}]: {exc}")
                rejections[handler.platform] = exc.code
                continue

            event = handler.classify(claims)
            logger.debug(
                f"{handler.platform} handler accepted payload as {event.event_type} "
                f"({event.status.value})"
            )
            return DispatchResult(event=event)

        error = NoHandlerMatched(rejections)
        logger.warning(str(error))
        return DispatchResult(
            error=DispatchError(code=error.code, message=str(error), rejections=rejections)
        )


def build_dispatcher(config: Optional[StorehookConfig] = None) -> WebhookDispatcher:
    """Assemble a dispatcher with the handlers enabled in ``config``."""

    config = config or load_config()
    dispatcher = WebhookDispatcher()
    for platform in config.handler_order:
        if platform == "apple" and config.apple.enabled:
            apple = config.apple
            if apple.verify_signatures and not apple.jwks_url:
                logger.warning("Apple signature verification enabled without a jwks_url")
            resolver = KeyResolver.from_url(
                apple.jwks_url,
                timeout=apple.fetch_timeout,
                retries=apple.fetch_retries,
                retry_backoff=apple.retry_backoff,
                name="apple",
            )
            verifier = SignatureVerifier(
                resolver,
                algorithms=apple.algorithms,
                audience=apple.audience,
                issuer=apple.issuer,
                leeway=apple.leeway,
                enabled=apple.verify_signatures,
            )
            dispatcher.register_handler(AppleWebhookHandler(verifier))
        elif platform == "google" and config.google.enabled:
            dispatcher.register_handler(GoogleWebhookHandler())
    return dispatcher


_dispatcher_instance: WebhookDispatcher | None = None


def get_dispatcher(config: Optional[StorehookConfig] = None) -> WebhookDispatcher:
    """Return the process-wide dispatcher so key caches outlive single calls."""

    global _dispatcher_instance
    if _dispatcher_instance is not None and config is None:
        return _dispatcher_instance
    _dispatcher_instance = build_dispatcher(config)
    return _dispatcher_instance
