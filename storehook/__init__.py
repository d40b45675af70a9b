"""storehook: verification and normalization of app-store subscription webhooks."""

from .config import StorehookConfig, load_config
from .dispatch import WebhookDispatcher, build_dispatcher, get_dispatcher
from .handlers import AppleWebhookHandler, GoogleWebhookHandler, WebhookHandler
from .keys import KeyResolver
from .models import CanonicalEvent, DispatchResult, EventStatus
from .receiver import WebhookReceiver
from .sinks import get_sink
from .verification import SignatureVerifier

__version__ = "0.1.0"
__all__ = [
    "AppleWebhookHandler",
    "CanonicalEvent",
    "DispatchResult",
    "EventStatus",
    "GoogleWebhookHandler",
    "KeyResolver",
    "SignatureVerifier",
    "StorehookConfig",
    "WebhookDispatcher",
    "WebhookHandler",
    "WebhookReceiver",
    "build_dispatcher",
    "get_dispatcher",
    "get_sink",
    "load_config",
]
