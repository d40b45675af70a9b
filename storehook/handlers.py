"""Platform handlers implementing the validate/process capability."""

from __future__ import annotations

import abc
import logging

from . import classification
from .decoding import RawPayload, decode_json, decode_pubsub_message
from .errors import MalformedEnvelope, UnrecognizedPayload, WebhookError
from .models import CanonicalEvent, VerifiedClaims
from .verification import SignatureVerifier

logger = logging.getLogger(__name__)


class WebhookHandler(metaclass=abc.ABCMeta):
    """Abstract base for one platform's notification format."""

    platform: str = "unknown"

    @abc.abstractmethod
    def verify(self, raw: RawPayload) -> VerifiedClaims:
        """Decode and authenticate ``raw``, returning its trusted claims.

        Raises:
            WebhookError: The payload is malformed, foreign or not authentic.
        """
        raise NotImplementedError

    def classify(self, claims: VerifiedClaims) -> CanonicalEvent:
        """Map verified claims to a canonical event."""
        return classification.classify(self.platform, claims)

    def try_validate(self, raw: RawPayload) -> bool:
        """Return ``True`` if this handler accepts ``raw``."""
        try:
            self.verify(raw)
        except WebhookError as exc:
            logger.warning(f"Invalid {self.platform} webhook [{exc.code}]: {exc}")
            return False
        return True

    def process(self, raw: RawPayload) -> CanonicalEvent:
        """Verify and classify ``raw``; raises if it is not accepted."""
        return self.classify(self.verify(raw))


class AppleWebhookHandler(WebhookHandler):
    """App Store notifications.

    Production deliveries wrap the claims in a ``signedPayload`` JWS. With
    verification disabled, bare claims are accepted as well so fixtures can
    be replayed without signing them.
    """

    platform = "apple"

    def __init__(self, verifier: SignatureVerifier) -> None:
        self.verifier = verifier

    def verify(self, raw: RawPayload) -> VerifiedClaims:
        data = decode_json(raw)
        signed = data.get("signedPayload")
        if signed is not None:
            if not isinstance(signed, str):
                raise MalformedEnvelope("signedPayload must be a string")
            claims = self.verifier.verify(signed)
        elif not self.verifier.enabled:
            claims = data
        else:
            raise MalformedEnvelope(
                "signedPayload is required while signature verification is enabled"
            )

        if "notificationType" not in claims:
            raise UnrecognizedPayload("Apple notification has no notificationType")
        return claims


class GoogleWebhookHandler(WebhookHandler):
    """Play Store real-time developer notifications.

    Accepts the notification JSON directly or wrapped in a Pub/Sub push
    delivery. These notifications are not signed.
    """

    platform = "google"

    NOTIFICATION_KEYS = (
        "subscriptionNotification",
        "oneTimeProductNotification",
        "testNotification",
    )

    def verify(self, raw: RawPayload) -> VerifiedClaims:
        claims = decode_pubsub_message(decode_json(raw))
        if not any(key in claims for key in self.NOTIFICATION_KEYS):
            raise UnrecognizedPayload("Google notification has no known notification key")
        return claims
