"""Typed errors raised while decoding, verifying and dispatching webhooks."""

from __future__ import annotations

from typing import Dict, Optional


class WebhookError(Exception):
    """Base class for every rejection path.

    Each subclass carries a stable ``code`` that is safe to log and to return
    to callers, so rejections stay distinguishable without parsing messages.
    """

    code = "webhook_error"
    transient = False


class MalformedInput(WebhookError):
    """The payload does not have the expected shape. Never retried."""

    code = "malformed_input"


class MalformedJson(MalformedInput):
    code = "malformed_json"


class MalformedEnvelope(MalformedInput):
    code = "malformed_envelope"


class UnrecognizedPayload(MalformedInput):
    """Valid JSON that does not belong to the handler's platform."""

    code = "unrecognized_payload"


class KeyLookupError(WebhookError):
    """A verification key could not be obtained."""

    code = "key_lookup_failed"


class KeyFetchFailed(KeyLookupError):
    code = "key_fetch_failed"
    transient = True


class KeyNotFound(KeyLookupError):
    code = "key_not_found"

    def __init__(self, key_id: str) -> None:
        super().__init__(f"Key id {key_id!r} not present in the published key-set")
        self.key_id = key_id


class VerificationFailure(WebhookError):
    """The envelope did not pass signature verification."""

    code = "verification_failure"


class MissingKeyId(VerificationFailure):
    code = "missing_key_id"


class InvalidSignature(VerificationFailure):
    code = "invalid_signature"


class ExpiredOrMalformed(VerificationFailure):
    code = "expired_or_malformed"


class VerificationFailed(VerificationFailure):
    code = "verification_failed"


class NoHandlerMatched(WebhookError):
    """No registered platform handler accepted the payload."""

    code = "no_handler_matched"

    def __init__(self, rejections: Optional[Dict[str, str]] = None) -> None:
        self.rejections = dict(rejections or {})
        detail = ", ".join(f"{name}={code}" for name, code in self.rejections.items())
        message = "No suitable webhook handler found"
        super().__init__(f"{message} ({detail})" if detail else message)
