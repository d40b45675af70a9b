"""Parsing of raw webhook bodies and JWS envelopes.

Nothing in this module checks signatures: the header and claims returned by
:func:`decode_envelope` are untrusted until
:class:`~storehook.verification.SignatureVerifier` has validated them.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Dict, Mapping, Union

from .errors import MalformedEnvelope, MalformedJson
from .models import DecodedEnvelope

RawPayload = Union[bytes, bytearray, str]


def _load_object(data: RawPayload, what: str) -> Dict[str, Any]:
    try:
        if isinstance(data, (bytes, bytearray)):
            data = bytes(data).decode("utf-8")
        document = json.loads(data)
    except RecursionError as exc:
        raise MalformedJson(f"{what} is nested too deeply") from exc
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedJson(f"{what} is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise MalformedJson(f"{what} must be a JSON object, got {type(document).__name__}")
    return document


def b64url_decode(segment: str) -> bytes:
    """Decode an unpadded base64url segment."""
    try:
        padded = segment.encode("ascii") + b"=" * (-len(segment) % 4)
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except (UnicodeEncodeError, binascii.Error) as exc:
        raise MalformedEnvelope(f"Segment is not valid base64url: {exc}") from exc


def decode_json(raw: RawPayload) -> Dict[str, Any]:
    """Parse a webhook body into a JSON object."""
    return _load_object(raw, "Payload")


def decode_envelope(token: str) -> DecodedEnvelope:
    """Split a compact JWS and decode its header and body segments."""
    if not isinstance(token, str):
        raise MalformedEnvelope("Envelope must be a string")
    segments = token.split(".")
    if len(segments) != 3:
        raise MalformedEnvelope(f"Envelope must have 3 segments, got {len(segments)}")
    header = _load_object(b64url_decode(segments[0]), "Envelope header")
    claims = _load_object(b64url_decode(segments[1]), "Envelope body")
    b64url_decode(segments[2])
    return DecodedEnvelope(header=header, claims=claims, token=token)


def decode_pubsub_message(document: Mapping[str, Any]) -> Dict[str, Any]:
    """Unwrap a Pub/Sub push delivery into the notification it carries.

    Documents that are not push deliveries are returned unchanged.
    """
    message = document.get("message")
    if not isinstance(message, Mapping) or "data" not in message:
        return dict(document)
    data = message["data"]
    if not isinstance(data, str):
        raise MalformedEnvelope("Pub/Sub message data must be a base64 string")
    try:
        decoded = base64.b64decode(data, validate=True)
    except binascii.Error as exc:
        raise MalformedEnvelope(f"Pub/Sub message data is not valid base64: {exc}") from exc
    return _load_object(decoded, "Pub/Sub message data")
