"""Data contracts shared by the storehook pipeline."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from jwt import PyJWK
from pydantic import BaseModel, Field

from .errors import NoHandlerMatched

VerifiedClaims = Dict[str, Any]


class EventStatus(str, Enum):
    """Outcome of classifying a verified notification."""

    SUCCESS = "success"
    IGNORED = "ignored"
    FAILED = "failed"


class CanonicalEvent(BaseModel):
    """Platform-agnostic representation of one subscription notification."""

    status: EventStatus
    event_type: str
    subscription_id: Optional[str] = None
    payload: Dict[str, Any] = Field(
        default_factory=dict, description="Full verified claims"
    )
    platform: Optional[str] = Field(
        default=None, description="Name of the handler that produced the event"
    )

    def to_dict(self) -> Dict[str, Any]:
        """Return the wire representation handed to downstream consumers."""
        return {
            "status": self.status.value,
            "eventType": self.event_type,
            "subscriptionId": self.subscription_id,
            "additionalData": self.payload,
            "platform": self.platform,
        }


class DispatchError(BaseModel):
    """Why a payload was rejected by every registered handler."""

    code: str
    message: str
    rejections: Dict[str, str] = Field(
        default_factory=dict, description="Reason code per platform handler"
    )


class DispatchResult(BaseModel):
    """Either an accepted canonical event or a dispatch error, never both."""

    event: Optional[CanonicalEvent] = None
    error: Optional[DispatchError] = None

    @property
    def ok(self) -> bool:
        return self.event is not None

    def unwrap(self) -> CanonicalEvent:
        """Return the event or raise :class:`NoHandlerMatched`."""
        if self.event is None:
            rejections = self.error.rejections if self.error else {}
            raise NoHandlerMatched(rejections)
        return self.event


class SubscriptionWebhookReceived(BaseModel):
    """Event handed to the outbound sink for each accepted notification."""

    platform: str
    webhook_data: Dict[str, Any]
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class DecodedEnvelope:
    """Header and claims of a JWS envelope, not yet trusted."""

    header: Dict[str, Any]
    claims: Dict[str, Any]
    token: str

    @property
    def key_id(self) -> Optional[str]:
        kid = self.header.get("kid")
        return kid if isinstance(kid, str) and kid else None


@dataclass(frozen=True)
class PublicKeySet:
    """Immutable snapshot of a platform's published verification keys."""

    keys: Mapping[str, PyJWK] = field(default_factory=dict)
    fetched_at: float = 0.0

    @classmethod
    def build(
        cls, keys: Dict[str, PyJWK], fetched_at: Optional[float] = None
    ) -> "PublicKeySet":
        """Snapshot ``keys``; ``fetched_at`` should be when the fetch started."""
        return cls(
            keys=MappingProxyType(dict(keys)),
            fetched_at=time.time() if fetched_at is None else fetched_at,
        )

    def get(self, key_id: str) -> Optional[PyJWK]:
        return self.keys.get(key_id)

    def __contains__(self, key_id: object) -> bool:
        return key_id in self.keys

    def __len__(self) -> int:
        return len(self.keys)
