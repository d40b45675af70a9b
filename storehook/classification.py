"""Mapping of verified notification claims to canonical events.

Each platform owns a static table from its notification type to a canonical
tag. Adding a notification type is a table entry, not a new branch.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional

from .models import CanonicalEvent, EventStatus, VerifiedClaims

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

APPLE_NOTIFICATION_TYPES: Mapping[str, str] = {
    "INITIAL_BUY": "initial_purchase",
    "RENEWAL": "renewal",
    "CANCELLATION": "cancellation",
    "DID_CHANGE_RENEWAL_STATUS": "renewal_status_change",
    "DID_FAIL_TO_RENEW": "renewal_failure",
    "PRICE_INCREASE": "price_increase",
    "REFUND": "refund",
}

GOOGLE_SUBSCRIPTION_TYPES: Mapping[int, str] = {
    1: "subscription_recovered",
    2: "subscription_renewed",
    3: "subscription_canceled",
    4: "subscription_purchased",
    5: "subscription_on_hold",
    6: "subscription_grace_period",
    7: "subscription_restarted",
    8: "subscription_price_change_confirmed",
    9: "subscription_deferred",
    10: "subscription_paused",
    11: "subscription_pause_schedule_changed",
    12: "subscription_revoked",
    13: "subscription_expired",
}

GOOGLE_ONE_TIME_TYPES: Mapping[int, str] = {
    1: "one_time_purchased",
    2: "one_time_canceled",
}


def _string_or_none(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def _lookup(table: Mapping[Any, str], code: Any) -> Optional[str]:
    # bool is an int subclass; True must not alias notification type 1
    if isinstance(code, bool):
        return None
    try:
        return table.get(code)
    except TypeError:
        return None


def _ignored(
    platform: str,
    event_type: str,
    claims: VerifiedClaims,
    raw_type: Any,
    subscription_id: Optional[str] = None,
) -> CanonicalEvent:
    logger.warning(f"Unknown {platform} notification type {raw_type!r}")
    return CanonicalEvent(
        status=EventStatus.IGNORED,
        event_type=event_type,
        subscription_id=subscription_id,
        payload={**claims, "raw_type": raw_type},
        platform=platform,
    )


def classify_apple(claims: VerifiedClaims) -> CanonicalEvent:
    """Classify App Store claims keyed by ``notificationType``."""
    raw_type = claims.get("notificationType")
    subscription_id = _string_or_none(claims.get("originalTransactionId"))
    event_type = _lookup(APPLE_NOTIFICATION_TYPES, raw_type)
    if event_type is None:
        return _ignored("apple", UNKNOWN, claims, raw_type, subscription_id)
    return CanonicalEvent(
        status=EventStatus.SUCCESS,
        event_type=event_type,
        subscription_id=subscription_id,
        payload=dict(claims),
        platform="apple",
    )


def _classify_google_section(
    claims: VerifiedClaims, section: str, table: Mapping[int, str], unknown: str
) -> CanonicalEvent:
    info = claims.get(section)
    info = info if isinstance(info, dict) else {}
    raw_type = info.get("notificationType")
    event_type = _lookup(table, raw_type)
    if event_type is None:
        return _ignored("google", unknown, claims, raw_type)
    return CanonicalEvent(
        status=EventStatus.SUCCESS,
        event_type=event_type,
        subscription_id=_string_or_none(info.get("purchaseToken")),
        payload=dict(claims),
        platform="google",
    )


def classify_google(claims: VerifiedClaims) -> CanonicalEvent:
    """Classify Play Store developer notifications.

    The test ping is checked first, then subscription and one-time product
    notifications, each with its own purchase token path.
    """
    if "testNotification" in claims:
        return CanonicalEvent(
            status=EventStatus.SUCCESS,
            event_type="test_notification",
            payload=dict(claims),
            platform="google",
        )
    if "subscriptionNotification" in claims:
        return _classify_google_section(
            claims,
            "subscriptionNotification",
            GOOGLE_SUBSCRIPTION_TYPES,
            "unknown_subscription",
        )
    if "oneTimeProductNotification" in claims:
        return _classify_google_section(
            claims,
            "oneTimeProductNotification",
            GOOGLE_ONE_TIME_TYPES,
            "unknown_one_time",
        )
    return CanonicalEvent(
        status=EventStatus.FAILED,
        event_type=UNKNOWN,
        payload=dict(claims),
        platform="google",
    )


CLASSIFIERS: Dict[str, Callable[[VerifiedClaims], CanonicalEvent]] = {
    "apple": classify_apple,
    "google": classify_google,
}


def classify(platform: str, claims: VerifiedClaims) -> CanonicalEvent:
    """Map ``claims`` from ``platform`` to a canonical event. Never raises."""
    classifier = CLASSIFIERS.get(platform)
    if classifier is None:
        return _ignored(platform, UNKNOWN, claims, None)
    return classifier(claims)
