"""End-to-end dispatch tests across the registered platform handlers."""

import json

import pytest

from storehook import build_dispatcher, get_dispatcher
from storehook.config import StorehookConfig
from storehook.dispatch import WebhookDispatcher
from storehook.errors import NoHandlerMatched
from storehook.handlers import AppleWebhookHandler, GoogleWebhookHandler
from storehook.keys import KeyResolver
from storehook.models import EventStatus
from storehook.verification import SignatureVerifier


def _dispatcher(verifier):
    return WebhookDispatcher([AppleWebhookHandler(verifier), GoogleWebhookHandler()])


@pytest.fixture
def test_mode_dispatcher(make_fetcher):
    verifier = SignatureVerifier(KeyResolver(make_fetcher({"keys": []})), enabled=False)
    return _dispatcher(verifier)


@pytest.fixture
def production_dispatcher(verifier):
    return _dispatcher(verifier)


def test_apple_initial_buy_in_test_mode(test_mode_dispatcher):
    payload = b'{"notificationType":"INITIAL_BUY","originalTransactionId":"12345"}'

    event = test_mode_dispatcher.dispatch(payload).unwrap()

    assert event.status == EventStatus.SUCCESS
    assert event.event_type == "initial_purchase"
    assert event.subscription_id == "12345"


def test_google_renewal(production_dispatcher):
    payload = b'{"subscriptionNotification":{"notificationType":2,"purchaseToken":"tok"}}'

    event = production_dispatcher.dispatch(payload).unwrap()

    assert event.event_type == "subscription_renewed"
    assert event.subscription_id == "tok"
    assert event.platform == "google"


def test_google_test_notification(production_dispatcher):
    event = production_dispatcher.dispatch(b'{"testNotification":{}}').unwrap()

    assert event.status == EventStatus.SUCCESS
    assert event.event_type == "test_notification"


def test_non_json_matches_no_handler(production_dispatcher):
    result = production_dispatcher.dispatch(b"not json")

    assert not result.ok
    assert result.error.code == "no_handler_matched"
    assert result.error.rejections == {"apple": "malformed_json", "google": "malformed_json"}
    with pytest.raises(NoHandlerMatched) as exc_info:
        result.unwrap()
    assert exc_info.value.rejections["google"] == "malformed_json"


def test_forged_signature_rejected_before_classification(production_dispatcher, forger_key):
    payload = json.dumps({"signedPayload": forger_key.sign({"notificationType": "INITIAL_BUY"})})

    result = production_dispatcher.dispatch(payload)

    assert result.event is None
    assert result.error.rejections["apple"] == "invalid_signature"


def test_unsigned_apple_payload_rejected_when_verifying(production_dispatcher):
    result = production_dispatcher.dispatch(b'{"notificationType":"INITIAL_BUY"}')

    assert result.event is None
    assert result.error.rejections == {
        "apple": "malformed_envelope",
        "google": "unrecognized_payload",
    }


def test_signed_apple_payload_accepted(production_dispatcher, signing_key):
    claims = {"notificationType": "DID_FAIL_TO_RENEW", "originalTransactionId": "777"}

    event = production_dispatcher.dispatch(json.dumps({"signedPayload": signing_key.sign(claims)})).unwrap()

    assert event.event_type == "renewal_failure"
    assert event.subscription_id == "777"
    assert event.payload == claims


@pytest.mark.parametrize(
    "payload,event_type",
    [
        ({"notificationType": "SOMETHING_NEW", "originalTransactionId": "1"}, "unknown"),
        ({"subscriptionNotification": {"notificationType": 42}}, "unknown_subscription"),
        ({"oneTimeProductNotification": {"notificationType": 9}}, "unknown_one_time"),
    ],
)
def test_unknown_types_are_ignored(test_mode_dispatcher, payload, event_type):
    event = test_mode_dispatcher.dispatch(json.dumps(payload)).unwrap()

    assert event.status == EventStatus.IGNORED
    assert event.event_type == event_type


def test_first_accepting_handler_owns_the_request(test_mode_dispatcher):
    payload = {
        "notificationType": "RENEWAL",
        "originalTransactionId": "1",
        "testNotification": {},
    }

    event = test_mode_dispatcher.dispatch(json.dumps(payload)).unwrap()

    assert event.platform == "apple"
    assert event.event_type == "renewal"


def test_platform_hint_skips_other_handlers(test_mode_dispatcher):
    payload = json.dumps({"notificationType": "RENEWAL", "testNotification": {}})

    event = test_mode_dispatcher.dispatch(payload, platform="google").unwrap()

    assert event.event_type == "test_notification"


def test_unknown_platform_hint_raises(test_mode_dispatcher):
    with pytest.raises(ValueError):
        test_mode_dispatcher.dispatch(b"{}", platform="amazon")


def test_duplicate_registration_rejected():
    dispatcher = WebhookDispatcher([GoogleWebhookHandler()])
    with pytest.raises(ValueError):
        dispatcher.register_handler(GoogleWebhookHandler())


def test_build_dispatcher_follows_config():
    config = StorehookConfig(handler_order=["google", "apple"])
    config.apple.verify_signatures = False

    dispatcher = build_dispatcher(config)

    assert dispatcher.platforms == ["google", "apple"]


def test_build_dispatcher_skips_disabled_platforms():
    config = StorehookConfig()
    config.google.enabled = False

    assert build_dispatcher(config).platforms == ["apple"]


def test_get_dispatcher_is_cached():
    assert get_dispatcher() is get_dispatcher()
