"""Tests for webhook delivery."""

import json
from unittest import mock

import pytest
import requests

from wacore.cache import Message
from wacore.config import WebhookConfig
from wacore.events import EventBus, Events
from wacore.webhook import WebhookDispatcher, json_safe, sign_body


@pytest.fixture
def session():
    return mock.MagicMock()


def make_dispatcher(session, **overrides):
    settings = {"url": "https://example.com/hook", "events": [Events.MESSAGE_NEW], "secret": "s3cret"}
    settings.update(overrides)
    return WebhookDispatcher(WebhookConfig(**settings), session=session)


def posted_body(session):
    _, kwargs = session.post.call_args
    return json.loads(kwargs["data"])


def test_requires_url(session):
    with pytest.raises(ValueError):
        WebhookDispatcher(WebhookConfig(), session=session)


def test_signed_delivery(session):
    webhook = make_dispatcher(session)
    assert webhook.deliver(Events.MESSAGE_NEW, 1700000000000, {"id": "M1"}) is True

    args, kwargs = session.post.call_args
    assert args == ("https://example.com/hook",)
    assert kwargs["timeout"] == 10.0
    body = posted_body(session)
    assert body["event"] == Events.MESSAGE_NEW
    assert body["timestamp"] == 1700000000000
    assert body["data"] == {"id": "M1"}
    assert body["signature"] == sign_body(Events.MESSAGE_NEW, 1700000000000, {"id": "M1"}, "s3cret")
    assert webhook.delivered == 1


def test_unsigned_without_secret(session):
    webhook = make_dispatcher(session, secret=None)
    webhook.deliver(Events.MESSAGE_NEW, 1, {})
    assert "signature" not in posted_body(session)


def test_signature_depends_on_secret_and_body():
    base = sign_body("e", 1, {"a": 1}, "k")
    assert len(base) == 64
    assert base != sign_body("e", 1, {"a": 1}, "other")
    assert base != sign_body("e", 2, {"a": 1}, "k")


def test_allow_list(session):
    bus = EventBus()
    webhook = make_dispatcher(session)
    webhook.attach(bus)

    bus.emit(Events.MESSAGE_NEW, {"id": "M1"})
    bus.emit(Events.PRESENCE_UPDATE, {"userId": "x"})

    assert [item[0] for item in webhook.pending()] == [Events.MESSAGE_NEW]
    assert webhook.skipped == 1
    assert webhook.process_pending() == 1
    assert session.post.call_count == 1


def test_empty_allow_list_forwards_nothing(session):
    webhook = make_dispatcher(session, events=[])
    webhook.handle_event(Events.MESSAGE_NEW, {})
    assert webhook.pending() == []


def test_detach(session):
    bus = EventBus()
    webhook = make_dispatcher(session)
    webhook.attach(bus)
    webhook.detach()
    bus.emit(Events.MESSAGE_NEW, {})
    assert webhook.pending() == []
    assert bus.listener_count("*") == 0


def test_transport_failure_counted(session):
    session.post.side_effect = requests.ConnectionError("down")
    webhook = make_dispatcher(session)
    assert webhook.deliver(Events.MESSAGE_NEW, 1, {}) is False
    assert webhook.failed == 1
    assert webhook.delivered == 0


def test_http_error_counted(session):
    session.post.return_value.raise_for_status.side_effect = requests.HTTPError("500")
    webhook = make_dispatcher(session)
    assert webhook.deliver(Events.MESSAGE_NEW, 1, {}) is False
    assert webhook.get_stats()["failed"] == 1


def test_worker_thread_delivers(session):
    webhook = make_dispatcher(session)
    webhook.start()
    webhook.handle_event(Events.MESSAGE_NEW, {"id": "M1"})
    webhook.stop()
    assert webhook.delivered == 1
    session.close.assert_called_once()


def test_json_safe():
    message = Message(id="M1", chat_id="c", sender_id="s")
    data = json_safe({"message": message, "raw": b"\x00\x01", "items": (1, 2)})
    assert data["message"]["kind"] == "text"
    assert data["message"]["delivery_status"] == 0
    assert data["raw"] == "AAE="
    assert data["items"] == [1, 2]
    json.dumps(data)
