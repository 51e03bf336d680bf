"""Tests for frame builders and inbound classification."""

from wacore.binary.codec import decode_all, encode_frame
from wacore.protocol import (
    InboundKind,
    chat_event,
    classify,
    login_frame,
    message_event,
    parse_bool,
    parse_int,
)
from wacore.session.credentials import Credentials


def wire(frame):
    """Encode and decode, as the frame would arrive from the server."""
    return decode_all(encode_frame(frame))


def test_classify_handshake():
    assert classify(wire(["response", "init", "REF"])).attrs == {"ref": "REF"}
    success = classify(wire(["response", "login", "success", {"wid": "1@s.whatsapp.net"}]))
    assert success.kind == InboundKind.LOGIN_SUCCESS
    assert success.attrs["wid"] == "1@s.whatsapp.net"

    failure = classify(wire(["response", "login", "denied"]))
    assert failure.kind == InboundKind.LOGIN_FAILURE
    assert failure.attrs["reason"] == "denied"


def test_classify_events():
    assert classify(wire(["message", {"id": "M1"}])).kind == InboundKind.MESSAGE
    assert classify(wire(["action", "reaction", {"id": "M1"}])).kind == InboundKind.REACTION
    assert classify(wire(["response", "test"])).kind == InboundKind.PONG

    snapshot = classify(wire(["response", "contacts", [{"jid": "a"}, {"jid": "b"}]]))
    assert snapshot.kind == InboundKind.SNAPSHOT
    assert snapshot.topic == "contacts"
    assert [item["jid"] for item in snapshot.items] == ["a", "b"]


def test_classify_unknown():
    for frame in (None, "text", [], [1, 2], ["mystery", "x"], ["action", "reaction"]):
        assert classify(frame).kind == InboundKind.UNKNOWN


def test_encrypted_payload_bytes():
    inbound = classify(["encrypted", "abc"])
    assert inbound.kind == InboundKind.ENCRYPTED
    assert inbound.payload == b"abc"


def test_login_frame():
    credentials = Credentials.create().updated(client_token=b"\x01", server_token=None)
    frame = login_frame(credentials)
    assert frame == ["admin", "login", "AQ==", None, credentials.client_id, "takeover"]


def test_message_event_from_own_jid():
    event = message_event({"id": "M1", "jid": "a@s.whatsapp.net", "from": "me@s.whatsapp.net"}, "me@s.whatsapp.net")
    assert event["from_me"] is True
    assert event["chat_id"] == "a@s.whatsapp.net"
    assert event["content"] == ""


def test_media_message_event():
    event = message_event({"id": "M1", "jid": "a", "type": "image", "url": "u", "caption": "c"})
    assert event["content"] == {"url": "u", "caption": "c"}


def test_chat_event_keeps_absent_as_none():
    event = chat_event({"jid": "a", "archive": "true"})
    assert event["archived"] is True
    assert event["pinned"] is None
    assert event["unread_count"] is None


def test_parsers():
    assert parse_bool("false") is False
    assert parse_bool(None) is None
    assert parse_int("12.0") == 12
    assert parse_int("x") is None
