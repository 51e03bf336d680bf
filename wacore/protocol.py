"""
wacore Protocol Frames

Builders for outbound frames and structural classification of inbound
frames. Frames are plain lists handed to the binary codec; mappings inside
them are flattened to key,value lists on the wire.

Outbound:
    ['admin', 'init', version, browser, clientId, True]            QR handshake
    ['admin', 'init', version, browser, clientId, False, phone, code]
    ['admin', 'login', clientToken, serverToken, clientId, 'takeover']
    ['admin', 'test']                                               keep-alive
    ['admin', 'logout']
    ['query', 'chat' | 'contacts', None]                            snapshot
    ['query', 'messages', {jid, limit, before}]
    ['query', 'profile', userId]
    ['action', 'addMessage', {...}]
    ['action', <category>, <operation>, <data>]

Inbound (dispatched on the leading tokens of the decoded list):
    ['response', 'init', ref]
    ['response', 'pair', ...]
    ['response', 'login', 'success' | 'failure', {attrs}]
    ['response', 'test']
    ['response', 'chat' | 'contacts' | 'messages', [{attrs}, ...]]
    ['response', 'profile', {attrs}]
    ['message' | 'receipt' | 'chat' | 'presence' | 'contact', {attrs}]
    ['action', 'reaction' | 'delete' | 'group', {attrs}]
    ['encrypted', <ciphertext>]

The inbound vocabulary covers what this client consumes; it is not the
complete server grammar.
"""

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .binary.codec import flatten_attrs
from .session.credentials import Credentials


KEEP_ALIVE_FRAME = ["admin", "test"]
LOGOUT_FRAME = ["admin", "logout"]
SNAPSHOT_FRAMES = (
    ["query", "chat", None],
    ["query", "contacts", None],
)


class InboundKind:
    """Classified inbound frame kinds."""
    INIT = "init"
    PAIR = "pair"
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILURE = "login_failure"
    PONG = "pong"
    SNAPSHOT = "snapshot"
    PROFILE = "profile"
    MESSAGE = "message"
    RECEIPT = "receipt"
    CHAT = "chat"
    PRESENCE = "presence"
    CONTACT = "contact"
    REACTION = "reaction"
    DELETE = "delete"
    GROUP = "group"
    ENCRYPTED = "encrypted"
    UNKNOWN = "unknown"


# Handshake frames, handled by the connection manager itself
HANDSHAKE_KINDS = frozenset({
    InboundKind.INIT, InboundKind.PAIR,
    InboundKind.LOGIN_SUCCESS, InboundKind.LOGIN_FAILURE,
})


@dataclass
class Inbound:
    """A classified inbound frame."""
    kind: str
    attrs: Dict[str, Any] = field(default_factory=dict)
    items: List[Dict[str, Any]] = field(default_factory=list)
    topic: Optional[str] = None
    payload: Any = None


# =============================================================================
# Outbound
# =============================================================================

def _b64(value: Optional[bytes]) -> Optional[str]:
    return base64.b64encode(value).decode("ascii") if value is not None else None


def login_frame(credentials: Credentials) -> list:
    """Session resume frame for stored credentials."""
    return [
        "admin", "login",
        _b64(credentials.client_token),
        _b64(credentials.server_token),
        credentials.client_id,
        "takeover",
    ]


def message_frame(
    message_id: str,
    to: str,
    kind: str,
    content: Any,
    timestamp: int,
    quoted_message_id: Optional[str] = None,
    mentions: Optional[List[str]] = None,
) -> list:
    data: Dict[str, Any] = {
        "id": message_id,
        "type": kind,
        "to": to,
        "content": content,
        "timestamp": timestamp,
    }
    if quoted_message_id:
        data["quoted"] = quoted_message_id
    if mentions:
        data["mentions"] = list(mentions)
    return ["action", "addMessage", data]


def action_frame(category: str, operation: str, data: Any) -> list:
    """Generic ['action', category, operation, data] frame."""
    return ["action", category, operation, data]


def presence_frame(kind: str, chat_id: Optional[str] = None) -> list:
    return ["action", "presence", kind, chat_id]


def read_frame(chat_id: str, message_id: str, timestamp: int) -> list:
    return ["action", "read", {"jid": chat_id, "messageId": message_id, "timestamp": timestamp}]


def messages_query_frame(chat_id: str, limit: int, before: Optional[str] = None) -> list:
    return ["query", "messages", {"jid": chat_id, "limit": limit, "before": before}]


def profile_query_frame(user_id: str) -> list:
    return ["query", "profile", user_id]


def encrypted_frame(ciphertext: bytes) -> list:
    return ["encrypted", ciphertext]


# =============================================================================
# Inbound
# =============================================================================

def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def parse_bool(value: Any) -> Optional[bool]:
    """Wire booleans arrive as 'true' / 'false' strings."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("true", "1")


def parse_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def parse_list(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, list):
        return [_text(v) for v in value if v is not None]
    return [_text(value)]


def classify(frame: Any) -> Inbound:
    """
    Classify a decoded inbound frame by its leading tokens.

    Args:
        frame: Value returned by the binary codec

    Returns:
        Inbound: Classified frame (kind UNKNOWN if unrecognized)
    """
    if not isinstance(frame, list) or not frame or not isinstance(frame[0], str):
        return Inbound(InboundKind.UNKNOWN, payload=frame)

    head = frame[0]
    rest = frame[1:]

    if head == "response" and rest:
        topic = rest[0]
        if topic == "init":
            ref = _text(rest[1]) if len(rest) > 1 else None
            return Inbound(InboundKind.INIT, attrs={"ref": ref})
        if topic == "pair":
            return Inbound(InboundKind.PAIR, attrs=flatten_attrs(rest[1]) if len(rest) > 1 else {})
        if topic == "login":
            outcome = rest[1] if len(rest) > 1 else None
            attrs = flatten_attrs(rest[2]) if len(rest) > 2 else {}
            kind = InboundKind.LOGIN_SUCCESS if outcome == "success" else InboundKind.LOGIN_FAILURE
            if kind == InboundKind.LOGIN_FAILURE and "reason" not in attrs:
                attrs["reason"] = _text(outcome) or "rejected"
            return Inbound(kind, attrs=attrs)
        if topic == "test":
            return Inbound(InboundKind.PONG)
        if topic in ("chat", "contacts", "messages"):
            entries = rest[1] if len(rest) > 1 and isinstance(rest[1], list) else []
            items = [flatten_attrs(entry) for entry in entries if isinstance(entry, list)]
            return Inbound(InboundKind.SNAPSHOT, items=items, topic=topic)
        if topic == "profile":
            return Inbound(InboundKind.PROFILE, attrs=flatten_attrs(rest[1]) if len(rest) > 1 else {})

    if head in ("message", "receipt", "chat", "presence", "contact") and rest:
        return Inbound(head, attrs=flatten_attrs(rest[0]))

    if head == "action" and len(rest) >= 2 and rest[0] in ("reaction", "delete", "group"):
        return Inbound(rest[0], attrs=flatten_attrs(rest[1]))

    if head == "encrypted" and rest and isinstance(rest[0], (bytes, str)):
        payload = rest[0]
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        return Inbound(InboundKind.ENCRYPTED, payload=payload)

    return Inbound(InboundKind.UNKNOWN, payload=frame)


# Wire attribute -> event dict conversion

def message_event(attrs: Dict[str, Any], own_jid: Optional[str] = None) -> Dict[str, Any]:
    """Convert message attributes to an EntityCache message event."""
    chat_id = _text(attrs.get("jid") or attrs.get("to") or attrs.get("from"))
    sender = _text(attrs.get("participant") or attrs.get("from")) or chat_id
    from_me = parse_bool(attrs.get("fromMe"))
    if from_me is None:
        from_me = own_jid is not None and sender == own_jid

    kind = _text(attrs.get("type")) or "text"
    if kind == "text":
        content: Any = _text(attrs.get("body", attrs.get("content"))) or ""
    else:
        content = {
            key: _text(attrs.get(key))
            for key in ("url", "caption", "mimetype", "filename")
            if attrs.get(key) is not None
        }

    return {
        "id": _text(attrs.get("id")),
        "chat_id": chat_id,
        "sender_id": sender,
        "from_me": from_me,
        "timestamp": parse_int(attrs.get("t", attrs.get("timestamp"))) or 0,
        "kind": kind,
        "content": content,
        "quoted_message_id": _text(attrs.get("quoted")),
        "mentions": parse_list(attrs.get("mentions")),
        "delivery_status": _text(attrs.get("status")),
    }


def chat_event(attrs: Dict[str, Any]) -> Dict[str, Any]:
    """Convert chat attributes to an EntityCache chat event (absent stays None)."""
    return {
        "id": _text(attrs.get("jid") or attrs.get("id")),
        "name": _text(attrs.get("name")),
        "description": _text(attrs.get("description")),
        "archived": parse_bool(attrs.get("archive")),
        "pinned": parse_bool(attrs.get("pin")),
        "muted": parse_bool(attrs.get("mute")),
        "mute_until": parse_int(attrs.get("muteUntil")),
        "unread_count": parse_int(attrs.get("count")),
        "last_activity": parse_int(attrs.get("t")),
        "participants": parse_list(attrs.get("participants")),
        "admins": parse_list(attrs.get("admins")),
    }


def presence_event(attrs: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": _text(attrs.get("id") or attrs.get("jid")),
        "kind": _text(attrs.get("type")) or "available",
        "last_seen": parse_int(attrs.get("t")),
    }


def receipt_event(attrs: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": _text(attrs.get("id")),
        "status": _text(attrs.get("type") or attrs.get("status")) or "delivered",
    }


def reaction_event(attrs: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "message_id": _text(attrs.get("id")),
        "sender_id": _text(attrs.get("from") or attrs.get("participant")),
        "emoji": _text(attrs.get("emoji")) or "",
    }


def contact_event(attrs: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": _text(attrs.get("jid") or attrs.get("id")),
        "name": _text(attrs.get("name") or attrs.get("notify")),
        "status": _text(attrs.get("status")),
        "blocked": parse_bool(attrs.get("block")),
    }


def group_event(attrs: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": _text(attrs.get("jid") or attrs.get("id")),
        "action": _text(attrs.get("type")) or "",
        "participants": parse_list(attrs.get("participants")) or [],
        "subject": _text(attrs.get("subject")),
        "description": _text(attrs.get("description")),
    }
