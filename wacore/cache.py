"""
wacore Entity Cache

In-memory chats, messages and contacts, kept consistent by applying decoded
protocol events.

Features:
- Idempotent upserts keyed by identifier
- Placeholder chats created on first reference
- Unread counting for inbound messages only
- Delivery status that never moves backwards

Design:
- Events are plain dicts produced by the protocol layer
- Absent (None) fields in an update never clear stored values
- Getters return copies; stored entities are only mutated here
"""

import copy
import threading
from dataclasses import dataclass, field, asdict
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from .jid import is_group_jid, is_broadcast_jid, jid_user


class ChatKind(Enum):
    """Chat type."""
    DM = "dm"
    GROUP = "group"
    BROADCAST = "broadcast"

    @classmethod
    def for_jid(cls, jid: str) -> 'ChatKind':
        if is_group_jid(jid):
            return cls.GROUP
        if is_broadcast_jid(jid):
            return cls.BROADCAST
        return cls.DM


class MessageKind(Enum):
    """Message content type."""
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    LOCATION = "location"
    CONTACT = "contact"
    STICKER = "sticker"

    @classmethod
    def parse(cls, value: Any) -> 'MessageKind':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.TEXT


class DeliveryStatus(IntEnum):
    """Message delivery status, ordered by progress."""
    FAILED = -1
    PENDING = 0
    SENT = 1
    DELIVERED = 2
    READ = 3

    @classmethod
    def parse(cls, value: Any) -> 'DeliveryStatus':
        """Parse a status name; unrecognised names (e.g. "played") count as delivered."""
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).upper()]
        except KeyError:
            return cls.DELIVERED


# Presence kinds that mean the contact is online
ONLINE_PRESENCE = frozenset({"available", "composing", "recording", "paused"})
OFFLINE_PRESENCE = frozenset({"unavailable"})


@dataclass
class Message:
    """One chat message."""
    id: str
    chat_id: str
    sender_id: str
    from_me: bool = False
    timestamp: int = 0  # ms
    kind: MessageKind = MessageKind.TEXT
    content: Any = ""
    quoted_message_id: Optional[str] = None
    mentions: Optional[List[str]] = None
    reactions: Dict[str, str] = field(default_factory=dict)  # sender -> emoji
    delivery_status: DeliveryStatus = DeliveryStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["delivery_status"] = self.delivery_status.name.lower()
        return data


@dataclass
class Chat:
    """One conversation."""
    id: str
    name: str = ""
    kind: ChatKind = ChatKind.DM
    last_activity: int = 0  # ms
    unread_count: int = 0
    last_message: Optional[Message] = None
    participants: Optional[List[str]] = None
    admins: Optional[List[str]] = None
    description: Optional[str] = None
    archived: bool = False
    pinned: bool = False
    muted: bool = False
    mute_until: Optional[int] = None  # ms

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["last_message"] = self.last_message.to_dict() if self.last_message else None
        return data


@dataclass
class Contact:
    """One known user."""
    id: str
    name: str = ""
    phone: str = ""
    is_online: bool = False
    last_seen: Optional[int] = None  # ms
    status: Optional[str] = None
    blocked: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Chat fields an update may set directly
_CHAT_FIELDS = (
    "name", "description", "archived", "pinned", "muted", "mute_until",
    "unread_count", "participants", "admins",
)

_CONTACT_FIELDS = ("name", "phone", "status", "blocked")


class EntityCache:
    """
    Store of chats, messages and contacts.

    Usage:
        cache = EntityCache()
        message = cache.apply_message_event({
            "id": "ABC", "chat_id": "40712345678@s.whatsapp.net",
            "sender_id": "40712345678@s.whatsapp.net", "from_me": False,
            "timestamp": 1700000000000, "kind": "text", "content": "hi",
        })
    """

    def __init__(self):
        self._chats: Dict[str, Chat] = {}
        self._messages: Dict[str, Message] = {}
        self._contacts: Dict[str, Contact] = {}
        self._lock = threading.RLock()

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    def _ensure_chat(self, chat_id: str) -> Chat:
        chat = self._chats.get(chat_id)
        if chat is None:
            chat = Chat(id=chat_id, name=jid_user(chat_id), kind=ChatKind.for_jid(chat_id))
            self._chats[chat_id] = chat
        return chat

    def _touch_chat(self, chat: Chat, message: Message) -> None:
        if message.timestamp >= chat.last_activity:
            chat.last_activity = message.timestamp
            chat.last_message = message
        elif chat.last_message is None:
            chat.last_message = message

    def apply_message_event(self, event: Dict[str, Any]) -> Message:
        """
        Upsert a message.

        Creates a placeholder chat when the chat is unknown. The unread
        count is incremented only the first time an inbound message id is
        seen.

        Args:
            event: {id, chat_id, sender_id?, from_me?, timestamp?, kind?,
                content?, quoted_message_id?, mentions?, delivery_status?}

        Returns:
            Message: Copy of the stored message

        Raises:
            ValueError: If id or chat_id is missing
        """
        message_id = event.get("id")
        chat_id = event.get("chat_id")
        if not message_id or not chat_id:
            raise ValueError("Message event requires id and chat_id")

        with self._lock:
            chat = self._ensure_chat(chat_id)
            message = self._messages.get(message_id)

            if message is None:
                message = Message(
                    id=message_id,
                    chat_id=chat_id,
                    sender_id=event.get("sender_id") or chat_id,
                    from_me=bool(event.get("from_me", False)),
                    timestamp=int(event.get("timestamp") or 0),
                    kind=MessageKind.parse(event.get("kind", "text")),
                    content=event.get("content", ""),
                    quoted_message_id=event.get("quoted_message_id"),
                    mentions=list(event["mentions"]) if event.get("mentions") else None,
                    delivery_status=DeliveryStatus.parse(
                        event.get("delivery_status") or
                        (DeliveryStatus.PENDING if event.get("from_me") else DeliveryStatus.DELIVERED)
                    ),
                )
                self._messages[message_id] = message
                if not message.from_me:
                    chat.unread_count += 1
            else:
                if event.get("content") is not None:
                    message.content = event["content"]
                if event.get("kind") is not None:
                    message.kind = MessageKind.parse(event["kind"])
                if event.get("timestamp"):
                    message.timestamp = int(event["timestamp"])
                if event.get("delivery_status") is not None:
                    self._advance_status(message, DeliveryStatus.parse(event["delivery_status"]))

            self._touch_chat(chat, message)
            return copy.deepcopy(message)

    @staticmethod
    def _advance_status(message: Message, status: DeliveryStatus) -> bool:
        if status == DeliveryStatus.FAILED:
            if message.delivery_status == DeliveryStatus.PENDING:
                message.delivery_status = status
                return True
            return False
        if status > message.delivery_status:
            message.delivery_status = status
            return True
        return False

    def apply_receipt_event(self, event: Dict[str, Any]) -> Optional[Message]:
        """
        Apply a delivery receipt {id, status}.

        Returns:
            Copy of the updated message, or None if unknown or unchanged
        """
        with self._lock:
            message = self._messages.get(event.get("id", ""))
            if message is None:
                return None
            status = DeliveryStatus.parse(event.get("status") or "delivered")
            if not self._advance_status(message, status):
                return None
            return copy.deepcopy(message)

    def apply_reaction_event(self, event: Dict[str, Any]) -> Optional[Message]:
        """
        Apply a reaction {message_id, sender_id, emoji}; an empty emoji removes it.
        """
        with self._lock:
            message = self._messages.get(event.get("message_id", ""))
            if message is None:
                return None
            sender = event.get("sender_id") or ""
            emoji = event.get("emoji") or ""
            if emoji:
                message.reactions[sender] = emoji
            else:
                message.reactions.pop(sender, None)
            return copy.deepcopy(message)

    def remove_message(self, message_id: str) -> Optional[Message]:
        """Delete a message; returns the removed message or None."""
        with self._lock:
            message = self._messages.pop(message_id, None)
            if message is None:
                return None
            chat = self._chats.get(message.chat_id)
            if chat is not None and chat.last_message is not None and chat.last_message.id == message_id:
                remaining = [m for m in self._messages.values() if m.chat_id == chat.id]
                chat.last_message = max(remaining, key=lambda m: m.timestamp) if remaining else None
            return message

    # -------------------------------------------------------------------------
    # Chats
    # -------------------------------------------------------------------------

    def apply_chat_event(self, event: Dict[str, Any]) -> Chat:
        """
        Upsert a chat, merging only the fields present in the event.

        Raises:
            ValueError: If id is missing
        """
        chat_id = event.get("id")
        if not chat_id:
            raise ValueError("Chat event requires id")

        with self._lock:
            chat = self._ensure_chat(chat_id)
            for name in _CHAT_FIELDS:
                value = event.get(name)
                if value is None:
                    continue
                if name in ("participants", "admins"):
                    value = list(value)
                setattr(chat, name, value)
            if event.get("kind") is not None:
                chat.kind = ChatKind(event["kind"]) if not isinstance(event["kind"], ChatKind) else event["kind"]
            if event.get("last_activity"):
                chat.last_activity = max(chat.last_activity, int(event["last_activity"]))
            return copy.deepcopy(chat)

    def apply_group_event(self, event: Dict[str, Any]) -> Chat:
        """
        Apply a group change {id, action, participants?, subject?, description?}.

        Actions: create, add, remove, promote, demote, subject, description.
        """
        group_id = event.get("id")
        if not group_id:
            raise ValueError("Group event requires id")
        action = event.get("action", "")
        participants = list(event.get("participants") or [])

        with self._lock:
            chat = self._ensure_chat(group_id)
            chat.kind = ChatKind.GROUP
            members = chat.participants if chat.participants is not None else []
            admins = chat.admins if chat.admins is not None else []

            if action in ("create", "add"):
                members.extend(p for p in participants if p not in members)
            elif action == "remove":
                members = [p for p in members if p not in participants]
                admins = [p for p in admins if p not in participants]
            elif action == "promote":
                admins.extend(p for p in participants if p not in admins)
            elif action == "demote":
                admins = [p for p in admins if p not in participants]

            chat.participants = members
            chat.admins = admins
            if event.get("subject") is not None:
                chat.name = event["subject"]
            if event.get("description") is not None:
                chat.description = event["description"]
            return copy.deepcopy(chat)

    def mark_read(self, chat_id: str) -> Optional[Chat]:
        with self._lock:
            chat = self._chats.get(chat_id)
            if chat is None:
                return None
            chat.unread_count = 0
            return copy.deepcopy(chat)

    def clear_chat(self, chat_id: str) -> bool:
        """Remove a chat and all of its messages."""
        with self._lock:
            if self._chats.pop(chat_id, None) is None:
                return False
            for message_id in [m.id for m in self._messages.values() if m.chat_id == chat_id]:
                del self._messages[message_id]
            return True

    # -------------------------------------------------------------------------
    # Contacts
    # -------------------------------------------------------------------------

    def _ensure_contact(self, contact_id: str) -> Contact:
        contact = self._contacts.get(contact_id)
        if contact is None:
            contact = Contact(id=contact_id, phone=jid_user(contact_id))
            self._contacts[contact_id] = contact
        return contact

    def apply_presence_event(self, event: Dict[str, Any]) -> Contact:
        """
        Upsert a contact from a presence event {id, kind, last_seen?}.

        Raises:
            ValueError: If id is missing
        """
        contact_id = event.get("id")
        if not contact_id:
            raise ValueError("Presence event requires id")

        with self._lock:
            contact = self._ensure_contact(contact_id)
            kind = str(event.get("kind") or "").lower()
            if kind in ONLINE_PRESENCE:
                contact.is_online = True
            elif kind in OFFLINE_PRESENCE:
                contact.is_online = False
            if event.get("last_seen"):
                contact.last_seen = int(event["last_seen"])
            return copy.deepcopy(contact)

    def apply_contact_event(self, event: Dict[str, Any]) -> Contact:
        """Upsert a contact from a profile/contact event, merging present fields."""
        contact_id = event.get("id")
        if not contact_id:
            raise ValueError("Contact event requires id")

        with self._lock:
            contact = self._ensure_contact(contact_id)
            for name in _CONTACT_FIELDS:
                if event.get(name) is not None:
                    setattr(contact, name, event[name])
            return copy.deepcopy(contact)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_chat(self, chat_id: str) -> Optional[Chat]:
        with self._lock:
            chat = self._chats.get(chat_id)
            return copy.deepcopy(chat) if chat else None

    def get_message(self, message_id: str) -> Optional[Message]:
        with self._lock:
            message = self._messages.get(message_id)
            return copy.deepcopy(message) if message else None

    def get_contact(self, contact_id: str) -> Optional[Contact]:
        with self._lock:
            contact = self._contacts.get(contact_id)
            return copy.deepcopy(contact) if contact else None

    def chats(self) -> List[Chat]:
        """All chats, pinned first, then most recently active."""
        with self._lock:
            ordered = sorted(
                self._chats.values(),
                key=lambda c: (not c.pinned, -c.last_activity),
            )
            return copy.deepcopy(ordered)

    def messages_for(self, chat_id: str, limit: Optional[int] = None) -> List[Message]:
        """Messages of a chat, oldest first; limit keeps the newest."""
        with self._lock:
            messages = sorted(
                (m for m in self._messages.values() if m.chat_id == chat_id),
                key=lambda m: m.timestamp,
            )
            if limit is not None:
                messages = messages[-limit:] if limit > 0 else []
            return copy.deepcopy(messages)

    def contacts(self) -> List[Contact]:
        with self._lock:
            return copy.deepcopy(list(self._contacts.values()))

    def clear(self) -> None:
        with self._lock:
            self._chats.clear()
            self._messages.clear()
            self._contacts.clear()

    def get_statistics(self) -> Dict[str, int]:
        with self._lock:
            return {
                'chats': len(self._chats),
                'messages': len(self._messages),
                'contacts': len(self._contacts),
                'unread': sum(c.unread_count for c in self._chats.values()),
            }

    def __len__(self) -> int:
        return len(self._chats)
