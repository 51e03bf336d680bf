"""
wacore Client

The client façade ties the protocol core together:
- ConnectionManager (transport, handshake, reconnect, send queue)
- EntityCache populated from inbound frames
- EventBus for consumers
- Optional webhook delivery

Command operations build protocol frames and push them through the
connection manager. Frames are queued while the connection is not READY, so
commands succeed offline once a session has been authenticated.

Threading:
    Every command and every inbound frame runs under the connection
    manager's lock. Event handlers are invoked while that lock is held;
    a handler may call back into the client but must not block on another
    thread that needs it.
"""

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from . import __version__
from .auth.base import AuthError, ValidationError
from .cache import Chat, Contact, DeliveryStatus, EntityCache, Message
from .config import Config
from .crypto.primitives import random_bytes
from .events import EventBus, Events
from .jid import GROUP_SERVER, to_jid
from .media import MEDIA_KINDS, MediaUploader, PlaceholderMediaUploader
from .net.manager import ConnectionManager, ConnectionState
from .net.scheduler import Scheduler, ThreadingScheduler
from .net.transport import Transport, WebSocketTransport
from .protocol import (
    Inbound,
    InboundKind,
    action_frame,
    chat_event,
    contact_event,
    group_event,
    message_event,
    message_frame,
    messages_query_frame,
    presence_event,
    presence_frame,
    profile_query_frame,
    reaction_event,
    read_frame,
    receipt_event,
)
from .session.credentials import UserProfile
from .session.store import FileSessionStore, SessionStore
from .webhook import WebhookDispatcher


logger = logging.getLogger(__name__)

# Default mute duration
DEFAULT_MUTE_DURATION = 8 * 60 * 60  # seconds

PRESENCE_KINDS = ("available", "unavailable", "composing", "recording", "paused")

# Group actions and the event each one publishes
_GROUP_EVENTS = {
    "create": Events.GROUP_CREATED,
    "add": Events.GROUP_PARTICIPANTS_ADD,
    "remove": Events.GROUP_PARTICIPANTS_REMOVE,
    "promote": Events.GROUP_PARTICIPANTS_UPDATE,
    "demote": Events.GROUP_PARTICIPANTS_UPDATE,
    "subject": Events.GROUP_UPDATE,
    "description": Events.GROUP_UPDATE,
}


class WhatsAppClient:
    """
    WhatsApp Web client.

    Usage:
        client = WhatsAppClient(Config.load())
        client.on(Events.QR, print)
        client.on(Events.MESSAGE_NEW, handle_message)
        client.connect()
        client.send_message("40712345678", "hello")
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        transport: Optional[Transport] = None,
        scheduler: Optional[Scheduler] = None,
        session_store: Optional[SessionStore] = None,
        bus: Optional[EventBus] = None,
        media_uploader: Optional[MediaUploader] = None,
        webhook: Optional[WebhookDispatcher] = None,
    ):
        """
        Args:
            config: Client configuration (defaults if None)
            transport: Frame transport (WebSocket to the configured URL if None)
            scheduler: Timer source (threading timers if None)
            session_store: Credential persistence (file store at
                config.auth.session_path if None)
            bus: Event bus (new if None)
            media_uploader: Media upload collaborator (placeholder if None)
            webhook: Webhook dispatcher (built from config.webhooks when the
                webhooks feature is enabled)
        """
        self.config = config or Config()
        self.bus = bus or EventBus()
        self.cache = EntityCache()
        self.scheduler = scheduler or ThreadingScheduler()
        self.media = media_uploader or PlaceholderMediaUploader()
        self._lock = threading.RLock()
        # Outgoing messages whose frames wait in the send queue
        self._awaiting_flush: set = set()

        if transport is None:
            conn = self.config.connection
            transport = WebSocketTransport(conn.url, conn.origin, conn.user_agent)
        if session_store is None:
            session_store = FileSessionStore(Path(self.config.auth.session_path))

        self.manager = ConnectionManager(
            self.config,
            transport,
            self.scheduler,
            self.bus,
            session_store=session_store,
            lock=self._lock,
        )
        self.manager.set_dispatcher(self._dispatch)

        self.webhook = webhook
        if self.webhook is None and self.config.features.webhooks and self.config.webhooks.url:
            self.webhook = WebhookDispatcher(self.config.webhooks)
        if self.webhook is not None:
            self.webhook.attach(self.bus)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self.manager.state

    @property
    def user(self) -> Optional[UserProfile]:
        return self.manager.user

    @property
    def is_ready(self) -> bool:
        return self.manager.is_ready

    @property
    def is_authenticated(self) -> bool:
        return self.manager.is_authenticated

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def on(self, event: str, handler: Callable) -> Callable:
        return self.bus.on(event, handler)

    def once(self, event: str, handler: Callable) -> Callable:
        return self.bus.once(event, handler)

    def off(self, event: str, handler: Optional[Callable] = None) -> None:
        self.bus.off(event, handler)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def connect(self) -> None:
        """
        Connect and authenticate.

        Raises:
            ConnectionError: If the transport could not be opened (a
                reconnect is scheduled)
        """
        logger.info(f"wacore v{__version__} connecting to {self.config.connection.url}")
        if self.webhook is not None:
            self.webhook.start()
        self.manager.connect()

    def disconnect(self) -> None:
        """Close the connection without reconnecting. Idempotent."""
        self.manager.disconnect()

    def shutdown(self) -> None:
        """Disconnect and stop background delivery."""
        self.manager.shutdown()
        if self.webhook is not None:
            self.webhook.stop()

    def logout(self) -> None:
        """Log out, forget the stored session and drop cached entities."""
        with self._lock:
            self.manager.logout()
            self.cache.clear()
            self._awaiting_flush.clear()

    def request_pairing_code(self, phone_number: str) -> str:
        """
        Authenticate with a pairing code instead of a QR code.

        Returns:
            str: The 8-character code to enter on the phone

        Raises:
            ValidationError: If the phone number is malformed
            AuthError: If the connection is not waiting for authentication
        """
        return self.manager.request_pairing_code(phone_number)

    def refresh_qr(self) -> None:
        self.manager.refresh_qr()

    def authenticate(self) -> None:
        """Retry authentication after auth.failure."""
        self.manager.authenticate()

    # -------------------------------------------------------------------------
    # Inbound dispatch
    # -------------------------------------------------------------------------

    def _own_jid(self) -> Optional[str]:
        credentials = self.manager.credentials
        return credentials.wid if credentials else None

    def _dispatch(self, inbound: Inbound) -> None:
        """Apply a classified inbound frame to the cache and publish events."""
        kind = inbound.kind

        if kind == InboundKind.MESSAGE:
            self._apply_message(message_event(inbound.attrs, self._own_jid()))
        elif kind == InboundKind.RECEIPT:
            message = self.cache.apply_receipt_event(receipt_event(inbound.attrs))
            if message is not None:
                self.bus.emit(Events.MESSAGE_UPDATE, message)
        elif kind == InboundKind.CHAT:
            self.bus.emit(Events.CHAT_UPDATE, self.cache.apply_chat_event(chat_event(inbound.attrs)))
        elif kind == InboundKind.PRESENCE:
            contact = self.cache.apply_presence_event(presence_event(inbound.attrs))
            self._emit_presence(contact)
        elif kind == InboundKind.CONTACT:
            self.bus.emit(Events.CONTACT_UPDATE, self.cache.apply_contact_event(contact_event(inbound.attrs)))
        elif kind == InboundKind.REACTION:
            event = reaction_event(inbound.attrs)
            if self.cache.apply_reaction_event(event) is not None:
                self.bus.emit(Events.MESSAGE_REACTION, {
                    "messageId": event["message_id"],
                    "emoji": event["emoji"],
                    "from": event["sender_id"],
                })
        elif kind == InboundKind.DELETE:
            message_id = inbound.attrs.get("id")
            if message_id and self.cache.remove_message(str(message_id)) is not None:
                self.bus.emit(Events.MESSAGE_DELETE, {"messageId": message_id, "forEveryone": True})
        elif kind == InboundKind.GROUP:
            self._apply_group(group_event(inbound.attrs))
        elif kind == InboundKind.SNAPSHOT:
            self._apply_snapshot(inbound.topic, inbound.items)
        elif kind == InboundKind.PROFILE:
            self._apply_profile(inbound.attrs)
        else:
            logger.debug(f"No handler for {kind} frame")

    def _apply_message(self, event: Dict[str, Any]) -> Message:
        known = event.get("id") is not None and self.cache.get_message(event["id"]) is not None
        message = self.cache.apply_message_event(event)
        self.bus.emit(Events.MESSAGE_UPDATE if known else Events.MESSAGE_NEW, message)
        return message

    def _emit_presence(self, contact: Contact) -> None:
        payload: Dict[str, Any] = {"userId": contact.id, "isOnline": contact.is_online}
        if contact.last_seen is not None:
            payload["lastSeen"] = contact.last_seen
        self.bus.emit(Events.PRESENCE_UPDATE, payload)

    def _apply_group(self, event: Dict[str, Any]) -> Chat:
        chat = self.cache.apply_group_event(event)
        action = event.get("action", "")
        name = _GROUP_EVENTS.get(action, Events.GROUP_UPDATE)
        if name in (Events.GROUP_CREATED, Events.GROUP_UPDATE):
            self.bus.emit(name, chat)
        else:
            payload: Dict[str, Any] = {"groupId": chat.id, "participants": event.get("participants", [])}
            if name == Events.GROUP_PARTICIPANTS_UPDATE:
                payload["action"] = action
            self.bus.emit(name, payload)
        return chat

    def _apply_snapshot(self, topic: Optional[str], items: List[Dict[str, Any]]) -> None:
        applied = 0
        for attrs in items:
            try:
                if topic == "chat":
                    self.bus.emit(Events.CHAT_UPDATE, self.cache.apply_chat_event(chat_event(attrs)))
                elif topic == "contacts":
                    self.bus.emit(Events.CONTACT_UPDATE, self.cache.apply_contact_event(contact_event(attrs)))
                elif topic == "messages":
                    self._apply_message(message_event(attrs, self._own_jid()))
                applied += 1
            except ValueError as e:
                logger.debug(f"Skipped malformed {topic} snapshot entry: {e}")
        logger.info(f"Applied {applied}/{len(items)} {topic} snapshot entries")

    def _apply_profile(self, attrs: Dict[str, Any]) -> None:
        contact = self.cache.apply_contact_event(contact_event(attrs))
        self.bus.emit(Events.CONTACT_UPDATE, contact)
        if contact.id == self._own_jid():
            user = self.manager.update_user(name=contact.name or None, status=contact.status)
            if user is not None:
                self.bus.emit(Events.USER_UPDATE, user.to_dict())

    # -------------------------------------------------------------------------
    # Command helpers
    # -------------------------------------------------------------------------

    def _require_auth(self) -> str:
        """Return our JID, or raise AuthError if no session is authenticated."""
        wid = self._own_jid()
        if not wid:
            raise AuthError("Not authenticated")
        return wid

    def _require_feature(self, feature: str) -> None:
        if not getattr(self.config.features, feature):
            raise RuntimeError(f"Feature '{feature}' is disabled")

    def _new_message_id(self) -> str:
        return f"msg_{self.scheduler.now_ms()}_{random_bytes(8).hex()}"

    def _send_new_message(
        self,
        chat_id: str,
        kind: str,
        content: Any,
        quoted_message_id: Optional[str] = None,
        mentions: Optional[List[str]] = None,
    ) -> Message:
        wid = self._require_auth()
        message_id = self._new_message_id()
        timestamp = self.scheduler.now_ms()

        self.cache.apply_message_event({
            "id": message_id,
            "chat_id": chat_id,
            "sender_id": wid,
            "from_me": True,
            "timestamp": timestamp,
            "kind": kind,
            "content": content,
            "quoted_message_id": quoted_message_id,
            "mentions": mentions,
            "delivery_status": DeliveryStatus.PENDING,
        })
        frame = message_frame(message_id, chat_id, kind, content, timestamp, quoted_message_id, mentions)
        if not self.manager.send(frame, on_sent=lambda: self._mark_sent(message_id)):
            self._awaiting_flush.add(message_id)

        message = self.cache.get_message(message_id)
        self.bus.emit(Events.MESSAGE_SENT, message)
        return message

    def _mark_sent(self, message_id: str) -> None:
        """Advance a transmitted message from pending to sent."""
        queued = message_id in self._awaiting_flush
        self._awaiting_flush.discard(message_id)
        message = self.cache.apply_receipt_event({"id": message_id, "status": "sent"})
        if message is not None and queued:
            self.bus.emit(Events.MESSAGE_UPDATE, message)

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    def send_message(
        self,
        chat_id: str,
        text: str,
        quoted_message_id: Optional[str] = None,
        mentions: Optional[List[str]] = None,
    ) -> Message:
        """
        Send a text message.

        Args:
            chat_id: Chat JID, or a phone number for a direct chat
            text: Message body
            quoted_message_id: Message being replied to
            mentions: JIDs mentioned in the text

        Returns:
            Message: The stored message (PENDING if queued, SENT if written)

        Raises:
            AuthError: If no session is authenticated
            RuntimeError: If messaging is disabled
        """
        self._require_feature("messaging")
        with self._lock:
            mention_jids = [to_jid(m) for m in mentions] if mentions else None
            return self._send_new_message(to_jid(chat_id), "text", text, quoted_message_id, mention_jids)

    def send_media_message(
        self,
        chat_id: str,
        media: Union[bytes, str, Path],
        kind: str = "image",
        caption: Optional[str] = None,
        filename: Optional[str] = None,
        mimetype: Optional[str] = None,
    ) -> Message:
        """
        Upload media and send it as a message.

        Args:
            chat_id: Chat JID or phone number
            media: Raw bytes or a local file path
            kind: One of image, video, audio, document, sticker
            caption: Optional caption
            filename: File name shown to the recipient
            mimetype: Content type (guessed from the file name if None)

        Raises:
            ValidationError: If kind is not a media kind
            MediaError: If the file cannot be read
            AuthError: If no session is authenticated
            RuntimeError: If media is disabled
        """
        self._require_feature("media")
        if kind not in MEDIA_KINDS:
            raise ValidationError(f"Unsupported media kind: {kind}")
        self._require_auth()

        uploaded = self.media.upload_source(media, mimetype)
        if filename is None and not isinstance(media, (bytes, bytearray)):
            filename = Path(media).name

        content = {
            "url": uploaded.url,
            "mimetype": uploaded.mimetype,
            "size": uploaded.size,
        }
        if caption is not None:
            content["caption"] = caption
        if filename is not None:
            content["filename"] = filename

        with self._lock:
            return self._send_new_message(to_jid(chat_id), kind, content)

    def react_to_message(self, message_id: str, emoji: str) -> Optional[Message]:
        """React to a message; an empty emoji removes our reaction."""
        self._require_feature("messaging")
        with self._lock:
            wid = self._require_auth()
            self.manager.send(action_frame("message", "react", {
                "messageId": message_id,
                "emoji": emoji,
                "timestamp": self.scheduler.now_ms(),
            }))
            message = self.cache.apply_reaction_event({"message_id": message_id, "sender_id": wid, "emoji": emoji})
            if message is not None:
                self.bus.emit(Events.MESSAGE_REACTION, {"messageId": message_id, "emoji": emoji, "from": wid})
            return message

    def delete_message(self, message_id: str, for_everyone: bool = False) -> bool:
        """
        Delete a message.

        Returns:
            bool: True if the message was in the cache
        """
        self._require_feature("messaging")
        with self._lock:
            self._require_auth()
            self.manager.send(action_frame("message", "delete", {
                "messageId": message_id,
                "forEveryone": for_everyone,
            }))
            removed = self.cache.remove_message(message_id) is not None
            self.bus.emit(Events.MESSAGE_DELETE, {"messageId": message_id, "forEveryone": for_everyone})
            return removed

    def mark_as_read(self, chat_id: str, message_id: str) -> Optional[Message]:
        self._require_feature("messaging")
        with self._lock:
            self._require_auth()
            chat_id = to_jid(chat_id)
            self.manager.send(read_frame(chat_id, message_id, self.scheduler.now_ms()))
            chat = self.cache.mark_read(chat_id)
            if chat is not None:
                self.bus.emit(Events.CHAT_UPDATE, chat)
            message = self.cache.apply_receipt_event({"id": message_id, "status": "read"})
            if message is not None:
                self.bus.emit(Events.MESSAGE_UPDATE, message)
            return message

    # -------------------------------------------------------------------------
    # Groups
    # -------------------------------------------------------------------------

    def create_group(self, name: str, participants: List[str]) -> Chat:
        """
        Create a group.

        The returned chat carries a provisional id; the server's group event
        for the real id is applied when it arrives.

        Raises:
            ValidationError: If name is empty or there are no participants
        """
        self._require_feature("groups")
        if not name:
            raise ValidationError("Group name is required")
        if not participants:
            raise ValidationError("At least one participant is required")

        with self._lock:
            wid = self._require_auth()
            members = [to_jid(p) for p in participants]
            self.manager.send(action_frame("group", "create", {"subject": name, "participants": members}))

            group_id = f"{self.scheduler.now_ms()}@{GROUP_SERVER}"
            self.cache.apply_group_event({"id": group_id, "action": "create", "participants": members, "subject": name})
            chat = self.cache.apply_group_event({"id": group_id, "action": "promote", "participants": [wid]})
            self.bus.emit(Events.GROUP_CREATED, chat)
            return chat

    def update_group(
        self,
        group_id: str,
        subject: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Chat:
        """
        Change a group's subject and/or description.

        Raises:
            ValidationError: If neither field is given
        """
        self._require_feature("groups")
        if subject is None and description is None:
            raise ValidationError("Nothing to update")

        with self._lock:
            self._require_auth()
            chat = None
            if subject is not None:
                self.manager.send(action_frame("group", "subject", {"jid": group_id, "subject": subject}))
                chat = self.cache.apply_group_event({"id": group_id, "action": "subject", "subject": subject})
            if description is not None:
                self.manager.send(action_frame("group", "description", {"jid": group_id, "description": description}))
                chat = self.cache.apply_group_event({"id": group_id, "action": "description", "description": description})
            self.bus.emit(Events.GROUP_UPDATE, chat)
            return chat

    def _participants_action(self, group_id: str, action: str, participants: List[str]) -> Chat:
        self._require_feature("groups")
        if not participants:
            raise ValidationError("At least one participant is required")
        with self._lock:
            self._require_auth()
            members = [to_jid(p) for p in participants]
            self.manager.send(action_frame("group", action, {"jid": group_id, "participants": members}))
            return self._apply_group({"id": group_id, "action": action, "participants": members})

    def add_participants(self, group_id: str, participants: List[str]) -> Chat:
        return self._participants_action(group_id, "add", participants)

    def remove_participants(self, group_id: str, participants: List[str]) -> Chat:
        return self._participants_action(group_id, "remove", participants)

    def set_group_admin(self, group_id: str, participants: List[str], is_admin: bool = True) -> Chat:
        """Promote (or demote) participants."""
        return self._participants_action(group_id, "promote" if is_admin else "demote", participants)

    # -------------------------------------------------------------------------
    # Chats
    # -------------------------------------------------------------------------

    def _chat_toggle(self, chat_id: str, operation: str, changes: Dict[str, Any]) -> Optional[Chat]:
        self._require_feature("messaging")
        with self._lock:
            self._require_auth()
            chat_id = to_jid(chat_id)
            self.manager.send(action_frame("chat", operation, chat_id))
            if self.cache.get_chat(chat_id) is None:
                return None
            chat = self.cache.apply_chat_event(dict(changes, id=chat_id))
            self.bus.emit(Events.CHAT_UPDATE, chat)
            return chat

    def archive_chat(self, chat_id: str, archive: bool = True) -> Optional[Chat]:
        return self._chat_toggle(chat_id, "archive" if archive else "unarchive", {"archived": archive})

    def pin_chat(self, chat_id: str, pin: bool = True) -> Optional[Chat]:
        return self._chat_toggle(chat_id, "pin" if pin else "unpin", {"pinned": pin})

    def mute_chat(self, chat_id: str, mute: bool = True, duration: Optional[float] = None) -> Optional[Chat]:
        """
        Mute or unmute a chat.

        Args:
            chat_id: Chat JID or phone number
            mute: False to unmute
            duration: Mute length in seconds (default 8 hours)

        Returns:
            Updated chat, or None if the chat is not cached
        """
        self._require_feature("messaging")
        with self._lock:
            self._require_auth()
            chat_id = to_jid(chat_id)
            duration_ms = int((duration if duration is not None else DEFAULT_MUTE_DURATION) * 1000) if mute else 0
            self.manager.send(action_frame("chat", "mute", {"jid": chat_id, "mute": mute, "duration": duration_ms}))
            if self.cache.get_chat(chat_id) is None:
                return None
            mute_until = self.scheduler.now_ms() + duration_ms if mute else 0
            chat = self.cache.apply_chat_event({"id": chat_id, "muted": mute, "mute_until": mute_until})
            self.bus.emit(Events.CHAT_UPDATE, chat)
            return chat

    def clear_chat(self, chat_id: str) -> bool:
        """Drop a chat and its messages from the cache."""
        with self._lock:
            self._require_auth()
            chat_id = to_jid(chat_id)
            self.manager.send(action_frame("chat", "clear", chat_id))
            return self.cache.clear_chat(chat_id)

    # -------------------------------------------------------------------------
    # Contacts, profile, presence
    # -------------------------------------------------------------------------

    def block_contact(self, contact_id: str, block: bool = True) -> Contact:
        self._require_feature("messaging")
        with self._lock:
            self._require_auth()
            contact_id = to_jid(contact_id)
            self.manager.send(action_frame("contact", "block" if block else "unblock", contact_id))
            contact = self.cache.apply_contact_event({"id": contact_id, "blocked": block})
            self.bus.emit(Events.CONTACT_UPDATE, contact)
            return contact

    def update_profile(
        self,
        name: Optional[str] = None,
        status: Optional[str] = None,
        picture: Optional[Union[bytes, str, Path]] = None,
    ) -> Optional[UserProfile]:
        """
        Update our own name, status text and/or picture.

        Raises:
            ValidationError: If nothing is given
        """
        self._require_feature("status")
        if name is None and status is None and picture is None:
            raise ValidationError("Nothing to update")
        self._require_auth()

        picture_url = self.media.upload_source(picture).url if picture is not None else None

        with self._lock:
            self._require_auth()
            if name is not None:
                self.manager.send(action_frame("profile", "name", name))
            if status is not None:
                self.manager.send(action_frame("profile", "status", status))
            if picture_url is not None:
                self.manager.send(action_frame("profile", "picture", picture_url))

            user = self.manager.update_user(name=name, status=status)
            if user is not None:
                self.bus.emit(Events.USER_UPDATE, user.to_dict())
            return user

    def update_presence(self, kind: str, chat_id: Optional[str] = None) -> None:
        """
        Publish our presence (available, unavailable, composing, recording, paused).

        Raises:
            ValidationError: If kind is unknown
        """
        self._require_feature("status")
        if kind not in PRESENCE_KINDS:
            raise ValidationError(f"Unknown presence kind: {kind}")
        with self._lock:
            self._require_auth()
            self.manager.send(presence_frame(kind, to_jid(chat_id) if chat_id else None))

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_chats(self) -> List[Chat]:
        """Cached chats; also asks the server for a fresh chat list."""
        with self._lock:
            self._require_auth()
            self.manager.send(["query", "chat", None])
            return self.cache.chats()

    def get_messages(self, chat_id: str, limit: int = 50) -> List[Message]:
        """Cached messages of a chat, oldest first, at most limit."""
        with self._lock:
            self._require_auth()
            return self.cache.messages_for(to_jid(chat_id), limit)

    def load_messages(self, chat_id: str, limit: int = 50, before: Optional[str] = None) -> None:
        """Ask the server for message history; results arrive as message events."""
        with self._lock:
            self._require_auth()
            self.manager.send(messages_query_frame(to_jid(chat_id), limit, before))

    def get_contacts(self) -> List[Contact]:
        with self._lock:
            return self.cache.contacts()

    def get_user_profile(self, user_id: str) -> Optional[Contact]:
        """Cached contact for a user; also asks the server for the profile."""
        with self._lock:
            self._require_auth()
            user_id = to_jid(user_id)
            self.manager.send(profile_query_frame(user_id))
            return self.cache.get_contact(user_id)

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def status(self) -> Dict[str, Any]:
        status = self.manager.status()
        status['version'] = __version__
        status['cache'] = self.cache.get_statistics()
        return status

    def get_statistics(self) -> Dict[str, Any]:
        stats = {
            'connection': self.manager.get_statistics(),
            'cache': self.cache.get_statistics(),
            'events': self.bus.get_stats(),
        }
        if self.webhook is not None:
            stats['webhook'] = self.webhook.get_stats()
        return stats

    def __repr__(self) -> str:
        return f"WhatsAppClient(state={self.state.value}, user={self.user.id if self.user else None})"
