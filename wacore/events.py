"""
wacore Event Bus

Fan-out of domain events to subscribers.

Design:
- Subscribers are kept per event name, in subscription order
- emit() calls every subscriber synchronously on the emitting thread
- A subscriber that raises is logged; the remaining subscribers still run
- '*' subscribers receive (event, payload) for every event
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]
WildcardHandler = Callable[[str, Any], None]

WILDCARD = "*"


class Events:
    """Event names published by the client."""
    # Authentication
    QR = "qr"
    QR_EXPIRED = "qr_expired"
    QR_REFRESH_NEEDED = "qr_refresh_needed"
    PAIRING_REQUESTED = "pairing_requested"
    PAIRING_CODE = "pairing_code"
    PAIRING_EXPIRED = "pairing_expired"
    AUTH_SUCCESS = "auth.success"
    AUTH_FAILURE = "auth.failure"

    # Connection
    CONNECTION_UPDATE = "connection.update"
    CONNECTION_FAILED = "connection.failed"
    DISCONNECTED = "disconnected"
    LOGOUT = "logout"
    ERROR = "error"

    # Messages
    MESSAGE_NEW = "message.new"
    MESSAGE_SENT = "message.sent"
    MESSAGE_UPDATE = "message.update"
    MESSAGE_DELETE = "message.delete"
    MESSAGE_REACTION = "message.reaction"

    # Chats, groups, contacts
    CHAT_UPDATE = "chat.update"
    GROUP_CREATED = "group.created"
    GROUP_UPDATE = "group.update"
    GROUP_PARTICIPANTS_ADD = "group.participants.add"
    GROUP_PARTICIPANTS_REMOVE = "group.participants.remove"
    GROUP_PARTICIPANTS_UPDATE = "group.participants.update"
    PRESENCE_UPDATE = "presence.update"
    CONTACT_UPDATE = "contact.update"
    USER_UPDATE = "user.update"


class EventBus:
    """
    Synchronous publish/subscribe registry.

    Usage:
        bus = EventBus()
        bus.on(Events.QR, lambda qr: print(qr))
        bus.emit(Events.QR, "ref,pub,client")
    """

    def __init__(self):
        self._handlers: Dict[str, List[Callable]] = {}
        self._once: Dict[int, Callable] = {}
        self._lock = threading.RLock()

        # Statistics
        self.events_emitted = 0
        self.handler_errors = 0

    def on(self, event: str, handler: Callable) -> Callable:
        """
        Subscribe to an event.

        Args:
            event: Event name, or '*' for every event
            handler: Called with the payload ('*' handlers get event, payload)

        Returns:
            The handler, for a later off()
        """
        with self._lock:
            self._handlers.setdefault(event, []).append(handler)
        return handler

    def once(self, event: str, handler: Callable) -> Callable:
        """Subscribe for the next emission of an event only."""
        with self._lock:
            wrapper = self._wrap_once(event, handler)
            self._handlers.setdefault(event, []).append(wrapper)
        return handler

    def _wrap_once(self, event: str, handler: Callable) -> Callable:
        def wrapper(*args: Any) -> None:
            self.off(event, wrapper)
            handler(*args)
        self._once[id(wrapper)] = handler
        return wrapper

    def off(self, event: str, handler: Optional[Callable] = None) -> None:
        """
        Unsubscribe a handler, or every handler of an event if None.
        """
        with self._lock:
            handlers = self._handlers.get(event)
            if not handlers:
                return
            if handler is None:
                for h in handlers:
                    self._once.pop(id(h), None)
                del self._handlers[event]
                return
            for h in list(handlers):
                if h is handler or self._once.get(id(h)) is handler:
                    handlers.remove(h)
                    self._once.pop(id(h), None)
                    break
            if not handlers:
                del self._handlers[event]

    def emit(self, event: str, payload: Any = None) -> int:
        """
        Publish an event.

        Args:
            event: Event name
            payload: Event payload (None for payload-less events)

        Returns:
            Number of handlers invoked
        """
        with self._lock:
            handlers = list(self._handlers.get(event, ()))
            wildcard = list(self._handlers.get(WILDCARD, ())) if event != WILDCARD else []
            self.events_emitted += 1

        invoked = 0
        for handler in handlers:
            invoked += self._invoke(event, handler, payload)
        for handler in wildcard:
            invoked += self._invoke(event, handler, event, payload)
        return invoked

    def _invoke(self, event: str, handler: Callable, *args: Any) -> int:
        try:
            handler(*args)
        except Exception:
            self.handler_errors += 1
            logger.exception(f"Handler for '{event}' raised")
        return 1

    def listener_count(self, event: str) -> int:
        with self._lock:
            return len(self._handlers.get(event, ()))

    def clear(self) -> None:
        """Remove every subscriber."""
        with self._lock:
            self._handlers.clear()
            self._once.clear()

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                'events_emitted': self.events_emitted,
                'handler_errors': self.handler_errors,
                'subscriptions': sum(len(h) for h in self._handlers.values()),
            }
