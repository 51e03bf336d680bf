"""
wacore Webhook Delivery

Forwards bus events to an HTTP endpoint as JSON.

Body:
    {"event": "message.new", "timestamp": 1700000000000, "data": {...},
     "signature": "<hex>"}

Signature:
    HMAC-SHA256 over the compact JSON of {event, timestamp, data} (keys in
    that order, separators "," and ":") keyed with the configured secret.
    Omitted when no secret is configured.

Design:
- Events are queued by the bus handler and posted from a daemon worker
  thread, so a slow endpoint never blocks the connection lock
- Delivery failures are logged and counted; they never reach the caller
"""

import json
import queue
import time
import base64
import logging
import threading
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import requests

from .config import WebhookConfig
from .crypto.primitives import hmac_hex
from .events import EventBus


logger = logging.getLogger(__name__)

_STOP = object()


def json_safe(value: Any) -> Any:
    """Convert dataclasses, enums and bytes into JSON-serializable values."""
    if is_dataclass(value) and not isinstance(value, type):
        return json_safe(asdict(value))
    if isinstance(value, Enum):
        return value.value if not isinstance(value.value, Enum) else value.name
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, dict):
        return {str(k): json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [json_safe(v) for v in value]
    return value


def sign_body(event: str, timestamp: int, data: Any, secret: str) -> str:
    """Hex HMAC-SHA256 of the compact JSON body."""
    canonical = json.dumps(
        {"event": event, "timestamp": timestamp, "data": data},
        separators=(",", ":"),
    )
    return hmac_hex(canonical.encode("utf-8"), secret.encode("utf-8"))


class WebhookDispatcher:
    """
    Posts selected events to a webhook URL.

    Usage:
        webhook = WebhookDispatcher(config.webhooks)
        webhook.attach(bus)
        webhook.start()
        ...
        webhook.stop()
    """

    def __init__(self, config: WebhookConfig, session: Optional[requests.Session] = None):
        """
        Args:
            config: Webhook settings (url, allowed events, secret, timeout)
            session: HTTP session (a new requests.Session if None)
        """
        if not config.url:
            raise ValueError("Webhook URL is required")

        self.config = config
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._bus: Optional[EventBus] = None
        self._subscription: Optional[Any] = None

        # Statistics
        self.delivered = 0
        self.failed = 0
        self.skipped = 0

    def wants(self, event: str) -> bool:
        """Only events named in the allow-list are forwarded."""
        return event in self.config.events

    def attach(self, bus: EventBus) -> None:
        """Subscribe to every event on the bus."""
        self._bus = bus
        self._subscription = bus.on("*", self.handle_event)

    def detach(self) -> None:
        if self._bus is not None:
            self._bus.off("*", self._subscription)
            self._bus = None

    def handle_event(self, event: str, payload: Any = None) -> None:
        if not self.wants(event):
            self.skipped += 1
            return
        self._queue.put((event, int(time.time() * 1000), json_safe(payload)))

    def build_body(self, event: str, timestamp: int, data: Any) -> Dict[str, Any]:
        body: Dict[str, Any] = {"event": event, "timestamp": timestamp, "data": data}
        if self.config.secret:
            body["signature"] = sign_body(event, timestamp, data, self.config.secret)
        return body

    def deliver(self, event: str, timestamp: int, data: Any) -> bool:
        """
        POST one event.

        Returns:
            bool: True on a 2xx response
        """
        body = self.build_body(event, timestamp, data)
        try:
            response = self._session.post(
                self.config.url,
                data=json.dumps(body, separators=(",", ":")),
                timeout=self.config.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            self.failed += 1
            logger.warning(f"Webhook delivery of {event} failed: {e}")
            return False

        self.delivered += 1
        logger.debug(f"Webhook delivered {event}")
        return True

    def process_pending(self) -> int:
        """Deliver everything queued on the calling thread. Returns the count."""
        count = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return count
            if item is _STOP:
                continue
            self.deliver(*item)
            count += 1

    def pending(self) -> List[Tuple[str, int, Any]]:
        """Snapshot of queued deliveries."""
        return [item for item in list(self._queue.queue) if item is not _STOP]

    def start(self) -> None:
        """Start the delivery thread."""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(
            target=self._worker,
            daemon=True,
            name="wacore-webhook",
        )
        self._thread.start()
        logger.info(f"Webhook delivery started for {self.config.url}")

    def stop(self) -> None:
        """Stop the delivery thread after the queue drains."""
        if not self._running:
            return
        self._running = False
        self._queue.put(_STOP)
        if self._thread:
            self._thread.join(timeout=5.0)
            self._thread = None
        self._session.close()

    def _worker(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            self.deliver(*item)

    def get_stats(self) -> Dict[str, int]:
        return {
            'delivered': self.delivered,
            'failed': self.failed,
            'skipped': self.skipped,
            'pending': self._queue.qsize(),
        }
