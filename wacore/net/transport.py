"""
wacore Transport Layer

Defines the interface the connection manager uses to move frames, and the
WebSocket implementation that talks to the WhatsApp Web endpoint.

Design Principles:
- open() blocks until the socket is open or the timeout elapses
- Inbound messages and remote closes are delivered through callbacks, on
  the transport's own thread
- A deliberate close() never reports back through the close callback
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

import websocket


logger = logging.getLogger(__name__)

MessageHandler = Callable[[bytes], None]
CloseHandler = Callable[[int, str], None]

# Close code reported when the peer vanished without a close frame
ABNORMAL_CLOSURE = 1006

DEFAULT_URL = "wss://web.whatsapp.com/ws/chat"
DEFAULT_ORIGIN = "https://web.whatsapp.com"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class TransportError(Exception):
    """Exception raised for transport open/send failures."""
    pass


class Transport(ABC):
    """
    Abstract frame transport.

    Subclasses must implement open(), send(), close() and is_open, and call
    _dispatch_message() / _dispatch_close() for inbound traffic.
    """

    def __init__(self, name: str = "transport"):
        self.name = name
        self._on_message: Optional[MessageHandler] = None
        self._on_close: Optional[CloseHandler] = None

        # Statistics
        self.frames_sent = 0
        self.frames_received = 0
        self.bytes_sent = 0
        self.bytes_received = 0

    def set_handlers(self, on_message: MessageHandler, on_close: CloseHandler) -> None:
        """Register inbound message and remote-close callbacks."""
        self._on_message = on_message
        self._on_close = on_close

    @abstractmethod
    def open(self, timeout: float) -> None:
        """
        Open the transport, blocking until open.

        Raises:
            TransportError: On failure or when timeout seconds elapse
        """
        pass

    @abstractmethod
    def send(self, data: bytes) -> None:
        """
        Send one binary frame.

        Raises:
            TransportError: If the transport is not open or the send fails
        """
        pass

    @abstractmethod
    def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the transport. Safe to call when already closed."""
        pass

    @property
    @abstractmethod
    def is_open(self) -> bool:
        pass

    def _dispatch_message(self, data: bytes) -> None:
        self.frames_received += 1
        self.bytes_received += len(data)
        if self._on_message is not None:
            self._on_message(data)

    def _dispatch_close(self, code: int, reason: str) -> None:
        if self._on_close is not None:
            self._on_close(code, reason)

    def get_statistics(self) -> Dict[str, int]:
        return {
            'frames_sent': self.frames_sent,
            'frames_received': self.frames_received,
            'bytes_sent': self.bytes_sent,
            'bytes_received': self.bytes_received,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, open={self.is_open})"


class WebSocketTransport(Transport):
    """
    WebSocket transport built on websocket-client.

    The socket runs in a daemon thread (run_forever); callbacks arrive on
    that thread.
    """

    def __init__(
        self,
        url: str = DEFAULT_URL,
        origin: str = DEFAULT_ORIGIN,
        user_agent: str = DEFAULT_USER_AGENT,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Args:
            url: WebSocket endpoint
            origin: Origin header (server-enforced)
            user_agent: Browser User-Agent (server-enforced)
            headers: Extra request headers
        """
        super().__init__("websocket")
        self.url = url
        self.headers = {"Origin": origin, "User-Agent": user_agent}
        if headers:
            self.headers.update(headers)

        self._app: Optional[websocket.WebSocketApp] = None
        self._thread: Optional[threading.Thread] = None
        self._opened = threading.Event()
        self._finished = threading.Event()
        self._open = False
        self._closing = False
        self._last_error: Optional[Exception] = None

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self, timeout: float) -> None:
        if self._open:
            return

        self._opened.clear()
        self._finished.clear()
        self._closing = False
        self._last_error = None

        self._app = websocket.WebSocketApp(
            self.url,
            header=self.headers,
            on_open=self._handle_open,
            on_message=self._handle_message,
            on_error=self._handle_error,
            on_close=self._handle_close,
        )
        self._thread = threading.Thread(
            target=self._run,
            args=(self._app,),
            name="wacore-websocket",
            daemon=True,
        )
        self._thread.start()

        # Set by on_open, or by the socket thread exiting early
        signalled = self._opened.wait(timeout)
        if self._open:
            logger.info(f"WebSocket open: {self.url}")
            return

        self._closing = True
        if self._app is not None:
            self._app.close()
        if not signalled:
            raise TransportError(f"Timed out after {timeout}s opening {self.url}")
        raise TransportError(f"Failed to open {self.url}: {self._last_error}")

    def _run(self, app: websocket.WebSocketApp) -> None:
        try:
            app.run_forever(skip_utf8_validation=True)
        finally:
            self._finished.set()
            self._opened.set()

    def send(self, data: bytes) -> None:
        if not self._open or self._app is None:
            raise TransportError("WebSocket is not open")
        try:
            self._app.send(data, opcode=websocket.ABNF.OPCODE_BINARY)
        except (websocket.WebSocketException, OSError) as e:
            raise TransportError(f"Send failed: {e}") from e
        self.frames_sent += 1
        self.bytes_sent += len(data)

    def close(self, code: int = 1000, reason: str = "") -> None:
        self._closing = True
        was_open = self._open
        self._open = False
        if self._app is not None:
            if was_open:
                self._app.close(status=code, reason=reason.encode("utf-8"))
            else:
                self._app.close()
        self._app = None

    # websocket-client callbacks

    def _handle_open(self, ws) -> None:
        self._open = True
        self._opened.set()

    def _handle_message(self, ws, message) -> None:
        if isinstance(message, str):
            message = message.encode("utf-8")
        self._dispatch_message(message)

    def _handle_error(self, ws, error) -> None:
        self._last_error = error
        logger.warning(f"WebSocket error: {error}")

    def _handle_close(self, ws, close_status_code, close_msg) -> None:
        was_open = self._open
        self._open = False
        if self._closing or not was_open:
            return
        code = close_status_code if close_status_code is not None else ABNORMAL_CLOSURE
        reason = close_msg or ""
        if isinstance(reason, bytes):
            reason = reason.decode("utf-8", errors="replace")
        logger.info(f"WebSocket closed by peer: code={code} reason={reason!r}")
        self._dispatch_close(code, reason)
