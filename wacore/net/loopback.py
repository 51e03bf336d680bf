"""
wacore Loopback Transport

An in-process transport standing in for the WhatsApp Web server.

Useful for:
- Unit and integration testing
- Development without network access
- Scripting server behaviour (replies, drops, failed opens)

Features:
- Records every frame sent by the client
- deliver() injects server frames, server_close() simulates a drop
- Configurable number of failing opens
- Optional responder called for every sent frame
"""

import threading
from typing import Callable, Iterable, List, Optional

from .transport import Transport, TransportError


Responder = Callable[[bytes], Optional[Iterable[bytes]]]


class LoopbackTransport(Transport):
    """
    Loopback transport.

    Usage:
        transport = LoopbackTransport()
        manager = ConnectionManager(config, transport=transport, ...)
        manager.connect()

        transport.sent            # frames written by the client
        transport.deliver(frame)  # frame "from the server"
        transport.server_close(1006)
    """

    def __init__(self, name: str = "loopback", responder: Optional[Responder] = None):
        super().__init__(name)
        self.sent: List[bytes] = []
        self.responder = responder
        self.fail_opens = 0
        self.open_calls = 0
        self.close_calls: List[int] = []
        self._open = False
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self, timeout: float) -> None:
        with self._lock:
            self.open_calls += 1
            if self.fail_opens > 0:
                self.fail_opens -= 1
                raise TransportError(f"Timed out after {timeout}s opening loopback")
            self._open = True

    def send(self, data: bytes) -> None:
        with self._lock:
            if not self._open:
                raise TransportError("Loopback is not open")
            self.sent.append(bytes(data))
            self.frames_sent += 1
            self.bytes_sent += len(data)

        if self.responder is not None:
            for reply in self.responder(data) or ():
                self.deliver(reply)

    def close(self, code: int = 1000, reason: str = "") -> None:
        with self._lock:
            if self._open:
                self.close_calls.append(code)
            self._open = False

    def deliver(self, data: bytes) -> None:
        """Inject a frame as if received from the server."""
        if not self._open:
            raise TransportError("Loopback is not open")
        self._dispatch_message(data)

    def server_close(self, code: int = 1006, reason: str = "") -> None:
        """Simulate the server dropping the connection."""
        with self._lock:
            was_open = self._open
            self._open = False
        if was_open:
            self._dispatch_close(code, reason)

    def clear(self) -> None:
        """Forget recorded frames."""
        self.sent.clear()
