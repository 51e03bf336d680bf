"""
Shared fixtures: a virtual-clock scheduler and a loopback-backed client.
"""

import heapq
import itertools
from typing import Any, Callable, List, Optional

import pytest

from wacore.binary.codec import decode_all, encode_frame
from wacore.client import WhatsAppClient
from wacore.config import Config
from wacore.events import EventBus
from wacore.net.loopback import LoopbackTransport
from wacore.net.manager import ConnectionManager
from wacore.net.scheduler import Scheduler, TaskHandle
from wacore.session.store import MemorySessionStore


START_TIME = 1_700_000_000.0
OWN_JID = "12345678900@s.whatsapp.net"


class FakeScheduler(Scheduler):
    """
    Virtual clock. Nothing fires until advance() is called; tasks due at the
    same instant fire in scheduling order.
    """

    def __init__(self, start: float = START_TIME):
        self._now = start
        self._queue: List[Any] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def _push(self, due: float, handle: TaskHandle, callback: Callable[[], None], interval: Optional[float]) -> None:
        heapq.heappush(self._queue, (due, next(self._seq), handle, callback, interval))

    def call_later(self, delay, callback, name=""):
        handle = TaskHandle(name)
        self._push(self._now + delay, handle, callback, None)
        return handle

    def call_every(self, interval, callback, name=""):
        handle = TaskHandle(name, periodic=True)
        self._push(self._now + interval, handle, callback, interval)
        return handle

    def advance(self, seconds: float) -> None:
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback, interval = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            handle.fired += 1
            callback()
            if interval is not None and not handle.cancelled:
                self._push(due + interval, handle, callback, interval)
        self._now = target

    @property
    def pending(self) -> int:
        return sum(1 for entry in self._queue if not entry[2].cancelled)


class Recorder:
    """Collects (event, payload) pairs from a bus."""

    def __init__(self, bus: EventBus):
        self.events: List[Any] = []
        bus.on("*", lambda event, payload: self.events.append((event, payload)))

    def names(self) -> List[str]:
        return [event for event, _ in self.events]

    def payloads(self, name: str) -> List[Any]:
        return [payload for event, payload in self.events if event == name]

    def clear(self) -> None:
        self.events.clear()


def server_frame(frame: Any) -> bytes:
    return encode_frame(frame)


def sent_frames(transport: LoopbackTransport) -> List[Any]:
    return [decode_all(data) for data in transport.sent]


def login_success(wid: str = OWN_JID, **extra: Any) -> bytes:
    attrs = {"wid": wid, "pushname": "Me"}
    attrs.update(extra)
    return server_frame(["response", "login", "success", attrs])


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def recorder(bus):
    return Recorder(bus)


@pytest.fixture
def transport():
    return LoopbackTransport()


@pytest.fixture
def store():
    return MemorySessionStore()


@pytest.fixture
def config():
    config = Config()
    config.connection.retry_count = 3
    config.connection.retry_delay = 5.0
    return config


@pytest.fixture
def manager(config, transport, scheduler, bus, store):
    return ConnectionManager(config, transport, scheduler, bus, session_store=store)


@pytest.fixture
def client(config, transport, scheduler, bus, store):
    return WhatsAppClient(
        config,
        transport=transport,
        scheduler=scheduler,
        session_store=store,
        bus=bus,
    )


@pytest.fixture
def ready_client(client, transport):
    """Client that completed a QR handshake and reached READY."""
    client.connect()
    transport.deliver(server_frame(["response", "init", "REF1"]))
    transport.deliver(login_success())
    transport.clear()
    return client
