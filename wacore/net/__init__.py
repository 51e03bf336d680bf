"""
wacore Networking

Transports carry encoded frames; the scheduler drives timers. The
connection manager lives in wacore.net.manager.
"""

from .scheduler import Scheduler, ThreadingScheduler, SerializedScheduler, TaskHandle
from .transport import Transport, TransportError, WebSocketTransport
from .loopback import LoopbackTransport

__all__ = [
    'Scheduler',
    'ThreadingScheduler',
    'SerializedScheduler',
    'TaskHandle',
    'Transport',
    'TransportError',
    'WebSocketTransport',
    'LoopbackTransport',
]
