"""
wacore - WhatsApp Web protocol core

A client-side implementation of the WhatsApp Web wire protocol: tagged
binary frames over a shared token dictionary, QR and pairing-code
handshakes over X25519 key agreement, persistent session credentials and a
reconnecting connection state machine.

This package contains:
- binary/   : Binary frame codec and token dictionary
- crypto/   : Key agreement, authenticated encryption, signatures, HMAC
- auth/     : QR and pairing-code authenticators
- net/      : Scheduler, transports and the connection manager
- session/  : Credentials and session persistence
- cache.py  : In-memory chats, messages and contacts
- events.py : Synchronous event bus
- client.py : Client facade with command-style operations
"""

__version__ = "0.1.0"
__author__ = "wacore contributors"

# Core constants
WA_VERSION = [2, 2323, 4]
NORMAL_CLOSURE = 1000  # WebSocket close code

from .client import WhatsAppClient  # noqa: E402
from .config import Config  # noqa: E402
from .events import EventBus, Events  # noqa: E402

__all__ = [
    'WhatsAppClient',
    'Config',
    'EventBus',
    'Events',
]
