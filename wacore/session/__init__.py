"""
wacore Session Module

Credential model and session persistence.
"""

from .credentials import (
    Credentials,
    UserProfile,
    new_client_id,
)

from .store import (
    SessionStore,
    SessionRecord,
    FileSessionStore,
    MemorySessionStore,
    SessionError,
)

__all__ = [
    'Credentials',
    'UserProfile',
    'new_client_id',
    'SessionStore',
    'SessionRecord',
    'FileSessionStore',
    'MemorySessionStore',
    'SessionError',
]
