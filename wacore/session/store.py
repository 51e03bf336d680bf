"""
wacore Session Storage

Persists credentials so a restarted client can resume without scanning a
new QR code.

Document layout (session.json):
    {
        "credentials": {clientId, privateKey, publicKey, serverToken,
                        clientToken, encKey, macKey, wid},   # base64
        "user": {id, name, phone, status} | null,
        "timestamp": <ms since epoch>
    }

SECURITY NOTES:
- Session file permissions set to 0600 (owner read/write only)
- Session directory permissions set to 0700 (owner only)
- Writes go through a temporary file and an atomic rename
"""

import os
import json
import stat
import time
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .credentials import Credentials, UserProfile


# Default session location
DEFAULT_SESSION_DIR = Path("./wa_session")
SESSION_FILE = "session.json"


class SessionError(Exception):
    """Exception raised when a stored session cannot be read."""
    pass


@dataclass
class SessionRecord:
    """One persisted session."""
    credentials: Credentials
    user: Optional[UserProfile] = None
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "credentials": self.credentials.to_dict(),
            "user": self.user.to_dict() if self.user else None,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SessionRecord':
        """
        Parse a session document.

        Raises:
            SessionError: If the document is not a valid session
        """
        if not isinstance(data, dict) or not isinstance(data.get("credentials"), dict):
            raise SessionError("Session document has no credentials")
        try:
            credentials = Credentials.from_dict(data["credentials"])
        except ValueError as e:
            raise SessionError(f"Invalid stored credentials: {e}") from e

        user = data.get("user")
        return cls(
            credentials=credentials,
            user=UserProfile.from_dict(user) if isinstance(user, dict) else None,
            timestamp=int(data.get("timestamp") or 0),
        )


class SessionStore(ABC):
    """Storage collaborator for session records."""

    @abstractmethod
    def load(self) -> Optional[SessionRecord]:
        """
        Load the stored session.

        Returns:
            SessionRecord, or None if nothing is stored

        Raises:
            SessionError: If a stored session exists but is unreadable
        """
        pass

    @abstractmethod
    def save(self, record: SessionRecord) -> None:
        """Persist a session record, replacing any previous one."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove the stored session. No-op if nothing is stored."""
        pass


class FileSessionStore(SessionStore):
    """
    JSON file session store.

    Usage:
        store = FileSessionStore(Path("./wa_session"))
        record = store.load()
        if record is None:
            ...  # authenticate, then
        store.save(SessionRecord(credentials=creds, user=profile))
    """

    def __init__(self, session_dir: Optional[Path] = None, filename: str = SESSION_FILE):
        """
        Initialize the store.

        Args:
            session_dir: Directory holding the session file
            filename: Session file name inside the directory
        """
        self.session_dir = Path(session_dir or DEFAULT_SESSION_DIR)
        self.path = self.session_dir / filename
        self._lock = threading.Lock()

    def load(self) -> Optional[SessionRecord]:
        with self._lock:
            if not self.path.exists():
                return None
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                raise SessionError(f"Failed to read session file {self.path}: {e}") from e
        return SessionRecord.from_dict(data)

    def save(self, record: SessionRecord) -> None:
        payload = json.dumps(record.to_dict(), indent=2)

        with self._lock:
            self.session_dir.mkdir(parents=True, exist_ok=True)
            os.chmod(self.session_dir, stat.S_IRWXU)  # 0700

            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, stat.S_IRUSR | stat.S_IWUSR)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
            os.chmod(self.path, stat.S_IRUSR | stat.S_IWUSR)  # 0600

    def clear(self) -> None:
        with self._lock:
            try:
                self.path.unlink()
            except FileNotFoundError:
                pass

    def __repr__(self) -> str:
        return f"FileSessionStore({str(self.path)!r})"


class MemorySessionStore(SessionStore):
    """In-process session store, keeps the serialized document only."""

    def __init__(self, record: Optional[SessionRecord] = None):
        self._document: Optional[Dict[str, Any]] = record.to_dict() if record else None
        self.save_count = 0

    def load(self) -> Optional[SessionRecord]:
        if self._document is None:
            return None
        return SessionRecord.from_dict(json.loads(json.dumps(self._document)))

    def save(self, record: SessionRecord) -> None:
        self._document = record.to_dict()
        self.save_count += 1

    def clear(self) -> None:
        self._document = None

    @property
    def document(self) -> Optional[Dict[str, Any]]:
        return self._document
