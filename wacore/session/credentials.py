"""
wacore Session Credentials

Credential material for one linked device.

Lifecycle:
- client_id, private_key, public_key: created at authentication start
- client_token, server_token, enc_key, mac_key: populated by a successful
  handshake
- wid: populated once the server confirms our identity

Credentials are immutable; updates produce a new instance.
"""

import base64
import binascii
from dataclasses import dataclass, field, replace, asdict
from typing import Any, Dict, Optional, TYPE_CHECKING

from ..crypto.keys import KeyPair, generate_key_pair
from ..crypto.primitives import random_bytes

if TYPE_CHECKING:
    from ..crypto.handshake import AuthPayload


# Client identifier length before base64
CLIENT_ID_SIZE = 16  # bytes

_BINARY_FIELDS = (
    ("privateKey", "private_key"),
    ("publicKey", "public_key"),
    ("serverToken", "server_token"),
    ("clientToken", "client_token"),
    ("encKey", "enc_key"),
    ("macKey", "mac_key"),
)


def _b64(value: Optional[bytes]) -> Optional[str]:
    return base64.b64encode(value).decode("ascii") if value is not None else None


def _unb64(value: Optional[str], name: str) -> Optional[bytes]:
    if value is None:
        return None
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise ValueError(f"Invalid base64 in field {name}: {e}") from e


def new_client_id() -> str:
    """Random base64 client identifier."""
    return _b64(random_bytes(CLIENT_ID_SIZE))


@dataclass(frozen=True)
class Credentials:
    """Credential material for one session."""
    client_id: str
    private_key: bytes = field(repr=False)
    public_key: bytes
    server_token: Optional[bytes] = field(default=None, repr=False)
    client_token: Optional[bytes] = field(default=None, repr=False)
    enc_key: Optional[bytes] = field(default=None, repr=False)
    mac_key: Optional[bytes] = field(default=None, repr=False)
    wid: Optional[str] = None

    @classmethod
    def create(
        cls,
        key_pair: Optional[KeyPair] = None,
        client_id: Optional[str] = None,
    ) -> 'Credentials':
        """
        Create credentials for a new authentication attempt.

        Args:
            key_pair: X25519 key pair (generated if None)
            client_id: Base64 client id (generated if None)
        """
        key_pair = key_pair or generate_key_pair()
        return cls(
            client_id=client_id or new_client_id(),
            private_key=key_pair.private_key,
            public_key=key_pair.public_key,
        )

    @property
    def key_pair(self) -> KeyPair:
        return KeyPair(private_key=self.private_key, public_key=self.public_key)

    @property
    def can_resume(self) -> bool:
        """True if a completed handshake left enough material to log in again."""
        return self.client_token is not None and self.wid is not None

    def with_auth_payload(self, payload: "AuthPayload") -> 'Credentials':
        """Fold generated handshake material back into the credentials."""
        return replace(
            self,
            server_token=payload.server_token,
            client_token=payload.client_token,
            enc_key=payload.enc_key,
            mac_key=payload.mac_key,
        )

    def updated(self, **changes: Any) -> 'Credentials':
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Optional[str]]:
        """Serialize with binary fields base64-encoded."""
        data: Dict[str, Optional[str]] = {"clientId": self.client_id}
        for wire_name, attr in _BINARY_FIELDS:
            data[wire_name] = _b64(getattr(self, attr))
        data["wid"] = self.wid
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Credentials':
        """
        Deserialize credentials.

        Raises:
            ValueError: If required fields are missing or base64 is invalid
        """
        for required in ("clientId", "privateKey", "publicKey"):
            if not data.get(required):
                raise ValueError(f"Missing credential field: {required}")

        values = {attr: _unb64(data.get(wire_name), wire_name) for wire_name, attr in _BINARY_FIELDS}
        return cls(client_id=str(data["clientId"]), wid=data.get("wid"), **values)


@dataclass
class UserProfile:
    """The authenticated account."""
    id: str
    name: str = ""
    phone: str = ""
    status: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserProfile':
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name") or ""),
            phone=str(data.get("phone") or ""),
            status=data.get("status"),
        )
