"""
wacore Handshake Material

Builds the credential payload exchanged during login and expands an X25519
shared secret into the session's symmetric keys.

Payload fields:
    client_id     base64 client identifier (from authentication start)
    public_key    our X25519 public key
    server_token  server-issued, None until the server provides one
    client_token  16 random bytes
    enc_key       32-byte frame encryption key
    mac_key       32-byte frame MAC key
"""

import base64
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, TYPE_CHECKING

from .primitives import (
    random_bytes,
    hkdf_derive,
    SYMMETRIC_KEY_SIZE,
    CLIENT_TOKEN_SIZE,
)

if TYPE_CHECKING:
    from ..session.credentials import Credentials


# Domain separation for session key expansion
SESSION_KEYS_INFO = b"wacore-session-keys-v1"


@dataclass(frozen=True)
class AuthPayload:
    """Handshake payload derived from credentials."""
    client_id: str
    public_key: bytes
    server_token: Optional[bytes]
    client_token: bytes
    enc_key: bytes
    mac_key: bytes

    def to_wire(self) -> Dict[str, Optional[str]]:
        """Base64 form used in login frames."""
        def b64(value: Optional[bytes]) -> Optional[str]:
            return base64.b64encode(value).decode("ascii") if value is not None else None

        return {
            "clientId": self.client_id,
            "publicKey": b64(self.public_key),
            "serverToken": b64(self.server_token),
            "clientToken": b64(self.client_token),
            "encKey": b64(self.enc_key),
            "macKey": b64(self.mac_key),
        }


def derive_auth_payload(credentials: "Credentials") -> AuthPayload:
    """
    Build the handshake payload for a set of credentials.

    Fields already present are used as-is; a missing client token, enc key
    or mac key is generated from the OS CSPRNG. The server token is never
    generated.

    Args:
        credentials: Credentials created at authentication start

    Returns:
        AuthPayload: Complete payload. Fold it back with
        Credentials.with_auth_payload() to keep later calls stable.
    """
    return AuthPayload(
        client_id=credentials.client_id,
        public_key=credentials.public_key,
        server_token=credentials.server_token,
        client_token=credentials.client_token or random_bytes(CLIENT_TOKEN_SIZE),
        enc_key=credentials.enc_key or random_bytes(SYMMETRIC_KEY_SIZE),
        mac_key=credentials.mac_key or random_bytes(SYMMETRIC_KEY_SIZE),
    )


def derive_session_keys(shared_secret: bytes) -> Tuple[bytes, bytes]:
    """
    Expand a shared secret into (enc_key, mac_key).

    Args:
        shared_secret: 32-byte X25519 shared secret

    Returns:
        Tuple[bytes, bytes]: 32-byte encryption key and 32-byte MAC key
    """
    expanded = hkdf_derive(
        input_key_material=shared_secret,
        length=SYMMETRIC_KEY_SIZE * 2,
        info=SESSION_KEYS_INFO,
    )
    return expanded[:SYMMETRIC_KEY_SIZE], expanded[SYMMETRIC_KEY_SIZE:]
