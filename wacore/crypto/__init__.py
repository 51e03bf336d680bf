"""
wacore Cryptographic Module

Provides all cryptographic operations for the protocol core:
- Key generation and agreement (X25519)
- Authenticated encryption (ChaCha20-Poly1305)
- Digital signatures (Ed25519)
- Keyed digests (HMAC-SHA256)
- Key derivation (HKDF)
- Handshake payload construction

All implementations use the cryptography library (OpenSSL backend).
"""

from .primitives import (
    random_bytes,
    hmac_sha256,
    hmac_hex,
    hkdf_derive,
    constant_time_compare,
)

from .cipher import (
    encrypt,
    decrypt,
    EncryptionError,
)

from .keys import (
    KeyPair,
    SigningKeyPair,
    generate_key_pair,
    generate_signing_key_pair,
    derive_shared_secret,
    public_key_for,
    sign,
    verify,
)

from .handshake import (
    AuthPayload,
    derive_auth_payload,
    derive_session_keys,
)

__all__ = [
    # Primitives
    'random_bytes',
    'hmac_sha256',
    'hmac_hex',
    'hkdf_derive',
    'constant_time_compare',
    # Cipher
    'encrypt',
    'decrypt',
    'EncryptionError',
    # Keys
    'KeyPair',
    'SigningKeyPair',
    'generate_key_pair',
    'generate_signing_key_pair',
    'derive_shared_secret',
    'public_key_for',
    'sign',
    'verify',
    # Handshake
    'AuthPayload',
    'derive_auth_payload',
    'derive_session_keys',
]
