"""
wacore Cryptographic Primitives

Low-level functions wrapping the cryptography library.

SECURITY NOTES:
- All randomness from os.urandom (kernel CSPRNG)
- All comparisons use constant-time operations
- Key material is never logged
"""

import os
import hmac
import hashlib
from typing import Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF


# Key and token sizes
X25519_KEY_SIZE = 32  # bytes
ED25519_SIGNATURE_SIZE = 64  # bytes
SYMMETRIC_KEY_SIZE = 32  # bytes
CLIENT_TOKEN_SIZE = 16  # bytes
HMAC_SIZE = 32  # bytes (SHA-256)


def random_bytes(length: int) -> bytes:
    """
    Generate cryptographically secure random bytes.

    Args:
        length: Number of random bytes to generate

    Returns:
        bytes: Random bytes from the OS CSPRNG

    Raises:
        ValueError: If length is negative
    """
    if length < 0:
        raise ValueError("Length must be non-negative")
    return os.urandom(length)


def hmac_sha256(message: bytes, key: bytes) -> bytes:
    """
    Compute HMAC-SHA256 of a message.

    Args:
        message: Data to authenticate
        key: MAC key (any length)

    Returns:
        bytes: 32-byte digest
    """
    return hmac.new(key, message, hashlib.sha256).digest()


def hmac_hex(message: bytes, key: bytes) -> str:
    """HMAC-SHA256 as a lowercase hex string."""
    return hmac.new(key, message, hashlib.sha256).hexdigest()


def hkdf_derive(
    input_key_material: bytes,
    length: int,
    info: bytes,
    salt: Optional[bytes] = None,
) -> bytes:
    """
    Derive key material using HKDF-SHA256 (RFC 5869).

    Args:
        input_key_material: Source key material (e.g. X25519 shared secret)
        length: Desired output length in bytes
        info: Context info for domain separation
        salt: Optional salt

    Returns:
        bytes: Derived key material

    Raises:
        ValueError: If length is out of range
    """
    if length < 1:
        raise ValueError("Length must be at least 1")
    if length > 255 * HMAC_SIZE:
        raise ValueError("Length too large for HKDF")

    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=length,
        salt=salt,
        info=info,
    )
    return hkdf.derive(input_key_material)


def constant_time_compare(a: bytes, b: bytes) -> bool:
    """
    Compare two byte strings in constant time.

    Returns:
        bool: True if equal, False otherwise
    """
    return hmac.compare_digest(a, b)
