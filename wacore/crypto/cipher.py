"""
wacore Authenticated Encryption

AEAD encryption of frame payloads with ChaCha20-Poly1305.

Ciphertext format:
    nonce (12 bytes) || ciphertext || tag (16 bytes)

SECURITY NOTES:
- A fresh random nonce is drawn for every message
- Authentication failure always raises, never returns partial plaintext
"""

from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

from .primitives import random_bytes, SYMMETRIC_KEY_SIZE


NONCE_SIZE = 12  # bytes
TAG_SIZE = 16  # bytes

# Smallest valid ciphertext: nonce + tag around an empty plaintext
MIN_CIPHERTEXT_SIZE = NONCE_SIZE + TAG_SIZE


class EncryptionError(Exception):
    """Exception raised for encryption, decryption and key-agreement errors."""
    pass


def _cipher(key: bytes) -> ChaCha20Poly1305:
    if len(key) != SYMMETRIC_KEY_SIZE:
        raise EncryptionError(
            f"Key must be {SYMMETRIC_KEY_SIZE} bytes, got {len(key)}"
        )
    return ChaCha20Poly1305(key)


def encrypt(plaintext: bytes, key: bytes, associated_data: Optional[bytes] = None) -> bytes:
    """
    Encrypt a payload.

    Args:
        plaintext: Data to encrypt
        key: 32-byte symmetric key
        associated_data: Optional data authenticated but not encrypted

    Returns:
        bytes: nonce || ciphertext || tag

    Raises:
        EncryptionError: If the key has the wrong size
    """
    nonce = random_bytes(NONCE_SIZE)
    return nonce + _cipher(key).encrypt(nonce, plaintext, associated_data)


def decrypt(ciphertext: bytes, key: bytes, associated_data: Optional[bytes] = None) -> bytes:
    """
    Decrypt a payload produced by encrypt().

    Args:
        ciphertext: nonce || ciphertext || tag
        key: 32-byte symmetric key
        associated_data: Data that was authenticated on encrypt

    Returns:
        bytes: Plaintext

    Raises:
        EncryptionError: If the framing is malformed, the key has the wrong
            size, or authentication fails
    """
    if len(ciphertext) < MIN_CIPHERTEXT_SIZE:
        raise EncryptionError(
            f"Ciphertext too short: {len(ciphertext)} < {MIN_CIPHERTEXT_SIZE} bytes"
        )

    cipher = _cipher(key)
    nonce = ciphertext[:NONCE_SIZE]

    try:
        return cipher.decrypt(nonce, ciphertext[NONCE_SIZE:], associated_data)
    except InvalidTag:
        raise EncryptionError("Decryption failed: invalid tag (tampering or wrong key)") from None
