"""
wacore Key Management

Key Types:
- Agreement Key: X25519 key pair, created at authentication start and
  advertised in the QR string / pairing request
- Signing Key: Ed25519 key pair for detached signatures

Keys are carried as raw 32-byte strings so they can be persisted in the
session document without a PEM/DER layer.

SECURITY NOTES:
- Private keys are never logged or included in __repr__
- All key generation uses the OS CSPRNG via the cryptography library
"""

from dataclasses import dataclass, field

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)

from .cipher import EncryptionError
from .primitives import ED25519_SIGNATURE_SIZE, X25519_KEY_SIZE


_RAW_PRIVATE = dict(
    encoding=serialization.Encoding.Raw,
    format=serialization.PrivateFormat.Raw,
    encryption_algorithm=serialization.NoEncryption(),
)
_RAW_PUBLIC = dict(
    encoding=serialization.Encoding.Raw,
    format=serialization.PublicFormat.Raw,
)


@dataclass(frozen=True)
class KeyPair:
    """X25519 key pair as raw bytes."""
    private_key: bytes = field(repr=False)
    public_key: bytes


@dataclass(frozen=True)
class SigningKeyPair:
    """Ed25519 key pair as raw bytes (private key is the 32-byte seed)."""
    private_key: bytes = field(repr=False)
    public_key: bytes


def generate_key_pair() -> KeyPair:
    """
    Generate a fresh X25519 key pair for key agreement.

    Returns:
        KeyPair: Raw 32-byte private and public keys
    """
    private = X25519PrivateKey.generate()
    return KeyPair(
        private_key=private.private_bytes(**_RAW_PRIVATE),
        public_key=private.public_key().public_bytes(**_RAW_PUBLIC),
    )


def public_key_for(private_key: bytes) -> bytes:
    """Recompute the X25519 public key for a raw private key."""
    try:
        private = X25519PrivateKey.from_private_bytes(private_key)
    except ValueError as e:
        raise EncryptionError(f"Invalid private key: {e}") from e
    return private.public_key().public_bytes(**_RAW_PUBLIC)


def derive_shared_secret(our_private: bytes, their_public: bytes) -> bytes:
    """
    Perform X25519 key agreement.

    derive_shared_secret(a.private, b.public) == derive_shared_secret(b.private, a.public)

    Args:
        our_private: Our raw 32-byte private key
        their_public: Peer's raw 32-byte public key

    Returns:
        bytes: 32-byte shared secret

    Raises:
        EncryptionError: If either key is malformed or the peer key is a
            low-order point
    """
    if len(our_private) != X25519_KEY_SIZE or len(their_public) != X25519_KEY_SIZE:
        raise EncryptionError(f"X25519 keys must be {X25519_KEY_SIZE} bytes")
    try:
        private = X25519PrivateKey.from_private_bytes(our_private)
        public = X25519PublicKey.from_public_bytes(their_public)
        return private.exchange(public)
    except ValueError as e:
        raise EncryptionError(f"Key agreement failed: {e}") from e


def generate_signing_key_pair() -> SigningKeyPair:
    """Generate a fresh Ed25519 signing key pair."""
    private = Ed25519PrivateKey.generate()
    return SigningKeyPair(
        private_key=private.private_bytes(**_RAW_PRIVATE),
        public_key=private.public_key().public_bytes(**_RAW_PUBLIC),
    )


def sign(message: bytes, private_key: bytes) -> bytes:
    """
    Create a detached Ed25519 signature.

    Args:
        message: Message to sign
        private_key: Raw 32-byte Ed25519 seed

    Returns:
        bytes: 64-byte signature

    Raises:
        EncryptionError: If the private key is malformed
    """
    try:
        private = Ed25519PrivateKey.from_private_bytes(private_key)
    except ValueError as e:
        raise EncryptionError(f"Invalid signing key: {e}") from e
    return private.sign(message)


def verify(message: bytes, signature: bytes, public_key: bytes) -> bool:
    """
    Verify a detached Ed25519 signature.

    Args:
        message: Original message
        signature: Signature to check
        public_key: Raw 32-byte Ed25519 public key

    Returns:
        bool: True if the signature is valid. Invalid or malformed
        signatures and keys return False.
    """
    if len(signature) != ED25519_SIGNATURE_SIZE:
        return False
    try:
        Ed25519PublicKey.from_public_bytes(public_key).verify(signature, message)
        return True
    except (InvalidSignature, ValueError):
        return False
