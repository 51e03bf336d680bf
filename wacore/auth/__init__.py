"""
wacore Authentication Module

Challenge-based authenticators:
- QR code (scan from the phone)
- Pairing code (type an 8-character code on the phone)
"""

from .base import (
    Authenticator,
    AuthState,
    AuthError,
    ValidationError,
)

from .qr import (
    QRAuthenticator,
    QRChallenge,
)

from .pairing import (
    PairingCodeAuthenticator,
    PairingChallenge,
    validate_phone_number,
    generate_pairing_code,
)

__all__ = [
    'Authenticator',
    'AuthState',
    'AuthError',
    'ValidationError',
    'QRAuthenticator',
    'QRChallenge',
    'PairingCodeAuthenticator',
    'PairingChallenge',
    'validate_phone_number',
    'generate_pairing_code',
]
