"""
wacore Pairing-Code Authenticator

Links a device by typing an 8-character code on the phone instead of
scanning a QR code.

State machine:
    IDLE -> REQUESTED -> {EXPIRED | AUTHENTICATED}

Flow:
1. request_challenge(phone) validates and normalizes the number, generates
   the code and emits pairing_requested {clientId, publicKey, phoneNumber}
2. The connection manager forwards handshake_frame() to the server
3. confirm_issued() surfaces the code through pairing_code {code}
4. The expiry timer emits pairing_expired if the phone never confirms
"""

import re
import base64
import secrets
import string
from dataclasses import dataclass
from typing import List, Optional

from ..events import EventBus, Events
from ..net.scheduler import Scheduler
from ..session.credentials import Credentials
from .base import Authenticator, AuthError, AuthState, ValidationError


PAIRING_CODE_LENGTH = 8
PAIRING_CODE_ALPHABET = string.ascii_uppercase + string.digits

DEFAULT_PAIRING_TIMEOUT = 60.0  # seconds

# E.164-like: optional '+', 10 to 15 digits
PHONE_PATTERN = re.compile(r"^\+?[0-9]{10,15}$")

# Separators accepted (and dropped) in user-typed numbers
_SEPARATORS = re.compile(r"[\s\-().]")


@dataclass(frozen=True)
class PairingChallenge:
    """One requested pairing code."""
    phone_number: str
    client_id: str
    public_key: bytes
    code: str
    issued_at: int  # ms


def validate_phone_number(phone_number: str) -> str:
    """
    Validate and normalize a phone number.

    Args:
        phone_number: Number as typed, e.g. "+1 234-567-8900"

    Returns:
        str: Digits only, e.g. "12345678900"

    Raises:
        ValidationError: If the number is not 10-15 digits with an optional
            leading '+'
    """
    if not isinstance(phone_number, str):
        raise ValidationError("Phone number must be a string")

    compact = _SEPARATORS.sub("", phone_number)
    if not PHONE_PATTERN.match(compact):
        raise ValidationError(
            f"Invalid phone number {phone_number!r}: expected 10-15 digits "
            "with optional leading '+'"
        )
    return compact.lstrip("+")


def generate_pairing_code(length: int = PAIRING_CODE_LENGTH) -> str:
    """Random code from [A-Z0-9] using the secrets module."""
    return "".join(secrets.choice(PAIRING_CODE_ALPHABET) for _ in range(length))


class PairingCodeAuthenticator(Authenticator):
    """Phone-number pairing-code handshake."""

    kind = "pairing"

    def __init__(
        self,
        scheduler: Scheduler,
        bus: EventBus,
        timeout: float = DEFAULT_PAIRING_TIMEOUT,
        credentials: Optional[Credentials] = None,
    ):
        super().__init__(scheduler, bus, timeout, credentials)
        self._challenge: Optional[PairingChallenge] = None
        self._code_surfaced = False

    @property
    def challenge(self) -> Optional[PairingChallenge]:
        return self._challenge

    def handshake_frame(self, version: List[int], browser: List[str]) -> list:
        """
        Raises:
            AuthError: If no pairing code has been requested
        """
        if self._challenge is None:
            raise AuthError("No pairing code requested")
        return [
            "admin", "init", list(version), list(browser),
            self._credentials.client_id, False,
            self._challenge.phone_number, self._challenge.code,
        ]

    def request_challenge(self, phone_number: str) -> PairingChallenge:
        """
        Request a pairing code for a phone number.

        Validation happens before any state change; an invalid number leaves
        the authenticator untouched.

        Args:
            phone_number: Number as typed by the user

        Returns:
            PairingChallenge: The new challenge (with code)

        Raises:
            ValidationError: If the phone number is malformed
            AuthError: If already authenticated
        """
        normalized = validate_phone_number(phone_number)

        if self._state == AuthState.AUTHENTICATED:
            raise AuthError("Already authenticated")

        self._cancel_tasks()
        self._challenge = PairingChallenge(
            phone_number=normalized,
            client_id=self._credentials.client_id,
            public_key=self._credentials.public_key,
            code=generate_pairing_code(),
            issued_at=self._scheduler.now_ms(),
        )
        self._code_surfaced = False
        self._schedule(self.timeout, self._on_expired, "pairing-expiry")
        self._transition(AuthState.REQUESTED)

        self._bus.emit(Events.PAIRING_REQUESTED, {
            "clientId": self._challenge.client_id,
            "publicKey": base64.b64encode(self._challenge.public_key).decode("ascii"),
            "phoneNumber": normalized,
        })
        return self._challenge

    def confirm_issued(self) -> bool:
        """
        Surface the code once the request has reached the server.

        Returns:
            bool: True if pairing_code was emitted by this call
        """
        if self._state != AuthState.REQUESTED or self._challenge is None or self._code_surfaced:
            return False
        self._code_surfaced = True
        self._bus.emit(Events.PAIRING_CODE, {"code": self._challenge.code})
        return True

    def _on_expired(self) -> None:
        if self._state != AuthState.REQUESTED:
            return
        self._cancel_tasks()
        self._transition(AuthState.EXPIRED)
        self._bus.emit(Events.PAIRING_EXPIRED)

    def _discard_challenge(self) -> None:
        self._challenge = None
        self._code_surfaced = False
