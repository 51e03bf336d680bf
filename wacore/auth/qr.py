"""
wacore QR Authenticator

State machine:
    IDLE -> ISSUED -> {EXPIRED | REFRESHING | AUTHENTICATED}

QR string:
    ref,publicKeyBase64,clientIdBase64

Fields are joined with commas and never escaped. None of the fields can
contain a comma today (base64 alphabet), but a server-supplied ref is
used verbatim.

Timers:
- Expiry after `timeout` seconds -> EXPIRED, emits qr_expired
- Refresh at every multiple of `refresh_interval` strictly before expiry
  -> emits qr_refresh_needed, state unchanged. A new QR is only issued
  when the caller regenerates it.
"""

import base64
from dataclasses import dataclass
from typing import List, Optional

from ..events import EventBus, Events
from ..net.scheduler import Scheduler
from ..session.credentials import Credentials
from ..crypto.primitives import random_bytes
from .base import Authenticator, AuthError, AuthState


# Random ref length before base64
REF_SIZE = 16  # bytes

DEFAULT_QR_TIMEOUT = 60.0  # seconds
DEFAULT_REFRESH_INTERVAL = 20.0  # seconds


@dataclass(frozen=True)
class QRChallenge:
    """One issued QR challenge."""
    ref: str
    public_key: bytes
    client_id: str
    issued_at: int  # ms

    @property
    def qr_string(self) -> str:
        public_key = base64.b64encode(self.public_key).decode("ascii")
        return f"{self.ref},{self.client_id},{public_key}"


class QRAuthenticator(Authenticator):
    """QR-code handshake."""

    kind = "qr"

    def __init__(
        self,
        scheduler: Scheduler,
        bus: EventBus,
        timeout: float = DEFAULT_QR_TIMEOUT,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        credentials: Optional[Credentials] = None,
    ):
        super().__init__(scheduler, bus, timeout, credentials)
        if refresh_interval <= 0:
            raise ValueError("Refresh interval must be positive")
        self.refresh_interval = refresh_interval
        self._challenge: Optional[QRChallenge] = None

    @property
    def challenge(self) -> Optional[QRChallenge]:
        return self._challenge

    @property
    def qr_string(self) -> Optional[str]:
        return self._challenge.qr_string if self._challenge else None

    def handshake_frame(self, version: List[int], browser: List[str]) -> list:
        return ["admin", "init", list(version), list(browser), self._credentials.client_id, True]

    def generate_challenge(self, ref: Optional[str] = None) -> QRChallenge:
        """
        Issue a new QR challenge.

        Args:
            ref: Server-supplied reference (random if None)

        Returns:
            QRChallenge: The issued challenge

        Raises:
            AuthError: If called from ISSUED or AUTHENTICATED
        """
        if self._state not in (AuthState.IDLE, AuthState.EXPIRED, AuthState.REFRESHING):
            raise AuthError(f"Cannot issue QR challenge in state {self._state.value}")

        self._cancel_tasks()
        self._challenge = QRChallenge(
            ref=ref or base64.b64encode(random_bytes(REF_SIZE)).decode("ascii"),
            public_key=self._credentials.public_key,
            client_id=self._credentials.client_id,
            issued_at=self._scheduler.now_ms(),
        )

        self._schedule(self.timeout, self._on_expired, "qr-expiry")
        step = 1
        while step * self.refresh_interval < self.timeout:
            self._schedule(step * self.refresh_interval, self._on_refresh, "qr-refresh")
            step += 1

        self._transition(AuthState.ISSUED)
        self._bus.emit(Events.QR, self._challenge.qr_string)
        return self._challenge

    def begin_refresh(self) -> None:
        """
        Stop the current challenge's timers ahead of regeneration.

        Raises:
            AuthError: Unless the state is ISSUED or EXPIRED
        """
        if self._state not in (AuthState.ISSUED, AuthState.EXPIRED):
            raise AuthError(f"Cannot refresh QR challenge in state {self._state.value}")
        self._cancel_tasks()
        self._transition(AuthState.REFRESHING)

    def _on_expired(self) -> None:
        if self._state != AuthState.ISSUED:
            return
        self._cancel_tasks()
        self._transition(AuthState.EXPIRED)
        self._bus.emit(Events.QR_EXPIRED)

    def _on_refresh(self) -> None:
        if self._state != AuthState.ISSUED or self._challenge is None:
            return
        self._bus.emit(Events.QR_REFRESH_NEEDED, {"ref": self._challenge.ref})

    def _discard_challenge(self) -> None:
        self._challenge = None
