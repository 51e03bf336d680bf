"""
wacore Authenticator Base

Defines the interface shared by the QR and pairing-code authenticators.

An authenticator owns:
- The credentials created at authentication start (client id, X25519 keys)
- Its current challenge, until consumed, expired or reset
- Handles to its own scheduled tasks, all cancelled on reset/success
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, List, Optional

from ..events import EventBus
from ..net.scheduler import Scheduler, TaskHandle
from ..session.credentials import Credentials


logger = logging.getLogger(__name__)


class ValidationError(ValueError):
    """Raised synchronously for malformed caller input."""
    pass


class AuthError(Exception):
    """Raised when authentication is rejected or not possible in the current state."""
    pass


class AuthState(Enum):
    """Authenticator state."""
    IDLE = "idle"
    ISSUED = "issued"              # QR challenge shown
    REQUESTED = "requested"        # Pairing code requested
    REFRESHING = "refreshing"      # QR being regenerated
    EXPIRED = "expired"
    AUTHENTICATED = "authenticated"


class Authenticator(ABC):
    """
    Base class for challenge-based authenticators.

    Subclasses implement handshake_frame() to produce the frame that starts
    the handshake on the wire.
    """

    kind = "base"

    def __init__(
        self,
        scheduler: Scheduler,
        bus: EventBus,
        timeout: float = 60.0,
        credentials: Optional[Credentials] = None,
    ):
        """
        Args:
            scheduler: Scheduler for expiry/refresh tasks
            bus: Event bus for challenge notifications
            timeout: Challenge lifetime in seconds
            credentials: Existing credentials (new ones generated if None)
        """
        if timeout <= 0:
            raise ValueError("Timeout must be positive")

        self._scheduler = scheduler
        self._bus = bus
        self.timeout = timeout
        self._credentials = credentials or Credentials.create()
        self._state = AuthState.IDLE
        self._tasks: List[TaskHandle] = []

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @property
    def pending_tasks(self) -> int:
        """Number of scheduled tasks that may still fire."""
        return sum(1 for task in self._tasks if task.active)

    @property
    @abstractmethod
    def challenge(self) -> Optional[Any]:
        """Current challenge, or None."""
        pass

    @abstractmethod
    def handshake_frame(self, version: List[int], browser: List[str]) -> list:
        """
        Build the frame that opens the handshake.

        Args:
            version: Client version triple
            browser: [client name, browser name]
        """
        pass

    @abstractmethod
    def _discard_challenge(self) -> None:
        pass

    def _schedule(self, delay: float, callback, name: str) -> TaskHandle:
        task = self._scheduler.call_later(delay, callback, name=name)
        self._tasks.append(task)
        return task

    def _cancel_tasks(self) -> None:
        for task in self._tasks:
            task.cancel()
        self._tasks.clear()

    def _transition(self, new_state: AuthState) -> None:
        if new_state != self._state:
            logger.debug(f"{self.kind} authenticator: {self._state.value} -> {new_state.value}")
        self._state = new_state

    def consume_success(self) -> None:
        """Mark the handshake successful; cancels all tasks."""
        self._cancel_tasks()
        self._discard_challenge()
        self._transition(AuthState.AUTHENTICATED)

    def reset(self) -> None:
        """Cancel all tasks, discard the challenge and return to IDLE."""
        self._cancel_tasks()
        self._discard_challenge()
        self._transition(AuthState.IDLE)

    def renew_credentials(self, credentials: Optional[Credentials] = None) -> Credentials:
        """Replace the credentials (e.g. after logout). Resets the authenticator."""
        self.reset()
        self._credentials = credentials or Credentials.create()
        return self._credentials

    def __repr__(self) -> str:
        return f"{type(self).__name__}(state={self._state.value})"
