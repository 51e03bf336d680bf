"""
wacore Connection Manager

Owns the transport, the connection state machine, credentials, the
outbound queue, and the keep-alive and reconnect timers.

State machine:
    CLOSED -> CONNECTING -> CONNECTED -> AUTHENTICATING -> AUTHENTICATED -> READY
    AUTHENTICATING -> CONNECTED                 (handshake rejected)
    CONNECTED..READY -> LOGGING_OUT -> CLOSED   (logout)
    CONNECTING..READY -> CLOSED                 (transport failure)

Reconnect policy:
- A close with any code other than 1000 schedules attempt n after
  retry_delay * n seconds
- After retry_count failed attempts, connection.failed is emitted and no
  further attempts are made
- disconnect() and logout() suppress reconnection

Threading:
- One RLock serializes every mutation of state, credentials, the queue and
  the entity cache (through the dispatcher)
- Transport open blocks outside the lock
- Events are emitted while the lock is held
"""

import base64
import binascii
import logging
import threading
from collections import deque
from enum import Enum
from typing import Any, Callable, Deque, Dict, Optional, Tuple

from .. import NORMAL_CLOSURE, WA_VERSION
from ..auth.base import Authenticator, AuthError, AuthState
from ..auth.pairing import PairingCodeAuthenticator, validate_phone_number
from ..auth.qr import QRAuthenticator
from ..binary.codec import ProtocolDecodeError, decode_all, encode_frame
from ..config import Config
from ..crypto.cipher import EncryptionError, decrypt, encrypt
from ..crypto.handshake import derive_auth_payload, derive_session_keys
from ..crypto.keys import derive_shared_secret
from ..events import EventBus, Events
from ..jid import jid_user
from ..protocol import (
    HANDSHAKE_KINDS,
    KEEP_ALIVE_FRAME,
    LOGOUT_FRAME,
    SNAPSHOT_FRAMES,
    Inbound,
    InboundKind,
    classify,
    encrypted_frame,
    login_frame,
)
from ..session.credentials import Credentials, UserProfile
from ..session.store import SessionError, SessionRecord, SessionStore
from .scheduler import Scheduler, SerializedScheduler, TaskHandle
from .transport import ABNORMAL_CLOSURE, Transport, TransportError


logger = logging.getLogger(__name__)

Dispatcher = Callable[[Inbound], None]
SentCallback = Callable[[], None]


class ConnectionError(Exception):
    """Raised when the transport cannot be opened; the reconnect policy has been engaged."""
    pass


class ConnectionState(Enum):
    """Connection lifecycle state."""
    CLOSED = "closed"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    LOGGING_OUT = "logging_out"


_S = ConnectionState
_TRANSITIONS = {
    _S.CLOSED: {_S.CONNECTING},
    _S.CONNECTING: {_S.CONNECTED, _S.CLOSED},
    _S.CONNECTED: {_S.AUTHENTICATING, _S.LOGGING_OUT, _S.CLOSED},
    _S.AUTHENTICATING: {_S.AUTHENTICATED, _S.CONNECTED, _S.LOGGING_OUT, _S.CLOSED},
    _S.AUTHENTICATED: {_S.READY, _S.LOGGING_OUT, _S.CLOSED},
    _S.READY: {_S.LOGGING_OUT, _S.CLOSED},
    _S.LOGGING_OUT: {_S.CLOSED},
}


class ConnectionManager:
    """
    Connection lifecycle for one client.

    Usage:
        manager = ConnectionManager(config, transport, scheduler, bus, store)
        manager.set_dispatcher(on_inbound)
        manager.connect()
        ...
        manager.disconnect()
    """

    def __init__(
        self,
        config: Config,
        transport: Transport,
        scheduler: Scheduler,
        bus: EventBus,
        session_store: Optional[SessionStore] = None,
        lock: Optional[threading.RLock] = None,
    ):
        """
        Args:
            config: Client configuration
            transport: Frame transport (WebSocket or loopback)
            scheduler: Timer source
            bus: Event bus
            session_store: Credential persistence (None disables persistence)
            lock: Single-writer lock shared with the client facade
        """
        self.config = config
        self.lock = lock or threading.RLock()
        self._transport = transport
        self._scheduler = scheduler
        self._serialized = SerializedScheduler(scheduler, self.lock)
        self._bus = bus
        self._store = session_store
        self._dispatcher: Optional[Dispatcher] = None

        self._state = ConnectionState.CLOSED
        self._credentials: Optional[Credentials] = None
        self._user: Optional[UserProfile] = None
        self._session_loaded = False
        self._resuming = False

        # Authenticators share the credentials of the current attempt
        initial = Credentials.create()
        self.qr = QRAuthenticator(
            self._serialized, bus,
            timeout=config.auth.qr_timeout,
            refresh_interval=config.auth.qr_refresh_interval,
            credentials=initial,
        )
        self.pairing = PairingCodeAuthenticator(
            self._serialized, bus,
            timeout=config.auth.pairing_timeout,
            credentials=initial,
        )
        self._active_auth: Optional[Authenticator] = None

        self._queue: Deque[Tuple[bytes, Optional[SentCallback]]] = deque()
        self._keep_alive: Optional[TaskHandle] = None
        self._reconnect: Optional[TaskHandle] = None
        self._attempts = 0
        self._should_reconnect = False

        # Statistics
        self.frames_dropped = 0
        self.frames_dispatched = 0
        self.reconnects = 0

        transport.set_handlers(self._on_transport_message, self._on_transport_close)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def credentials(self) -> Optional[Credentials]:
        return self._credentials

    @property
    def user(self) -> Optional[UserProfile]:
        return self._user

    @property
    def is_ready(self) -> bool:
        return self._state == ConnectionState.READY

    @property
    def is_authenticated(self) -> bool:
        """True once a handshake has confirmed our identity."""
        return self._credentials is not None and self._credentials.wid is not None

    @property
    def queued_frames(self) -> int:
        return len(self._queue)

    @property
    def reconnect_attempts(self) -> int:
        return self._attempts

    @property
    def active_authenticator(self) -> Optional[Authenticator]:
        return self._active_auth

    def set_dispatcher(self, dispatcher: Optional[Dispatcher]) -> None:
        """Register the handler for non-handshake inbound frames."""
        self._dispatcher = dispatcher

    # -------------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------------

    def _transition(
        self,
        new_state: ConnectionState,
        code: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> None:
        old_state = self._state
        if new_state not in _TRANSITIONS[old_state]:
            raise RuntimeError(f"Invalid transition {old_state.value} -> {new_state.value}")

        self._state = new_state
        logger.info(f"Connection state: {old_state.value} -> {new_state.value}")

        payload: Dict[str, Any] = {
            "state": new_state.value,
            "from": old_state.value,
            "to": new_state.value,
        }
        if code is not None:
            payload["code"] = code
        if reason is not None:
            payload["reason"] = reason
        self._bus.emit(Events.CONNECTION_UPDATE, payload)

    # -------------------------------------------------------------------------
    # Connect
    # -------------------------------------------------------------------------

    def _load_session(self) -> None:
        if self._session_loaded or self._store is None:
            return
        self._session_loaded = True
        try:
            record = self._store.load()
        except SessionError as e:
            logger.warning(f"Ignoring unreadable session: {e}")
            return
        if record is not None:
            self._credentials = record.credentials
            self._user = record.user
            logger.info("Loaded stored session")

    def connect(self) -> None:
        """
        Open the connection and start authentication.

        Blocks until the transport is open or the configured timeout elapses.

        Raises:
            ConnectionError: If the transport could not be opened. A
                reconnect has been scheduled according to the retry policy.
        """
        with self.lock:
            if self._state != ConnectionState.CLOSED:
                logger.warning(f"connect() ignored in state {self._state.value}")
                return
            self._should_reconnect = True
            self._attempts = 0
            self._cancel_reconnect()
            self._load_session()
            self._transition(ConnectionState.CONNECTING)

        self._open_transport(raise_on_failure=True)

    def _open_transport(self, raise_on_failure: bool) -> bool:
        timeout = self.config.connection.timeout
        try:
            self._transport.open(timeout)
        except TransportError as e:
            with self.lock:
                logger.warning(f"Transport open failed: {e}")
                if self._state == ConnectionState.CONNECTING:
                    self._transition(ConnectionState.CLOSED, code=ABNORMAL_CLOSURE, reason=str(e))
                    self._schedule_reconnect()
            if raise_on_failure:
                raise ConnectionError(f"Could not open transport: {e}") from e
            return False

        with self.lock:
            if self._state != ConnectionState.CONNECTING:
                # disconnect() raced with the open
                self._transport.close(NORMAL_CLOSURE)
                return False
            self._transition(ConnectionState.CONNECTED)
            self._start_authentication()
            return True

    def _select_authenticator(self) -> Authenticator:
        auth_config = self.config.auth
        if auth_config.pairing_code and (auth_config.phone_number or not auth_config.qr_auth):
            return self.pairing
        return self.qr

    def _start_authentication(self) -> None:
        """Resume a stored session or start the configured authenticator (CONNECTED)."""
        if self._credentials is not None and self._credentials.can_resume:
            self._resuming = True
            self._active_auth = None
            self._transition(ConnectionState.AUTHENTICATING)
            self._send_direct(login_frame(self._credentials))
            return

        self._resuming = False
        auth = self._select_authenticator()
        self._active_auth = auth
        if self._credentials is not None and self._credentials is not auth.credentials:
            # Keep the stored identity keys for a fresh handshake
            self.qr.renew_credentials(self._credentials)
            self.pairing.renew_credentials(self._credentials)
        self._credentials = auth.credentials
        self._transition(ConnectionState.AUTHENTICATING)

        if auth is self.qr:
            self._send_direct(self.qr.handshake_frame(WA_VERSION, self._browser()))
        elif self.config.auth.phone_number:
            self.pairing.request_challenge(self.config.auth.phone_number)
            self._send_pairing_request()

    def authenticate(self) -> None:
        """
        Re-run authentication after a rejected handshake.

        Raises:
            AuthError: Unless the connection is CONNECTED
        """
        with self.lock:
            if self._state != ConnectionState.CONNECTED:
                raise AuthError(f"Cannot authenticate in state {self._state.value}")
            self._start_authentication()

    def _browser(self):
        return [self.config.connection.browser_name, "Chrome"]

    def _send_pairing_request(self) -> None:
        frame = self.pairing.handshake_frame(WA_VERSION, self._browser())
        if self._send_direct(frame):
            self.pairing.confirm_issued()

    def request_pairing_code(self, phone_number: str) -> str:
        """
        Switch to pairing-code authentication for a phone number.

        Args:
            phone_number: Number as typed, e.g. "+1 234-567-8900"

        Returns:
            str: The 8-character pairing code

        Raises:
            ValidationError: If the number is malformed (nothing is sent)
            AuthError: If the connection is not waiting for authentication
        """
        validate_phone_number(phone_number)

        with self.lock:
            if self._state not in (ConnectionState.CONNECTED, ConnectionState.AUTHENTICATING):
                raise AuthError(f"Cannot request pairing code in state {self._state.value}")
            if self._resuming:
                raise AuthError("Session resume in progress")

            self.qr.reset()
            self._active_auth = self.pairing
            challenge = self.pairing.request_challenge(phone_number)
            self._credentials = self.pairing.credentials
            if self._state == ConnectionState.CONNECTED:
                self._transition(ConnectionState.AUTHENTICATING)
            self._send_pairing_request()
            return challenge.code

    def refresh_qr(self) -> None:
        """
        Ask the server for a new QR reference.

        Raises:
            AuthError: Unless QR authentication is in progress
        """
        with self.lock:
            if self._state != ConnectionState.AUTHENTICATING or self._active_auth is not self.qr:
                raise AuthError("QR authentication is not in progress")
            if self.qr.state in (AuthState.ISSUED, AuthState.EXPIRED):
                self.qr.begin_refresh()
            self._send_direct(self.qr.handshake_frame(WA_VERSION, self._browser()))

    # -------------------------------------------------------------------------
    # Handshake
    # -------------------------------------------------------------------------

    def _handle_handshake(self, inbound: Inbound) -> None:
        if self._state != ConnectionState.AUTHENTICATING:
            logger.debug(f"Ignoring {inbound.kind} outside authentication")
            return

        if inbound.kind == InboundKind.INIT:
            if self._active_auth is self.qr:
                if self.qr.state == AuthState.ISSUED:
                    self.qr.begin_refresh()
                if self.qr.state != AuthState.AUTHENTICATED:
                    self.qr.generate_challenge(inbound.attrs.get("ref"))
            elif self._active_auth is self.pairing:
                self.pairing.confirm_issued()
        elif inbound.kind == InboundKind.PAIR:
            self.pairing.confirm_issued()
        elif inbound.kind == InboundKind.LOGIN_SUCCESS:
            self._complete_handshake(inbound.attrs)
        elif inbound.kind == InboundKind.LOGIN_FAILURE:
            self._fail_authentication(AuthError(f"Handshake rejected: {inbound.attrs.get('reason')}"))

    @staticmethod
    def _decode_b64(attrs: Dict[str, Any], name: str) -> Optional[bytes]:
        value = attrs.get(name)
        if value is None:
            return None
        if isinstance(value, bytes):
            return value
        return base64.b64decode(value, validate=True)

    def _complete_handshake(self, attrs: Dict[str, Any]) -> None:
        credentials = self._credentials
        if credentials is None:
            self._fail_authentication(AuthError("Login confirmation without credentials"))
            return

        try:
            server_public = self._decode_b64(attrs, "serverPublicKey")
            if server_public is not None:
                shared = derive_shared_secret(credentials.private_key, server_public)
                enc_key, mac_key = derive_session_keys(shared)
                credentials = credentials.updated(enc_key=enc_key, mac_key=mac_key)

            server_token = self._decode_b64(attrs, "serverToken")
            client_token = self._decode_b64(attrs, "clientToken")
        except (EncryptionError, binascii.Error, ValueError) as e:
            self._fail_authentication(AuthError(f"Handshake key material rejected: {e}"))
            return

        if server_token is not None:
            credentials = credentials.updated(server_token=server_token)
        if client_token is not None:
            credentials = credentials.updated(client_token=client_token)
        credentials = credentials.with_auth_payload(derive_auth_payload(credentials))

        wid = attrs.get("wid") or credentials.wid
        if not wid:
            self._fail_authentication(AuthError("Server did not confirm identity"))
            return

        self._credentials = credentials.updated(wid=str(wid))
        name = attrs.get("pushname") or (self._user.name if self._user else "")
        self._user = UserProfile(id=str(wid), name=str(name or ""), phone=jid_user(str(wid)))
        if self._active_auth is not None:
            self._active_auth.consume_success()
        self._resuming = False

        self._transition(ConnectionState.AUTHENTICATED)
        self.save_session()
        self._bus.emit(Events.AUTH_SUCCESS, {"user": self._user.to_dict()})
        self._enter_ready()

    def _fail_authentication(self, error: AuthError) -> None:
        logger.warning(f"Authentication failed: {error}")
        if self._active_auth is not None:
            self._active_auth.reset()
        if self._resuming:
            # Stored session rejected; the next attempt starts a fresh handshake
            self._credentials = None
            self._user = None
            if self._store is not None:
                self._store.clear()
        self._resuming = False
        self._transition(ConnectionState.CONNECTED)
        self._bus.emit(Events.AUTH_FAILURE, {"error": str(error)})

    def save_session(self) -> bool:
        """Persist current credentials if auto-save is on. Returns True if saved."""
        if self._store is None or self._credentials is None or not self.config.auth.auto_save:
            return False
        try:
            self._store.save(SessionRecord(credentials=self._credentials, user=self._user))
        except OSError as e:
            logger.error(f"Failed to save session: {e}")
            self._bus.emit(Events.ERROR, {"error": str(e), "type": "session"})
            return False
        return True

    def update_user(self, **changes: Any) -> Optional[UserProfile]:
        """Merge profile changes into the authenticated user and persist them."""
        with self.lock:
            if self._user is None:
                return None
            for name, value in changes.items():
                if value is not None and hasattr(self._user, name):
                    setattr(self._user, name, value)
            self.save_session()
            return UserProfile.from_dict(self._user.to_dict())

    def _enter_ready(self) -> None:
        self._transition(ConnectionState.READY)
        self._attempts = 0

        if self.config.connection.keep_alive:
            self._keep_alive = self._serialized.call_every(
                self.config.connection.keep_alive_interval,
                self._send_keep_alive,
                name="keep-alive",
            )

        for frame in SNAPSHOT_FRAMES:
            self._send_direct(frame)
        self._flush_queue()

    def _send_keep_alive(self) -> None:
        if self._state == ConnectionState.READY:
            self.send(KEEP_ALIVE_FRAME)

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    def _wrap(self, data: bytes) -> bytes:
        enc_key = self._credentials.enc_key if self._credentials else None
        if self.config.connection.encrypt_outbound and enc_key and self._state == ConnectionState.READY:
            return encode_frame(encrypted_frame(encrypt(data, enc_key)))
        return data

    def _send_direct(self, frame: list) -> bool:
        """Send a handshake/control frame immediately, bypassing the queue."""
        try:
            self._transport.send(self._wrap(encode_frame(frame)))
            return True
        except TransportError as e:
            logger.warning(f"Control frame not sent: {e}")
            return False

    def _transmit(self, data: bytes, on_sent: Optional[SentCallback] = None) -> bool:
        try:
            self._transport.send(self._wrap(data))
        except TransportError as e:
            logger.warning(f"Send failed, frame re-queued: {e}")
            self._queue.appendleft((data, on_sent))
            return False
        if on_sent is not None:
            on_sent()
        return True

    def send_frame(self, data: bytes, on_sent: Optional[SentCallback] = None) -> bool:
        """
        Send an encoded frame, or queue it until the connection is READY.

        Frames leave strictly in the order they were submitted.

        Args:
            data: Encoded frame
            on_sent: Called under the lock once the frame reached the transport,
                immediately or when the queue is flushed

        Returns:
            bool: True if sent now, False if queued
        """
        with self.lock:
            if self._state == ConnectionState.READY and self._transport.is_open and not self._queue:
                return self._transmit(data, on_sent)
            self._queue.append((data, on_sent))
            return False

    def send(self, frame: Any, on_sent: Optional[SentCallback] = None) -> bool:
        """Encode a frame with the binary codec and send_frame() it."""
        return self.send_frame(encode_frame(frame), on_sent)

    def _flush_queue(self) -> None:
        while self._queue and self._state == ConnectionState.READY:
            data, on_sent = self._queue.popleft()
            if not self._transmit(data, on_sent):
                break

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    def _on_transport_message(self, data: bytes) -> None:
        with self.lock:
            try:
                frame = decode_all(data)
            except ProtocolDecodeError as e:
                self.frames_dropped += 1
                logger.debug(f"Dropped malformed frame ({len(data)} bytes): {e}")
                return
            self._handle_frame(frame, nested=False)

    def _handle_frame(self, frame: Any, nested: bool) -> None:
        inbound = classify(frame)

        if inbound.kind == InboundKind.ENCRYPTED:
            if nested:
                self.frames_dropped += 1
                logger.debug("Dropped nested encrypted frame")
                return
            self._handle_encrypted(inbound.payload)
        elif inbound.kind in HANDSHAKE_KINDS:
            self._handle_handshake(inbound)
        elif inbound.kind == InboundKind.PONG:
            logger.debug("Keep-alive acknowledged")
        elif inbound.kind == InboundKind.UNKNOWN:
            self.frames_dropped += 1
            logger.debug(f"Dropped unclassified frame: {frame!r:.120}")
        elif self._state != ConnectionState.READY:
            self.frames_dropped += 1
            logger.debug(f"Dropped {inbound.kind} frame before ready")
        elif self._dispatcher is not None:
            try:
                self._dispatcher(inbound)
                self.frames_dispatched += 1
            except (ValueError, KeyError) as e:
                self.frames_dropped += 1
                logger.debug(f"Dropped malformed {inbound.kind} event: {e}")

    def _handle_encrypted(self, payload: bytes) -> None:
        enc_key = self._credentials.enc_key if self._credentials else None
        if enc_key is None:
            self.frames_dropped += 1
            logger.debug("Dropped encrypted frame: no session key")
            return

        try:
            plaintext = decrypt(payload, enc_key)
        except EncryptionError as e:
            if self._state == ConnectionState.AUTHENTICATING:
                self._fail_authentication(AuthError(f"Handshake decryption failed: {e}"))
            else:
                logger.warning(f"Encrypted frame rejected: {e}")
                self._bus.emit(Events.ERROR, {"error": str(e), "type": "encryption"})
            return

        try:
            inner = decode_all(plaintext)
        except ProtocolDecodeError as e:
            self.frames_dropped += 1
            logger.debug(f"Dropped malformed encrypted frame: {e}")
            return
        self._handle_frame(inner, nested=True)

    def _on_transport_close(self, code: int, reason: str) -> None:
        with self.lock:
            if self._state in (ConnectionState.CLOSED, ConnectionState.CONNECTING):
                return

            self._cancel_keep_alive()
            self.qr.reset()
            self.pairing.reset()
            self._active_auth = None
            self._resuming = False

            self._transition(ConnectionState.CLOSED, code=code, reason=reason)
            self._bus.emit(Events.DISCONNECTED, {"code": code, "reason": reason})

            if code != NORMAL_CLOSURE:
                self._schedule_reconnect()
            else:
                self._should_reconnect = False

    # -------------------------------------------------------------------------
    # Reconnect
    # -------------------------------------------------------------------------

    def _schedule_reconnect(self) -> None:
        if not self._should_reconnect:
            return

        limit = self.config.connection.retry_count
        if self._attempts >= limit:
            logger.error(f"Giving up after {self._attempts} reconnect attempts")
            self._should_reconnect = False
            self._bus.emit(Events.CONNECTION_FAILED)
            return

        self._attempts += 1
        delay = self.config.connection.retry_delay * self._attempts
        logger.warning(f"Reconnect attempt {self._attempts}/{limit} in {delay:.1f}s")
        holder: list = [None]
        holder[0] = self._scheduler.call_later(
            delay, lambda: self._reconnect_attempt(holder[0]), name="reconnect"
        )
        self._reconnect = holder[0]

    def _reconnect_attempt(self, handle: Optional[TaskHandle]) -> None:
        with self.lock:
            if handle is None or handle.cancelled or handle is not self._reconnect:
                return
            self._reconnect = None
            if not self._should_reconnect or self._state != ConnectionState.CLOSED:
                return
            self.reconnects += 1
            self._transition(ConnectionState.CONNECTING)

        self._open_transport(raise_on_failure=False)

    def _cancel_reconnect(self) -> None:
        if self._reconnect is not None:
            self._reconnect.cancel()
            self._reconnect = None

    def _cancel_keep_alive(self) -> None:
        if self._keep_alive is not None:
            self._keep_alive.cancel()
            self._keep_alive = None

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def _teardown(self, reason: str) -> bool:
        """Cancel every task, then release the transport. Returns True if it was open."""
        self._should_reconnect = False
        self._cancel_reconnect()
        self._cancel_keep_alive()
        self.qr.reset()
        self.pairing.reset()
        self._active_auth = None
        self._resuming = False

        if self._state == ConnectionState.CLOSED:
            return False
        self._transport.close(NORMAL_CLOSURE, reason)
        self._transition(ConnectionState.CLOSED, code=NORMAL_CLOSURE, reason=reason)
        return True

    def disconnect(self) -> None:
        """
        Close the connection without reconnecting. Idempotent.
        """
        with self.lock:
            if self._teardown("client disconnect"):
                self._bus.emit(Events.DISCONNECTED, {"code": NORMAL_CLOSURE, "reason": "client disconnect"})

    shutdown = disconnect

    def logout(self) -> None:
        """
        Log out: tell the server, forget the session and close.
        """
        with self.lock:
            if self._state in (
                ConnectionState.CONNECTED,
                ConnectionState.AUTHENTICATING,
                ConnectionState.AUTHENTICATED,
                ConnectionState.READY,
            ):
                self._transition(ConnectionState.LOGGING_OUT)
                self._send_direct(LOGOUT_FRAME)

            closed = self._teardown("logout")

            if self._store is not None:
                self._store.clear()
            self._credentials = None
            self._user = None
            self._queue.clear()
            fresh = self.qr.renew_credentials()
            self.pairing.renew_credentials(fresh)

            if closed:
                self._bus.emit(Events.DISCONNECTED, {"code": NORMAL_CLOSURE, "reason": "logout"})
            self._bus.emit(Events.LOGOUT)

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def status(self) -> Dict[str, Any]:
        with self.lock:
            return {
                'state': self._state.value,
                'authenticated': self.is_authenticated,
                'user': self._user.to_dict() if self._user else None,
                'queued_frames': len(self._queue),
                'reconnect_attempts': self._attempts,
                'authenticator': self._active_auth.kind if self._active_auth else None,
            }

    def get_statistics(self) -> Dict[str, Any]:
        with self.lock:
            stats = self._transport.get_statistics()
            stats.update({
                'frames_dropped': self.frames_dropped,
                'frames_dispatched': self.frames_dispatched,
                'reconnects': self.reconnects,
                'queued_frames': len(self._queue),
            })
            return stats

    def __repr__(self) -> str:
        return f"ConnectionManager(state={self._state.value}, queued={len(self._queue)})"
