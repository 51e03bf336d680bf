"""Tests for the QR and pairing-code authenticators."""

import base64
import re

import pytest

from wacore.auth.base import AuthError, AuthState, ValidationError
from wacore.auth.pairing import PairingCodeAuthenticator, generate_pairing_code, validate_phone_number
from wacore.auth.qr import QRAuthenticator
from wacore.events import Events


@pytest.fixture
def qr(scheduler, bus):
    return QRAuthenticator(scheduler, bus, timeout=60.0, refresh_interval=20.0)


@pytest.fixture
def pairing(scheduler, bus):
    return PairingCodeAuthenticator(scheduler, bus, timeout=60.0)


class TestQRAuthenticator:
    def test_qr_string_format(self, qr, recorder):
        challenge = qr.generate_challenge("REF")
        public_key = base64.b64encode(qr.credentials.public_key).decode("ascii")
        assert challenge.qr_string == f"REF,{qr.credentials.client_id},{public_key}"
        assert challenge.qr_string.split(",")[1] == qr.credentials.client_id
        assert recorder.payloads(Events.QR) == [challenge.qr_string]
        assert qr.state == AuthState.ISSUED

    def test_random_ref(self, qr):
        ref = qr.generate_challenge().ref
        assert base64.b64decode(ref)
        assert "," not in ref

    def test_lifecycle_timers(self, qr, scheduler, recorder):
        qr.generate_challenge("REF")
        recorder.clear()

        scheduler.advance(19.0)
        assert recorder.names() == []
        scheduler.advance(1.0)
        assert recorder.names() == [Events.QR_REFRESH_NEEDED]
        scheduler.advance(20.0)
        assert recorder.names() == [Events.QR_REFRESH_NEEDED] * 2
        assert qr.state == AuthState.ISSUED
        scheduler.advance(20.0)
        assert recorder.names() == [Events.QR_REFRESH_NEEDED] * 2 + [Events.QR_EXPIRED]
        assert qr.state == AuthState.EXPIRED

        scheduler.advance(300.0)
        assert Events.QR not in recorder.names()
        assert len(recorder.events) == 3

    def test_refresh_payload(self, qr, scheduler, recorder):
        qr.generate_challenge("REF")
        scheduler.advance(20.0)
        assert recorder.payloads(Events.QR_REFRESH_NEEDED) == [{"ref": "REF"}]

    def test_cannot_issue_twice(self, qr):
        qr.generate_challenge()
        with pytest.raises(AuthError):
            qr.generate_challenge()

    def test_regenerate_after_refresh(self, qr, scheduler, recorder):
        qr.generate_challenge("A")
        qr.begin_refresh()
        assert qr.state == AuthState.REFRESHING
        assert qr.pending_tasks == 0
        qr.generate_challenge("B")
        assert qr.challenge.ref == "B"
        scheduler.advance(60.0)
        assert recorder.names().count(Events.QR_EXPIRED) == 1

    def test_regenerate_after_expiry(self, qr, scheduler):
        qr.generate_challenge()
        scheduler.advance(60.0)
        assert qr.state == AuthState.EXPIRED
        qr.generate_challenge()
        assert qr.state == AuthState.ISSUED

    def test_consume_success_cancels_timers(self, qr, scheduler, recorder):
        qr.generate_challenge()
        qr.consume_success()
        assert qr.state == AuthState.AUTHENTICATED
        assert qr.challenge is None
        assert qr.pending_tasks == 0
        recorder.clear()
        scheduler.advance(120.0)
        assert recorder.events == []

    def test_reset(self, qr, scheduler, recorder):
        qr.generate_challenge()
        qr.reset()
        assert qr.state == AuthState.IDLE
        assert qr.challenge is None
        recorder.clear()
        scheduler.advance(120.0)
        assert recorder.events == []

    def test_handshake_frame(self, qr):
        frame = qr.handshake_frame([2, 2323, 4], ["wacore", "Chrome"])
        assert frame == ["admin", "init", [2, 2323, 4], ["wacore", "Chrome"], qr.credentials.client_id, True]

    def test_invalid_intervals(self, scheduler, bus):
        with pytest.raises(ValueError):
            QRAuthenticator(scheduler, bus, timeout=0)
        with pytest.raises(ValueError):
            QRAuthenticator(scheduler, bus, refresh_interval=0)


class TestPhoneValidation:
    def test_normalizes_separators(self):
        assert validate_phone_number("+1 234-567-8900") == "12345678900"
        assert validate_phone_number("(123) 456.7890") == "1234567890"

    @pytest.mark.parametrize("phone", ["12345", "+12", "1234567890123456", "12345abcde", "", "++12345678901"])
    def test_rejects(self, phone):
        with pytest.raises(ValidationError):
            validate_phone_number(phone)

    def test_rejects_non_string(self):
        with pytest.raises(ValidationError):
            validate_phone_number(12345678900)

    def test_code_alphabet(self):
        for _ in range(50):
            assert re.match(r"^[A-Z0-9]{8}$", generate_pairing_code())


class TestPairingCodeAuthenticator:
    def test_request_challenge(self, pairing, recorder):
        challenge = pairing.request_challenge("+1 234-567-8900")
        assert challenge.phone_number == "12345678900"
        assert re.match(r"^[A-Z0-9]{8}$", challenge.code)
        assert pairing.state == AuthState.REQUESTED
        assert recorder.payloads(Events.PAIRING_REQUESTED) == [{
            "clientId": pairing.credentials.client_id,
            "publicKey": base64.b64encode(pairing.credentials.public_key).decode("ascii"),
            "phoneNumber": "12345678900",
        }]
        # The code is surfaced only once issuance is confirmed
        assert recorder.payloads(Events.PAIRING_CODE) == []

    def test_confirm_issued_once(self, pairing, recorder):
        challenge = pairing.request_challenge("12345678900")
        assert pairing.confirm_issued() is True
        assert pairing.confirm_issued() is False
        assert recorder.payloads(Events.PAIRING_CODE) == [{"code": challenge.code}]

    def test_invalid_number_has_no_side_effects(self, pairing, scheduler, recorder):
        with pytest.raises(ValidationError):
            pairing.request_challenge("12345")
        assert pairing.state == AuthState.IDLE
        assert pairing.challenge is None
        assert scheduler.pending == 0
        assert recorder.events == []

    def test_expiry(self, pairing, scheduler, recorder):
        pairing.request_challenge("12345678900")
        scheduler.advance(59.0)
        assert Events.PAIRING_EXPIRED not in recorder.names()
        scheduler.advance(1.0)
        assert Events.PAIRING_EXPIRED in recorder.names()
        assert pairing.state == AuthState.EXPIRED
        assert pairing.confirm_issued() is False

    def test_consume_success(self, pairing, scheduler, recorder):
        pairing.request_challenge("12345678900")
        pairing.consume_success()
        assert pairing.state == AuthState.AUTHENTICATED
        with pytest.raises(AuthError):
            pairing.request_challenge("12345678900")
        scheduler.advance(120.0)
        assert Events.PAIRING_EXPIRED not in recorder.names()

    def test_handshake_frame(self, pairing):
        with pytest.raises(AuthError):
            pairing.handshake_frame([2, 2323, 4], ["wacore", "Chrome"])
        challenge = pairing.request_challenge("12345678900")
        frame = pairing.handshake_frame([2, 2323, 4], ["wacore", "Chrome"])
        assert frame[:6] == ["admin", "init", [2, 2323, 4], ["wacore", "Chrome"], pairing.credentials.client_id, False]
        assert frame[6:] == ["12345678900", challenge.code]

    def test_renew_credentials(self, pairing):
        old = pairing.credentials
        pairing.request_challenge("12345678900")
        new = pairing.renew_credentials()
        assert new.client_id != old.client_id
        assert pairing.state == AuthState.IDLE
        assert pairing.challenge is None
