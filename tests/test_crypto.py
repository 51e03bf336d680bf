"""Tests for key agreement, AEAD, signatures, HMAC and handshake payloads."""

import pytest

from wacore.crypto.cipher import NONCE_SIZE, TAG_SIZE, EncryptionError, decrypt, encrypt
from wacore.crypto.handshake import derive_auth_payload, derive_session_keys
from wacore.crypto.keys import (
    derive_shared_secret,
    generate_key_pair,
    generate_signing_key_pair,
    public_key_for,
    sign,
    verify,
)
from wacore.crypto.primitives import (
    HMAC_SIZE,
    constant_time_compare,
    hmac_hex,
    hmac_sha256,
    hkdf_derive,
    random_bytes,
)
from wacore.session.credentials import Credentials


class TestKeyAgreement:
    def test_key_sizes(self):
        pair = generate_key_pair()
        assert len(pair.private_key) == 32
        assert len(pair.public_key) == 32
        assert public_key_for(pair.private_key) == pair.public_key

    def test_fresh_keys_each_time(self):
        assert generate_key_pair().private_key != generate_key_pair().private_key

    def test_commutative(self):
        a = generate_key_pair()
        b = generate_key_pair()
        assert derive_shared_secret(a.private_key, b.public_key) == derive_shared_secret(b.private_key, a.public_key)

    def test_deterministic(self):
        a = generate_key_pair()
        b = generate_key_pair()
        assert derive_shared_secret(a.private_key, b.public_key) == derive_shared_secret(a.private_key, b.public_key)

    def test_malformed_public_key(self):
        with pytest.raises(EncryptionError):
            derive_shared_secret(generate_key_pair().private_key, b"short")


class TestCipher:
    def test_roundtrip(self):
        key = random_bytes(32)
        for message in (b"", b"hello", random_bytes(4096)):
            assert decrypt(encrypt(message, key), key) == message

    def test_nonce_prepended_and_fresh(self):
        key = random_bytes(32)
        first = encrypt(b"same", key)
        second = encrypt(b"same", key)
        assert len(first) == NONCE_SIZE + len(b"same") + TAG_SIZE
        assert first[:NONCE_SIZE] != second[:NONCE_SIZE]

    def test_wrong_key(self):
        ciphertext = encrypt(b"secret", random_bytes(32))
        with pytest.raises(EncryptionError):
            decrypt(ciphertext, random_bytes(32))

    def test_tampered(self):
        key = random_bytes(32)
        ciphertext = bytearray(encrypt(b"secret", key))
        ciphertext[-1] ^= 0x01
        with pytest.raises(EncryptionError):
            decrypt(bytes(ciphertext), key)

    def test_short_framing(self):
        with pytest.raises(EncryptionError):
            decrypt(b"\x00" * (NONCE_SIZE + TAG_SIZE - 1), random_bytes(32))

    def test_bad_key_size(self):
        with pytest.raises(EncryptionError):
            encrypt(b"x", b"short")

    def test_associated_data_bound(self):
        key = random_bytes(32)
        ciphertext = encrypt(b"x", key, associated_data=b"one")
        assert decrypt(ciphertext, key, associated_data=b"one") == b"x"
        with pytest.raises(EncryptionError):
            decrypt(ciphertext, key, associated_data=b"two")


class TestSignatures:
    def test_sign_verify(self):
        pair = generate_signing_key_pair()
        signature = sign(b"message", pair.private_key)
        assert len(signature) == 64
        assert verify(b"message", signature, pair.public_key) is True

    def test_invalid_signature_returns_false(self):
        pair = generate_signing_key_pair()
        signature = sign(b"message", pair.private_key)
        assert verify(b"other", signature, pair.public_key) is False
        assert verify(b"message", b"\x00" * 64, pair.public_key) is False

    def test_malformed_inputs_return_false(self):
        pair = generate_signing_key_pair()
        assert verify(b"message", b"short", pair.public_key) is False
        assert verify(b"message", b"\x00" * 64, b"short") is False


class TestHmac:
    def test_known_vector(self):
        # RFC 4231 test case 2
        digest = hmac_hex(b"what do ya want for nothing?", b"Jefe")
        assert digest == "5bdcc146bf60754e6a042426089575c75a003f089d2739839dec58b964ec3843"

    def test_bytes_and_hex_agree(self):
        assert hmac_sha256(b"m", b"k").hex() == hmac_hex(b"m", b"k")

    def test_constant_time_compare(self):
        assert constant_time_compare(b"abc", b"abc")
        assert not constant_time_compare(b"abc", b"abd")

    def test_hkdf_length_bounds(self):
        assert len(hkdf_derive(b"secret", 255 * HMAC_SIZE, b"info")) == 255 * HMAC_SIZE
        with pytest.raises(ValueError):
            hkdf_derive(b"secret", 255 * HMAC_SIZE + 1, b"info")


class TestHandshake:
    def test_generates_missing_fields(self):
        credentials = Credentials.create()
        payload = derive_auth_payload(credentials)
        assert payload.client_id == credentials.client_id
        assert payload.public_key == credentials.public_key
        assert payload.server_token is None
        assert len(payload.client_token) == 16
        assert len(payload.enc_key) == 32
        assert len(payload.mac_key) == 32

    def test_idempotent_for_present_fields(self):
        credentials = Credentials.create().with_auth_payload(derive_auth_payload(Credentials.create()))
        credentials = credentials.updated(server_token=b"server")
        payload = derive_auth_payload(credentials)
        assert payload.client_token == credentials.client_token
        assert payload.enc_key == credentials.enc_key
        assert payload.mac_key == credentials.mac_key
        assert payload.server_token == b"server"
        assert derive_auth_payload(credentials) == payload

    def test_to_wire_is_base64(self):
        wire = derive_auth_payload(Credentials.create()).to_wire()
        assert set(wire) == {"clientId", "publicKey", "serverToken", "clientToken", "encKey", "macKey"}
        assert wire["serverToken"] is None
        assert isinstance(wire["encKey"], str)

    def test_session_keys_split(self):
        enc_key, mac_key = derive_session_keys(b"\x01" * 32)
        assert len(enc_key) == 32 and len(mac_key) == 32
        assert enc_key != mac_key
        assert derive_session_keys(b"\x01" * 32) == (enc_key, mac_key)
