"""
Crypto Primitive Tests for InfraKB

Tests for:
- PBKDF2 key derivation
- AES-256-GCM encrypt/decrypt and tamper detection
- Hashing, constant-time compare, password generation

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3
"""

import base64
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from kb_engine import crypto
from kb_engine.errors import AuthenticationFailedError, MalformedCiphertextError


@pytest.fixture(scope="module")
def key():
    return crypto.derive_key("correct horse battery staple", b"s" * crypto.SALT_LENGTH)


def _flip_first_byte(value: str) -> str:
    raw = bytearray(base64.b64decode(value))
    raw[0] ^= 0x01
    return base64.b64encode(bytes(raw)).decode("ascii")


# =============================================================================
# KEY DERIVATION
# =============================================================================

class TestDeriveKey:
    """PBKDF2-HMAC-SHA512 derivation."""

    def test_key_is_32_bytes(self, key):
        assert len(key) == 32

    def test_deterministic(self, key):
        again = crypto.derive_key("correct horse battery staple", b"s" * crypto.SALT_LENGTH)
        assert again == key

    def test_different_salt_different_key(self, key):
        other = crypto.derive_key("correct horse battery staple", b"t" * crypto.SALT_LENGTH)
        assert other != key

    def test_different_password_different_key(self, key):
        other = crypto.derive_key("correct horse battery stapler", b"s" * crypto.SALT_LENGTH)
        assert other != key

    def test_rejects_low_iteration_count(self):
        with pytest.raises(ValueError):
            crypto.derive_key("pw", b"s" * 32, iterations=1000)

    def test_generate_salt_length_and_randomness(self):
        a, b = crypto.generate_salt(), crypto.generate_salt()
        assert len(a) == 32
        assert a != b


# =============================================================================
# ENCRYPT / DECRYPT
# =============================================================================

class TestEncryptDecrypt:
    """AES-256-GCM round trips and failure modes."""

    @pytest.mark.parametrize("plaintext", [
        "",
        "hello",
        "x" * 10_000,
        "密码 🔐 pässwörd",
    ])
    def test_round_trip(self, key, plaintext):
        payload = crypto.encrypt(plaintext, key)
        assert crypto.decrypt(payload.encrypted, key, payload.iv, payload.auth_tag) == plaintext

    def test_iv_and_tag_lengths(self, key):
        payload = crypto.encrypt("secret", key)
        assert len(base64.b64decode(payload.iv)) == 16
        assert len(base64.b64decode(payload.auth_tag)) == 16

    def test_fresh_iv_each_time(self, key):
        first = crypto.encrypt("same text", key)
        second = crypto.encrypt("same text", key)
        assert first.iv != second.iv
        assert first.encrypted != second.encrypted

    def test_wrong_key_fails_authentication(self, key):
        payload = crypto.encrypt("secret", key)
        other = crypto.derive_key("wrong", b"s" * crypto.SALT_LENGTH)
        with pytest.raises(AuthenticationFailedError):
            crypto.decrypt(payload.encrypted, other, payload.iv, payload.auth_tag)

    def test_tampered_ciphertext_fails(self, key):
        payload = crypto.encrypt("secret value", key)
        with pytest.raises(AuthenticationFailedError):
            crypto.decrypt(_flip_first_byte(payload.encrypted), key, payload.iv, payload.auth_tag)

    def test_tampered_tag_fails(self, key):
        payload = crypto.encrypt("secret value", key)
        with pytest.raises(AuthenticationFailedError):
            crypto.decrypt(payload.encrypted, key, payload.iv, _flip_first_byte(payload.auth_tag))

    def test_tampered_iv_fails(self, key):
        payload = crypto.encrypt("secret value", key)
        with pytest.raises(AuthenticationFailedError):
            crypto.decrypt(payload.encrypted, key, _flip_first_byte(payload.iv), payload.auth_tag)

    def test_invalid_base64_is_malformed(self, key):
        payload = crypto.encrypt("secret", key)
        with pytest.raises(MalformedCiphertextError):
            crypto.decrypt("not base64!!", key, payload.iv, payload.auth_tag)

    def test_short_iv_is_malformed(self, key):
        payload = crypto.encrypt("secret", key)
        short_iv = base64.b64encode(b"12345678").decode("ascii")
        with pytest.raises(MalformedCiphertextError):
            crypto.decrypt(payload.encrypted, key, short_iv, payload.auth_tag)

    def test_wrong_key_length_is_malformed(self):
        with pytest.raises(MalformedCiphertextError):
            crypto.encrypt("secret", b"short key")

    def test_accepts_bytearray_key(self, key):
        payload = crypto.encrypt("secret", bytearray(key))
        assert crypto.decrypt(payload.encrypted, bytearray(key), payload.iv, payload.auth_tag) == "secret"

    def test_payload_to_dict(self, key):
        payload = crypto.encrypt("secret", key)
        assert set(payload.to_dict()) == {"encrypted", "iv", "auth_tag"}


# =============================================================================
# HELPERS
# =============================================================================

class TestHelpers:
    """Hashing, comparison and random passwords."""

    def test_hash_value_is_sha256_hex(self):
        digest = crypto.hash_value("abc")
        assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    def test_secure_compare(self):
        assert crypto.secure_compare("token", "token")
        assert not crypto.secure_compare("token", "tokem")
        assert not crypto.secure_compare("token", "token2")

    def test_generate_secure_password_default_length(self):
        password = crypto.generate_secure_password()
        assert len(password) == 32
        assert set(password) <= set(crypto.PASSWORD_CHARSET)

    def test_generate_secure_password_custom_length(self):
        assert len(crypto.generate_secure_password(12)) == 12

    def test_generate_secure_password_rejects_zero(self):
        with pytest.raises(ValueError):
            crypto.generate_secure_password(0)

    def test_machine_id_is_stable_hex(self):
        first = crypto.get_machine_id()
        assert first == crypto.get_machine_id()
        assert len(first) == 64
        int(first, 16)
