"""
Secure Storage Tests for InfraKB

Tests for:
- Lock/unlock lifecycle and key zeroing
- Salt reuse across sessions
- Machine binding
- Credential records and password verifiers

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from kb_engine.secure_storage import SecureStorage
from kb_engine.errors import AuthenticationFailedError, StorageLockedError


def make_storage(machine: str = "machine-a") -> SecureStorage:
    return SecureStorage(machine_id=lambda: machine)


class TestLifecycle:
    """Locked and unlocked states."""

    def test_starts_locked(self):
        storage = make_storage()
        assert not storage.unlocked
        assert storage.get_salt() is None

    def test_initialize_unlocks_and_creates_salt(self):
        storage = make_storage()
        storage.initialize("pw")
        assert storage.unlocked
        assert storage.get_salt()

    def test_encrypt_requires_unlock(self):
        storage = make_storage()
        with pytest.raises(StorageLockedError):
            storage.encrypt("secret")

    def test_lock_zeroes_key(self):
        storage = make_storage()
        storage.initialize("pw")
        key_buffer = storage._key
        storage.lock()
        assert not storage.unlocked
        assert all(b == 0 for b in key_buffer)

    def test_operations_fail_after_lock(self):
        storage = make_storage()
        storage.initialize("pw")
        payload = storage.encrypt("secret")
        storage.lock()
        with pytest.raises(StorageLockedError):
            storage.decrypt(payload.encrypted, payload.iv, payload.auth_tag)

    def test_lock_is_idempotent(self):
        storage = make_storage()
        storage.lock()
        storage.lock()
        assert not storage.unlocked

    def test_locked_error_status(self):
        with pytest.raises(StorageLockedError) as exc:
            make_storage().encrypt_credential("n", "s", "v")
        assert exc.value.status_code == 423


class TestSessions:
    """Salt persistence and machine binding."""

    def test_same_salt_reopens_data(self):
        first = make_storage()
        first.initialize("pw")
        payload = first.encrypt("round trip")
        salt = first.get_salt()

        second = make_storage()
        second.initialize("pw", existing_salt=salt)
        assert second.get_salt() == salt
        assert second.decrypt(payload.encrypted, payload.iv, payload.auth_tag) == "round trip"

    def test_wrong_password_cannot_decrypt(self):
        first = make_storage()
        first.initialize("pw")
        payload = first.encrypt("secret")

        second = make_storage()
        second.initialize("not-pw", existing_salt=first.get_salt())
        with pytest.raises(AuthenticationFailedError):
            second.decrypt(payload.encrypted, payload.iv, payload.auth_tag)

    def test_other_machine_cannot_decrypt(self):
        first = make_storage("machine-a")
        first.initialize("pw")
        payload = first.encrypt("secret")

        second = make_storage("machine-b")
        second.initialize("pw", existing_salt=first.get_salt())
        with pytest.raises(AuthenticationFailedError):
            second.decrypt(payload.encrypted, payload.iv, payload.auth_tag)

    def test_reinitialize_replaces_key(self):
        storage = make_storage()
        storage.initialize("pw")
        old_key = storage._key
        storage.initialize("pw", existing_salt=storage.get_salt())
        assert all(b == 0 for b in old_key)
        assert storage.unlocked


class TestCredentials:
    """Credential records."""

    def test_encrypt_credential_round_trip(self):
        storage = make_storage()
        storage.initialize("pw")
        record = storage.encrypt_credential("Prod DB", "aws", "hunter2")

        assert record.id.startswith("cred_")
        assert record.name == "Prod DB"
        assert record.service == "aws"
        assert "hunter2" not in record.encrypted_value
        assert storage.decrypt_credential(record) == "hunter2"

    def test_public_dict_has_no_ciphertext(self):
        storage = make_storage()
        storage.initialize("pw")
        public = storage.encrypt_credential("n", "s", "v").to_public_dict()
        assert "encrypted_value" not in public
        assert "iv" not in public
        assert "auth_tag" not in public


class TestPasswordVerification:
    """Verifier tokens."""

    def test_matches_verifier(self):
        storage = make_storage()
        storage.initialize("pw")
        verifier = storage.create_verifier()
        assert storage.matches_verifier(verifier)

    def test_verify_password_does_not_change_state(self):
        storage = make_storage()
        storage.initialize("pw")
        verifier = storage.create_verifier()
        storage.lock()

        assert storage.verify_password("pw", verifier)
        assert not storage.verify_password("wrong", verifier)
        assert not storage.unlocked

    def test_verify_password_with_explicit_salt(self):
        storage = make_storage()
        storage.initialize("pw")
        verifier = storage.create_verifier()
        salt = storage.get_salt()

        fresh = make_storage()
        assert fresh.verify_password("pw", verifier, salt=salt)
        assert not fresh.verify_password("nope", verifier, salt=salt)

    def test_verify_password_without_salt(self):
        assert not make_storage().verify_password("pw", {"token": "x"})

    def test_corrupt_verifier_is_rejected(self):
        storage = make_storage()
        storage.initialize("pw")
        assert not storage.matches_verifier({"token": "abc"})
