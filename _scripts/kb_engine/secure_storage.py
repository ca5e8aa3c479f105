"""
InfraKB - Secure Storage v1.0

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Holds the derived encryption key for the lifetime of an unlocked session.

The key is derived from the master password combined with a machine
fingerprint, so a copied data directory cannot be unlocked on another
machine or account. There is no recovery path.

The key lives in a mutable buffer that is zero-filled on lock(), when
the object is collected, and at interpreter exit.
"""

import base64
import logging
import secrets
import weakref
from typing import Callable, Dict, Optional

from kb_engine import crypto
from kb_engine.core.config import MIN_PBKDF2_ITERATIONS
from kb_engine.core.types import EncryptedCredential, generate_id, utc_now
from kb_engine.errors import CryptoError, StorageLockedError

logger = logging.getLogger(__name__)


def _zero_fill(buffer: bytearray) -> None:
    for i in range(len(buffer)):
        buffer[i] = 0


class SecureStorage:
    """
    Locked/unlocked key holder for credential encryption.

    Usage:
        storage = SecureStorage()
        storage.initialize("master password", existing_salt=saved_salt)
        record = storage.encrypt_credential("Prod DB", "aws", "s3cret")
        storage.lock()
    """

    def __init__(
        self,
        iterations: int = MIN_PBKDF2_ITERATIONS,
        machine_id: Callable[[], str] = crypto.get_machine_id,
    ):
        self._iterations = iterations
        self._machine_id = machine_id
        self._key: Optional[bytearray] = None
        self._salt: Optional[bytes] = None
        self._finalizer: Optional[weakref.finalize] = None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def _derive(self, password: str, salt: bytes) -> bytes:
        return crypto.derive_key(f"{password}:{self._machine_id()}", salt, self._iterations)

    def initialize(self, password: str, existing_salt: Optional[str] = None) -> None:
        """
        Derive the key and unlock.

        Args:
            password: Master password
            existing_salt: Base64 salt from a previous session. A fresh
                salt is generated when omitted.
        """
        if self._key is not None:
            self.lock()

        self._salt = base64.b64decode(existing_salt) if existing_salt else crypto.generate_salt()
        self._key = bytearray(self._derive(password, self._salt))
        self._finalizer = weakref.finalize(self, _zero_fill, self._key)
        logger.info("Secure storage unlocked")

    def lock(self) -> None:
        """Zero the key and return to the locked state."""
        if self._key is not None:
            _zero_fill(self._key)
            if self._finalizer is not None:
                self._finalizer.detach()
            logger.info("Secure storage locked")
        self._key = None
        self._finalizer = None

    @property
    def unlocked(self) -> bool:
        return self._key is not None

    def get_salt(self) -> Optional[str]:
        """Base64 salt for persistence, or None before the first initialize()."""
        if self._salt is None:
            return None
        return base64.b64encode(self._salt).decode("ascii")

    def _require_key(self, operation: str) -> bytearray:
        if self._key is None:
            raise StorageLockedError(operation)
        return self._key

    # =========================================================================
    # ENCRYPTION
    # =========================================================================

    def encrypt(self, plaintext: str) -> crypto.EncryptedPayload:
        key = self._require_key("encrypt")
        return crypto.encrypt(plaintext, key)

    def decrypt(self, encrypted: str, iv: str, auth_tag: str) -> str:
        key = self._require_key("decrypt")
        return crypto.decrypt(encrypted, key, iv, auth_tag)

    def encrypt_credential(self, name: str, service: str, value: str) -> EncryptedCredential:
        """Encrypt a secret into a new credential record."""
        key = self._require_key("encrypt credential")
        payload = crypto.encrypt(value, key)
        return EncryptedCredential(
            id=generate_id("cred"),
            name=name,
            service=service,
            encrypted_value=payload.encrypted,
            iv=payload.iv,
            auth_tag=payload.auth_tag,
            created_at=utc_now(),
        )

    def decrypt_credential(self, credential: EncryptedCredential) -> str:
        key = self._require_key("decrypt credential")
        return crypto.decrypt(credential.encrypted_value, key, credential.iv, credential.auth_tag)

    # =========================================================================
    # PASSWORD VERIFICATION
    # =========================================================================

    def create_verifier(self) -> Dict[str, str]:
        """
        Encrypt a random token under the current key.

        Persisted next to the salt so later unlocks can reject a wrong
        password before any credential is touched.
        """
        token = secrets.token_hex(16)
        payload = self.encrypt(token)
        return {"token": token, **payload.to_dict()}

    def matches_verifier(self, verifier: Dict[str, str]) -> bool:
        """True if the current key decrypts the verifier token."""
        key = self._require_key("verify password")
        try:
            decrypted = crypto.decrypt(verifier["encrypted"], key, verifier["iv"], verifier["auth_tag"])
        except (CryptoError, KeyError):
            return False
        return crypto.secure_compare(decrypted, verifier["token"])

    def verify_password(
        self,
        password: str,
        verifier: Dict[str, str],
        salt: Optional[str] = None,
    ) -> bool:
        """
        Check a password against a verifier without changing lock state.

        Uses the given base64 salt, else the salt of the last initialize().
        """
        salt_bytes = base64.b64decode(salt) if salt else self._salt
        if salt_bytes is None:
            return False
        test_key = bytearray(self._derive(password, salt_bytes))
        try:
            decrypted = crypto.decrypt(verifier["encrypted"], test_key, verifier["iv"], verifier["auth_tag"])
        except (CryptoError, KeyError):
            return False
        finally:
            _zero_fill(test_key)
        return crypto.secure_compare(decrypted, verifier["token"])


__all__ = ["SecureStorage"]
