"""
InfraKB - Crypto Primitives v1.0

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

AES-256-GCM encryption with PBKDF2-HMAC-SHA512 key derivation.

Every encryption uses a fresh random 16-byte IV; the 16-byte GCM tag
is stored separately from the ciphertext. All three travel as base64.
"""

import base64
import binascii
import getpass
import hashlib
import hmac
import logging
import os
import platform
import secrets
import socket
import sys
from dataclasses import dataclass
from typing import Dict, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from kb_engine.core.config import MIN_PBKDF2_ITERATIONS
from kb_engine.errors import AuthenticationFailedError, MalformedCiphertextError

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

KEY_LENGTH = 32        # AES-256
IV_LENGTH = 16
AUTH_TAG_LENGTH = 16
SALT_LENGTH = 32

PASSWORD_CHARSET = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "0123456789"
    "!@#$%^&*"
)

KeyBytes = Union[bytes, bytearray]


@dataclass(frozen=True)
class EncryptedPayload:
    """Output of encrypt(). All fields are base64 text."""
    encrypted: str
    iv: str
    auth_tag: str

    def to_dict(self) -> Dict[str, str]:
        return {"encrypted": self.encrypted, "iv": self.iv, "auth_tag": self.auth_tag}


# =============================================================================
# KEY DERIVATION
# =============================================================================

def generate_salt() -> bytes:
    """Fresh 32-byte random salt."""
    return secrets.token_bytes(SALT_LENGTH)


def derive_key(password: str, salt: bytes, iterations: int = MIN_PBKDF2_ITERATIONS) -> bytes:
    """
    Derive a 32-byte key with PBKDF2-HMAC-SHA512.

    Deterministic for a given (password, salt, iterations).
    """
    if iterations < MIN_PBKDF2_ITERATIONS:
        raise ValueError(f"iterations must be at least {MIN_PBKDF2_ITERATIONS}")
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA512(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))


def get_machine_id() -> str:
    """
    Stable fingerprint of this machine and user.

    SHA-256 hex of hostname|username|platform|architecture. Mixed into
    key derivation so a copied store will not unlock elsewhere.
    """
    try:
        username = getpass.getuser()
    except (KeyError, OSError):
        username = os.environ.get("USER") or os.environ.get("USERNAME") or "unknown"
    fingerprint = "|".join([
        socket.gethostname(),
        username,
        sys.platform,
        platform.machine(),
    ])
    return hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()


# =============================================================================
# ENCRYPT / DECRYPT
# =============================================================================

def _check_key(key: KeyBytes) -> None:
    if len(key) != KEY_LENGTH:
        raise MalformedCiphertextError(f"key must be {KEY_LENGTH} bytes, got {len(key)}")


def _b64decode(value: str, field_name: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError, TypeError):
        raise MalformedCiphertextError(f"{field_name} is not valid base64")


def encrypt(plaintext: str, key: KeyBytes) -> EncryptedPayload:
    """Encrypt text with AES-256-GCM under a fresh random IV."""
    _check_key(key)
    iv = secrets.token_bytes(IV_LENGTH)
    sealed = AESGCM(bytes(key)).encrypt(iv, plaintext.encode("utf-8"), None)

    # cryptography appends the tag to the ciphertext
    ciphertext, tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
    return EncryptedPayload(
        encrypted=base64.b64encode(ciphertext).decode("ascii"),
        iv=base64.b64encode(iv).decode("ascii"),
        auth_tag=base64.b64encode(tag).decode("ascii"),
    )


def decrypt(encrypted: str, key: KeyBytes, iv: str, auth_tag: str) -> str:
    """
    Decrypt and authenticate.

    Raises:
        MalformedCiphertextError: bad base64, key, IV or tag length
        AuthenticationFailedError: tag mismatch (wrong key or tampering)
    """
    _check_key(key)
    ciphertext = _b64decode(encrypted, "ciphertext")
    iv_bytes = _b64decode(iv, "iv")
    tag = _b64decode(auth_tag, "auth_tag")

    if len(iv_bytes) != IV_LENGTH:
        raise MalformedCiphertextError(f"iv must be {IV_LENGTH} bytes, got {len(iv_bytes)}")
    if len(tag) != AUTH_TAG_LENGTH:
        raise MalformedCiphertextError(
            f"auth_tag must be {AUTH_TAG_LENGTH} bytes, got {len(tag)}"
        )

    try:
        plaintext = AESGCM(bytes(key)).decrypt(iv_bytes, ciphertext + tag, None)
    except InvalidTag:
        logger.warning("Decryption rejected: authentication tag mismatch")
        raise AuthenticationFailedError()

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError:
        raise MalformedCiphertextError("plaintext is not valid UTF-8")


# =============================================================================
# HASHING & RANDOMNESS
# =============================================================================

def hash_value(value: str) -> str:
    """SHA-256 hex digest."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def secure_compare(a: str, b: str) -> bool:
    """Constant-time string comparison."""
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def generate_secure_password(length: int = 32) -> str:
    """Random password from letters, digits and !@#$%^&*."""
    if length <= 0:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(PASSWORD_CHARSET) for _ in range(length))


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    "KEY_LENGTH",
    "IV_LENGTH",
    "AUTH_TAG_LENGTH",
    "SALT_LENGTH",
    "PASSWORD_CHARSET",
    "EncryptedPayload",
    "generate_salt",
    "derive_key",
    "get_machine_id",
    "encrypt",
    "decrypt",
    "hash_value",
    "secure_compare",
    "generate_secure_password",
]
