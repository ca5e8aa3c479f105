# kb_engine/errors.py
"""
InfraKB - Custom Exceptions v1.0

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

User-friendly error types for knowledge base operations.
Each exception includes both a technical message (for logs) and
a user-friendly message (for the call boundary).

Messages never carry credential values, keys or passwords.
"""


class KBError(Exception):
    """Base exception for knowledge base errors."""

    def __init__(self, message: str, user_message: str = None, status_code: int = 500):
        super().__init__(message)
        self.user_message = user_message or message
        self.status_code = status_code


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================

class ResourceNotFoundError(KBError):
    """Requested resource does not exist."""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            f"The requested {resource_type.lower()} could not be found. "
            f"It may have been deleted.",
            404
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ProviderNotFoundError(ResourceNotFoundError):
    """Provider id does not exist."""

    def __init__(self, provider_id: str):
        super().__init__("Provider", provider_id)


class ServerNotFoundError(ResourceNotFoundError):
    """Server id does not exist under the given provider."""

    def __init__(self, server_id: str):
        super().__init__("Server", server_id)


class CredentialNotFoundError(ResourceNotFoundError):
    """Credential id does not exist."""

    def __init__(self, credential_id: str):
        super().__init__("Credential", credential_id)


# =============================================================================
# STORAGE ERRORS
# =============================================================================

class StorageError(KBError):
    """Secure storage and persistence errors."""
    pass


class StorageLockedError(StorageError):
    """Secure storage has no key loaded."""

    def __init__(self, operation: str = "operation"):
        super().__init__(
            f"Secure storage is locked: cannot perform {operation}",
            "The knowledge base is locked. Unlock it with your master password first.",
            423
        )
        self.operation = operation


class PersistenceError(StorageError):
    """Writing knowledge base data to disk failed."""

    def __init__(self, path: str, original_error: str):
        super().__init__(
            f"Failed to persist {path}: {original_error}",
            "Could not save knowledge base data to disk. "
            "Check free space and permissions on the data directory.",
            500
        )
        self.path = path
        self.original_error = original_error


# =============================================================================
# CRYPTO ERRORS
# =============================================================================

class CryptoError(KBError):
    """Encryption and decryption errors."""
    pass


class AuthenticationFailedError(CryptoError):
    """GCM tag did not verify (wrong key or tampered data)."""

    def __init__(self):
        super().__init__(
            "Decryption failed: authentication tag mismatch",
            "Stored data could not be decrypted. The password may be wrong "
            "or the data has been modified.",
            403
        )


class MalformedCiphertextError(CryptoError):
    """Ciphertext, IV, tag or key is structurally invalid."""

    def __init__(self, details: str):
        super().__init__(
            f"Malformed encrypted payload: {details}",
            "Stored encrypted data is damaged and cannot be read.",
            400
        )
        self.details = details


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class ValidationError(KBError):
    """Input validation failed."""

    def __init__(self, field: str, issue: str):
        super().__init__(
            f"Validation error on {field}: {issue}",
            f"Invalid {field}: {issue}",
            400
        )
        self.field = field
        self.issue = issue


class MissingFieldError(ValidationError):
    """Required field is missing."""

    def __init__(self, field: str):
        super().__init__(field, "This field is required")


__all__ = [
    "KBError",
    # Not found
    "ResourceNotFoundError",
    "ProviderNotFoundError",
    "ServerNotFoundError",
    "CredentialNotFoundError",
    # Storage
    "StorageError",
    "StorageLockedError",
    "PersistenceError",
    # Crypto
    "CryptoError",
    "AuthenticationFailedError",
    "MalformedCiphertextError",
    # Validation
    "ValidationError",
    "MissingFieldError",
]
