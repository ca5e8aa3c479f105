"""
InfraKB Engine - Local Infrastructure Knowledge Base v1.0

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Stores cloud providers, servers and encrypted credentials locally, pulls
server details out of imported notes, and produces assistant context
that names infrastructure without exposing addresses or secrets.

Layers:
- crypto / secure_storage: AES-256-GCM with a PBKDF2 key bound to this machine
- parsing: heuristic extraction from markdown, text, JSON and YAML
- manager: providers, servers, credentials, index and AI context
- service: kb:* channel dispatcher with a uniform response envelope
"""

__version__ = '1.0.0'


# =============================================================================
# CORE API
# =============================================================================

from .core import (
    # Enums
    ProviderType,
    ProviderCategory,
    ConnectionKind,
    FileType,
    TerminalMode,
    # Records
    ServerConfig,
    ImportedDocument,
    ExtractedData,
    CloudProvider,
    EncryptedCredential,
    KnowledgeBaseIndex,
    KnowledgeBasePreferences,
    # Config
    KBConfig,
)

from .errors import (
    KBError,
    ResourceNotFoundError,
    ProviderNotFoundError,
    StorageLockedError,
    PersistenceError,
    CryptoError,
    AuthenticationFailedError,
    MalformedCiphertextError,
    ValidationError,
)


# =============================================================================
# STORAGE & PARSING
# =============================================================================

from .secure_storage import SecureStorage
from .store import KnowledgeBaseStore
from .parsing import DocumentParser, ParseResult
from .redaction import ContextRedactor, SensitiveType


# =============================================================================
# MANAGER & SERVICE
# =============================================================================

from .manager import KnowledgeBaseManager
from .service import KnowledgeBaseService
from .quick_actions import QuickAction, ActionType


__all__ = [
    '__version__',
    # Core
    'ProviderType',
    'ProviderCategory',
    'ConnectionKind',
    'FileType',
    'TerminalMode',
    'ServerConfig',
    'ImportedDocument',
    'ExtractedData',
    'CloudProvider',
    'EncryptedCredential',
    'KnowledgeBaseIndex',
    'KnowledgeBasePreferences',
    'KBConfig',
    # Errors
    'KBError',
    'ResourceNotFoundError',
    'ProviderNotFoundError',
    'StorageLockedError',
    'PersistenceError',
    'CryptoError',
    'AuthenticationFailedError',
    'MalformedCiphertextError',
    'ValidationError',
    # Storage & parsing
    'SecureStorage',
    'KnowledgeBaseStore',
    'DocumentParser',
    'ParseResult',
    'ContextRedactor',
    'SensitiveType',
    # Manager & service
    'KnowledgeBaseManager',
    'KnowledgeBaseService',
    'QuickAction',
    'ActionType',
]
