"""
InfraKB Core - Core Module

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Core types and configuration for the infrastructure knowledge base.
"""

from .types import (
    # Enums
    ProviderType,
    ProviderCategory,
    ConnectionKind,
    FileType,
    TerminalMode,
    # Tables
    PROVIDER_NAMES,
    PROVIDER_EMOJIS,
    PROVIDER_CATEGORIES,
    PROVIDER_TYPE_LABELS,
    # Helpers
    generate_id,
    build_ssh_command,
    # Records
    ServerConfig,
    ApiKeyMention,
    AccountIdMention,
    ExtractedData,
    ImportedDocument,
    ConnectionInfo,
    CloudProvider,
    EncryptedCredential,
    KnowledgeBaseIndex,
    KnowledgeBasePreferences,
)

from .config import KBConfig, MIN_PBKDF2_ITERATIONS


__all__ = [
    "ProviderType",
    "ProviderCategory",
    "ConnectionKind",
    "FileType",
    "TerminalMode",
    "PROVIDER_NAMES",
    "PROVIDER_EMOJIS",
    "PROVIDER_CATEGORIES",
    "PROVIDER_TYPE_LABELS",
    "generate_id",
    "build_ssh_command",
    "ServerConfig",
    "ApiKeyMention",
    "AccountIdMention",
    "ExtractedData",
    "ImportedDocument",
    "ConnectionInfo",
    "CloudProvider",
    "EncryptedCredential",
    "KnowledgeBaseIndex",
    "KnowledgeBasePreferences",
    "KBConfig",
    "MIN_PBKDF2_ITERATIONS",
]
