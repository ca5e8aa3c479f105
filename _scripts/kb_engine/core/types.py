"""
InfraKB Core - Types v1.0

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Core data structures for the infrastructure knowledge base.
Providers own their servers and imported documents; credentials are
stored separately and only ever referenced by id.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Dict, Any, Optional, Iterable
import re
import secrets
import string
import time


# =============================================================================
# ENUMS
# =============================================================================

class ProviderType(Enum):
    """Supported provider types."""
    AWS = "aws"
    GCP = "gcp"
    AZURE = "azure"
    CLOUDFLARE = "cloudflare"
    DIGITALOCEAN = "digitalocean"
    FIREBASE = "firebase"
    VERCEL = "vercel"
    SENTRY = "sentry"
    GITHUB = "github"
    BITBUCKET = "bitbucket"
    GITLAB = "gitlab"
    SENDGRID = "sendgrid"
    DATADOG = "datadog"
    GODADDY = "godaddy"
    CUSTOM = "custom"


class ProviderCategory(Enum):
    """Grouping used for display and stats."""
    CLOUD = "cloud"
    CDN = "cdn"
    HOSTING = "hosting"
    MONITORING = "monitoring"
    VCS = "vcs"
    EMAIL = "email"
    DOMAIN = "domain"
    CUSTOM = "custom"


class ConnectionKind(Enum):
    """How a provider is reached."""
    API = "api"
    SSH = "ssh"
    CLI = "cli"


class FileType(Enum):
    """Importable document formats."""
    MD = "md"
    TXT = "txt"
    JSON = "json"
    YAML = "yaml"

    @classmethod
    def from_filename(cls, filename: str) -> "FileType":
        """Guess the type from an extension. Unknown extensions are plain text."""
        ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        if ext in ("md", "markdown"):
            return cls.MD
        if ext == "json":
            return cls.JSON
        if ext in ("yaml", "yml"):
            return cls.YAML
        return cls.TXT


class TerminalMode(Enum):
    """Where SSH commands are opened."""
    INTEGRATED = "integrated"
    EXTERNAL = "external"


# =============================================================================
# PROVIDER TABLES
# =============================================================================

PROVIDER_NAMES: Dict[ProviderType, str] = {
    ProviderType.AWS: "Amazon AWS",
    ProviderType.GCP: "Google Cloud",
    ProviderType.AZURE: "Microsoft Azure",
    ProviderType.CLOUDFLARE: "Cloudflare",
    ProviderType.DIGITALOCEAN: "DigitalOcean",
    ProviderType.FIREBASE: "Firebase",
    ProviderType.VERCEL: "Vercel",
    ProviderType.SENTRY: "Sentry",
    ProviderType.GITHUB: "GitHub",
    ProviderType.BITBUCKET: "Bitbucket",
    ProviderType.GITLAB: "GitLab",
    ProviderType.SENDGRID: "SendGrid",
    ProviderType.DATADOG: "Datadog",
    ProviderType.GODADDY: "GoDaddy",
    ProviderType.CUSTOM: "Custom Service",
}

PROVIDER_EMOJIS: Dict[ProviderType, str] = {
    ProviderType.AWS: "☁️",
    ProviderType.GCP: "🌈",
    ProviderType.AZURE: "🔷",
    ProviderType.CLOUDFLARE: "🌩️",
    ProviderType.DIGITALOCEAN: "🌊",
    ProviderType.FIREBASE: "🔥",
    ProviderType.VERCEL: "▲",
    ProviderType.SENTRY: "🐛",
    ProviderType.GITHUB: "🐙",
    ProviderType.BITBUCKET: "🔵",
    ProviderType.GITLAB: "🦊",
    ProviderType.SENDGRID: "📧",
    ProviderType.DATADOG: "🐕",
    ProviderType.GODADDY: "🌐",
    ProviderType.CUSTOM: "⚙️",
}

PROVIDER_CATEGORIES: Dict[ProviderType, ProviderCategory] = {
    ProviderType.AWS: ProviderCategory.CLOUD,
    ProviderType.GCP: ProviderCategory.CLOUD,
    ProviderType.AZURE: ProviderCategory.CLOUD,
    ProviderType.CLOUDFLARE: ProviderCategory.CDN,
    ProviderType.DIGITALOCEAN: ProviderCategory.CLOUD,
    ProviderType.FIREBASE: ProviderCategory.HOSTING,
    ProviderType.VERCEL: ProviderCategory.HOSTING,
    ProviderType.SENTRY: ProviderCategory.MONITORING,
    ProviderType.GITHUB: ProviderCategory.VCS,
    ProviderType.BITBUCKET: ProviderCategory.VCS,
    ProviderType.GITLAB: ProviderCategory.VCS,
    ProviderType.SENDGRID: ProviderCategory.EMAIL,
    ProviderType.DATADOG: ProviderCategory.MONITORING,
    ProviderType.GODADDY: ProviderCategory.DOMAIN,
    ProviderType.CUSTOM: ProviderCategory.CUSTOM,
}

# Long labels used in AI-facing text
PROVIDER_TYPE_LABELS: Dict[ProviderType, str] = {
    ProviderType.AWS: "Amazon Web Services",
    ProviderType.GCP: "Google Cloud Platform",
    ProviderType.AZURE: "Microsoft Azure",
    ProviderType.CLOUDFLARE: "Cloudflare",
    ProviderType.DIGITALOCEAN: "DigitalOcean",
    ProviderType.FIREBASE: "Firebase",
    ProviderType.VERCEL: "Vercel",
    ProviderType.SENTRY: "Sentry",
    ProviderType.GITHUB: "GitHub",
    ProviderType.BITBUCKET: "Bitbucket",
    ProviderType.GITLAB: "GitLab",
    ProviderType.SENDGRID: "SendGrid",
    ProviderType.DATADOG: "Datadog",
    ProviderType.GODADDY: "GoDaddy",
    ProviderType.CUSTOM: "Custom Provider",
}


# =============================================================================
# HELPERS
# =============================================================================

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_id(prefix: str = "kb") -> str:
    """Generate a unique id: <prefix>_<epoch-ms>_<7 base36 chars>."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Revive an ISO-8601 timestamp (tolerates a trailing Z)."""
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def build_ssh_command(
    ssh_key_path: Optional[str],
    ssh_port: int,
    ssh_user: str,
    ip: str,
) -> str:
    """
    Build the canonical SSH command for a server.

    ssh [-i "<key>"] [-p <port> when not 22] <user>@<ip>
    """
    parts = ["ssh"]
    if ssh_key_path:
        parts.append(f'-i "{ssh_key_path}"')
    if ssh_port != 22:
        parts.append(f"-p {ssh_port}")
    parts.append(f"{ssh_user}@{ip}")
    return " ".join(parts)


def _coerce_port(value: Any) -> int:
    if value is None or value == "":
        return 22
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"invalid ssh_port: {value!r}")
    if not 1 <= port <= 65535:
        raise ValueError(f"ssh_port out of range: {port}")
    return port


def _search_words(text: str) -> List[str]:
    return [w for w in re.findall(r"[a-z0-9]+", text.lower()) if len(w) > 1]


# =============================================================================
# SERVERS
# =============================================================================

@dataclass
class ServerConfig:
    """
    An SSH-reachable server owned by a provider.

    ssh_command is always derived from key path, port, user and ip.
    """
    id: str
    name: str
    ip: str
    provider: ProviderType
    instance_id: Optional[str] = None
    instance_type: Optional[str] = None
    ssh_user: str = "root"
    ssh_port: int = 22
    ssh_key_path: Optional[str] = None
    domain: Optional[str] = None
    ssh_command: str = ""
    notes: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    last_connected_at: Optional[datetime] = None

    # Fields a caller may set on create or patch
    EDITABLE_FIELDS = (
        "name", "ip", "provider", "instance_id", "instance_type", "ssh_user",
        "ssh_port", "ssh_key_path", "domain", "notes", "tags", "last_connected_at",
    )

    @classmethod
    def create(cls, name: str, ip: str, provider: ProviderType, **fields) -> "ServerConfig":
        """Factory method with auto-generated ID and derived SSH command."""
        server = cls(id=generate_id("server"), name=name, ip=ip, provider=provider)
        server.apply(fields)
        return server

    def apply(self, updates: Dict[str, Any]) -> None:
        """
        Apply a partial update and re-derive the SSH command.

        Every value is checked before any is set, so a rejected patch
        leaves the server untouched. None resets ssh_user and ssh_port
        to their defaults.

        Raises:
            KeyError: field is not editable
            ValueError: bad provider, port, or empty name/ip
        """
        staged: Dict[str, Any] = {}
        for key, value in updates.items():
            if key not in self.EDITABLE_FIELDS:
                raise KeyError(key)
            if key == "provider" and not isinstance(value, ProviderType):
                value = ProviderType(value)
            elif key == "ssh_port":
                value = _coerce_port(value)
            elif key == "ssh_user":
                value = value or "root"
            elif key in ("name", "ip") and not value:
                raise ValueError(f"{key} cannot be empty")
            staged[key] = value

        for key, value in staged.items():
            setattr(self, key, value)
        self.refresh_ssh_command()

    def refresh_ssh_command(self) -> None:
        self.ssh_command = build_ssh_command(
            self.ssh_key_path, self.ssh_port, self.ssh_user, self.ip
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "ip": self.ip,
            "provider": self.provider.value,
            "instance_id": self.instance_id,
            "instance_type": self.instance_type,
            "ssh_user": self.ssh_user,
            "ssh_port": self.ssh_port,
            "ssh_key_path": self.ssh_key_path,
            "domain": self.domain,
            "ssh_command": self.ssh_command,
            "notes": self.notes,
            "tags": self.tags,
            "last_connected_at": _iso(self.last_connected_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerConfig":
        """Deserialise from dictionary."""
        server = cls(
            id=data["id"],
            name=data["name"],
            ip=data["ip"],
            provider=ProviderType(data.get("provider", "custom")),
            instance_id=data.get("instance_id"),
            instance_type=data.get("instance_type"),
            ssh_user=data.get("ssh_user") or "root",
            ssh_port=int(data.get("ssh_port") or 22),
            ssh_key_path=data.get("ssh_key_path"),
            domain=data.get("domain"),
            notes=data.get("notes"),
            tags=data.get("tags", []),
            last_connected_at=parse_timestamp(data.get("last_connected_at")),
        )
        server.refresh_ssh_command()
        return server


# =============================================================================
# EXTRACTION RESULTS
# =============================================================================

@dataclass
class ApiKeyMention:
    """A credential mentioned in a document. Never carries the value."""
    name: str
    service: str
    is_redacted: bool = False
    line_number: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "service": self.service,
            "is_redacted": self.is_redacted,
            "line_number": self.line_number,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApiKeyMention":
        return cls(
            name=data["name"],
            service=data.get("service", "unknown"),
            is_redacted=data.get("is_redacted", False),
            line_number=data.get("line_number"),
        )


@dataclass
class AccountIdMention:
    """A cloud account, project or subscription identifier."""
    provider: str
    id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"provider": self.provider, "id": self.id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccountIdMention":
        return cls(provider=data.get("provider", "unknown"), id=data["id"])


@dataclass
class ExtractedData:
    """Structured facts pulled out of an imported document."""
    servers: List[Dict[str, Any]] = field(default_factory=list)
    api_keys: List[ApiKeyMention] = field(default_factory=list)
    domains: List[str] = field(default_factory=list)
    account_ids: List[AccountIdMention] = field(default_factory=list)
    key_value_pairs: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "servers": self.servers,
            "api_keys": [k.to_dict() for k in self.api_keys],
            "domains": self.domains,
            "account_ids": [a.to_dict() for a in self.account_ids],
            "key_value_pairs": self.key_value_pairs,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractedData":
        return cls(
            servers=data.get("servers", []),
            api_keys=[ApiKeyMention.from_dict(k) for k in data.get("api_keys", [])],
            domains=data.get("domains", []),
            account_ids=[AccountIdMention.from_dict(a) for a in data.get("account_ids", [])],
            key_value_pairs=data.get("key_value_pairs", {}),
        )


@dataclass
class ImportedDocument:
    """A document imported under a provider, with what was extracted from it."""
    id: str
    filename: str
    file_type: FileType
    imported_at: datetime
    content: str
    extracted_data: ExtractedData = field(default_factory=ExtractedData)

    @classmethod
    def create(cls, filename: str, content: str, extracted_data: ExtractedData) -> "ImportedDocument":
        return cls(
            id=generate_id("doc"),
            filename=filename,
            file_type=FileType.from_filename(filename),
            imported_at=utc_now(),
            content=content,
            extracted_data=extracted_data,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "file_type": self.file_type.value,
            "imported_at": self.imported_at.isoformat(),
            "content": self.content,
            "extracted_data": self.extracted_data.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportedDocument":
        return cls(
            id=data["id"],
            filename=data["filename"],
            file_type=FileType(data.get("file_type", "txt")),
            imported_at=parse_timestamp(data["imported_at"]),
            content=data.get("content", ""),
            extracted_data=ExtractedData.from_dict(data.get("extracted_data") or {}),
        )


# =============================================================================
# PROVIDERS
# =============================================================================

@dataclass
class ConnectionInfo:
    """How a provider is reached. account_id is sensitive."""
    kind: ConnectionKind = ConnectionKind.API
    base_url: Optional[str] = None
    region: Optional[str] = None
    account_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "base_url": self.base_url,
            "region": self.region,
            "account_id": self.account_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectionInfo":
        return cls(
            kind=ConnectionKind(data.get("kind", "api")),
            base_url=data.get("base_url"),
            region=data.get("region"),
            account_id=data.get("account_id"),
        )


@dataclass
class CloudProvider:
    """
    A configured infrastructure provider.

    Owns its servers and imported documents (ordered). Category is
    always derived from type.
    """
    id: str
    type: ProviderType
    name: str
    emoji: str
    category: ProviderCategory
    is_connected: bool = False
    connection: ConnectionInfo = field(default_factory=ConnectionInfo)
    credential_id: Optional[str] = None
    servers: List[ServerConfig] = field(default_factory=list)
    quick_actions: List[str] = field(default_factory=list)
    imported_docs: List[ImportedDocument] = field(default_factory=list)
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    last_used_at: Optional[datetime] = None

    EDITABLE_FIELDS = (
        "type", "name", "emoji", "is_connected", "connection", "credential_id",
        "quick_actions", "notes", "last_used_at",
    )

    @classmethod
    def create(cls, provider_type: ProviderType, name: Optional[str] = None) -> "CloudProvider":
        """Factory method with defaults from the provider tables."""
        now = utc_now()
        return cls(
            id=generate_id("provider"),
            type=provider_type,
            name=name or PROVIDER_NAMES[provider_type],
            emoji=PROVIDER_EMOJIS[provider_type],
            category=PROVIDER_CATEGORIES[provider_type],
            created_at=now,
            updated_at=now,
        )

    @property
    def type_label(self) -> str:
        return PROVIDER_TYPE_LABELS[self.type]

    def find_server(self, server_id: str) -> Optional[ServerConfig]:
        for server in self.servers:
            if server.id == server_id:
                return server
        return None

    def apply(self, updates: Dict[str, Any]) -> None:
        """
        Apply a partial update.

        A type change re-derives the category. updated_at always moves.
        Nothing is set unless every value is valid.
        """
        staged: Dict[str, Any] = {}
        for key, value in updates.items():
            if key not in self.EDITABLE_FIELDS:
                raise KeyError(key)
            if key == "type":
                value = value if isinstance(value, ProviderType) else ProviderType(value)
                staged["category"] = PROVIDER_CATEGORIES[value]
            elif key == "connection" and isinstance(value, dict):
                merged = self.connection.to_dict()
                merged.update(value)
                value = ConnectionInfo.from_dict(merged)
            elif key == "name" and not value:
                raise ValueError("name cannot be empty")
            staged[key] = value

        for key, value in staged.items():
            setattr(self, key, value)
        self.updated_at = utc_now()

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to dictionary."""
        return {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "emoji": self.emoji,
            "category": self.category.value,
            "is_connected": self.is_connected,
            "connection": self.connection.to_dict(),
            "credential_id": self.credential_id,
            "servers": [s.to_dict() for s in self.servers],
            "quick_actions": self.quick_actions,
            "imported_docs": [d.to_dict() for d in self.imported_docs],
            "notes": self.notes,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "last_used_at": _iso(self.last_used_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CloudProvider":
        """Deserialise from dictionary."""
        provider_type = ProviderType(data["type"])
        return cls(
            id=data["id"],
            type=provider_type,
            name=data.get("name") or PROVIDER_NAMES[provider_type],
            emoji=data.get("emoji") or PROVIDER_EMOJIS[provider_type],
            category=PROVIDER_CATEGORIES[provider_type],
            is_connected=data.get("is_connected", False),
            connection=ConnectionInfo.from_dict(data.get("connection") or {}),
            credential_id=data.get("credential_id"),
            servers=[ServerConfig.from_dict(s) for s in data.get("servers", [])],
            quick_actions=data.get("quick_actions", []),
            imported_docs=[ImportedDocument.from_dict(d) for d in data.get("imported_docs", [])],
            notes=data.get("notes"),
            created_at=parse_timestamp(data["created_at"]),
            updated_at=parse_timestamp(data["updated_at"]),
            last_used_at=parse_timestamp(data.get("last_used_at")),
        )


# =============================================================================
# CREDENTIALS
# =============================================================================

@dataclass
class EncryptedCredential:
    """An AES-256-GCM encrypted secret. All binary fields are base64."""
    id: str
    name: str
    service: str
    encrypted_value: str
    iv: str
    auth_tag: str
    created_at: datetime = field(default_factory=utc_now)
    last_used_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "service": self.service,
            "encrypted_value": self.encrypted_value,
            "iv": self.iv,
            "auth_tag": self.auth_tag,
            "created_at": self.created_at.isoformat(),
            "last_used_at": _iso(self.last_used_at),
        }

    def to_public_dict(self) -> Dict[str, Any]:
        """Metadata only, safe to show in listings."""
        return {
            "id": self.id,
            "name": self.name,
            "service": self.service,
            "created_at": self.created_at.isoformat(),
            "last_used_at": _iso(self.last_used_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EncryptedCredential":
        return cls(
            id=data["id"],
            name=data["name"],
            service=data["service"],
            encrypted_value=data["encrypted_value"],
            iv=data["iv"],
            auth_tag=data["auth_tag"],
            created_at=parse_timestamp(data["created_at"]),
            last_used_at=parse_timestamp(data.get("last_used_at")),
        )


# =============================================================================
# INDEX
# =============================================================================

INDEX_VERSION = 1


@dataclass
class KnowledgeBaseIndex:
    """
    Lookup index derived from providers and credentials.

    Never edited incrementally: rebuild() is the only producer, so the
    index cannot drift from primary data.
    """
    version: int = INDEX_VERSION
    last_updated: datetime = field(default_factory=utc_now)
    providers_by_type: Dict[str, List[str]] = field(default_factory=dict)
    servers_by_provider: Dict[str, List[str]] = field(default_factory=dict)
    credentials_by_service: Dict[str, List[str]] = field(default_factory=dict)
    search_index: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def rebuild(
        cls,
        providers: Iterable[CloudProvider],
        credentials: Iterable[EncryptedCredential],
    ) -> "KnowledgeBaseIndex":
        """Build a fresh index. Search words come from names and types only."""
        index = cls()

        def add_word(word: str, target_id: str) -> None:
            ids = index.search_index.setdefault(word, [])
            if target_id not in ids:
                ids.append(target_id)

        for provider in providers:
            index.providers_by_type.setdefault(provider.type.value, []).append(provider.id)
            index.servers_by_provider[provider.id] = [s.id for s in provider.servers]
            for word in _search_words(f"{provider.name} {provider.type.value}"):
                add_word(word, provider.id)
            for server in provider.servers:
                for word in _search_words(server.name):
                    add_word(word, server.id)

        for credential in credentials:
            index.credentials_by_service.setdefault(credential.service, []).append(credential.id)

        return index

    def search(self, query: str) -> List[str]:
        """Ids whose indexed words appear in the query."""
        found: List[str] = []
        for word in _search_words(query):
            for target_id in self.search_index.get(word, []):
                if target_id not in found:
                    found.append(target_id)
        return found

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "last_updated": self.last_updated.isoformat(),
            "providers_by_type": self.providers_by_type,
            "servers_by_provider": self.servers_by_provider,
            "credentials_by_service": self.credentials_by_service,
            "search_index": self.search_index,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KnowledgeBaseIndex":
        return cls(
            version=data.get("version", INDEX_VERSION),
            last_updated=parse_timestamp(data.get("last_updated")) or utc_now(),
            providers_by_type=data.get("providers_by_type", {}),
            servers_by_provider=data.get("servers_by_provider", {}),
            credentials_by_service=data.get("credentials_by_service", {}),
            search_index=data.get("search_index", {}),
        )


# =============================================================================
# PREFERENCES
# =============================================================================

@dataclass
class KnowledgeBasePreferences:
    """User preferences persisted in config.json."""
    auto_inject_context: bool = True
    show_ssh_suggestions: bool = True
    default_terminal: TerminalMode = TerminalMode.INTEGRATED
    confirm_ssh_commands: bool = True
    auto_discover_credentials: bool = False
    password_hint: Optional[str] = None

    def updated(self, **changes) -> "KnowledgeBasePreferences":
        """Return a copy with changes applied. Unknown keys raise KeyError."""
        data = self.to_dict()
        for key, value in changes.items():
            if key not in data:
                raise KeyError(key)
            data[key] = value.value if isinstance(value, TerminalMode) else value
        return KnowledgeBasePreferences.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "auto_inject_context": self.auto_inject_context,
            "show_ssh_suggestions": self.show_ssh_suggestions,
            "default_terminal": self.default_terminal.value,
            "confirm_ssh_commands": self.confirm_ssh_commands,
            "auto_discover_credentials": self.auto_discover_credentials,
            "password_hint": self.password_hint,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KnowledgeBasePreferences":
        defaults = cls()
        return cls(
            auto_inject_context=bool(data.get("auto_inject_context", defaults.auto_inject_context)),
            show_ssh_suggestions=bool(data.get("show_ssh_suggestions", defaults.show_ssh_suggestions)),
            default_terminal=TerminalMode(data.get("default_terminal", defaults.default_terminal.value)),
            confirm_ssh_commands=bool(data.get("confirm_ssh_commands", defaults.confirm_ssh_commands)),
            auto_discover_credentials=bool(
                data.get("auto_discover_credentials", defaults.auto_discover_credentials)
            ),
            password_hint=data.get("password_hint"),
        )


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    # Enums
    "ProviderType",
    "ProviderCategory",
    "ConnectionKind",
    "FileType",
    "TerminalMode",
    # Tables
    "PROVIDER_NAMES",
    "PROVIDER_EMOJIS",
    "PROVIDER_CATEGORIES",
    "PROVIDER_TYPE_LABELS",
    # Helpers
    "generate_id",
    "utc_now",
    "parse_timestamp",
    "build_ssh_command",
    # Records
    "ServerConfig",
    "ApiKeyMention",
    "AccountIdMention",
    "ExtractedData",
    "ImportedDocument",
    "ConnectionInfo",
    "CloudProvider",
    "EncryptedCredential",
    "KnowledgeBaseIndex",
    "INDEX_VERSION",
    "KnowledgeBasePreferences",
]
