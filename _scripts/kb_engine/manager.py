"""
InfraKB - Knowledge Base Manager v1.0

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Owns the in-memory model (providers, credentials, preferences, index)
and keeps it in step with the file store.

Every mutating call works on a copy of the record, persists it, and
only then swaps it into memory; a failed write leaves the in-memory
model as it was. The index is then rebuilt from primary data, so it
can never drift from providers and credentials.

Credential plaintext is only ever returned to the direct caller of
get_credential_value() and is never logged.
"""

import copy
import dataclasses
import logging
import re
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from kb_engine.context import build_ai_context, build_relevant_context
from kb_engine.core.config import KBConfig
from kb_engine.core.types import (
    CloudProvider,
    EncryptedCredential,
    ImportedDocument,
    KnowledgeBaseIndex,
    KnowledgeBasePreferences,
    ProviderType,
    ServerConfig,
    utc_now,
)
from kb_engine.errors import (
    CryptoError,
    PersistenceError,
    ProviderNotFoundError,
    StorageLockedError,
    ValidationError,
)
from kb_engine.logging_utils import Timer
from kb_engine.parsing import DocumentParser
from kb_engine.quick_actions import (
    QuickAction,
    get_default_actions,
    get_server_actions,
    group_by_category,
)
from kb_engine.redaction import ContextRedactor, SensitiveType
from kb_engine.secure_storage import SecureStorage
from kb_engine.store import KnowledgeBaseStore

logger = logging.getLogger(__name__)

ProviderTypeLike = Union[ProviderType, str]

# Document account/project values are scrubbed only when they contain a
# digit or hyphen
_ACCOUNT_LITERAL = re.compile(r'[\d-]')


def _coerce_provider_type(value: ProviderTypeLike) -> ProviderType:
    if isinstance(value, ProviderType):
        return value
    try:
        return ProviderType(str(value).lower())
    except ValueError:
        valid = ", ".join(t.value for t in ProviderType)
        raise ValidationError("type", f"unknown provider type '{value}' (expected one of: {valid})")


class KnowledgeBaseManager:
    """
    Infrastructure knowledge base.

    Usage:
        kb = KnowledgeBaseManager(KBConfig.from_env())
        kb.initialize()
        aws = kb.add_provider("aws")
        kb.import_document(aws.id, "servers.md", text)
        prompt_addition = kb.generate_ai_context()
    """

    def __init__(
        self,
        config: Optional[KBConfig] = None,
        storage: Optional[SecureStorage] = None,
        store: Optional[KnowledgeBaseStore] = None,
        parser: Optional[DocumentParser] = None,
    ):
        self.config = config or KBConfig.from_env()
        self.store = store or KnowledgeBaseStore(self.config.data_path)
        self.storage = storage or SecureStorage(iterations=self.config.pbkdf2_iterations)
        self.parser = parser or DocumentParser()

        # Arenas keyed by id; insertion order is display order
        self._providers: Dict[str, CloudProvider] = {}
        self._credentials: Dict[str, EncryptedCredential] = {}
        self._preferences = KnowledgeBasePreferences()
        self._index = KnowledgeBaseIndex()
        self._initialized = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def initialize(self) -> None:
        """
        Create the layout and load everything from disk.

        Unreadable provider files are skipped; the index is rebuilt from
        what loaded, whatever the stored index said.
        """
        self.store.ensure_layout()

        stored_index = self.store.load_index()
        self._preferences = self.store.load_preferences()
        self._providers = {p.id: p for p in self.store.load_providers()}
        self._credentials = {c.id: c for c in self.store.load_credentials()}

        if stored_index is None:
            logger.info("No usable index on disk, rebuilding")
        self._commit_index()

        self._initialized = True
        logger.info(
            f"Knowledge base ready: {len(self._providers)} provider(s), "
            f"{len(self._credentials)} credential(s)"
        )

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            self.initialize()

    def _draft(self, provider_id: str) -> Optional[CloudProvider]:
        """Working copy of a provider; None for an unknown id."""
        provider = self._providers.get(provider_id)
        return copy.deepcopy(provider) if provider else None

    def _persist_provider(self, provider: CloudProvider) -> None:
        self.store.save_provider(provider)
        self._providers[provider.id] = provider

    def _persist_credentials(self, credentials: Dict[str, EncryptedCredential]) -> None:
        self.store.save_credentials(list(credentials.values()))
        self._credentials = credentials

    def _commit_index(self) -> None:
        self._index = KnowledgeBaseIndex.rebuild(self._providers.values(), self._credentials.values())
        self.store.save_index(self._index)

    def rebuild_index(self) -> KnowledgeBaseIndex:
        """Rebuild and persist the index from primary data."""
        self._ensure_initialized()
        self._commit_index()
        return self._index

    def get_index(self) -> KnowledgeBaseIndex:
        self._ensure_initialized()
        return self._index

    def close(self) -> None:
        """Lock secure storage. The manager can be unlocked again later."""
        self.storage.lock()

    # =========================================================================
    # LOCKING
    # =========================================================================

    def unlock(self, password: str) -> bool:
        """
        Derive the key and unlock credential storage.

        Reuses the persisted salt, or creates and persists one on first
        unlock. A wrong password returns False and leaves storage locked.
        """
        self._ensure_initialized()
        salt = self.store.load_salt()
        self.storage.initialize(password, existing_salt=salt)

        verifier = self.store.load_verifier()
        if verifier is not None:
            if not self.storage.matches_verifier(verifier):
                self.storage.lock()
                logger.warning("Unlock rejected: password did not match")
                return False
        elif self._credentials:
            # No verifier yet: prove the key against an existing credential
            try:
                self.storage.decrypt_credential(next(iter(self._credentials.values())))
            except CryptoError:
                self.storage.lock()
                logger.warning("Unlock rejected: password did not match stored credentials")
                return False

        if salt is None:
            self.store.save_salt(self.storage.get_salt())
        if verifier is None:
            self.store.save_verifier(self.storage.create_verifier())
        return True

    def lock(self) -> None:
        self.storage.lock()

    @property
    def is_unlocked(self) -> bool:
        return self.storage.unlocked

    def verify_password(self, password: str) -> bool:
        """Check a password without changing lock state."""
        self._ensure_initialized()
        verifier = self.store.load_verifier()
        salt = self.store.load_salt()
        if verifier is None or salt is None:
            return False
        return self.storage.verify_password(password, verifier, salt=salt)

    # =========================================================================
    # PROVIDERS
    # =========================================================================

    def get_providers(self) -> List[CloudProvider]:
        self._ensure_initialized()
        return list(self._providers.values())

    def get_providers_by_type(self, provider_type: ProviderTypeLike) -> List[CloudProvider]:
        self._ensure_initialized()
        provider_type = _coerce_provider_type(provider_type)
        ids = self._index.providers_by_type.get(provider_type.value, [])
        return [self._providers[i] for i in ids if i in self._providers]

    def get_provider(self, provider_id: str) -> Optional[CloudProvider]:
        self._ensure_initialized()
        return self._providers.get(provider_id)

    def add_provider(self, provider_type: ProviderTypeLike, name: Optional[str] = None) -> CloudProvider:
        """Create a provider with defaults from its type."""
        self._ensure_initialized()
        provider_type = _coerce_provider_type(provider_type)
        provider = CloudProvider.create(provider_type, name=name)
        provider.quick_actions = [a.id for a in get_default_actions(provider_type)]

        self._persist_provider(provider)
        self._commit_index()
        logger.info(f"Added provider {provider.id} ({provider_type.value})")
        return provider

    def update_provider(self, provider_id: str, updates: Dict[str, Any]) -> Optional[CloudProvider]:
        """
        Apply a partial update. Returns None for an unknown id.

        Raises:
            ValidationError: unknown field or provider type
        """
        self._ensure_initialized()
        provider = self._draft(provider_id)
        if provider is None:
            return None

        if "type" in updates:
            updates = dict(updates, type=_coerce_provider_type(updates["type"]))
        try:
            provider.apply(updates)
        except KeyError as e:
            raise ValidationError(str(e.args[0]), "field cannot be updated")
        except ValueError as e:
            raise ValidationError("provider", str(e))

        self._persist_provider(provider)
        self._commit_index()
        logger.info(f"Updated provider {provider_id}")
        return provider

    def delete_provider(self, provider_id: str) -> bool:
        """
        Remove a provider, its file, its raw document copies and its index
        entries. A credential linked only to this provider goes with it.
        """
        self._ensure_initialized()
        provider = self._providers.get(provider_id)
        if provider is None:
            return False

        self.store.delete_provider(provider_id)
        del self._providers[provider_id]
        for document in provider.imported_docs:
            self.store.delete_document_copy(document)

        credential_id = provider.credential_id
        still_linked = any(p.credential_id == credential_id for p in self._providers.values())
        if credential_id in self._credentials and not still_linked:
            remaining = {k: v for k, v in self._credentials.items() if k != credential_id}
            self._persist_credentials(remaining)

        self._commit_index()
        logger.info(f"Deleted provider {provider_id}")
        return True

    # =========================================================================
    # SERVERS
    # =========================================================================

    def get_servers(self) -> List[ServerConfig]:
        self._ensure_initialized()
        return [s for p in self._providers.values() for s in p.servers]

    def get_servers_by_provider(self, provider_id: str) -> List[ServerConfig]:
        provider = self.get_provider(provider_id)
        return list(provider.servers) if provider else []

    def get_server(self, provider_id: str, server_id: str) -> Optional[ServerConfig]:
        provider = self.get_provider(provider_id)
        return provider.find_server(server_id) if provider else None

    def _create_server(self, provider: CloudProvider, name: str, ip: str, fields: Dict[str, Any]) -> ServerConfig:
        fields = {k: v for k, v in fields.items() if v is not None and k != "ssh_command"}
        fields.setdefault("provider", provider.type)
        try:
            provider_type = _coerce_provider_type(fields.pop("provider"))
            server = ServerConfig.create(name, ip, provider_type, **fields)
        except KeyError as e:
            raise ValidationError(str(e.args[0]), "not a server field")
        except ValueError as e:
            raise ValidationError("server", str(e))
        provider.servers.append(server)
        provider.updated_at = utc_now()
        return server

    def add_server(self, provider_id: str, name: str, ip: str, **fields) -> Optional[ServerConfig]:
        """Add a server under a provider. Returns None for an unknown provider."""
        self._ensure_initialized()
        provider = self._draft(provider_id)
        if provider is None:
            return None
        if not name or not ip:
            raise ValidationError("server", "name and ip are required")

        server = self._create_server(provider, name, ip, fields)
        self._persist_provider(provider)
        self._commit_index()
        logger.info(f"Added server {server.id} to provider {provider_id}")
        return server

    def update_server(self, provider_id: str, server_id: str, updates: Dict[str, Any]) -> Optional[ServerConfig]:
        """Patch a server; the SSH command is always regenerated."""
        self._ensure_initialized()
        provider = self._draft(provider_id)
        server = provider.find_server(server_id) if provider else None
        if server is None:
            return None

        try:
            server.apply({k: v for k, v in updates.items() if k not in ("id", "ssh_command")})
        except KeyError as e:
            raise ValidationError(str(e.args[0]), "not a server field")
        except ValueError as e:
            raise ValidationError("server", str(e))
        provider.updated_at = utc_now()

        self._persist_provider(provider)
        self._commit_index()
        logger.info(f"Updated server {server_id}")
        return server

    def delete_server(self, provider_id: str, server_id: str) -> bool:
        self._ensure_initialized()
        provider = self._draft(provider_id)
        server = provider.find_server(server_id) if provider else None
        if server is None:
            return False

        provider.servers.remove(server)
        provider.updated_at = utc_now()
        self._persist_provider(provider)
        self._commit_index()
        logger.info(f"Deleted server {server_id} from provider {provider_id}")
        return True

    def find_server_by_name(self, name: str) -> Optional[ServerConfig]:
        """Exact (case-insensitive) name match first, then substring."""
        needle = name.strip().lower()
        if not needle:
            return None
        servers = self.get_servers()
        for server in servers:
            if server.name.lower() == needle:
                return server
        for server in servers:
            if needle in server.name.lower():
                return server
        return None

    def get_ssh_command(self, server_name: str) -> Optional[str]:
        """SSH command for a server looked up by name (local use only)."""
        server = self.find_server_by_name(server_name)
        return server.ssh_command if server else None

    # =========================================================================
    # CREDENTIALS
    # =========================================================================

    def _require_unlocked(self, operation: str) -> None:
        if not self.storage.unlocked:
            raise StorageLockedError(operation)

    def add_credential(self, name: str, service: str, value: str) -> EncryptedCredential:
        """Encrypt and store a secret."""
        self._ensure_initialized()
        self._require_unlocked("add credential")
        credential = self.storage.encrypt_credential(name, service, value)

        self._persist_credentials({**self._credentials, credential.id: credential})
        self._commit_index()
        logger.info(f"Added credential {credential.id} for service {service}")
        return credential

    def get_credential_value(self, credential_id: str) -> Optional[str]:
        """
        Decrypt a credential for the caller. Returns None for an unknown id.

        Raises:
            StorageLockedError: storage is locked
            AuthenticationFailedError: record was tampered with
        """
        self._ensure_initialized()
        self._require_unlocked("read credential")
        credential = self._credentials.get(credential_id)
        if credential is None:
            return None

        value = self.storage.decrypt_credential(credential)
        stamped = dataclasses.replace(credential, last_used_at=utc_now())
        self._persist_credentials({**self._credentials, credential_id: stamped})
        logger.info(f"Credential {credential_id} read")
        return value

    def delete_credential(self, credential_id: str) -> bool:
        """Remove a credential and unlink it from any provider."""
        self._ensure_initialized()
        self._require_unlocked("delete credential")
        if credential_id not in self._credentials:
            return False

        self._persist_credentials({k: v for k, v in self._credentials.items() if k != credential_id})
        linked = [p.id for p in self._providers.values() if p.credential_id == credential_id]
        for provider_id in linked:
            provider = self._draft(provider_id)
            provider.apply({"credential_id": None})
            self._persist_provider(provider)
        self._commit_index()
        logger.info(f"Deleted credential {credential_id}")
        return True

    def list_credentials(self) -> List[Dict[str, Any]]:
        """Credential metadata without any ciphertext. Works while locked."""
        self._ensure_initialized()
        return [c.to_public_dict() for c in self._credentials.values()]

    # =========================================================================
    # DOCUMENTS
    # =========================================================================

    def import_document(self, provider_id: str, filename: str, content: str) -> ImportedDocument:
        """
        Parse a document into a provider.

        Every extracted server with a name and an IP becomes a server
        record, unless the provider already has one with the same name
        and IP.

        Raises:
            ProviderNotFoundError: unknown provider id
            ValidationError: document too large
        """
        self._ensure_initialized()
        provider = self._draft(provider_id)
        if provider is None:
            raise ProviderNotFoundError(provider_id)
        if len(content) > self.config.max_document_chars:
            raise ValidationError(
                "content", f"document exceeds {self.config.max_document_chars} characters"
            )

        document = ImportedDocument.create(filename, content, extracted_data=None)
        with Timer(logger, f"parse {document.id}"):
            result = self.parser.parse(content, document.file_type)
        document.extracted_data = result.to_extracted_data()

        existing = {(s.name, s.ip) for s in provider.servers}
        created = 0
        for detected in result.servers:
            if not detected.ip or not detected.name or (detected.name, detected.ip) in existing:
                continue
            self._create_server(provider, detected.name, detected.ip, {
                "provider": detected.provider or provider.type,
                "ssh_user": detected.ssh_user,
                "ssh_port": detected.ssh_port,
                "ssh_key_path": detected.ssh_key_path,
                "domain": detected.domain,
                "instance_id": detected.instance_id,
                "instance_type": detected.instance_type,
            })
            existing.add((detected.name, detected.ip))
            created += 1

        provider.imported_docs.append(document)
        provider.updated_at = utc_now()

        self.store.save_document_copy(document)
        try:
            self._persist_provider(provider)
        except PersistenceError:
            self.store.delete_document_copy(document)
            raise
        self._commit_index()
        logger.info(
            f"Imported document {document.id} into provider {provider_id}: "
            f"{created} server(s) created"
        )
        return document

    # =========================================================================
    # AI CONTEXT
    # =========================================================================

    def _sensitive_values(self) -> Iterator[Tuple[SensitiveType, str]]:
        for provider in self._providers.values():
            yield SensitiveType.ACCOUNT_ID, provider.connection.account_id
            yield SensitiveType.DOMAIN, provider.connection.base_url
            for server in provider.servers:
                yield SensitiveType.IP_ADDRESS, server.ip
                yield SensitiveType.DOMAIN, server.domain
                yield SensitiveType.KEY_PATH, server.ssh_key_path
                yield SensitiveType.INSTANCE_ID, server.instance_id
            for document in provider.imported_docs:
                data = document.extracted_data
                for domain in data.domains:
                    yield SensitiveType.DOMAIN, domain
                for account in data.account_ids:
                    if _ACCOUNT_LITERAL.search(account.id):
                        yield SensitiveType.ACCOUNT_ID, account.id
                for server in data.servers:
                    yield SensitiveType.IP_ADDRESS, server.get("ip")
                    yield SensitiveType.DOMAIN, server.get("domain")
                    yield SensitiveType.KEY_PATH, server.get("ssh_key_path")
                    yield SensitiveType.INSTANCE_ID, server.get("instance_id")

    def _redactor(self) -> ContextRedactor:
        return ContextRedactor(self._sensitive_values())

    def generate_ai_context(self) -> str:
        """
        Text for an assistant's system prompt.

        Holds provider names, type labels, regions and server names only.
        """
        self._ensure_initialized()
        return build_ai_context(self._providers.values(), self._redactor())

    def get_relevant_context(self, query: str) -> str:
        """Context narrowed to providers the query mentions."""
        self._ensure_initialized()
        return build_relevant_context(self._providers.values(), query, self._redactor())

    # =========================================================================
    # QUICK ACTIONS
    # =========================================================================

    def get_quick_actions(self, provider_id: str, server_id: Optional[str] = None) -> List[QuickAction]:
        """
        Provider actions, or one server's actions when server_id is given.

        Provider actions are the defaults still listed on the provider.
        """
        provider = self.get_provider(provider_id)
        if provider is None:
            return []

        if server_id is not None:
            server = provider.find_server(server_id)
            return get_server_actions(server) if server else []

        enabled = set(provider.quick_actions)
        return [a for a in get_default_actions(provider.type) if a.id in enabled]

    def get_quick_action_groups(
        self, provider_id: str, server_id: Optional[str] = None
    ) -> Dict[str, List[QuickAction]]:
        """Same actions as get_quick_actions, keyed by category for menus."""
        return group_by_category(self.get_quick_actions(provider_id, server_id))

    # =========================================================================
    # PREFERENCES & STATS
    # =========================================================================

    def get_preferences(self) -> KnowledgeBasePreferences:
        self._ensure_initialized()
        return self._preferences

    def save_preferences(self, **updates) -> KnowledgeBasePreferences:
        """Merge and persist preference changes."""
        self._ensure_initialized()
        try:
            preferences = self._preferences.updated(**updates)
        except KeyError as e:
            raise ValidationError(str(e.args[0]), "unknown preference")
        except ValueError as e:
            raise ValidationError("default_terminal", str(e))

        self.store.save_preferences(preferences)
        self._preferences = preferences
        return preferences

    def get_stats(self) -> Dict[str, Any]:
        self._ensure_initialized()
        providers = self._providers.values()
        return {
            "provider_count": len(self._providers),
            "server_count": sum(len(p.servers) for p in providers),
            "credential_count": len(self._credentials),
            "document_count": sum(len(p.imported_docs) for p in providers),
            "unlocked": self.storage.unlocked,
        }


__all__ = ["KnowledgeBaseManager"]
