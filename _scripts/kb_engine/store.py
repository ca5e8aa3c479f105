"""
InfraKB - File Store v1.0

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

File-backed persistence for the knowledge base.

Layout under the data directory:
    config.json                          preferences
    knowledge/index.json                 lookup index
    knowledge/providers/<id>.json        one provider with servers and docs
    knowledge/docs/<docid>_<filename>    raw imported text
    secrets/credentials.enc.json         encrypted credentials (0600)
    secrets/salt.key                     base64 key-derivation salt (0600)
    secrets/verifier.json                password verifier (0600)

Every write goes to a temp file and is swapped in with os.replace, so
a crash never leaves a half-written record. Write failures raise
PersistenceError; read failures are logged and isolated per file.
"""

import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from kb_engine.core.types import (
    CloudProvider,
    EncryptedCredential,
    ImportedDocument,
    KnowledgeBaseIndex,
    KnowledgeBasePreferences,
)
from kb_engine.errors import PersistenceError

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

KNOWLEDGE_DIR = "knowledge"
PROVIDERS_DIR = "providers"
DOCS_DIR = "docs"
SECRETS_DIR = "secrets"

INDEX_FILE = "index.json"
CONFIG_FILE = "config.json"
CREDENTIALS_FILE = "credentials.enc.json"
SALT_FILE = "salt.key"
VERIFIER_FILE = "verifier.json"

SECRETS_DIR_MODE = 0o700
SECRET_FILE_MODE = 0o600

_UNSAFE_FILENAME_CHARS = re.compile(r'[^\w.-]')


def _safe_filename(filename: str) -> str:
    name = Path(filename).name or "document"
    return _UNSAFE_FILENAME_CHARS.sub("_", name)


class KnowledgeBaseStore:
    """
    Reads and writes knowledge base records on disk.

    Usage:
        store = KnowledgeBaseStore(Path("~/.infrakb").expanduser())
        store.ensure_layout()
        providers = store.load_providers()
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.knowledge_dir = self.root / KNOWLEDGE_DIR
        self.providers_dir = self.knowledge_dir / PROVIDERS_DIR
        self.docs_dir = self.knowledge_dir / DOCS_DIR
        self.secrets_dir = self.root / SECRETS_DIR

        self.index_path = self.knowledge_dir / INDEX_FILE
        self.config_path = self.root / CONFIG_FILE
        self.credentials_path = self.secrets_dir / CREDENTIALS_FILE
        self.salt_path = self.secrets_dir / SALT_FILE
        self.verifier_path = self.secrets_dir / VERIFIER_FILE

    # =========================================================================
    # LOW LEVEL
    # =========================================================================

    def ensure_layout(self) -> None:
        """Create the directory tree. The secrets directory is owner-only."""
        try:
            for directory in (self.providers_dir, self.docs_dir, self.secrets_dir):
                directory.mkdir(parents=True, exist_ok=True)
            os.chmod(self.secrets_dir, SECRETS_DIR_MODE)
        except OSError as e:
            raise PersistenceError(str(self.root), str(e))

    def _write_text(self, path: Path, text: str, private: bool = False) -> None:
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(text)
            if private:
                os.chmod(tmp_path, SECRET_FILE_MODE)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Write failed for {path.name}: {e}")
            try:
                tmp_path.unlink()
            except OSError:
                pass
            raise PersistenceError(str(path), str(e))

    def _write_json(self, path: Path, data: Any, private: bool = False) -> None:
        self._write_text(path, json.dumps(data, indent=2, ensure_ascii=False), private=private)

    def _read_json(self, path: Path) -> Any:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _quarantine(self, path: Path) -> None:
        """Move an unreadable file aside so the next save does not overwrite it."""
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        target = path.with_name(f"{path.name}.corrupt-{stamp}")
        try:
            os.replace(path, target)
            logger.warning(f"Moved unreadable {path.name} to {target.name}")
        except OSError as e:
            logger.error(f"Could not move unreadable {path.name} aside: {e}")

    # =========================================================================
    # INDEX & PREFERENCES
    # =========================================================================

    def load_index(self) -> Optional[KnowledgeBaseIndex]:
        if not self.index_path.exists():
            return None
        try:
            return KnowledgeBaseIndex.from_dict(self._read_json(self.index_path))
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Index unreadable, will rebuild: {e}")
            return None

    def save_index(self, index: KnowledgeBaseIndex) -> None:
        self._write_json(self.index_path, index.to_dict())

    def load_preferences(self) -> KnowledgeBasePreferences:
        if not self.config_path.exists():
            return KnowledgeBasePreferences()
        try:
            data = self._read_json(self.config_path)
            return KnowledgeBasePreferences.from_dict(data.get("preferences", data))
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Preferences unreadable, using defaults: {e}")
            return KnowledgeBasePreferences()

    def save_preferences(self, preferences: KnowledgeBasePreferences) -> None:
        self._write_json(self.config_path, {"version": 1, "preferences": preferences.to_dict()})

    # =========================================================================
    # PROVIDERS
    # =========================================================================

    def provider_path(self, provider_id: str) -> Path:
        return self.providers_dir / f"{provider_id}.json"

    def load_providers(self) -> List[CloudProvider]:
        """
        Load every provider file, oldest first.

        A missing or corrupt file is logged and skipped; the rest still load.
        """
        providers = []
        if not self.providers_dir.exists():
            return providers

        for path in sorted(self.providers_dir.glob("*.json")):
            try:
                providers.append(CloudProvider.from_dict(self._read_json(path)))
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.error(f"Skipping unreadable provider file {path.name}: {e}")

        providers.sort(key=lambda p: p.created_at)
        logger.info(f"Loaded {len(providers)} provider(s)")
        return providers

    def save_provider(self, provider: CloudProvider) -> None:
        self._write_json(self.provider_path(provider.id), provider.to_dict())

    def delete_provider(self, provider_id: str) -> bool:
        path = self.provider_path(provider_id)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise PersistenceError(str(path), str(e))
        return True

    # =========================================================================
    # DOCUMENTS
    # =========================================================================

    def document_path(self, document: ImportedDocument) -> Path:
        return self.docs_dir / f"{document.id}_{_safe_filename(document.filename)}"

    def save_document_copy(self, document: ImportedDocument) -> Path:
        path = self.document_path(document)
        self._write_text(path, document.content)
        return path

    def delete_document_copy(self, document: ImportedDocument) -> None:
        path = self.document_path(document)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise PersistenceError(str(path), str(e))

    # =========================================================================
    # SECRETS
    # =========================================================================

    def load_credentials(self) -> List[EncryptedCredential]:
        if not self.credentials_path.exists():
            return []
        try:
            return [EncryptedCredential.from_dict(c) for c in self._read_json(self.credentials_path)]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Credential file unreadable: {e}")
            self._quarantine(self.credentials_path)
            return []

    def save_credentials(self, credentials: List[EncryptedCredential]) -> None:
        self._write_json(
            self.credentials_path, [c.to_dict() for c in credentials], private=True
        )

    def load_salt(self) -> Optional[str]:
        """
        Persisted salt, or None before the first unlock.

        An unreadable salt raises rather than returning None, since a
        fresh salt would orphan every stored credential.
        """
        if not self.salt_path.exists():
            return None
        try:
            return self.salt_path.read_text(encoding="utf-8").strip() or None
        except OSError as e:
            raise PersistenceError(str(self.salt_path), str(e))

    def save_salt(self, salt: str) -> None:
        self._write_text(self.salt_path, salt, private=True)

    def load_verifier(self) -> Optional[Dict[str, str]]:
        if not self.verifier_path.exists():
            return None
        try:
            return self._read_json(self.verifier_path)
        except (OSError, ValueError) as e:
            logger.error(f"Password verifier unreadable: {e}")
            return None

    def save_verifier(self, verifier: Dict[str, str]) -> None:
        self._write_json(self.verifier_path, verifier, private=True)


__all__ = ["KnowledgeBaseStore"]
