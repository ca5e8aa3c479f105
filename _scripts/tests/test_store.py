"""
File Store Tests for InfraKB

Run with: pytest tests/test_store.py -v

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3
"""

import json
import os
import stat
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from kb_engine.core.types import (
    CloudProvider,
    EncryptedCredential,
    ExtractedData,
    ImportedDocument,
    KnowledgeBasePreferences,
    ProviderType,
)
from kb_engine.errors import PersistenceError
from kb_engine.store import KnowledgeBaseStore


@pytest.fixture
def store(tmp_path):
    kb_store = KnowledgeBaseStore(tmp_path / "kb")
    kb_store.ensure_layout()
    return kb_store


def make_credential(name="Prod"):
    return EncryptedCredential(
        id=f"cred_{name}", name=name, service="aws",
        encrypted_value="ZW5j", iv="aXY=", auth_tag="dGFn",
    )


def mode_of(path: Path) -> int:
    return stat.S_IMODE(os.stat(path).st_mode)


class TestLayout:
    """Directory tree and file modes."""

    def test_directories_created(self, store):
        assert store.providers_dir.is_dir()
        assert store.docs_dir.is_dir()
        assert mode_of(store.secrets_dir) == 0o700

    def test_secret_files_owner_only(self, store):
        store.save_credentials([make_credential()])
        store.save_salt("c2FsdA==")
        store.save_verifier({"iv": "a", "auth_tag": "b", "encrypted_value": "c"})
        for path in (store.credentials_path, store.salt_path, store.verifier_path):
            assert mode_of(path) == 0o600

    def test_no_temp_files_left(self, store):
        store.save_provider(CloudProvider.create(ProviderType.AWS))
        assert not list(store.providers_dir.glob("*.tmp"))

    def test_write_failure_raises(self, store, monkeypatch):
        def refuse(src, dst):
            raise OSError("read-only filesystem")

        monkeypatch.setattr(os, "replace", refuse)
        with pytest.raises(PersistenceError):
            store.save_salt("c2FsdA==")
        assert not store.salt_path.exists()


class TestProviders:
    """Provider files."""

    def test_round_trip(self, store):
        provider = CloudProvider.create(ProviderType.DIGITALOCEAN, name="Droplets")
        store.save_provider(provider)
        loaded = store.load_providers()
        assert [p.id for p in loaded] == [provider.id]
        assert loaded[0].name == "Droplets"

    def test_corrupt_file_skipped(self, store):
        good = CloudProvider.create(ProviderType.AWS)
        store.save_provider(good)
        (store.providers_dir / "provider_broken.json").write_text("{not json")
        assert [p.id for p in store.load_providers()] == [good.id]

    def test_delete(self, store):
        provider = CloudProvider.create(ProviderType.AWS)
        store.save_provider(provider)
        assert store.delete_provider(provider.id) is True
        assert store.delete_provider(provider.id) is False


class TestDocumentsAndPreferences:
    """Document copies and config.json."""

    def test_document_copy_filename_sanitised(self, store):
        document = ImportedDocument.create("../../etc/my notes.md", "# Notes", ExtractedData())
        path = store.save_document_copy(document)
        assert path.parent == store.docs_dir
        assert path.name == f"{document.id}_my_notes.md"
        assert path.read_text(encoding="utf-8") == "# Notes"

        store.delete_document_copy(document)
        assert not path.exists()
        store.delete_document_copy(document)

    def test_preferences_file_format(self, store):
        prefs = KnowledgeBasePreferences().updated(show_ssh_suggestions=False)
        store.save_preferences(prefs)
        data = json.loads(store.config_path.read_text(encoding="utf-8"))
        assert data["version"] == 1
        assert data["preferences"]["show_ssh_suggestions"] is False
        assert store.load_preferences() == prefs

    def test_missing_preferences_default(self, store):
        assert store.load_preferences() == KnowledgeBasePreferences()


class TestSecrets:
    """Credential, salt and verifier files."""

    def test_credentials_round_trip(self, store):
        store.save_credentials([make_credential("a"), make_credential("b")])
        assert [c.name for c in store.load_credentials()] == ["a", "b"]

    def test_corrupt_credentials_quarantined(self, store):
        store.credentials_path.write_text("[{broken")
        assert store.load_credentials() == []
        assert not store.credentials_path.exists()
        assert list(store.secrets_dir.glob("credentials.enc.json.corrupt-*"))

    def test_salt_absent_then_present(self, store):
        assert store.load_salt() is None
        store.save_salt("c2FsdA==\n")
        assert store.load_salt() == "c2FsdA=="
