"""
Service Boundary Tests for InfraKB

Tests the kb:* channel dispatcher and its response envelope.

Run with: pytest tests/test_service.py -v

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3
"""

import json
import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from kb_engine.core.config import KBConfig
from kb_engine.manager import KnowledgeBaseManager
from kb_engine.secure_storage import SecureStorage
from kb_engine.service import KnowledgeBaseService


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def service(tmp_path):
    manager = KnowledgeBaseManager(
        KBConfig.for_testing(tmp_path),
        storage=SecureStorage(machine_id=lambda: "test-machine"),
    )
    svc = KnowledgeBaseService(manager=manager)
    yield svc
    svc.shutdown()


# =============================================================================
# ENVELOPE
# =============================================================================

class TestEnvelope:
    """Every call returns the same shape."""

    def test_success_envelope(self, service):
        response = service.call("kb:addProvider", provider_type="aws")
        assert response["success"] is True
        assert response["timestamp"].endswith("Z")
        assert response["data"]["type"] == "aws"
        json.dumps(response)

    def test_error_envelope_for_kb_error(self, service):
        response = service.call("kb:addProvider", provider_type="not-a-provider")
        assert response["success"] is False
        assert response["error"]["type"] == "ValidationError"
        assert response["error"]["status_code"] == 400
        assert "data" not in response

    def test_not_found_error(self, service):
        response = service.call("kb:importDocument", provider_id="provider_missing",
                                filename="a.md", content="# x")
        assert response["error"]["type"] == "ProviderNotFoundError"
        assert response["error"]["status_code"] == 404

    def test_locked_error(self, service):
        response = service.call("kb:addCredential", name="n", service="aws", value="v")
        assert response["error"]["type"] == "StorageLockedError"
        assert response["error"]["status_code"] == 423

    def test_unknown_channel(self, service):
        response = service.call("kb:doesNotExist")
        assert response["success"] is False
        assert response["error"]["type"] == "UnknownChannel"

    def test_bad_arguments(self, service):
        response = service.call("kb:getProvider", wrong_arg="x")
        assert response["error"]["type"] == "ValidationError"
        assert response["error"]["status_code"] == 400

    def test_unexpected_error_is_generic(self, service, monkeypatch):
        def explode():
            raise RuntimeError("disk on fire at /secret/path")

        monkeypatch.setitem(service._handlers, "kb:getStats", explode)
        response = service.call("kb:getStats")
        assert response["error"]["status_code"] == 500
        assert "/secret/path" not in json.dumps(response)

    def test_type_error_inside_handler_is_internal(self, service, monkeypatch):
        def broken():
            return len(None)

        monkeypatch.setitem(service._handlers, "kb:getStats", broken)
        response = service.call("kb:getStats")
        assert response["error"]["type"] == "InternalError"
        assert response["error"]["status_code"] == 500


# =============================================================================
# CHANNELS
# =============================================================================

class TestChannels:
    """End-to-end flows through the dispatcher."""

    def test_channel_list(self, service):
        channels = service.channels
        for name in ("kb:getProviders", "kb:addProvider", "kb:getRelevantContext",
                     "kb:getStats", "kb:getQuickActions", "kb:generateAIContext"):
            assert name in channels

    def test_provider_and_server_flow(self, service):
        provider = service.call("kb:addProvider", provider_type="aws", name="Prod")["data"]
        server = service.call("kb:addServer", provider_id=provider["id"], name="Web",
                              ip="3.132.25.123", ssh_user="ubuntu")["data"]
        assert server["ssh_command"] == "ssh ubuntu@3.132.25.123"

        listed = service.call("kb:getServersByProvider", provider_id=provider["id"])["data"]
        assert [s["id"] for s in listed] == [server["id"]]

        context = service.call("kb:generateAIContext")["data"]
        assert '"Web"' in context
        assert "3.132.25.123" not in context

    def test_credential_flow(self, service):
        assert service.call("kb:unlock", password="pw")["data"] is True
        credential = service.call("kb:addCredential", name="Prod", service="aws", value="s3cr3t-v4lue")["data"]
        assert "s3cr3t-v4lue" not in json.dumps(credential)

        value = service.call("kb:getCredentialValue", credential_id=credential["id"])["data"]
        assert value == "s3cr3t-v4lue"

        listed = service.call("kb:listCredentials")["data"]
        assert "s3cr3t-v4lue" not in json.dumps(listed)

    def test_secret_values_not_logged(self, service, caplog):
        caplog.set_level(logging.DEBUG)
        service.call("kb:unlock", password="hunter2-master")
        service.call("kb:addCredential", name="Prod", service="aws", value="s3cr3t-v4lue")
        assert "hunter2-master" not in caplog.text
        assert "s3cr3t-v4lue" not in caplog.text

    def test_missing_provider_returns_no_data(self, service):
        response = service.call("kb:getProvider", provider_id="provider_missing")
        assert response["success"] is True
        assert "data" not in response

    def test_quick_actions_and_stats(self, service):
        provider = service.call("kb:addProvider", provider_type="github")["data"]
        actions = service.call("kb:getQuickActions", provider_id=provider["id"])["data"]
        assert [a["id"] for a in actions] == ["gh-repos", "gh-actions"]

        stats = service.call("kb:getStats")["data"]
        assert stats["provider_count"] == 1

    def test_quick_action_groups(self, service):
        provider = service.call("kb:addProvider", provider_type="github")["data"]
        groups = service.call("kb:getQuickActionGroups", provider_id=provider["id"])["data"]
        assert {k: [a["id"] for a in v] for k, v in groups.items()} == {
            "navigation": ["gh-repos"],
            "ci": ["gh-actions"],
        }

    def test_preferences_round_trip(self, service):
        saved = service.call("kb:savePreferences", show_ssh_suggestions=False)["data"]
        assert saved["show_ssh_suggestions"] is False
        loaded = service.call("kb:getPreferences")["data"]
        assert loaded == saved

    def test_search(self, service):
        provider = service.call("kb:addProvider", provider_type="aws")["data"]
        assert provider["id"] in service.call("kb:search", query="amazon")["data"]
