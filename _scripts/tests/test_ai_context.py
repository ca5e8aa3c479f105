"""
AI Context Privacy Tests for InfraKB

The assistant context may only name providers, their type, region and
server names. These tests plant real-looking identifiers everywhere a
user could put them and check none of them come out the other side.

Run with: pytest tests/test_ai_context.py -v

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from kb_engine.core.config import KBConfig
from kb_engine.manager import KnowledgeBaseManager
from kb_engine.redaction import ContextRedactor, SensitiveType
from kb_engine.secure_storage import SecureStorage


IP = "3.132.25.123"
DOMAIN = "denvermobileappdeveloper.com"
KEY_PATH = "~/.ssh/prod-key.pem"
INSTANCE_ID = "i-0abc123def4567890"
ACCOUNT_ID = "123456789012"

FORBIDDEN = [IP, DOMAIN, "denvermobileappdeveloper", KEY_PATH, "prod-key.pem", INSTANCE_ID, ACCOUNT_ID]

IMPORTED_DOC = f"""# Billing API
- Server IP: 18.220.1.77
- Domain: billing.{DOMAIN}
- SSH Key: ~/.ssh/billing.pem
- AWS Account ID: {ACCOUNT_ID}
- Stripe Key: sk-live0123456789abcdef
"""


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def kb(tmp_path):
    manager = KnowledgeBaseManager(
        KBConfig.for_testing(tmp_path),
        storage=SecureStorage(machine_id=lambda: "test-machine"),
    )
    manager.initialize()
    return manager


@pytest.fixture
def populated_kb(kb):
    provider = kb.add_provider("aws", name="Production AWS")
    kb.update_provider(provider.id, {
        "connection": {"region": "us-east-2", "account_id": ACCOUNT_ID, "base_url": f"https://{DOMAIN}"},
    })
    kb.add_server(
        provider.id, "Production Web", IP,
        ssh_user="ubuntu", ssh_key_path=KEY_PATH, domain=DOMAIN, instance_id=INSTANCE_ID,
    )
    kb.import_document(provider.id, "billing.md", IMPORTED_DOC)
    kb.add_provider("cloudflare")
    return kb


def assert_private(text: str) -> None:
    for value in FORBIDDEN + ["18.220.1.77", "billing.pem", "sk-live0123456789abcdef"]:
        assert value not in text, f"{value!r} leaked into AI context"


# =============================================================================
# FULL CONTEXT
# =============================================================================

class TestFullContext:
    """generate_ai_context()"""

    def test_empty_knowledge_base(self, kb):
        assert kb.generate_ai_context() == ""

    def test_lists_names_types_and_regions(self, populated_kb):
        context = populated_kb.generate_ai_context()
        assert context.startswith("## AVAILABLE INFRASTRUCTURE (Local Knowledge Base)")
        assert "### ☁️ Production AWS" in context
        assert "- Type: Amazon Web Services" in context
        assert "- Region: us-east-2" in context
        assert "- Servers configured: 2" in context
        assert '  - "Production Web"' in context
        assert '  - "Billing Api"' in context
        assert "### 🌩️ Cloudflare" in context
        assert "4. You NEVER see the actual credentials, IPs, or SSH keys" in context

    def test_no_sensitive_identifiers(self, populated_kb):
        assert_private(populated_kb.generate_ai_context())

    def test_no_ssh_commands_or_users(self, populated_kb):
        context = populated_kb.generate_ai_context()
        assert "ssh -i" not in context
        assert "ubuntu@" not in context

    def test_identifiers_in_names_are_scrubbed(self, kb):
        provider = kb.add_provider("custom", name=f"Box at {IP}")
        kb.add_server(provider.id, DOMAIN, IP)
        kb.add_server(provider.id, f"runner {INSTANCE_ID}", "10.9.9.9")
        context = kb.generate_ai_context()

        assert_private(context)
        assert "### ⚙️ Box at [IP]" in context
        assert '  - "[DOMAIN]"' in context
        assert '  - "runner [INSTANCE_ID]"' in context

    def test_literal_hostnames_are_scrubbed(self, kb):
        provider = kb.add_provider("custom")
        kb.add_server(provider.id, "dbhost01 primary", "dbhost01")
        context = kb.generate_ai_context()
        assert "dbhost01" not in context
        assert '"[IP] primary"' in context

    def test_project_named_like_server_keeps_name(self, kb):
        provider = kb.add_provider("gcp")
        kb.import_document(provider.id, "checkout.md", "## Checkout\n- Project: checkout\n- Server IP: 10.0.0.1\n")
        context = kb.generate_ai_context()
        assert '  - "Checkout"' in context
        assert "[ACCOUNT_ID]" not in context

    def test_project_ids_with_digits_are_scrubbed(self, kb):
        provider = kb.add_provider("gcp", name="Checkout Shop")
        kb.import_document(provider.id, "shop.md", "## Shop\n- Project ID: checkout-shop-4821\n- Server IP: 10.0.0.2\n")
        kb.add_server(provider.id, "runner checkout-shop-4821", "10.0.0.3")
        context = kb.generate_ai_context()
        assert "checkout-shop-4821" not in context
        assert '  - "runner [ACCOUNT_ID]"' in context

    def test_region_is_scrubbed(self, kb):
        provider = kb.add_provider("aws")
        kb.update_provider(provider.id, {"connection": {"region": f"{IP} (east)"}})
        assert IP not in kb.generate_ai_context()


# =============================================================================
# RELEVANT CONTEXT
# =============================================================================

class TestRelevantContext:
    """get_relevant_context()"""

    def test_matches_server_name(self, populated_kb):
        context = populated_kb.get_relevant_context("Check the production web logs please")
        assert context.startswith("## Relevant Infrastructure")
        assert "Production AWS" in context
        assert "- Servers: 2 configured" in context
        assert "Cloudflare" not in context
        assert_private(context)

    def test_matches_provider_type(self, populated_kb):
        context = populated_kb.get_relevant_context("purge the cloudflare cache")
        assert "### 🌩️ Cloudflare" in context
        assert "Production AWS" not in context

    def test_generic_question_gets_full_context(self, populated_kb):
        context = populated_kb.get_relevant_context("How do I deploy to staging?")
        assert context == populated_kb.generate_ai_context()

    def test_unrelated_question_gets_nothing(self, populated_kb):
        assert populated_kb.get_relevant_context("What is the capital of France?") == ""

    def test_empty_knowledge_base(self, kb):
        assert kb.get_relevant_context("restart the server") == ""


# =============================================================================
# REDACTOR
# =============================================================================

class TestContextRedactor:
    """ContextRedactor on its own."""

    def test_patterns_without_literals(self):
        redactor = ContextRedactor()
        text = f"{IP} {DOMAIN} {INSTANCE_ID} {ACCOUNT_ID} ops@example.com ~/.ssh/id.pem"
        result = redactor.redact(text)
        assert result.redacted_text == "[IP] [DOMAIN] [INSTANCE_ID] [ACCOUNT_ID] [EMAIL] [KEY_PATH]"
        assert result.kinds_found == {
            SensitiveType.IP_ADDRESS, SensitiveType.DOMAIN, SensitiveType.INSTANCE_ID,
            SensitiveType.ACCOUNT_ID, SensitiveType.EMAIL, SensitiveType.KEY_PATH,
        }

    def test_longest_literal_wins(self):
        redactor = ContextRedactor([
            (SensitiveType.DOMAIN, "corp"),
            (SensitiveType.IP_ADDRESS, "corp-gateway"),
        ])
        assert redactor.scrub("the corp-gateway box") == "the [IP] box"

    def test_short_literals_ignored(self):
        redactor = ContextRedactor([(SensitiveType.IP_ADDRESS, "db")])
        assert redactor.literal_count == 0
        assert redactor.scrub("db server") == "db server"

    def test_none_values_ignored(self):
        redactor = ContextRedactor([(SensitiveType.DOMAIN, None), (SensitiveType.IP_ADDRESS, "")])
        assert redactor.literal_count == 0

    def test_plain_text_untouched(self):
        result = ContextRedactor().redact("Production Web")
        assert result.redacted_text == "Production Web"
        assert not result.found
