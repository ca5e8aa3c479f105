"""
InfraKB Parsing - Patterns

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Regexes and keyword tables shared by the extraction passes.
"""

import re
from typing import List, Tuple

from kb_engine.core.types import ProviderType


# =============================================================================
# STRUCTURE
# =============================================================================

HEADER = re.compile(r'^#{1,6}\s+(.+)$')
KEY_VALUE = re.compile(r'^[-*]?\s*([^:]+):\s*(.+)$')


# =============================================================================
# NETWORK & CLOUD IDENTIFIERS
# =============================================================================

IPV4 = re.compile(
    r'\b(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}'
    r'(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\b'
)

DOMAIN = re.compile(
    r'\b(?!(?:\d{1,3}\.){3}\d{1,3}\b)(?:[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.)+[a-z]{2,}\b',
    re.IGNORECASE,
)

# Final labels that are file extensions rather than TLDs (key.pem, config.yaml)
FILE_EXTENSION_LABELS = frozenset({
    "pem", "ppk", "json", "yaml", "yml", "txt", "log", "conf", "cfg", "ini", "env",
})

INSTANCE_ID = re.compile(r'\bi-[0-9a-f]{8,17}\b', re.IGNORECASE)
AWS_ACCOUNT = re.compile(r'\b(\d{12})\b')
UUID = re.compile(
    r'\b[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\b',
    re.IGNORECASE,
)


# =============================================================================
# SSH
# =============================================================================

SSH_KEY_QUOTED = re.compile(r'-i\s+["\']([^"\']+)["\']')
SSH_KEY_BARE = re.compile(r'-i\s+(\S+)')
SSH_PORT = re.compile(r'-p\s+(\d+)')
SSH_USER_HOST = re.compile(r'([\w.-]+)@([\w.-]+)\s*$')
SSH_TARGET_START = re.compile(r'^[\w.-]+@')
SSH_INVOCATION = re.compile(r'ssh ', re.IGNORECASE)


# =============================================================================
# CREDENTIALS
# =============================================================================

CREDENTIAL_LABEL_LINE = re.compile(
    r'^[-*]?\s*([^:]*(?:api|key|token|secret|dsn|password|credential)[^:]*)\s*:\s*(.+)$',
    re.IGNORECASE,
)
CREDENTIAL_LABEL = re.compile(r'api|key|token|secret|dsn|password|credential', re.IGNORECASE)
REDACTION_MARKER = re.compile(r'\[encrypted\]|\[redacted\]|\*{3,}|xxx', re.IGNORECASE)

# Ordered: sk-ant- must be tried before the generic sk- prefix
API_KEY_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r'sk-ant-api\d*-', re.IGNORECASE), "anthropic"),
    (re.compile(r'\bsk-[a-zA-Z0-9]+\b', re.IGNORECASE), "openai"),
    (re.compile(r'ghp_[a-zA-Z0-9]+', re.IGNORECASE), "github"),
    (re.compile(r'glpat-[a-zA-Z0-9_-]+', re.IGNORECASE), "gitlab"),
    (re.compile(r'AKIA[0-9A-Z]{16}', re.IGNORECASE), "aws"),
    (re.compile(r'SG\.[a-zA-Z0-9_-]+', re.IGNORECASE), "sendgrid"),
    (re.compile(r'xoxb-[0-9]+-[0-9]+-[a-zA-Z0-9]+', re.IGNORECASE), "slack"),
]

SERVICE_HINTS: List[Tuple[str, str]] = [
    ("sentry", "sentry"),
    ("sendgrid", "sendgrid"),
    ("cloudflare", "cloudflare"),
    ("aws", "aws"),
    ("github", "github"),
    ("gitlab", "gitlab"),
    ("bitbucket", "bitbucket"),
    ("openai", "openai"),
    ("anthropic", "anthropic"),
    ("stripe", "stripe"),
    ("twilio", "twilio"),
    ("slack", "slack"),
]


# =============================================================================
# ACCOUNTS
# =============================================================================

ACCOUNT_LABEL_LINE = re.compile(
    r'^[-*]?\s*([^:]*(?:account|project)[^:]*)\s*:\s*(.+)$',
    re.IGNORECASE,
)


# =============================================================================
# PROVIDER KEYWORDS
# =============================================================================

# Checked in order; matched on word boundaries
PROVIDER_KEYWORDS: List[Tuple[str, ProviderType]] = [
    ("aws", ProviderType.AWS),
    ("amazon", ProviderType.AWS),
    ("ec2", ProviderType.AWS),
    ("s3", ProviderType.AWS),
    ("lambda", ProviderType.AWS),
    ("gcp", ProviderType.GCP),
    ("google cloud", ProviderType.GCP),
    ("google", ProviderType.GCP),
    ("azure", ProviderType.AZURE),
    ("microsoft", ProviderType.AZURE),
    ("digitalocean", ProviderType.DIGITALOCEAN),
    ("digital ocean", ProviderType.DIGITALOCEAN),
    ("droplet", ProviderType.DIGITALOCEAN),
    ("cloudflare", ProviderType.CLOUDFLARE),
    ("firebase", ProviderType.FIREBASE),
    ("vercel", ProviderType.VERCEL),
    ("sentry", ProviderType.SENTRY),
    ("github", ProviderType.GITHUB),
    ("bitbucket", ProviderType.BITBUCKET),
    ("gitlab", ProviderType.GITLAB),
]

PROVIDER_KEYWORD_PATTERNS: List[Tuple[re.Pattern, ProviderType]] = [
    (re.compile(rf'\b{re.escape(keyword)}\b'), provider)
    for keyword, provider in PROVIDER_KEYWORDS
]
