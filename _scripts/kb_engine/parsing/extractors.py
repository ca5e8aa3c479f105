"""
InfraKB Parsing - Extraction Passes

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

One pass per data category, each over the shared tokenized lines.
Every pass is deterministic and keeps first-seen order.

Credential values are never returned by any pass. API key mentions
carry the label, the inferred service and a redaction flag only.
"""

import ipaddress
from dataclasses import dataclass
from typing import Dict, List, Optional

from kb_engine.core.types import AccountIdMention, ApiKeyMention

from . import patterns
from .lines import Line


# =============================================================================
# SSH COMMANDS
# =============================================================================

@dataclass
class SshCommand:
    """An SSH invocation found in a document."""
    user: str
    host: str
    port: int = 22
    key_path: Optional[str] = None
    full_command: str = ""

    def to_dict(self) -> Dict:
        return {
            "user": self.user,
            "host": self.host,
            "port": self.port,
            "key_path": self.key_path,
            "full_command": self.full_command,
        }


def parse_ssh_command(command: str) -> Optional[SshCommand]:
    """
    Parse one SSH command string.

    -i takes a quoted or unquoted path, -p a port (default 22), and the
    command must end in user@host. Returns None otherwise.
    """
    command = command.strip().rstrip("`").strip()

    key_match = patterns.SSH_KEY_QUOTED.search(command) or patterns.SSH_KEY_BARE.search(command)
    port_match = patterns.SSH_PORT.search(command)
    target = patterns.SSH_USER_HOST.search(command)
    if not target:
        return None

    return SshCommand(
        user=target.group(1),
        host=target.group(2),
        port=int(port_match.group(1)) if port_match else 22,
        key_path=key_match.group(1) if key_match else None,
        full_command=command,
    )


def _find_ssh_start(text: str) -> int:
    """Index of the first `ssh ` token followed by a flag or user@, else -1."""
    for match in patterns.SSH_INVOCATION.finditer(text):
        after = text[match.end():].strip()
        if after.startswith("-") or patterns.SSH_TARGET_START.match(after):
            return match.start()
    return -1


def extract_ssh_commands(lines: List[Line]) -> List[SshCommand]:
    """SSH commands embedded anywhere in a line, at most one per line."""
    commands = []
    for line in lines:
        idx = _find_ssh_start(line.text)
        if idx == -1:
            continue
        candidate = line.text[idx:]
        if "@" not in candidate:
            continue
        parsed = parse_ssh_command(candidate)
        if parsed:
            commands.append(parsed)
    return commands


# =============================================================================
# SECTIONS, IPS, DOMAINS
# =============================================================================

def extract_sections(lines: List[Line]) -> List[str]:
    """Heading titles in document order."""
    return [line.heading for line in lines if line.is_heading]


def is_valid_ipv4(value: str) -> bool:
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


def extract_ip_addresses(lines: List[Line]) -> List[str]:
    """Valid IPv4 addresses, deduplicated, in first-seen order."""
    found: List[str] = []
    for line in lines:
        for match in patterns.IPV4.finditer(line.text):
            ip = match.group(0)
            if is_valid_ipv4(ip) and ip not in found:
                found.append(ip)
    return found


def extract_domains(lines: List[Line]) -> List[str]:
    """Lower-cased hostnames, excluding IPs, localhost and file names."""
    found: List[str] = []
    for line in lines:
        for match in patterns.DOMAIN.finditer(line.text):
            domain = match.group(0).lower()
            if domain == "localhost" or domain[0].isdigit():
                continue
            if domain.rsplit(".", 1)[-1] in patterns.FILE_EXTENSION_LABELS:
                continue
            if domain not in found:
                found.append(domain)
    return found


# =============================================================================
# API KEY MENTIONS
# =============================================================================

def detect_api_key_service(label: str, value: str, section: str = "") -> str:
    """
    Infer the service a credential belongs to.

    Known key prefixes in the value win, then keyword hints in the
    label and value, then hints in the section title.
    """
    for pattern, service in patterns.API_KEY_PATTERNS:
        if pattern.search(value):
            return service

    combined = f"{label} {value}".lower()
    for hint, service in patterns.SERVICE_HINTS:
        if hint in combined:
            return service

    section = section.lower()
    for hint, service in patterns.SERVICE_HINTS:
        if hint in section:
            return service

    return "unknown"


def extract_api_keys(lines: List[Line]) -> List[ApiKeyMention]:
    """
    Credential mentions: labelled lines first, then bare key prefixes.

    A line captured by its label is never reported again as a bare
    prefix match, and a bare line yields at most one mention.
    """
    mentions: List[ApiKeyMention] = []

    for line in lines:
        if not line.text or line.is_heading:
            continue

        labelled = patterns.CREDENTIAL_LABEL_LINE.match(line.text)
        if labelled:
            label = labelled.group(1).strip()
            value = labelled.group(2).strip()
            mentions.append(ApiKeyMention(
                name=label,
                service=detect_api_key_service(label, value, line.section),
                is_redacted=bool(patterns.REDACTION_MARKER.search(value)),
                line_number=line.number,
            ))
            continue

        for pattern, service in patterns.API_KEY_PATTERNS:
            if pattern.search(line.text):
                mentions.append(ApiKeyMention(
                    name=f"{service.capitalize()} Key",
                    service=service,
                    is_redacted=False,
                    line_number=line.number,
                ))
                break

    return mentions


# =============================================================================
# ACCOUNT IDS
# =============================================================================

def _account_provider(label: str, section: str) -> str:
    if "aws" in label or "aws" in section or "amazon" in section:
        return "aws"
    if "gcp" in label or "project id" in label or "gcp" in section or "google" in section:
        return "gcp"
    if "azure" in label or "azure" in section:
        return "azure"
    if "digitalocean" in section:
        return "digitalocean"
    return "unknown"


def extract_account_ids(lines: List[Line]) -> List[AccountIdMention]:
    """
    Account, project and subscription identifiers.

    Labelled lines are always captured. Bare 12-digit numbers need AWS
    context and bare UUIDs need Azure context on the line or section.
    """
    accounts: List[AccountIdMention] = []

    def add(provider: str, account_id: str) -> None:
        if not any(a.id == account_id for a in accounts):
            accounts.append(AccountIdMention(provider=provider, id=account_id))

    for line in lines:
        if not line.text or line.is_heading:
            continue

        section = line.section_lower
        text_lower = line.text.lower()

        labelled = patterns.ACCOUNT_LABEL_LINE.match(line.text)
        if labelled:
            add(_account_provider(labelled.group(1).lower(), section), labelled.group(2).strip())
            continue

        numeric = patterns.AWS_ACCOUNT.search(line.text)
        if numeric:
            aws_context = (
                "aws" in section or "amazon" in section
                or "aws" in text_lower or "account" in text_lower
            )
            if aws_context:
                add("aws", numeric.group(1))

        uuid = patterns.UUID.search(line.text)
        if uuid:
            azure_context = (
                "azure" in text_lower or "subscription" in text_lower or "azure" in section
            )
            if azure_context:
                add("azure", uuid.group(0))

    return accounts


# =============================================================================
# KEY-VALUE PAIRS
# =============================================================================

def extract_key_value_pairs(lines: List[Line]) -> Dict[str, str]:
    """
    Flat label -> value map.

    Credential-looking labels are left out so secrets never land in the
    open map. The first value for a label wins.
    """
    pairs: Dict[str, str] = {}
    for line in lines:
        if line.key is None or line.key.startswith("#"):
            continue
        if patterns.CREDENTIAL_LABEL.search(line.key):
            continue
        pairs.setdefault(line.key, line.value)
    return pairs


__all__ = [
    "SshCommand",
    "parse_ssh_command",
    "extract_ssh_commands",
    "extract_sections",
    "is_valid_ipv4",
    "extract_ip_addresses",
    "extract_domains",
    "detect_api_key_service",
    "extract_api_keys",
    "extract_account_ids",
    "extract_key_value_pairs",
]
