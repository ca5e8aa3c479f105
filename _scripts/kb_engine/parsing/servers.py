"""
InfraKB Parsing - Server Extraction

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Walks a document section by section and accumulates one candidate
server per heading.

Field precedence, strongest first:
    1. explicit `label: value` lines (Server IP, SSH User, Port, ...)
    2. values back-filled from an `ssh command:` line
    3. bare IPv4 / instance-id tokens anywhere in the section body
A stronger tier replaces a weaker one; within a tier the first value wins.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from kb_engine.core.types import ProviderType, build_ssh_command

from . import patterns
from .extractors import is_valid_ipv4, parse_ssh_command
from .lines import Line

UNKNOWN_SERVER_NAME = "Unknown Server"

# Precedence tiers
EXPLICIT = 1
SSH_BACKFILL = 2
BARE_TOKEN = 3

_IP_LABEL = re.compile(r'\bip\b')


# =============================================================================
# NAME & PROVIDER HELPERS
# =============================================================================

def clean_server_name(section: str) -> str:
    """Drop parenthetical notes and title-case each word."""
    stripped = re.sub(r'\(.*\)', '', section, count=1).strip()
    return " ".join(w[:1].upper() + w[1:].lower() for w in stripped.split(" "))


def detect_provider(text: str) -> Optional[ProviderType]:
    """First provider keyword found on a word boundary, or None."""
    lower = text.lower()
    for pattern, provider in patterns.PROVIDER_KEYWORD_PATTERNS:
        if pattern.search(lower):
            return provider
    return None


# =============================================================================
# DETECTED SERVER
# =============================================================================

@dataclass
class DetectedServer:
    """A finalized server candidate. Defaults applied, command derived."""
    name: str
    ip: str
    ssh_user: str = "root"
    ssh_port: int = 22
    ssh_key_path: Optional[str] = None
    ssh_command: str = ""
    domain: Optional[str] = None
    provider: Optional[ProviderType] = None
    instance_id: Optional[str] = None
    instance_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "ip": self.ip,
            "ssh_user": self.ssh_user,
            "ssh_port": self.ssh_port,
            "ssh_key_path": self.ssh_key_path,
            "ssh_command": self.ssh_command,
            "domain": self.domain,
            "provider": self.provider.value if self.provider else None,
            "instance_id": self.instance_id,
            "instance_type": self.instance_type,
        }


# =============================================================================
# BUILDER
# =============================================================================

@dataclass
class ServerBuilder:
    """Accumulates server fields for one section."""
    name: Optional[str] = None
    provider: Optional[ProviderType] = None
    _fields: Dict[str, Tuple[int, Any]] = field(default_factory=dict)

    def offer(self, name: str, value: Any, tier: int) -> None:
        """Set a field unless an equal or stronger tier already set it."""
        if value is None or value == "":
            return
        current = self._fields.get(name)
        if current is None or tier < current[0]:
            self._fields[name] = (tier, value)

    def get(self, name: str) -> Any:
        entry = self._fields.get(name)
        return entry[1] if entry else None

    @property
    def has_ip(self) -> bool:
        return self.get("ip") is not None

    def finalize(self) -> DetectedServer:
        """Apply defaults and derive the SSH command."""
        server = DetectedServer(
            name=self.name or UNKNOWN_SERVER_NAME,
            ip=self.get("ip"),
            ssh_user=self.get("ssh_user") or "root",
            ssh_port=self.get("ssh_port") or 22,
            ssh_key_path=self.get("ssh_key_path"),
            domain=self.get("domain"),
            provider=self.provider,
            instance_id=self.get("instance_id"),
            instance_type=self.get("instance_type"),
        )
        server.ssh_command = build_ssh_command(
            server.ssh_key_path, server.ssh_port, server.ssh_user, server.ip
        )
        return server


def _ip_from_value(value: str) -> Optional[str]:
    """First IPv4 in a value, else the value itself if it is a bare hostname."""
    match = patterns.IPV4.search(value)
    if match and is_valid_ipv4(match.group(0)):
        return match.group(0)
    if patterns.DOMAIN.fullmatch(value):
        return value
    return None


def _apply_key_value(builder: ServerBuilder, key: str, value: str) -> None:
    key = key.lower()

    if _IP_LABEL.search(key) or key in ("server ip", "ip address"):
        builder.offer("ip", _ip_from_value(value), EXPLICIT)
    elif "ssh user" in key or key in ("user", "username"):
        builder.offer("ssh_user", value, EXPLICIT)
    elif "ssh key" in key or "key path" in key:
        builder.offer("ssh_key_path", value, EXPLICIT)
    elif "ssh port" in key or key == "port":
        if value.isdecimal():
            builder.offer("ssh_port", int(value), EXPLICIT)
    elif key in ("domain", "domain name"):
        builder.offer("domain", value, EXPLICIT)
    elif "instance id" in key:
        builder.offer("instance_id", value, EXPLICIT)
    elif "instance type" in key:
        builder.offer("instance_type", value, EXPLICIT)
    elif "ssh command" in key:
        parsed = parse_ssh_command(value)
        if parsed:
            builder.offer("ip", parsed.host, SSH_BACKFILL)
            builder.offer("ssh_user", parsed.user, SSH_BACKFILL)
            builder.offer("ssh_port", parsed.port, SSH_BACKFILL)
            builder.offer("ssh_key_path", parsed.key_path, SSH_BACKFILL)


def _apply_bare_tokens(builder: ServerBuilder, text: str) -> None:
    for match in patterns.IPV4.finditer(text):
        if is_valid_ipv4(match.group(0)):
            builder.offer("ip", match.group(0), BARE_TOKEN)
            break

    instance = patterns.INSTANCE_ID.search(text)
    if instance:
        builder.offer("instance_id", instance.group(0), BARE_TOKEN)


# =============================================================================
# PASS
# =============================================================================

def extract_servers(lines: List[Line]) -> List[DetectedServer]:
    """
    One candidate per heading; emitted only if it gathered an IP.

    Key-value lines before the first heading form a nameless candidate
    that finalizes as "Unknown Server". Bare tokens are only scanned
    inside a section.
    """
    servers: List[DetectedServer] = []
    builder = ServerBuilder()

    for line in lines:
        if line.is_heading:
            if builder.has_ip:
                servers.append(builder.finalize())
            builder = ServerBuilder(
                name=clean_server_name(line.heading) or None,
                provider=detect_provider(line.heading),
            )
            continue

        if line.key is not None:
            _apply_key_value(builder, line.key, line.value)

        if line.section and line.text:
            _apply_bare_tokens(builder, line.text)

    if builder.has_ip:
        servers.append(builder.finalize())

    return servers


__all__ = [
    "UNKNOWN_SERVER_NAME",
    "DetectedServer",
    "ServerBuilder",
    "clean_server_name",
    "detect_provider",
    "extract_servers",
]
