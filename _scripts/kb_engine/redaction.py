"""
InfraKB - Context Redaction v1.0

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Scrubs infrastructure identifiers out of text bound for an external
AI model. Two detectors run together:

1. Pattern detector: IPv4 addresses, hostnames, key prefixes, instance
   ids, 12-digit account numbers, UUIDs, email addresses
2. Literal detector: every sensitive value actually held in the
   knowledge base (server IPs, domains, key paths, instance ids,
   account ids), matched case-insensitively

Applied to each user-supplied value (provider names, regions, server
names) before it is written into a context block.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Set, Tuple

from kb_engine.parsing import patterns

logger = logging.getLogger(__name__)

# Shorter literals would match ordinary words
MIN_LITERAL_LENGTH = 3


class SensitiveType(Enum):
    """Kinds of identifier that must never reach AI-facing text."""
    IP_ADDRESS = "ip_address"
    DOMAIN = "domain"
    KEY_PATH = "key_path"
    INSTANCE_ID = "instance_id"
    ACCOUNT_ID = "account_id"
    API_KEY = "api_key"
    EMAIL = "email"


PLACEHOLDERS: Dict[SensitiveType, str] = {
    SensitiveType.IP_ADDRESS: "[IP]",
    SensitiveType.DOMAIN: "[DOMAIN]",
    SensitiveType.KEY_PATH: "[KEY_PATH]",
    SensitiveType.INSTANCE_ID: "[INSTANCE_ID]",
    SensitiveType.ACCOUNT_ID: "[ACCOUNT_ID]",
    SensitiveType.API_KEY: "[API_KEY]",
    SensitiveType.EMAIL: "[EMAIL]",
}


@dataclass
class SensitiveMatch:
    """A detected identifier."""
    kind: SensitiveType
    original: str
    start: int
    end: int


@dataclass
class RedactionResult:
    """Result of a redaction operation."""
    redacted_text: str
    matches: List[SensitiveMatch] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return len(self.matches) > 0

    @property
    def kinds_found(self) -> Set[SensitiveType]:
        return {m.kind for m in self.matches}


class ContextRedactor:
    """
    Removes sensitive identifiers from AI-facing strings.

    Usage:
        redactor = ContextRedactor([(SensitiveType.DOMAIN, "example.com")])
        safe = redactor.scrub(server.name)
    """

    PATTERNS: List[Tuple[re.Pattern, SensitiveType]] = [
        (re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b'), SensitiveType.EMAIL),
        (patterns.IPV4, SensitiveType.IP_ADDRESS),
        (patterns.INSTANCE_ID, SensitiveType.INSTANCE_ID),
        (patterns.UUID, SensitiveType.ACCOUNT_ID),
        (patterns.AWS_ACCOUNT, SensitiveType.ACCOUNT_ID),
        (re.compile(r'(?:~|\.{0,2})/[^\s"\']*\.(?:pem|ppk|key|pub)\b|\bid_(?:rsa|ed25519|ecdsa)\b'),
         SensitiveType.KEY_PATH),
    ] + [
        (pattern, SensitiveType.API_KEY) for pattern, _service in patterns.API_KEY_PATTERNS
    ] + [
        (patterns.DOMAIN, SensitiveType.DOMAIN),
    ]

    def __init__(self, sensitive_values: Iterable[Tuple[SensitiveType, str]] = ()):
        self._literals: List[Tuple[re.Pattern, SensitiveType]] = []
        seen = set()
        for kind, value in sensitive_values:
            if not value:
                continue
            value = str(value).strip()
            if len(value) < MIN_LITERAL_LENGTH or value.lower() in seen:
                continue
            seen.add(value.lower())
            self._literals.append((re.compile(re.escape(value), re.IGNORECASE), kind))

        # Longest literals first so "a.example.com" beats "example.com"
        self._literals.sort(key=lambda item: len(item[0].pattern), reverse=True)

    @property
    def literal_count(self) -> int:
        return len(self._literals)

    def detect(self, text: str) -> List[SensitiveMatch]:
        """Non-overlapping matches sorted by position; longer spans win."""
        candidates: List[SensitiveMatch] = []
        for pattern, kind in self._literals + self.PATTERNS:
            for match in pattern.finditer(text):
                if match.end() > match.start():
                    candidates.append(SensitiveMatch(kind, match.group(0), match.start(), match.end()))

        candidates.sort(key=lambda m: (m.start, -(m.end - m.start)))
        matches: List[SensitiveMatch] = []
        last_end = -1
        for candidate in candidates:
            if candidate.start >= last_end:
                matches.append(candidate)
                last_end = candidate.end
        return matches

    def redact(self, text: str) -> RedactionResult:
        matches = self.detect(text)
        if not matches:
            return RedactionResult(redacted_text=text)

        parts = []
        last_end = 0
        for match in matches:
            parts.append(text[last_end:match.start])
            parts.append(PLACEHOLDERS[match.kind])
            last_end = match.end
        parts.append(text[last_end:])

        logger.debug(f"Redacted {len(matches)} identifier(s) from context text")
        return RedactionResult(redacted_text="".join(parts), matches=matches)

    def scrub(self, text: str) -> str:
        """Redacted text only."""
        return self.redact(text).redacted_text


__all__ = [
    "SensitiveType",
    "PLACEHOLDERS",
    "SensitiveMatch",
    "RedactionResult",
    "ContextRedactor",
]
