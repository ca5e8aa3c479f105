"""
InfraKB Parsing - Document Parser v1.0

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Stateless text-to-structure extraction for infrastructure notes.
Runs the extraction passes in a fixed order over one tokenization.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from kb_engine.core.types import AccountIdMention, ApiKeyMention, ExtractedData, FileType

from .extractors import (
    SshCommand,
    extract_account_ids,
    extract_api_keys,
    extract_domains,
    extract_ip_addresses,
    extract_key_value_pairs,
    extract_sections,
    extract_ssh_commands,
)
from .lines import tokenize
from .servers import DetectedServer, extract_servers
from .structured import normalise_structured

logger = logging.getLogger(__name__)


@dataclass
class ParseResult:
    """Everything extracted from one document."""
    ip_addresses: List[str] = field(default_factory=list)
    ssh_commands: List[SshCommand] = field(default_factory=list)
    domains: List[str] = field(default_factory=list)
    api_keys: List[ApiKeyMention] = field(default_factory=list)
    account_ids: List[AccountIdMention] = field(default_factory=list)
    servers: List[DetectedServer] = field(default_factory=list)
    key_value_pairs: Dict[str, str] = field(default_factory=dict)
    sections: List[str] = field(default_factory=list)

    def to_extracted_data(self) -> ExtractedData:
        """The persisted subset attached to an ImportedDocument."""
        return ExtractedData(
            servers=[s.to_dict() for s in self.servers],
            api_keys=list(self.api_keys),
            domains=list(self.domains),
            account_ids=list(self.account_ids),
            key_value_pairs=dict(self.key_value_pairs),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ip_addresses": self.ip_addresses,
            "ssh_commands": [c.to_dict() for c in self.ssh_commands],
            "domains": self.domains,
            "api_keys": [k.to_dict() for k in self.api_keys],
            "account_ids": [a.to_dict() for a in self.account_ids],
            "servers": [s.to_dict() for s in self.servers],
            "key_value_pairs": self.key_value_pairs,
            "sections": self.sections,
        }


class DocumentParser:
    """
    Parses documents to extract infrastructure information.

    Usage:
        result = DocumentParser().parse(text)
        for server in result.servers:
            print(server.name, server.ssh_command)
    """

    def parse(self, content: str, file_type: Optional[FileType] = None) -> ParseResult:
        """
        Parse a document.

        Args:
            content: Raw document text
            file_type: JSON and YAML are flattened before parsing

        Returns:
            ParseResult (empty for blank input)
        """
        if not content or not content.strip():
            return ParseResult()

        if file_type is not None:
            content = normalise_structured(content, file_type)

        lines = tokenize(content)
        result = ParseResult(
            sections=extract_sections(lines),
            ip_addresses=extract_ip_addresses(lines),
            ssh_commands=extract_ssh_commands(lines),
            domains=extract_domains(lines),
            api_keys=extract_api_keys(lines),
            account_ids=extract_account_ids(lines),
            key_value_pairs=extract_key_value_pairs(lines),
            servers=extract_servers(lines),
        )

        logger.debug(
            f"Parsed {len(lines)} lines: {len(result.servers)} servers, "
            f"{len(result.ip_addresses)} IPs, {len(result.api_keys)} key mentions"
        )
        return result


__all__ = ["ParseResult", "DocumentParser"]
