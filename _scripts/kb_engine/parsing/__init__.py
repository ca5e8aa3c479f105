"""
InfraKB Parsing - Document Parsing Package

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Heuristic extraction of servers, SSH endpoints, domains, credential
mentions and account identifiers from free-form documents.
"""

from .lines import Line, tokenize
from .extractors import (
    SshCommand,
    parse_ssh_command,
    extract_ssh_commands,
    extract_sections,
    extract_ip_addresses,
    extract_domains,
    detect_api_key_service,
    extract_api_keys,
    extract_account_ids,
    extract_key_value_pairs,
)
from .servers import (
    DetectedServer,
    ServerBuilder,
    clean_server_name,
    detect_provider,
    extract_servers,
)
from .structured import normalise_structured
from .parser import ParseResult, DocumentParser


__all__ = [
    "Line",
    "tokenize",
    "SshCommand",
    "parse_ssh_command",
    "extract_ssh_commands",
    "extract_sections",
    "extract_ip_addresses",
    "extract_domains",
    "detect_api_key_service",
    "extract_api_keys",
    "extract_account_ids",
    "extract_key_value_pairs",
    "DetectedServer",
    "ServerBuilder",
    "clean_server_name",
    "detect_provider",
    "extract_servers",
    "normalise_structured",
    "ParseResult",
    "DocumentParser",
]
