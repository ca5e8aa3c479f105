"""
InfraKB - AI Context v1.0

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Builds the text block appended to an assistant's system prompt.

Only four facts per provider ever appear: display name, type label,
region and server names. Each user-supplied value is passed through
the ContextRedactor before it is written.
"""

import re
from typing import Iterable, List

from kb_engine.core.types import CloudProvider
from kb_engine.redaction import ContextRedactor

GENERIC_INFRA_KEYWORDS = ("server", "ssh", "logs", "deploy", "cloud", "database", "api")

_GENERIC_INFRA = re.compile(r'\b(?:' + "|".join(GENERIC_INFRA_KEYWORDS) + r')', re.IGNORECASE)

FULL_CONTEXT_HEADER = [
    "## AVAILABLE INFRASTRUCTURE (Local Knowledge Base)",
    "",
    "The user has configured the following cloud infrastructure locally.",
    "When they ask about servers or deployments, reference these by NAME.",
    "The actual credentials are stored LOCALLY and used by the app to execute commands.",
    "You do NOT have access to IPs, SSH keys, or API credentials.",
    "",
]

FULL_CONTEXT_FOOTER = [
    "**To connect to a server:**",
    "1. Tell the user which server you want to connect to BY NAME",
    "2. The app will use locally-stored credentials to execute",
    "3. You will receive the OUTPUT (logs, results) to analyze",
    "4. You NEVER see the actual credentials, IPs, or SSH keys",
]

RELEVANT_CONTEXT_HEADER = ["## Relevant Infrastructure", ""]
RELEVANT_CONTEXT_FOOTER = [
    "",
    "**Note:** Credentials are stored locally. Ask the user to connect to a server by NAME.",
]


def _provider_block(provider: CloudProvider, redactor: ContextRedactor, compact: bool) -> List[str]:
    lines = [
        f"### {redactor.scrub(provider.emoji)} {redactor.scrub(provider.name)}",
        f"- Type: {provider.type_label}",
    ]
    if provider.connection.region:
        lines.append(f"- Region: {redactor.scrub(provider.connection.region)}")

    if provider.servers:
        if compact:
            lines.append(f"- Servers: {len(provider.servers)} configured")
        else:
            lines.append(f"- Servers configured: {len(provider.servers)}")
            lines.append("- Server names:")
        for server in provider.servers:
            lines.append(f'  - "{redactor.scrub(server.name)}"')

    lines.append("")
    return lines


def build_ai_context(providers: Iterable[CloudProvider], redactor: ContextRedactor) -> str:
    """Full context for every provider. Empty string when there are none."""
    providers = list(providers)
    if not providers:
        return ""

    lines = list(FULL_CONTEXT_HEADER)
    for provider in providers:
        lines.extend(_provider_block(provider, redactor, compact=False))
    lines.extend(FULL_CONTEXT_FOOTER)
    return "\n".join(lines) + "\n"


def find_relevant_providers(providers: Iterable[CloudProvider], query: str) -> List[CloudProvider]:
    """Providers whose name, type or a server name appears in the query."""
    query_lower = query.lower()
    relevant = []
    for provider in providers:
        names = [provider.name, provider.type.value] + [s.name for s in provider.servers]
        if any(name and name.lower() in query_lower for name in names):
            relevant.append(provider)
    return relevant


def build_relevant_context(
    providers: Iterable[CloudProvider],
    query: str,
    redactor: ContextRedactor,
) -> str:
    """
    Context narrowed to the providers a query mentions.

    With no specific match, a query that talks about infrastructure in
    general gets the full context; anything else gets an empty string.
    """
    providers = list(providers)
    relevant = find_relevant_providers(providers, query)

    if not relevant:
        if _GENERIC_INFRA.search(query):
            return build_ai_context(providers, redactor)
        return ""

    lines = list(RELEVANT_CONTEXT_HEADER)
    for provider in relevant:
        lines.extend(_provider_block(provider, redactor, compact=True))
    lines.extend(RELEVANT_CONTEXT_FOOTER)
    return "\n".join(lines) + "\n"


__all__ = [
    "GENERIC_INFRA_KEYWORDS",
    "build_ai_context",
    "find_relevant_providers",
    "build_relevant_context",
]
