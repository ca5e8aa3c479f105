"""
InfraKB CLI - Command line interface for the infrastructure knowledge base

Copyright (c) 2025 Brent Lefebure / EhkoLabs

Usage:
    python kb_cli.py parse <file> [--json]                  - Show what a document yields
    python kb_cli.py providers                              - List providers and servers
    python kb_cli.py add-provider <type> [name]             - Add a provider
    python kb_cli.py add-server <provider_id> <name> <ip> [user]
                                                            - Add a server
    python kb_cli.py import <provider_id> <file>            - Import a document
    python kb_cli.py context [--query "..."]                - Print assistant context
    python kb_cli.py ssh <server name>                      - Print the SSH command
    python kb_cli.py credentials                            - List stored credentials
    python kb_cli.py add-credential <name> <service>        - Store a secret (prompts)
    python kb_cli.py stats                                  - Knowledge base stats
    python kb_cli.py config [--help]                        - Validate configuration
"""

import sys
import json
import getpass
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from kb_engine import (
    KBConfig,
    KBError,
    DocumentParser,
    FileType,
    KnowledgeBaseManager,
)
from kb_engine.config_validator import validate_config, get_config_summary, print_config_help
from kb_engine.logging_utils import setup_logging


def _manager() -> KnowledgeBaseManager:
    config = KBConfig.from_env()
    setup_logging(config.log_level, json_output=config.log_json, log_file=config.log_file)
    kb = KnowledgeBaseManager(config)
    kb.initialize()
    return kb


def _read_file(path: str) -> str:
    file_path = Path(path)
    if not file_path.exists():
        print(f"File not found: {path}")
        sys.exit(1)
    return file_path.read_text(encoding="utf-8", errors="replace")


# =============================================================================
# DOCUMENT COMMANDS
# =============================================================================

def cmd_parse(path: str, as_json: bool = False):
    """Parse a document without storing anything."""
    content = _read_file(path)
    result = DocumentParser().parse(content, FileType.from_filename(path))

    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
        return

    print(f"\nDocument: {path}")
    print("-" * 50)
    print(f"Sections: {len(result.sections)}")
    print(f"IP addresses: {len(result.ip_addresses)}")
    print(f"Domains: {len(result.domains)}")
    print(f"SSH commands: {len(result.ssh_commands)}")
    print(f"Credential mentions: {len(result.api_keys)}")
    print(f"Account ids: {len(result.account_ids)}")

    if result.servers:
        print(f"\nServers ({len(result.servers)}):")
        for server in result.servers:
            provider = server.provider.value if server.provider else "?"
            print(f"  - {server.name} [{provider}] {server.ssh_user or 'root'}@{server.ip}")

    if result.api_keys:
        print("\nCredential mentions (values not shown):")
        for key in result.api_keys:
            marker = " (redacted)" if key.is_redacted else ""
            print(f"  - {key.name} -> {key.service}{marker}")


def cmd_import(provider_id: str, path: str):
    kb = _manager()
    document = kb.import_document(provider_id, Path(path).name, _read_file(path))
    data = document.extracted_data
    print(f"\nImported {document.filename} as {document.id}")
    print(f"  Servers found: {len(data.servers)}")
    print(f"  Domains found: {len(data.domains)}")
    print(f"  Credential mentions: {len(data.api_keys)}")


# =============================================================================
# PROVIDER & SERVER COMMANDS
# =============================================================================

def cmd_providers():
    kb = _manager()
    providers = kb.get_providers()
    if not providers:
        print("No providers configured. Add one with: kb_cli.py add-provider <type>")
        return

    for provider in providers:
        print(f"\n{provider.emoji} {provider.name} ({provider.type.value}) - {provider.id}")
        for server in provider.servers:
            print(f"    {server.name}: {server.ssh_command}")


def cmd_add_provider(provider_type: str, name: str = None):
    kb = _manager()
    provider = kb.add_provider(provider_type, name=name)
    print(f"Added {provider.name}: {provider.id}")


def cmd_add_server(provider_id: str, name: str, ip: str, user: str = None):
    kb = _manager()
    server = kb.add_server(provider_id, name, ip, ssh_user=user)
    if server is None:
        print(f"Provider not found: {provider_id}")
        sys.exit(1)
    print(f"Added {server.name}: {server.ssh_command}")


def cmd_ssh(server_name: str):
    kb = _manager()
    command = kb.get_ssh_command(server_name)
    if command is None:
        print(f"No server matching '{server_name}'")
        sys.exit(1)
    print(command)


# =============================================================================
# CREDENTIAL COMMANDS
# =============================================================================

def _unlock(kb: KnowledgeBaseManager):
    password = getpass.getpass("Master password: ")
    if not kb.unlock(password):
        print("Wrong master password")
        sys.exit(1)


def cmd_credentials():
    kb = _manager()
    credentials = kb.list_credentials()
    if not credentials:
        print("No credentials stored.")
        return
    for cred in credentials:
        print(f"  {cred['id']}  {cred['name']} ({cred['service']})  last used: {cred['last_used_at'] or 'never'}")


def cmd_add_credential(name: str, service: str):
    kb = _manager()
    _unlock(kb)
    value = getpass.getpass(f"Value for {name}: ")
    try:
        credential = kb.add_credential(name, service, value)
    finally:
        kb.close()
    print(f"Stored {credential.name}: {credential.id}")


# =============================================================================
# CONTEXT & STATS
# =============================================================================

def cmd_context(args: list):
    kb = _manager()
    if "--query" in args:
        try:
            query = args[args.index("--query") + 1]
        except IndexError:
            print("Usage: kb_cli.py context --query \"your question\"")
            sys.exit(1)
        text = kb.get_relevant_context(query)
    else:
        text = kb.generate_ai_context()
    print(text or "(no infrastructure context)")


def cmd_stats():
    kb = _manager()
    stats = kb.get_stats()
    print(f"\n{'='*40}")
    print(" Knowledge Base")
    print(f"{'='*40}")
    print(f"  Providers:   {stats['provider_count']}")
    print(f"  Servers:     {stats['server_count']}")
    print(f"  Credentials: {stats['credential_count']}")
    print(f"  Documents:   {stats['document_count']}")


def cmd_config(args: list):
    if "--help" in args:
        print_config_help()
        return

    result = validate_config()
    for env_var, value in get_config_summary().items():
        print(f"  {env_var} = {value}")
    for error in result.errors:
        print(f"ERROR: {error}")
    for warning in result.warnings:
        print(f"WARNING: {warning}")
    print("\nConfiguration OK" if result.valid else "\nConfiguration has errors")
    if not result.valid:
        sys.exit(1)


# =============================================================================
# MAIN
# =============================================================================

def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    cmd = sys.argv[1].lower()
    args = sys.argv[2:]

    try:
        if cmd == "parse" and args:
            cmd_parse(args[0], as_json="--json" in args)

        elif cmd == "providers":
            cmd_providers()

        elif cmd == "add-provider" and args:
            cmd_add_provider(args[0], args[1] if len(args) > 1 else None)

        elif cmd == "add-server" and len(args) >= 3:
            cmd_add_server(args[0], args[1], args[2], args[3] if len(args) > 3 else None)

        elif cmd == "import" and len(args) >= 2:
            cmd_import(args[0], args[1])

        elif cmd == "context":
            cmd_context(args)

        elif cmd == "ssh" and args:
            cmd_ssh(" ".join(args))

        elif cmd == "credentials":
            cmd_credentials()

        elif cmd == "add-credential" and len(args) >= 2:
            cmd_add_credential(args[0], args[1])

        elif cmd == "stats":
            cmd_stats()

        elif cmd == "config":
            cmd_config(args)

        else:
            print(__doc__)
            sys.exit(1)

    except KBError as e:
        print(f"Error: {e.user_message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
