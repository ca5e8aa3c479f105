"""
InfraKB - Config Validation v1.0

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Validates environment configuration before the knowledge base opens,
so a bad data directory fails with a readable message.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Dict, Any

from kb_engine.core.config import DEFAULT_DATA_DIR, MIN_PBKDF2_ITERATIONS

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION SCHEMA
# =============================================================================

@dataclass
class ConfigCheck:
    """A single configuration check."""
    name: str
    env_var: str
    required: bool = False
    pattern: Optional[str] = None  # Regex pattern for validation
    min_value: Optional[int] = None
    description: str = ""
    default: Optional[str] = None


@dataclass
class ConfigValidationResult:
    """Result of configuration validation."""
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    config_values: Dict[str, Any] = field(default_factory=dict)


CONFIG_SCHEMA = [
    ConfigCheck(
        name="Data Directory",
        env_var="INFRAKB_HOME",
        description=f"Directory for knowledge base and secrets (default: {DEFAULT_DATA_DIR})",
        default=DEFAULT_DATA_DIR,
    ),
    ConfigCheck(
        name="PBKDF2 Iterations",
        env_var="INFRAKB_PBKDF2_ITERATIONS",
        pattern=r"^\d+$",
        min_value=MIN_PBKDF2_ITERATIONS,
        description=f"Key derivation rounds (minimum and default: {MIN_PBKDF2_ITERATIONS})",
        default=str(MIN_PBKDF2_ITERATIONS),
    ),
    ConfigCheck(
        name="Max Document Size",
        env_var="INFRAKB_MAX_DOCUMENT_CHARS",
        pattern=r"^\d+$",
        min_value=1,
        description="Largest importable document in characters (default: 1000000)",
        default="1000000",
    ),
    ConfigCheck(
        name="Log Level",
        env_var="INFRAKB_LOG_LEVEL",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level (default: INFO)",
        default="INFO",
    ),
    ConfigCheck(
        name="JSON Logs",
        env_var="INFRAKB_LOG_JSON",
        pattern=r"^(true|false)$",
        description="Emit JSON log lines on the console (default: false)",
        default="false",
    ),
    ConfigCheck(
        name="Log File",
        env_var="INFRAKB_LOG_FILE",
        description="Optional JSON log file path",
    ),
]


# =============================================================================
# VALIDATION FUNCTIONS
# =============================================================================

def validate_config(schema: List[ConfigCheck] = None) -> ConfigValidationResult:
    """
    Validate configuration against schema.

    Args:
        schema: List of ConfigCheck objects (defaults to CONFIG_SCHEMA)

    Returns:
        ConfigValidationResult with errors and warnings
    """
    if schema is None:
        schema = CONFIG_SCHEMA

    result = ConfigValidationResult(valid=True)

    for check in schema:
        value = os.environ.get(check.env_var)
        result.config_values[check.env_var] = value or check.default

        if check.required and not value:
            result.errors.append(
                f"Missing required config: {check.name} ({check.env_var})\n"
                f"  Description: {check.description}"
            )
            result.valid = False
            continue

        if not value:
            continue

        if check.pattern and not re.match(check.pattern, value, re.IGNORECASE):
            result.errors.append(
                f"Invalid {check.name}: value doesn't match expected format\n"
                f"  Environment variable: {check.env_var}\n"
                f"  Expected pattern: {check.pattern}\n"
                f"  Description: {check.description}"
            )
            result.valid = False
            continue

        if check.min_value is not None and int(value) < check.min_value:
            result.errors.append(
                f"Invalid {check.name}: must be at least {check.min_value}\n"
                f"  Environment variable: {check.env_var}"
            )
            result.valid = False

    data_dir = Path(os.environ.get("INFRAKB_HOME") or DEFAULT_DATA_DIR).expanduser()
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
        test_file = data_dir / ".config_test"
        test_file.write_text("test")
        test_file.unlink()
    except OSError as e:
        result.errors.append(
            f"Data directory not writable: {data_dir}\n"
            f"  Error: {e}\n"
            f"  Set INFRAKB_HOME to a writable directory."
        )
        result.valid = False

    if not result.valid:
        logger.warning(f"Configuration invalid: {len(result.errors)} error(s)")

    return result


def get_config_summary() -> Dict[str, Any]:
    """
    Get a summary of current configuration.

    Returns:
        Dict with configuration values (unset values shown as defaults)
    """
    summary = {}
    for check in CONFIG_SCHEMA:
        value = os.environ.get(check.env_var)
        summary[check.env_var] = value or f"(default: {check.default})"
    return summary


def print_config_help():
    """Print help text for all configuration options."""
    print("\n" + "=" * 60)
    print("InfraKB Configuration Options")
    print("=" * 60)

    for check in CONFIG_SCHEMA:
        required = " [REQUIRED]" if check.required else ""
        default = f" (default: {check.default})" if check.default else ""

        print(f"\n{check.env_var}{required}{default}")
        print(f"  {check.description}")
        if check.pattern:
            print(f"  Format: {check.pattern}")

    print("\n" + "=" * 60 + "\n")


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    "ConfigCheck",
    "ConfigValidationResult",
    "CONFIG_SCHEMA",
    "validate_config",
    "get_config_summary",
    "print_config_help",
]
