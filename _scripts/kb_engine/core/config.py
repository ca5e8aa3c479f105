"""
InfraKB Core - Configuration v1.0

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Runtime configuration for the knowledge base.
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional
import json
import os
from pathlib import Path

from kb_engine.errors import ValidationError


MIN_PBKDF2_ITERATIONS = 100_000
DEFAULT_DATA_DIR = "~/.infrakb"


@dataclass
class KBConfig:
    """
    Configuration for the knowledge base.
    
    Key derivation cost can be raised but never lowered below
    MIN_PBKDF2_ITERATIONS.
    """
    
    # =========================================================================
    # STORAGE
    # =========================================================================
    
    data_dir: str = DEFAULT_DATA_DIR           # Root of knowledge/ and secrets/
    pbkdf2_iterations: int = MIN_PBKDF2_ITERATIONS
    
    # =========================================================================
    # PARSING
    # =========================================================================
    
    max_document_chars: int = 1_000_000        # Reject imports beyond this
    
    # =========================================================================
    # LOGGING
    # =========================================================================
    
    log_level: str = "INFO"
    log_json: bool = False
    log_file: Optional[str] = None
    
    def __post_init__(self):
        if self.pbkdf2_iterations < MIN_PBKDF2_ITERATIONS:
            raise ValidationError(
                "pbkdf2_iterations",
                f"must be at least {MIN_PBKDF2_ITERATIONS}",
            )
        if self.max_document_chars <= 0:
            raise ValidationError("max_document_chars", "must be positive")
    
    # =========================================================================
    # METHODS
    # =========================================================================
    
    @property
    def data_path(self) -> Path:
        """Expanded data directory."""
        return Path(self.data_dir).expanduser()
    
    def to_dict(self) -> Dict[str, Any]:
        """Serialise to dictionary."""
        return {
            "data_dir": self.data_dir,
            "pbkdf2_iterations": self.pbkdf2_iterations,
            "max_document_chars": self.max_document_chars,
            "log_level": self.log_level,
            "log_json": self.log_json,
            "log_file": self.log_file,
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KBConfig":
        """Create config from dictionary."""
        return cls(**{k: v for k, v in data.items() if hasattr(cls, k)})
    
    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
    
    @classmethod
    def load(cls, path: Path) -> "KBConfig":
        """Load config from JSON file."""
        with open(path, 'r') as f:
            return cls.from_dict(json.load(f))
    
    @classmethod
    def from_env(cls) -> "KBConfig":
        """Build config from INFRAKB_* environment variables."""
        values: Dict[str, Any] = {}
        if os.environ.get("INFRAKB_HOME"):
            values["data_dir"] = os.environ["INFRAKB_HOME"]
        if os.environ.get("INFRAKB_PBKDF2_ITERATIONS"):
            try:
                values["pbkdf2_iterations"] = int(os.environ["INFRAKB_PBKDF2_ITERATIONS"])
            except ValueError:
                raise ValidationError("INFRAKB_PBKDF2_ITERATIONS", "must be an integer")
        if os.environ.get("INFRAKB_MAX_DOCUMENT_CHARS"):
            try:
                values["max_document_chars"] = int(os.environ["INFRAKB_MAX_DOCUMENT_CHARS"])
            except ValueError:
                raise ValidationError("INFRAKB_MAX_DOCUMENT_CHARS", "must be an integer")
        if os.environ.get("INFRAKB_LOG_LEVEL"):
            values["log_level"] = os.environ["INFRAKB_LOG_LEVEL"].upper()
        if os.environ.get("INFRAKB_LOG_JSON"):
            values["log_json"] = os.environ["INFRAKB_LOG_JSON"].lower() == "true"
        if os.environ.get("INFRAKB_LOG_FILE"):
            values["log_file"] = os.environ["INFRAKB_LOG_FILE"]
        return cls(**values)
    
    @classmethod
    def for_testing(cls, data_dir: Path) -> "KBConfig":
        """Create config rooted in a throwaway directory."""
        return cls(data_dir=str(data_dir), log_level="DEBUG")


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = ["KBConfig", "MIN_PBKDF2_ITERATIONS", "DEFAULT_DATA_DIR"]
