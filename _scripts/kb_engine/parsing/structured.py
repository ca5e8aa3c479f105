"""
InfraKB Parsing - Structured Documents

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Flattens JSON and YAML documents into heading + `- key: value` text so
the line-based passes treat nested server maps like Markdown sections.
"""

import json
import logging
from typing import Any, List

import yaml

from kb_engine.core.types import FileType

logger = logging.getLogger(__name__)

MAX_HEADING_DEPTH = 6


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _item_title(item: dict, fallback: str) -> str:
    for key in ("name", "title", "hostname", "id"):
        if isinstance(item.get(key), (str, int)) and str(item[key]).strip():
            return str(item[key])
    return fallback


def _emit(data: Any, depth: int, out: List[str]) -> None:
    heading = "#" * min(depth, MAX_HEADING_DEPTH)

    if isinstance(data, list):
        for i, item in enumerate(data, start=1):
            if isinstance(item, dict):
                out.append(f"{heading} {_item_title(item, f'Item {i}')}")
                _emit(item, depth + 1, out)
            else:
                out.append(f"- {_scalar(item)}")
        return

    if not isinstance(data, dict):
        out.append(_scalar(data))
        return

    nested = []
    for key, value in data.items():
        if isinstance(value, dict) or (isinstance(value, list) and any(isinstance(v, dict) for v in value)):
            nested.append((key, value))
        elif isinstance(value, list):
            out.append(f"- {key}: {', '.join(_scalar(v) for v in value)}")
        elif value is not None:
            out.append(f"- {key}: {_scalar(value)}")

    # Scalars first so they stay inside the current section
    for key, value in nested:
        if isinstance(value, dict):
            out.append(f"{heading} {key}")
            _emit(value, depth + 1, out)
        else:
            _emit(value, depth, out)


def normalise_structured(content: str, file_type: FileType) -> str:
    """
    Flatten a JSON or YAML document to Markdown-like text.

    Markdown and plain text pass through unchanged, as does anything
    that fails to load or loads to a bare scalar.
    """
    if file_type not in (FileType.JSON, FileType.YAML):
        return content

    try:
        if file_type == FileType.JSON:
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        logger.warning(f"Structured document did not load, parsing as text: {type(e).__name__}")
        return content

    if not isinstance(data, (dict, list)):
        return content

    out: List[str] = []
    _emit(data, 1, out)
    return "\n".join(out)


__all__ = ["normalise_structured"]
