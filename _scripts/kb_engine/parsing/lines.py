"""
InfraKB Parsing - Line Tokenizer

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3 - See LICENSE in repository root

Splits a document once into Line records that every extraction pass
shares: stripped text, heading title, key/value split and the section
the line belongs to.
"""

from dataclasses import dataclass
from typing import List, Optional

from . import patterns


@dataclass(frozen=True)
class Line:
    """One document line with its structural context."""
    number: int                    # 1-based
    text: str                      # stripped
    heading: Optional[str] = None  # title if this line is a heading
    key: Optional[str] = None      # label of a `label: value` line
    value: Optional[str] = None
    section: str = ""              # most recent heading title ("" before any)

    @property
    def is_heading(self) -> bool:
        return self.heading is not None

    @property
    def section_lower(self) -> str:
        return self.section.lower()


def tokenize(content: str) -> List[Line]:
    """Tokenize a document into lines. Blank lines are kept for numbering."""
    lines: List[Line] = []
    section = ""

    for number, raw in enumerate(content.split("\n"), start=1):
        text = raw.strip()

        header = patterns.HEADER.match(text)
        if header:
            section = header.group(1).strip()
            lines.append(Line(number=number, text=text, heading=section, section=section))
            continue

        key = value = None
        kv = patterns.KEY_VALUE.match(text)
        if kv:
            key = kv.group(1).strip()
            value = kv.group(2).strip()

        lines.append(Line(number=number, text=text, key=key, value=value, section=section))

    return lines


__all__ = ["Line", "tokenize"]
