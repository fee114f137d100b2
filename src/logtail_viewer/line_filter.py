# Copyright (c) 2025 Stephen Clau

# This file is part of Logtail Viewer.

# Logtail Viewer is dual-licensed:

# 1. GNU Affero General Public License v3.0 (AGPL-3.0)
#    See LICENSE file for full terms

# 2. Commercial License
#    For proprietary use without AGPL requirements
#    Contact: licensing@laudiversified.com

# SPDX-License-Identifier: AGPL-3.0-only OR Commercial

"""
Include/exclude filtering of log lines for display.

Exclude terms are checked first: a line containing any of them is hidden.
Then, if include text is set, only lines containing it are shown. All
matching is case-insensitive substring matching.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

EXCLUDE_SEPARATOR = ";"


def parse_exclude_terms(text: Optional[str]) -> Tuple[str, ...]:
    """
    Split exclude text like ``"heartbeat; debug;"`` into terms.

    Blank terms are dropped and the rest trimmed.
    """
    if not text or not text.strip():
        return ()
    terms = (term.strip() for term in text.split(EXCLUDE_SEPARATOR))
    return tuple(term for term in terms if term)


@dataclass(frozen=True)
class LineFilter:
    """Display predicate over line contents."""

    include_text: str = ""
    exclude_terms: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_text(cls, include_text: Optional[str], exclude_text: Optional[str]) -> "LineFilter":
        return cls(include_text or "", parse_exclude_terms(exclude_text))

    @property
    def active(self) -> bool:
        return bool(self.include_text or self.exclude_terms)

    def matches(self, content: str) -> bool:
        lowered = content.lower()

        for term in self.exclude_terms:
            if term.lower() in lowered:
                return False

        if not self.include_text:
            return True

        return self.include_text.lower() in lowered
