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
Value types shared by the tailing engine and its consumers.

LogLine is one decoded line. PollOutcome is the tagged result of a single
poll: nothing changed, the view must be cleared (optionally followed by
fresh lines), or new lines were appended.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class LogLine:
    """One decoded log line with its terminator stripped."""

    content: str


class OutcomeKind(Enum):
    """Kind of a poll result."""

    NO_CHANGE = "no_change"
    CLEARED = "cleared"
    APPENDED = "appended"


@dataclass(frozen=True)
class PollOutcome:
    """
    Result of one poll attempt.

    A CLEARED outcome may still carry lines: after a truncation the reader
    restarts from offset 0 in the same pass, and whatever it reads there is
    applied after the clear.
    """

    kind: OutcomeKind
    lines: Tuple[LogLine, ...] = field(default_factory=tuple)
    reason: Optional[str] = None

    @classmethod
    def no_change(cls) -> "PollOutcome":
        return cls(OutcomeKind.NO_CHANGE)

    @classmethod
    def cleared(cls, reason: str, lines: Tuple[LogLine, ...] = ()) -> "PollOutcome":
        return cls(OutcomeKind.CLEARED, tuple(lines), reason)

    @classmethod
    def appended(cls, lines: Tuple[LogLine, ...]) -> "PollOutcome":
        return cls(OutcomeKind.APPENDED, tuple(lines))

    @property
    def changed(self) -> bool:
        return self.kind is not OutcomeKind.NO_CHANGE
