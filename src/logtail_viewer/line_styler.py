"""
Coloring of log lines for terminal display.

Lines mentioning ``[Error`` or ``[Warning`` are colored as a whole. Other
lines get their leading ``[Tag]`` groups colored by tag name, and the rest
of the message in white.

The tag table is an immutable mapping built once at import time and only
read afterwards.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from rich.text import Text

# Display colors (hex, as in the desktop theme this viewer mirrors)
RED = "#FF0000"
YELLOW = "#FFFF00"
WHITE = "#FFFFFF"
GRAY = "#808080"

# First matching substring wins, so order matters ("Spending" before "SPENT")
TAG_COLORS: Tuple[Tuple[str, str], ...] = (
    ("Economy", "#FFA500"),
    ("Spending", "#FFA07A"),
    ("Food", "#FFFF00"),
    ("Military", "#FF6666"),
    ("Religion", "#CC99FF"),
    ("Coastal", "#6699FF"),
    ("Diplomacy", "#32CD32"),
    ("SPENT", "#E65100"),
    ("Knights", "#B388FF"),
    ("AutoStart", "#607D8B"),
    ("Spectator", "#00BCD4"),
)


@dataclass(frozen=True)
class StyledSpan:
    """A run of text with one color."""

    text: str
    color: str
    bold: bool = False


def tag_color(tag_with_brackets: str) -> str:
    """Color for a ``[Tag]`` group; unknown tags are gray."""
    tag = tag_with_brackets.strip("[]").lower()
    for name, color in TAG_COLORS:
        if name.lower() in tag:
            return color
    return GRAY


def strip_prefix(text: str, prefix: Optional[str]) -> str:
    """Remove ``prefix`` (case-insensitive) and the whitespace after it."""
    if prefix and text.lower().startswith(prefix.lower()):
        return text[len(prefix):].lstrip()
    return text


def style_line(text: str, prefix: Optional[str] = None) -> List[StyledSpan]:
    """
    Split a line into colored spans.

    Args:
        text: Line content
        prefix: Optional prefix to strip first (e.g. a logger source name)

    Returns:
        Spans in display order (empty for empty lines)
    """
    text = strip_prefix(text, prefix)
    if not text:
        return []

    lowered = text.lower()
    if "[error" in lowered:
        return [StyledSpan(text, RED)]
    if "[warning" in lowered:
        return [StyledSpan(text, YELLOW)]

    spans: List[StyledSpan] = []
    remaining = text
    while remaining and remaining.lstrip().startswith("["):
        remaining = remaining.lstrip()
        close = remaining.find("]")
        if close == -1:
            break
        tag = remaining[: close + 1]
        spans.append(StyledSpan(tag, tag_color(tag), bold=True))
        remaining = remaining[close + 1:].lstrip()
        if remaining:
            spans.append(StyledSpan(" ", WHITE))

    if remaining:
        spans.append(StyledSpan(remaining, WHITE))
    return spans


def span_style(span: StyledSpan) -> str:
    return f"bold {span.color}" if span.bold else span.color


def to_text(spans: List[StyledSpan]) -> Text:
    """Build a rich Text for terminal output."""
    text = Text()
    for span in spans:
        text.append(span.text, style=span_style(span))
    return text
