"""
Last-read position for the tracked log file.

Pure state: no I/O happens here. The reader mutates it only while holding
its poll guard.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class PositionTracker:
    """Byte offset of the next unread byte in ``path``."""

    path: Path
    offset: int = 0
    inode: Optional[int] = None
    """Identity of the file the offset belongs to (None when unknown)."""
    ends_in_cr: bool = False
    """Last consumed byte was a CR, so a leading LF completes that CRLF."""

    def __post_init__(self) -> None:
        if not isinstance(self.path, Path):
            self.path = Path(self.path)

        if self.offset < 0:
            raise ValueError(f"offset must be >= 0, got {self.offset}")

    def advance(self, consumed: int) -> int:
        """Move forward by ``consumed`` bytes and return the new offset."""
        if consumed < 0:
            raise ValueError(f"cannot advance by a negative amount: {consumed}")
        self.offset += consumed
        return self.offset

    def reset(self) -> None:
        """Rewind to the start of the file (truncation, rotation or deletion)."""
        self.offset = 0
        self.ends_in_cr = False

    def is_beyond(self, length: int) -> bool:
        """True when the file is now shorter than what was already read."""
        return length < self.offset

    def is_at(self, length: int) -> bool:
        return length == self.offset

    def is_replaced(self, inode: Optional[int]) -> bool:
        """
        True when a different file now sits at ``path``.

        Platforms that report no inode (0) never count as replaced.
        """
        if not inode or not self.inode or self.offset == 0:
            return False
        return inode != self.inode
