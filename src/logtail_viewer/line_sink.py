"""
Observable, ordered collection of delivered log lines.

Mutated only from the thread that owns it (the event loop thread of the
viewer). Subscribers see every structural change: appends and wholesale
clears.
"""
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

import structlog

from .models import LogLine

logger = structlog.get_logger()


@dataclass(frozen=True)
class SinkChange:
    """One structural change of a LineSink."""

    action: str
    """'append' or 'clear'."""

    lines: Tuple[LogLine, ...] = field(default_factory=tuple)
    """Newly appended lines (empty for 'clear')."""

    reason: Optional[str] = None
    """Why the sink was cleared ('truncated', 'deleted'), if known."""


SinkListener = Callable[[SinkChange], None]


class LineSink:
    """Append-only (from the consumer's view) sequence of LogLine."""

    def __init__(self, max_lines: Optional[int] = None, enforce_owner: bool = True):
        """
        Initialize line sink.

        Args:
            max_lines: Keep at most this many lines, dropping the oldest first
            enforce_owner: Reject mutations from threads other than the creating one
        """
        if max_lines is not None and max_lines <= 0:
            raise ValueError(f"max_lines must be > 0, got {max_lines}")

        self.max_lines = max_lines
        self.enforce_owner = enforce_owner
        self._owner = threading.get_ident()
        self._lines: List[LogLine] = []
        self._listeners: List[SinkListener] = []

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[LogLine]:
        return iter(list(self._lines))

    def __getitem__(self, index: int) -> LogLine:
        return self._lines[index]

    def snapshot(self) -> List[str]:
        """Current line contents, oldest first."""
        return [line.content for line in self._lines]

    def subscribe(self, listener: SinkListener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def append(self, lines: Iterable[LogLine]) -> None:
        """Append a batch in order and notify listeners once."""
        self._check_owner("append")
        batch = tuple(lines)
        if not batch:
            return

        self._lines.extend(batch)
        if self.max_lines is not None and len(self._lines) > self.max_lines:
            del self._lines[: len(self._lines) - self.max_lines]

        self._notify(SinkChange("append", batch))

    def clear(self, reason: Optional[str] = None) -> None:
        """Drop every line. Listeners are notified even when already empty."""
        self._check_owner("clear")
        self._lines.clear()
        self._notify(SinkChange("clear", reason=reason))

    def _check_owner(self, operation: str) -> None:
        if self.enforce_owner and threading.get_ident() != self._owner:
            raise RuntimeError(
                f"LineSink.{operation}() called off its owning thread"
            )

    def _notify(self, change: SinkChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                logger.error(
                    "sink_listener_failed",
                    action=change.action,
                    error=str(e),
                    exc_info=True,
                )
