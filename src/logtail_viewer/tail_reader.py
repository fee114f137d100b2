"""
Incremental reader for a growing log file.

Watches a single path and turns newly appended bytes into LogLine batches.
Handles deletion, truncation/rotation and concurrent writers, and never
runs two polls at once.
"""
import codecs
import os
import re
import threading
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import structlog

from .errors import ReadFailure, classify_os_error, failure_key
from .models import LogLine, PollOutcome
from .position_tracker import PositionTracker

logger = structlog.get_logger()

# Same terminators a text reader honours: CRLF, LF, CR
LINE_TERMINATOR = re.compile(r"\r\n|\n|\r")


def split_lines(text: str) -> List[str]:
    """
    Split decoded text into lines, dropping the terminators.

    A trailing fragment without terminator is kept as its own line.
    """
    if not text:
        return []
    parts = LINE_TERMINATOR.split(text)
    if parts[-1] == "":
        parts.pop()
    return parts


class TailReader:
    """
    Owns the tracked offset and the read operation.

    ``poll()`` may be called from any thread. A non-blocking try-lock makes
    concurrent triggers collapse into the poll already in flight. The
    outcome is handed to ``on_outcome`` while the guard is still held, so
    delivery order always matches offset order.
    """

    def __init__(
        self,
        log_path: Path,
        on_outcome: Optional[Callable[[PollOutcome], None]] = None,
        encoding: str = "utf-8",
    ):
        """
        Initialize tail reader.

        Args:
            log_path: Path to the log file to follow
            on_outcome: Called with every changed outcome, inside the poll guard
            encoding: Text encoding of the file (malformed bytes are replaced)
        """
        self.log_path = Path(log_path)
        self.on_outcome = on_outcome
        self.encoding = encoding
        self.tracker = PositionTracker(self.log_path)
        self._guard = threading.Lock()
        self._closed = False
        self._failure: Optional[str] = None

    @property
    def offset(self) -> int:
        return self.tracker.offset

    @property
    def failing(self) -> bool:
        """True while an unrecoverable read failure streak is ongoing."""
        return self._failure is not None

    def close(self) -> None:
        """Dispose the reader. Later polls report no change."""
        self._closed = True

    def reopen(self) -> None:
        """Undo close(); polling resumes from the tracked offset."""
        self._closed = False

    def poll(self) -> PollOutcome:
        """
        Read whatever was appended since the last poll.

        Never raises. Returns immediately with NO_CHANGE when another poll
        is in flight or the reader is closed.

        Returns:
            PollOutcome describing what the consumer must apply
        """
        if self._closed:
            return PollOutcome.no_change()

        if not self._guard.acquire(blocking=False):
            logger.debug("tail_poll_skipped_busy", path=str(self.log_path))
            return PollOutcome.no_change()

        try:
            try:
                outcome = self._poll_locked()
            except OSError as e:
                self._note_failure(e, classify_os_error(e))
                return PollOutcome.no_change()
            except Exception as e:
                self._note_failure(e, ReadFailure.UNRECOVERABLE)
                return PollOutcome.no_change()

            self._note_success()
            if outcome.changed and self.on_outcome is not None:
                try:
                    self.on_outcome(outcome)
                except Exception as e:
                    logger.error(
                        "outcome_delivery_failed",
                        path=str(self.log_path),
                        kind=outcome.kind.value,
                        error=str(e),
                        exc_info=True,
                    )
            return outcome
        finally:
            self._guard.release()

    def _poll_locked(self) -> PollOutcome:
        """Poll body. Caller holds the guard."""
        try:
            # Binary mode: no locks are taken, writers are never blocked
            f = open(self.log_path, "rb")
        except FileNotFoundError:
            if self.tracker.offset > 0:
                logger.info(
                    "log_file_missing",
                    path=str(self.log_path),
                    last_offset=self.tracker.offset,
                )
                self.tracker.reset()
                return PollOutcome.cleared("deleted")
            return PollOutcome.no_change()

        with f:
            stat = os.fstat(f.fileno())
            length = stat.st_size
            reason: Optional[str] = None

            if self.tracker.is_replaced(stat.st_ino):
                logger.info(
                    "log_rotation_detected",
                    path=str(self.log_path),
                    old_inode=self.tracker.inode,
                    new_inode=stat.st_ino,
                )
                self.tracker.reset()
                reason = "rotated"
            self.tracker.inode = stat.st_ino or None

            if self.tracker.is_beyond(length):
                logger.info(
                    "log_file_truncated",
                    path=str(self.log_path),
                    old_offset=self.tracker.offset,
                    new_length=length,
                )
                self.tracker.reset()
                reason = "truncated"

            if self.tracker.is_at(length):
                if reason is not None:
                    return PollOutcome.cleared(reason)
                return PollOutcome.no_change()

            f.seek(self.tracker.offset)
            data = f.read()

        lines, consumed = self._decode(data)
        self.tracker.advance(consumed)

        logger.debug(
            "log_lines_read",
            path=str(self.log_path),
            count=len(lines),
            offset=self.tracker.offset,
        )

        if reason is not None:
            return PollOutcome.cleared(reason, lines)
        if not lines:
            return PollOutcome.no_change()
        return PollOutcome.appended(lines)

    def _decode(self, data: bytes) -> Tuple[Tuple[LogLine, ...], int]:
        """
        Decode a chunk and split it into lines.

        Bytes of an incomplete multi-byte sequence at the end of the chunk
        are not counted as consumed; the next poll reads them again. An LF
        completing a CRLF split across two polls is consumed silently.

        Returns:
            Tuple of (lines, number of bytes consumed)
        """
        skipped = 0
        if self.tracker.ends_in_cr and data.startswith(b"\n"):
            skipped = 1

        decoder = codecs.getincrementaldecoder(self.encoding)(errors="replace")
        text = decoder.decode(data[skipped:], final=False)
        pending, _ = decoder.getstate()
        consumed = len(data) - len(pending)
        if text or skipped:
            self.tracker.ends_in_cr = text.endswith("\r")
        return tuple(LogLine(content) for content in split_lines(text)), consumed

    def _note_failure(self, exc: BaseException, failure: ReadFailure) -> None:
        if failure is ReadFailure.TRANSIENT:
            logger.debug(
                "log_read_contended",
                path=str(self.log_path),
                error=str(exc),
            )
            return

        key = failure_key(exc)
        if key == self._failure:
            return

        self._failure = key
        logger.error(
            "log_read_failed",
            path=str(self.log_path),
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=True,
        )

    def _note_success(self) -> None:
        if self._failure is not None:
            logger.info(
                "log_read_recovered",
                path=str(self.log_path),
                previous_error=self._failure,
            )
            self._failure = None
