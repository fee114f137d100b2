"""
Log file tailer for real-time viewing.

Wires the reader, the change source, the delivery bridge and the line sink
together. The whole file is replayed on startup, then new lines appear as
they are written.
"""
import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

from .change_source import ChangeSource
from .delivery import DeliveryBridge
from .line_sink import LineSink
from .models import PollOutcome
from .tail_reader import TailReader

logger = structlog.get_logger()


class LogTailer:
    """
    Follows one log file and keeps a LineSink up to date.

    Must be started from the event loop that owns the sink; every sink
    mutation happens on that loop.
    """

    def __init__(
        self,
        log_path: Path,
        sink: Optional[LineSink] = None,
        poll_interval: float = 0.1,
        use_notifier: bool = True,
    ):
        """
        Initialize log tailer.

        Args:
            log_path: Path to the log file to follow
            sink: Sink receiving the lines (a fresh one is created if omitted)
            poll_interval: Timer period in seconds
            use_notifier: Also react to filesystem notifications
        """
        self.log_path = Path(log_path)
        self.sink = sink if sink is not None else LineSink()
        self.poll_interval = poll_interval
        self.bridge = DeliveryBridge(self.sink)
        self.reader = TailReader(self.log_path, on_outcome=self.bridge.deliver)
        self.change_source = ChangeSource(
            self.log_path,
            self.reader.poll,
            poll_interval=poll_interval,
            use_notifier=use_notifier,
        )
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start tailing the log file."""
        if self._running:
            logger.warning("log_tailer_already_running", path=str(self.log_path))
            return

        if not self.log_path.exists():
            logger.warning(
                "log_file_not_found",
                path=str(self.log_path),
                message="Will pick it up once it is created",
            )

        self.bridge.bind_loop(asyncio.get_running_loop())
        self.reader.reopen()
        self._running = True
        await self.change_source.start()
        logger.info("log_tailer_started", path=str(self.log_path))

    async def stop(self) -> None:
        """Stop tailing. Outcomes still in flight are dropped."""
        if not self._running:
            return

        self._running = False
        await self.change_source.stop()
        self.bridge.close()
        self.reader.close()
        logger.info("log_tailer_stopped", path=str(self.log_path))

    def poll_now(self) -> PollOutcome:
        """Run one poll on the calling thread (delivery still goes through the bridge)."""
        return self.reader.poll()

    def get_status(self) -> Dict[str, Any]:
        """Snapshot of the tailer state for status reporting."""
        return {
            "log_path": str(self.log_path),
            "running": self._running,
            "offset": self.reader.offset,
            "lines": len(self.sink),
            "notifier_installed": self.change_source.notifier_installed,
            "poll_interval": self.poll_interval,
            "read_failing": self.reader.failing,
        }
