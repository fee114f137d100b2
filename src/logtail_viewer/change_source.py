"""
Triggers that drive polling of the tracked file.

Two independent sources call the same trigger:
- a watchdog observer on the file's parent directory (event-driven)
- a fixed-interval asyncio timer that runs the trigger in a worker thread

The timer always runs, so progress is guaranteed even where filesystem
notifications are unreliable, coalesced or unavailable.
"""
import asyncio
import os
from pathlib import Path
from typing import Any, Callable, Optional

import structlog
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

logger = structlog.get_logger()

WATCHED_EVENT_TYPES = frozenset(
    {EVENT_TYPE_MODIFIED, EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MOVED}
)


class TargetFileHandler(FileSystemEventHandler):
    """Forward write/create/delete/rename events for one filename to a trigger."""

    def __init__(self, target: Path, trigger: Callable[[], Any]):
        super().__init__()
        self.target = target
        self.trigger = trigger

    def matches(self, event: FileSystemEvent) -> bool:
        if event.is_directory or event.event_type not in WATCHED_EVENT_TYPES:
            return False

        paths = [event.src_path, getattr(event, "dest_path", None)]
        return any(
            p and Path(os.fsdecode(p)).name == self.target.name for p in paths
        )

    def on_any_event(self, event: FileSystemEvent) -> None:
        if not self.matches(event):
            return
        try:
            self.trigger()
        except Exception as e:
            logger.error(
                "notify_trigger_failed",
                path=str(self.target),
                event_type=event.event_type,
                error=str(e),
                exc_info=True,
            )


class ChangeSource:
    """Timer plus filesystem notifier, both feeding one trigger."""

    def __init__(
        self,
        log_path: Path,
        trigger: Callable[[], Any],
        poll_interval: float = 0.1,
        use_notifier: bool = True,
    ):
        """
        Initialize change source.

        Args:
            log_path: File whose changes should trigger a poll
            trigger: Callable invoked on every tick or notification; must be thread-safe
            poll_interval: Timer period in seconds
            use_notifier: Install a filesystem observer in addition to the timer
        """
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {poll_interval}")

        self.log_path = Path(log_path)
        self.trigger = trigger
        self.poll_interval = poll_interval
        self.use_notifier = use_notifier
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._observer: Optional[Any] = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def notifier_installed(self) -> bool:
        return self._observer is not None

    async def start(self) -> None:
        """Start the timer task and, when possible, the filesystem observer."""
        if self._running:
            logger.warning("change_source_already_running", path=str(self.log_path))
            return

        self._running = True
        if self.use_notifier:
            self._install_notifier()
        self._task = asyncio.create_task(self._poll_loop())

        logger.info(
            "change_source_started",
            path=str(self.log_path),
            poll_interval=self.poll_interval,
            notifier=self.notifier_installed,
        )

    async def stop(self) -> None:
        """Stop the timer and uninstall the observer. An in-flight poll finishes on its own."""
        if not self._running:
            return

        self._running = False

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._observer is not None:
            observer = self._observer
            self._observer = None
            observer.stop()
            await asyncio.to_thread(observer.join, 2.0)

        logger.info("change_source_stopped", path=str(self.log_path))

    def _install_notifier(self) -> None:
        directory = self.log_path.parent
        if not directory.is_dir():
            logger.warning(
                "notifier_not_installed",
                path=str(self.log_path),
                reason="parent directory missing",
            )
            return

        observer = Observer()
        try:
            observer.schedule(
                TargetFileHandler(self.log_path, self.trigger),
                str(directory),
                recursive=False,
            )
            observer.start()
        except Exception as e:
            logger.warning(
                "notifier_not_installed",
                path=str(self.log_path),
                reason=str(e),
            )
            return

        self._observer = observer

    async def _poll_loop(self) -> None:
        """Fixed-period timer loop."""
        try:
            while self._running:
                try:
                    await asyncio.to_thread(self.trigger)
                except Exception as e:
                    logger.error(
                        "timer_trigger_failed",
                        path=str(self.log_path),
                        error=str(e),
                        exc_info=True,
                    )
                await asyncio.sleep(self.poll_interval)
        except asyncio.CancelledError:
            logger.debug("poll_loop_cancelled", path=str(self.log_path))
            raise
