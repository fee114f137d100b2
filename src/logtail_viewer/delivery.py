"""
Hands poll outcomes over to the event loop that owns the LineSink.

Polls run on the timer worker thread or the filesystem observer thread.
Outcomes computed there are scheduled onto the loop with
``call_soon_threadsafe``, which runs callbacks in FIFO order. While any
scheduled outcome is still waiting, outcomes produced on the loop thread
queue up behind it instead of being applied inline.
"""
import asyncio
import threading
from typing import Optional

import structlog

from .line_sink import LineSink
from .models import OutcomeKind, PollOutcome

logger = structlog.get_logger()


class DeliveryBridge:
    """Fire-and-forget, order-preserving handoff of outcomes to a LineSink."""

    def __init__(self, sink: LineSink, loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Initialize delivery bridge.

        Args:
            sink: Sink to apply outcomes to
            loop: Event loop owning the sink. Without one, outcomes apply inline.
        """
        self.sink = sink
        self.loop = loop
        self._closed = False
        self._pending = 0
        self._pending_lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Attach the event loop that owns the sink."""
        self.loop = loop
        self._closed = False

    def close(self) -> None:
        """Stop delivering. Outcomes already scheduled are dropped on arrival."""
        self._closed = True

    def deliver(self, outcome: PollOutcome) -> None:
        """
        Apply ``outcome`` on the owning loop.

        Runs inline when already on the loop thread with nothing queued (or
        when no loop is bound); otherwise schedules and returns without
        waiting.
        """
        if self._closed or not outcome.changed:
            return

        if self.loop is None:
            self.apply(outcome)
            return

        with self._pending_lock:
            if self._pending == 0 and self._on_loop_thread():
                inline = True
            else:
                inline = False
                self._pending += 1

        if inline:
            self.apply(outcome)
            return

        try:
            self.loop.call_soon_threadsafe(self._apply_scheduled, outcome)
        except RuntimeError:
            # Loop already closed: the consumer is gone
            with self._pending_lock:
                self._pending -= 1
            logger.debug("delivery_dropped_loop_closed", kind=outcome.kind.value)

    def apply(self, outcome: PollOutcome) -> None:
        """Mutate the sink according to ``outcome``. Must run on the owning loop."""
        if self._closed:
            logger.debug("delivery_dropped_closed", kind=outcome.kind.value)
            return

        if outcome.kind is OutcomeKind.CLEARED:
            self.sink.clear(reason=outcome.reason)

        if outcome.lines:
            self.sink.append(outcome.lines)

    def _apply_scheduled(self, outcome: PollOutcome) -> None:
        with self._pending_lock:
            self._pending -= 1
        self.apply(outcome)

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self.loop
        except RuntimeError:
            return False
