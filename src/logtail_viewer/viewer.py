"""
Console display layer.

Subscribes to a LineSink and prints filtered, styled lines through a rich
Console. Runs entirely on the sink's owning loop.
"""
import sys
from typing import Callable, Optional, TextIO

import structlog
from rich.console import Console
from rich.text import Text

from .line_filter import LineFilter
from .line_sink import LineSink, SinkChange
from .line_styler import style_line, to_text

logger = structlog.get_logger()

CLEAR_MARKER = "----- log {reason}, view cleared -----"


class ConsoleViewer:
    """Prints sink changes as they happen."""

    def __init__(
        self,
        sink: LineSink,
        line_filter: Optional[LineFilter] = None,
        strip_prefix: str = "",
        stream: Optional[TextIO] = None,
        color: Optional[bool] = None,
    ):
        """
        Initialize console viewer.

        Args:
            sink: Sink to follow
            line_filter: Display predicate (shows everything if omitted)
            strip_prefix: Prefix stripped from each line before styling
            stream: Output stream (default: stdout)
            color: Emit ANSI colors (default: only when the stream is a tty)
        """
        self.sink = sink
        self.line_filter = line_filter or LineFilter()
        self.strip_prefix = strip_prefix
        self.stream = stream if stream is not None else sys.stdout
        if color is None:
            isatty = getattr(self.stream, "isatty", None)
            color = bool(isatty and isatty())
        self.color = color
        self.console = Console(
            file=self.stream,
            force_terminal=color,
            color_system="truecolor" if color else None,
            highlight=False,
            markup=False,
            emoji=False,
            soft_wrap=True,
        )
        self.shown = 0
        self.hidden = 0
        self._unsubscribe: Optional[Callable[[], None]] = None

    def attach(self) -> None:
        """Start following the sink and print what it already holds."""
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self.sink.subscribe(self.on_change)
        for line in self.sink:
            self._show(line.content)
        self.stream.flush()

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_change(self, change: SinkChange) -> None:
        if change.action == "clear":
            marker = CLEAR_MARKER.format(reason=change.reason or "reset")
            self.console.print(Text(marker, style="dim"))
            logger.info("view_cleared", reason=change.reason)
        else:
            for line in change.lines:
                self._show(line.content)
        self.stream.flush()

    def format_line(self, content: str) -> Text:
        return to_text(style_line(content, self.strip_prefix))

    def _show(self, content: str) -> None:
        if not self.line_filter.matches(content):
            self.hidden += 1
            return
        self.shown += 1
        self.console.print(self.format_line(content))
