

"""
Logtail Viewer - Main Entry Point

Follows a growing log file and prints new lines as they are written.
- Whole file replayed on startup, then live updates
- Survives truncation, rotation and deletion of the file
- Include/exclude filtering and tag coloring
- Settings persisted between runs, crashes written to crash.log
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

try:
    # Package-style imports (python -m logtail_viewer.main)
    from .config import Config, load_config, validate_config
    from .health import HealthCheckServer
    from .line_filter import LineFilter
    from .line_sink import LineSink
    from .log_tailer import LogTailer
    from .settings import ViewerSettings, load_settings, save_settings
    from .viewer import ConsoleViewer
except ImportError:
    # Direct execution of this file
    from logtail_viewer.config import Config, load_config, validate_config  # type: ignore
    from logtail_viewer.health import HealthCheckServer  # type: ignore
    from logtail_viewer.line_filter import LineFilter  # type: ignore
    from logtail_viewer.line_sink import LineSink  # type: ignore
    from logtail_viewer.log_tailer import LogTailer  # type: ignore
    from logtail_viewer.settings import ViewerSettings, load_settings, save_settings  # type: ignore
    from logtail_viewer.viewer import ConsoleViewer  # type: ignore

logger = structlog.get_logger()


def setup_logging(log_level: str, log_format: str) -> None:
    """
    Configure structured logging.

    Diagnostics go to stderr; stdout is reserved for the followed log lines.

    Args:
        log_level: Logging level (debug, info, warning, error, critical)
        log_format: Output format ("json" or "console")
    """
    level_map: dict[str, int] = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
    }

    min_level = level_map.get(log_level.lower(), logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logger.info("logging_configured", level=log_level, format=log_format)


def format_crash_report(exc: BaseException) -> str:
    """Timestamped message and traceback, followed by every chained cause."""
    lines = [f"{datetime.now().isoformat()}: {exc}"]
    lines.append("".join(traceback.format_tb(exc.__traceback__)).rstrip())

    inner = exc.__cause__ or exc.__context__
    while inner is not None:
        lines.append("--- Inner Exception ---")
        lines.append(str(inner))
        lines.append("".join(traceback.format_tb(inner.__traceback__)).rstrip())
        inner = inner.__cause__ or inner.__context__

    return "\n".join(lines) + "\n\n\n"


def write_crash_report(exc: BaseException, crash_log_path: Path) -> bool:
    """
    Append a crash report for ``exc`` to ``crash_log_path``.

    Returns:
        True if the report was written
    """
    try:
        with open(crash_log_path, "a", encoding="utf-8") as f:
            f.write(format_crash_report(exc))
    except OSError as e:
        logger.error("crash_log_write_failed", path=str(crash_log_path), error=str(e))
        return False
    return True


def install_crash_handlers(
    crash_log_path: Path,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> None:
    """
    Record unhandled exceptions in the crash log.

    Hooks sys.excepthook and, if given, the event loop's exception handler.
    The previous handlers still run afterwards.
    """
    previous_hook = sys.excepthook

    def _excepthook(exc_type: Any, exc: BaseException, tb: Any) -> None:
        if not issubclass(exc_type, KeyboardInterrupt):
            write_crash_report(exc, crash_log_path)
            logger.critical("unhandled_exception", error=str(exc), crash_log=str(crash_log_path))
        previous_hook(exc_type, exc, tb)

    sys.excepthook = _excepthook

    if loop is not None:
        def _loop_handler(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
            exc = context.get("exception")
            if exc is not None:
                write_crash_report(exc, crash_log_path)
                logger.error(
                    "unhandled_loop_exception",
                    error=str(exc),
                    message=context.get("message"),
                    crash_log=str(crash_log_path),
                )
            loop.default_exception_handler(context)

        loop.set_exception_handler(_loop_handler)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="logtail-viewer",
        description="Follow a log file, surviving truncation, rotation and deletion",
    )
    p.add_argument("log_path", nargs="?", default=None, help="log file to follow (or LOGTAIL_PATH)")
    p.add_argument("--poll-interval", type=float, default=None, help="poll period in seconds (default 0.1)")
    p.add_argument("--no-notify", dest="use_notifier", action="store_false", default=None,
                   help="disable filesystem notifications, poll only")
    p.add_argument("--max-lines", type=int, default=None, help="keep at most N lines in memory")
    p.add_argument("--filter", dest="filter_text", default=None, help="only show lines containing TEXT")
    p.add_argument("--exclude", dest="exclude_text", default=None, help="hide lines containing any of A;B;C")
    p.add_argument("--strip-prefix", dest="strip_prefix", default=None, help="strip PREFIX from displayed lines")
    p.add_argument("--settings", dest="settings_path", default=None, help="settings file (default settings.yml)")
    p.add_argument("--crash-log", dest="crash_log_path", default=None, help="crash log file (default crash.log)")
    p.add_argument("--status-port", type=int, default=None, help="serve /health and /status on this port")
    p.add_argument("--log-level", default=None, choices=["debug", "info", "warning", "error"])
    p.add_argument("--log-format", default=None, choices=["console", "json"])
    p.add_argument("--no-color", dest="color", action="store_false", default=None, help="disable ANSI colors")
    return p


class Application:
    """Main application orchestrator."""

    def __init__(self, args: Optional[argparse.Namespace] = None) -> None:
        """Initialize application components."""
        self.args = args if args is not None else build_arg_parser().parse_args([])
        self.config: Optional[Config] = None
        self.settings: ViewerSettings = ViewerSettings()
        self.sink: Optional[LineSink] = None
        self.tailer: Optional[LogTailer] = None
        self.viewer: Optional[ConsoleViewer] = None
        self.health_server: Optional[HealthCheckServer] = None
        self.shutdown_event: asyncio.Event = asyncio.Event()

    def _config_overrides(self) -> Dict[str, Any]:
        args = self.args
        overrides: Dict[str, Any] = {
            "log_path": args.log_path,
            "poll_interval": args.poll_interval,
            "use_notifier": args.use_notifier,
            "max_lines": args.max_lines,
            "settings_path": args.settings_path,
            "crash_log_path": args.crash_log_path,
            "log_level": args.log_level,
            "log_format": args.log_format,
        }
        if args.status_port is not None:
            overrides["health_check_enabled"] = True
            overrides["health_check_port"] = args.status_port
        return overrides

    async def setup(self) -> None:
        """Load configuration and initialize core components."""
        logger.info("application_starting")

        try:
            self.config = load_config(self._config_overrides())
            assert self.config is not None, "Config loading returned None"
            if not validate_config(self.config):
                raise ValueError("Configuration validation failed")
        except Exception as e:
            logger.error("config_load_failed", error=str(e))
            raise

        config = self.config
        setup_logging(config.log_level, config.log_format)
        install_crash_handlers(config.crash_log_path, asyncio.get_running_loop())

        # Command-line display options win over stored ones and are remembered
        stored = load_settings(config.settings_path)
        self.settings = stored.merged({
            "filter_text": self.args.filter_text,
            "exclude_text": self.args.exclude_text,
            "strip_prefix": self.args.strip_prefix,
        })
        if self.settings != stored:
            save_settings(self.settings, config.settings_path)

        self.sink = LineSink(max_lines=config.max_lines)
        self.tailer = LogTailer(
            log_path=config.log_path,
            sink=self.sink,
            poll_interval=config.poll_interval,
            use_notifier=config.use_notifier,
        )
        self.viewer = ConsoleViewer(
            self.sink,
            line_filter=LineFilter.from_text(self.settings.filter_text, self.settings.exclude_text),
            strip_prefix=self.settings.strip_prefix,
            color=self.args.color,
        )

        if config.health_check_enabled:
            self.health_server = HealthCheckServer(
                host=config.health_check_host,
                port=config.health_check_port,
                status_provider=self.tailer.get_status,
            )

        logger.info(
            "application_configured",
            log_path=str(config.log_path),
            poll_interval=config.poll_interval,
            filter_active=self.viewer.line_filter.active,
        )

    async def start(self) -> None:
        """Start all application components."""
        assert self.config is not None, "Config not loaded"
        assert self.tailer is not None, "Tailer not initialized"
        assert self.viewer is not None, "Viewer not initialized"

        if self.health_server is not None:
            await self.health_server.start()

        self.viewer.attach()
        await self.tailer.start()

        logger.info("application_running", log_path=str(self.config.log_path))

    async def stop(self) -> None:
        """Gracefully stop all components."""
        logger.info("application_stopping")

        if self.tailer is not None:
            try:
                await self.tailer.stop()
            except Exception as e:
                logger.error("log_tailer_stop_failed", error=str(e))

        if self.viewer is not None:
            self.viewer.detach()

        if self.health_server is not None:
            try:
                await self.health_server.stop()
            except Exception as e:
                logger.error("health_server_stop_failed", error=str(e))

        logger.info("application_stopped")

    async def run(self) -> None:
        """Main application run loop."""
        try:
            await self.setup()
            await self.start()
            await self.shutdown_event.wait()
        except KeyboardInterrupt:
            logger.info("received_keyboard_interrupt")
        except Exception as e:
            logger.error("application_error", error=str(e), exc_info=True)
            raise
        finally:
            await self.stop()


async def main(argv: Optional[List[str]] = None) -> None:
    """Main async entry point."""
    args = build_arg_parser().parse_args(argv)
    app = Application(args)

    # Signal handlers for graceful shutdown
    def _signal_handler(signum: int, frame: Any) -> None:
        logger.info("received_signal", signal=signal.Signals(signum).name)
        app.shutdown_event.set()

    # Only register signals on real OS (not always available on Windows/threads)
    try:
        signal.signal(signal.SIGINT, _signal_handler)
        signal.signal(signal.SIGTERM, _signal_handler)
    except (ValueError, OSError, AttributeError):
        pass

    try:
        await app.run()
    except Exception as e:
        logger.error("fatal_error", error=str(e), exc_info=True)
        sys.exit(1)


def cli() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutdown complete.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    cli()
