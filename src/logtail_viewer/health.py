

"""
Status HTTP server for the running viewer.

Provides /health for liveness checks and /status with the tailer state
(path, offset, buffered lines, notifier availability).
"""
from typing import Any, Callable, Dict, Optional

from aiohttp import web
import structlog

logger = structlog.get_logger()

SERVICE_NAME = "logtail-viewer"


class HealthCheckServer:
    """Small HTTP server exposing tailer status."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 8080,
        status_provider: Optional[Callable[[], Dict[str, Any]]] = None,
    ):
        """
        Initialize status server.

        Args:
            host: Host to bind to (default: 127.0.0.1)
            port: Port to bind to (default: 8080)
            status_provider: Callable returning the tailer status dict
        """
        self.host = host
        self.port = port
        self.status_provider = status_provider
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        """Configure HTTP routes."""
        self.app.router.add_get("/health", self.health_handler)
        self.app.router.add_get("/status", self.status_handler)
        self.app.router.add_get("/", self.root_handler)

    async def health_handler(self, request: web.Request) -> web.Response:
        """
        Liveness endpoint.

        Reports "degraded" while the tailer cannot read its file.
        """
        status = self._status()
        healthy = not status.get("read_failing", False)
        return web.json_response({
            "status": "healthy" if healthy else "degraded",
            "service": SERVICE_NAME,
        })

    async def status_handler(self, request: web.Request) -> web.Response:
        return web.json_response({
            "service": SERVICE_NAME,
            "tailer": self._status(),
        })

    async def root_handler(self, request: web.Request) -> web.Response:
        return web.json_response({
            "service": SERVICE_NAME,
            "endpoints": {
                "health": "/health",
                "status": "/status",
            }
        })

    def _status(self) -> Dict[str, Any]:
        if self.status_provider is None:
            return {}
        try:
            return self.status_provider()
        except Exception as e:
            logger.error("status_provider_failed", error=str(e), exc_info=True)
            return {"error": str(e)}

    async def start(self) -> None:
        """Start the status server."""
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        self.site = web.TCPSite(
            self.runner,
            self.host,
            self.port
        )
        await self.site.start()

        logger.info(
            "health_server_started",
            host=self.host,
            port=self.port
        )

    async def stop(self) -> None:
        """Stop the status server."""
        if self.site is not None:
            await self.site.stop()

        if self.runner is not None:
            await self.runner.cleanup()

        logger.info("health_server_stopped")
