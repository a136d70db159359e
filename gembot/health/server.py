"""Plain-text liveness endpoint for hosting platforms."""

import logging
from typing import Optional

from aiohttp import web


logger = logging.getLogger(__name__)


class HealthServer:
    """Serves a static "running" response on ``/`` and ``/health``."""

    def __init__(self, host: str = "0.0.0.0", port: int = 8080, message: str = "Bot is running"):
        self.host = host
        self.port = port
        self.message = message
        self._runner: Optional[web.AppRunner] = None

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/", self.handle)
        app.router.add_get("/health", self.handle)
        return app

    async def handle(self, request: web.Request) -> web.Response:
        return web.Response(text=self.message, content_type="text/plain")

    async def start(self) -> None:
        """Bind the listening socket."""
        self._runner = web.AppRunner(self.create_app(), access_log=None)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info(f"Health server listening on {self.host}:{self.port}")

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Health server stopped")

    @property
    def running(self) -> bool:
        return self._runner is not None
