"""Side channel web server lifecycle management."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import uvicorn

from lsp_proxy.bridge.routes import Requester, create_app
from lsp_proxy.logging import get_logger

if TYPE_CHECKING:
    from lsp_proxy.config import HttpConfig

log = get_logger("bridge")

STARTUP_POLL_INTERVAL = 0.01


class BridgeServer:
    """Runs the side channel app on uvicorn in a background task."""

    def __init__(self, requester: Requester, http: HttpConfig) -> None:
        self.http = http
        self.app = create_app(requester)
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task[None] | None = None
        self.port: int | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> int:
        """Start serving and return the bound port."""
        if self.running:
            raise RuntimeError(f"Bridge already running on port {self.port}")

        config = uvicorn.Config(
            self.app,
            host=self.http.host,
            port=self.http.port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        self._task = asyncio.create_task(self._server.serve())

        while not self._server.started:
            if self._task.done():
                # Surface the startup failure (e.g. port in use)
                self._task.result()
                raise RuntimeError("Bridge server exited during startup")
            await asyncio.sleep(STARTUP_POLL_INTERVAL)

        self.port = self._bound_port(self._server)
        log.info(f"Side channel listening on http://{self.http.host}:{self.port}")
        return self.port

    async def stop(self) -> None:
        """Stop the server."""
        if self._server is None or self._task is None:
            return

        self._server.should_exit = True
        try:
            await asyncio.wait_for(self._task, timeout=2.0)
        except asyncio.TimeoutError:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

        log.info(f"Side channel stopped (was on port {self.port})")
        self._server = None
        self._task = None
        self.port = None

    @staticmethod
    def _bound_port(server: uvicorn.Server) -> int:
        for listener in server.servers:
            for sock in listener.sockets:
                return sock.getsockname()[1]
        raise RuntimeError("Bridge server has no listening socket")
