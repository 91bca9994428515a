"""Proxy transport - bidirectional byte relay between editor and server."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from lsp_proxy.logging import get_logger
from lsp_proxy.transport.correlator import DEFAULT_TIMEOUT, RequestCorrelator, Scheduler
from lsp_proxy.transport.framing import encode_message
from lsp_proxy.transport.message import JsonRpcMessage
from lsp_proxy.transport.router import Direction, TrafficRouter
from lsp_proxy.transport.stdio import StdioTransport

log = get_logger("proxy")


@dataclass
class LspProxy:
    """Relay between the editor (stdin/stdout) and a language server.

    Bytes flow:
    - Editor -> (stdin) -> Proxy -> (subprocess stdin) -> Server
    - Server -> (subprocess stdout) -> Proxy -> (stdout) -> Editor

    Observers on the router see both directions. Responses to requests made
    through ``correlator`` never reach the editor.
    """

    editor_transport: StdioTransport
    server_transport: StdioTransport
    proxy_id: str
    timeout: float = DEFAULT_TIMEOUT
    scheduler: Scheduler | None = None
    correlator: RequestCorrelator = field(init=False)
    router: TrafficRouter = field(init=False)

    def __post_init__(self) -> None:
        self.correlator = RequestCorrelator(
            self.server_transport.write,
            prefix=self.proxy_id,
            timeout=self.timeout,
            scheduler=self.scheduler,
        )
        self.router = TrafficRouter(
            to_server=self.server_transport.write,
            to_client=self.editor_transport.write,
            correlator=self.correlator,
        )

    async def run(self) -> None:
        """Relay both directions until either side reaches EOF."""
        tasks = [
            asyncio.create_task(
                self.router.pump(Direction.CLIENT, self.editor_transport.chunks()),
                name="client->server",
            ),
            asyncio.create_task(
                self.router.pump(Direction.SERVER, self.server_transport.chunks()),
                name="server->client",
            ),
        ]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                log.info("%s stream finished", task.get_name())
                # Re-raises if the pump failed
                task.result()
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def request(self, method: str, params: Any = None) -> JsonRpcMessage:
        """Ask the server something on the proxy's own behalf."""
        return await self.correlator.request(method, params)

    async def notify_server(self, method: str, params: Any = None) -> None:
        await self.correlator.issue_notification(method, params)

    async def notify_client(self, method: str, params: Any = None) -> None:
        """Send a notification to the editor as if the server had sent it."""
        message = JsonRpcMessage.notification(method, params)
        await self.editor_transport.write(encode_message(message.to_dict()))

    async def stop(self) -> None:
        """Drop outstanding proxy requests."""
        self.correlator.close()
