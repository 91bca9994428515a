"""HTTP client for a running proxy's side channel."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

from lsp_proxy.portfile import port_file_path, proxy_id, read_port

EXECUTE_COMMAND = "workspace/executeCommand"
DAP_START_COMMAND = "debug-adapter-start"
DEFAULT_CLIENT_TIMEOUT = 10.0


class ProxyClientError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        data: Any = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.data = data
        self.status_code = status_code


@dataclass(frozen=True)
class DebugAdapterEndpoint:
    """Where the server's debug adapter is listening."""

    name: str
    uri: str
    port: int


def port_from_uri(uri: str) -> int:
    """Take the port from the text after the last colon of ``uri``."""
    _, sep, port_str = uri.rpartition(":")
    if not sep:
        raise ProxyClientError(f"Cannot find port part in the URI: {uri!r}")
    try:
        return int(port_str.strip())
    except ValueError as e:
        raise ProxyClientError(f"Cannot parse port number from URI: {uri!r}") from e


class ProxyClient:
    """Sends requests through the proxy serving ``workspace``.

    The port is looked up on every call; the proxy may have been restarted
    with a different one.
    """

    def __init__(
        self,
        workdir: str | os.PathLike[str],
        workspace: str | os.PathLike[str],
        *,
        host: str = "127.0.0.1",
        timeout: float = DEFAULT_CLIENT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.port_file: Path = port_file_path(workdir, proxy_id(workspace))
        self.host = host
        self.timeout = timeout
        self._transport = transport

    def base_url(self) -> str:
        return f"http://{self.host}:{read_port(self.port_file)}"

    async def request(self, method: str, params: Any = None) -> Any:
        """Send a request to the language server and return its result."""
        url = self.base_url()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json={"method": method, "params": params})
        except httpx.HTTPError as e:
            raise ProxyClientError(f"Failed to send request to proxy: {e}") from e

        if response.status_code != 200:
            raise ProxyClientError(
                f"Proxy rejected request: {response.status_code} {response.text}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ProxyClientError(f"Failed to parse response from proxy: {e}") from e
        if not isinstance(body, dict):
            raise ProxyClientError(f"Unexpected response from proxy: {body!r}")

        error = body.get("error")
        if isinstance(error, dict):
            raise ProxyClientError(
                str(error.get("message", "unknown error")),
                code=error.get("code"),
                data=error.get("data"),
            )
        return body.get("result")

    async def start_debug_adapter(self, arguments: dict[str, Any]) -> DebugAdapterEndpoint:
        """Ask the server to start a debug adapter and return its address."""
        result = await self.request(
            EXECUTE_COMMAND,
            {"command": DAP_START_COMMAND, "arguments": [arguments]},
        )
        if not isinstance(result, dict) or "uri" not in result:
            raise ProxyClientError(f"Unexpected {DAP_START_COMMAND} result: {result!r}")
        uri = str(result["uri"])
        return DebugAdapterEndpoint(
            name=str(result.get("name", "")),
            uri=uri,
            port=port_from_uri(uri),
        )
