"""Request mode - send one request through a running proxy."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from rich.console import Console

from lsp_proxy.client import ProxyClient, ProxyClientError
from lsp_proxy.portfile import PortFileError

console = Console(stderr=True)
out = Console()


def parse_params(text: str | None) -> Any:
    """Parse a JSON params argument; None stays None."""
    if text is None:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"params must be valid JSON: {e}") from e


async def run_request(
    workdir: Path,
    workspace: Path,
    method: str,
    params: Any = None,
) -> int:
    """Send ``method`` to the proxied server and print the result as JSON."""
    client = ProxyClient(workdir, workspace)
    try:
        result = await client.request(method, params)
    except (PortFileError, ProxyClientError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    out.print_json(data=result)
    return 0


async def run_debug_adapter_start(
    workdir: Path,
    workspace: Path,
    arguments: dict[str, Any],
) -> int:
    """Start the server's debug adapter and print where it listens."""
    client = ProxyClient(workdir, workspace)
    try:
        endpoint = await client.start_debug_adapter(arguments)
    except (PortFileError, ProxyClientError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    out.print_json(data={"name": endpoint.name, "uri": endpoint.uri, "port": endpoint.port})
    return 0
