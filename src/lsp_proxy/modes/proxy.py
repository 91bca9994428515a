"""Proxy mode - relay between the editor and a language server."""

from __future__ import annotations

import asyncio
import os
import platform
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console

from lsp_proxy.bridge.server import BridgeServer
from lsp_proxy.extension.chain import ExtensionChain
from lsp_proxy.extension.loader import load_extensions
from lsp_proxy.extension.recorder import TrafficRecorder
from lsp_proxy.logging import get_logger
from lsp_proxy.portfile import port_file_path, proxy_id, remove_port, write_port
from lsp_proxy.transport.proxy import LspProxy
from lsp_proxy.transport.stdio import StdioTransport

if TYPE_CHECKING:
    from lsp_proxy.config import Config

console = Console(stderr=True)
log = get_logger("proxy")

# Windows-specific subprocess creation flags
_WINDOWS = platform.system() == "Windows"
_CREATE_NEW_PROCESS_GROUP = 0x00000200 if _WINDOWS else 0


def _send_interrupt(process: asyncio.subprocess.Process) -> None:
    """Send interrupt signal to process (Ctrl-C on Windows, SIGINT on Unix)."""
    if _WINDOWS:
        # CTRL_C_EVENT doesn't work reliably for subprocesses
        try:
            os.kill(process.pid, signal.CTRL_BREAK_EVENT)  # type: ignore[attr-defined]
        except OSError:
            process.terminate()
    else:
        try:
            os.kill(process.pid, signal.SIGINT)
        except OSError:
            process.terminate()


def _send_terminate(process: asyncio.subprocess.Process) -> None:
    """Send terminate signal to process (SIGTERM on Unix, TerminateProcess on Windows)."""
    if _WINDOWS:
        process.terminate()
    else:
        try:
            os.kill(process.pid, signal.SIGTERM)
        except OSError:
            process.terminate()


async def graceful_shutdown(
    process: asyncio.subprocess.Process,
    interrupt_timeout: float = 2.0,
    terminate_timeout: float = 3.0,
) -> None:
    """Gracefully shutdown a process: interrupt → terminate → kill."""
    if process.returncode is not None:
        return

    _send_interrupt(process)
    try:
        await asyncio.wait_for(process.wait(), timeout=interrupt_timeout)
        return
    except asyncio.TimeoutError:
        pass

    _send_terminate(process)
    try:
        await asyncio.wait_for(process.wait(), timeout=terminate_timeout)
        return
    except asyncio.TimeoutError:
        pass

    process.kill()
    await process.wait()


async def spawn_server(command: list[str]) -> asyncio.subprocess.Process:
    """Launch the language server with piped stdin/stdout and our stderr."""
    # On Windows, create in new process group to enable Ctrl+Break signaling
    creationflags = _CREATE_NEW_PROCESS_GROUP if _WINDOWS else 0
    return await asyncio.create_subprocess_exec(
        command[0],
        *command[1:],
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=sys.stderr,
        creationflags=creationflags,  # type: ignore[arg-type]
    )


def build_extensions(config: Config) -> ExtensionChain:
    extensions = load_extensions(config)
    if config.record is not None:
        extensions.append(TrafficRecorder(path=config.record))
    return ExtensionChain(extensions)


async def run_proxy(
    config: Config,
    workdir: Path,
    command: list[str],
    workspace: Path | None = None,
) -> int:
    """Run in proxy mode.

    Args:
        config: Configuration
        workdir: Directory holding the ``proxy/`` port file folder
        command: Language server executable and its arguments
        workspace: Path identifying this proxy; defaults to the current directory

    Returns:
        Exit code
    """
    if not command:
        console.print("[red]Error: Empty server command[/red]")
        return 1

    chain = build_extensions(config)
    if not config.quiet:
        console.print(f"[dim]Loaded {len(chain)} extension(s)[/dim]")
    chain.initialize_all()

    if not config.quiet:
        console.print(f"[dim]Spawning server: {' '.join(command)}[/dim]")

    try:
        process = await spawn_server(command)
    except OSError as e:
        console.print(f"[red]Error spawning server: {e}[/red]")
        chain.shutdown_all()
        return 1

    identity = proxy_id(workspace or Path.cwd())
    port_file = port_file_path(workdir, identity)

    editor_transport = await StdioTransport.from_stdio()
    server_transport = await StdioTransport.from_process(process)

    proxy = LspProxy(
        editor_transport=editor_transport,
        server_transport=server_transport,
        proxy_id=identity,
        timeout=config.timeout,
    )
    chain.attach_all(proxy.router)

    bridge = BridgeServer(proxy.request, config.http)

    try:
        port = await bridge.start()
        write_port(port_file, port)
        log.info("Advertised port %d in %s", port, port_file)
        if not config.quiet:
            console.print(f"[green]Proxy running[/green] [dim](side channel on port {port})[/dim]")

        await proxy.run()
    except KeyboardInterrupt:
        pass
    finally:
        await proxy.stop()
        await bridge.stop()
        remove_port(port_file)
        chain.detach_all(proxy.router)
        chain.shutdown_all()

        await graceful_shutdown(
            process,
            interrupt_timeout=config.shutdown.interrupt_timeout,
            terminate_timeout=config.shutdown.terminate_timeout,
        )

        await editor_transport.close()
        await server_transport.close()

    return process.returncode or 0
