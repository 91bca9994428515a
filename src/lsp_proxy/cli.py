"""Command-line interface for lsp-proxy."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from pathlib import Path

from lsp_proxy import __version__


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="lsp-proxy",
        description="Language server proxy with an HTTP side channel for out-of-band requests",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be repeated)",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Config file path (default: ./lsp-proxy.yaml)",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to this file (default: $LSP_PROXY_LOG)",
    )

    subparsers = parser.add_subparsers(dest="mode", help="Operating mode")

    # Proxy mode
    proxy_parser = subparsers.add_parser(
        "proxy",
        help="Relay between the editor (stdio) and a language server",
        description="Options must come before WORKDIR; everything after it is the server command.",
    )
    proxy_parser.add_argument(
        "workdir",
        type=Path,
        help="Directory where the side channel port file is written",
    )
    proxy_parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Language server executable followed by its arguments",
    )
    proxy_parser.add_argument(
        "--workspace",
        type=Path,
        help="Path identifying this proxy in the port file name (default: cwd)",
    )
    proxy_parser.add_argument(
        "--timeout",
        type=float,
        help="Seconds to wait for responses to side channel requests (default: 5)",
    )
    proxy_parser.add_argument("--host", help="Side channel bind address (default: 127.0.0.1)")
    proxy_parser.add_argument(
        "--port",
        type=int,
        help="Side channel port (default: 0, a random free port)",
    )
    proxy_parser.add_argument(
        "--record",
        type=Path,
        help="Record all traffic to this JSONL file",
    )
    proxy_parser.add_argument(
        "--extension",
        dest="extensions",
        action="append",
        type=Path,
        default=[],
        help="Extension file to load (can be repeated)",
    )
    proxy_parser.add_argument(
        "--extensions-path",
        action="append",
        type=Path,
        default=[],
        help="Directory to scan for extensions (can be repeated)",
    )

    # Request mode
    request_parser = subparsers.add_parser(
        "request",
        help="Send a request through a running proxy",
    )
    _add_client_arguments(request_parser)
    request_parser.add_argument("method", help="JSON-RPC method")
    request_parser.add_argument("params", nargs="?", help="JSON-encoded params")

    # Debug adapter mode
    dap_parser = subparsers.add_parser(
        "debug-adapter-start",
        help="Ask the server to start a debug adapter",
    )
    _add_client_arguments(dap_parser)
    dap_parser.add_argument(
        "arguments",
        nargs="?",
        default="{}",
        help="JSON-encoded debug configuration",
    )

    return parser


def _add_client_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--workdir",
        type=Path,
        default=Path.cwd(),
        help="Directory holding the proxy port files (default: cwd)",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        default=Path.cwd(),
        help="Workspace the proxy was started in (default: cwd)",
    )


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.mode is None:
        parser.print_help()
        return 1

    from lsp_proxy.config import load_config
    from lsp_proxy.logging import setup_logging

    if parsed.mode == "proxy":
        config = load_config(
            config_path=parsed.config,
            extensions=parsed.extensions,
            extensions_path=parsed.extensions_path,
            timeout=parsed.timeout,
            http_host=parsed.host,
            http_port=parsed.port,
            record=parsed.record,
            log_file=parsed.log_file,
        )
    else:
        config = load_config(config_path=parsed.config, log_file=parsed.log_file)

    if parsed.quiet:
        config.quiet = True
        config.verbose = 0
    else:
        config.verbose = min(config.verbose + parsed.verbose, 4)
    setup_logging(config.verbose, config.log_file)

    # Dispatch to mode
    if parsed.mode == "proxy":
        from lsp_proxy.modes.proxy import run_proxy

        command = list(parsed.command)
        if command and command[0] == "--":
            command = command[1:]
        return asyncio.run(run_proxy(config, parsed.workdir, command, parsed.workspace))

    from lsp_proxy.modes.request import parse_params, run_debug_adapter_start, run_request

    if parsed.mode == "request":
        try:
            params = parse_params(parsed.params)
        except ValueError as e:
            parser.error(str(e))
        return asyncio.run(run_request(parsed.workdir, parsed.workspace, parsed.method, params))
    elif parsed.mode == "debug-adapter-start":
        try:
            arguments = parse_params(parsed.arguments)
        except ValueError as e:
            parser.error(str(e))
        if not isinstance(arguments, dict):
            parser.error("arguments must be a JSON object")
        return asyncio.run(run_debug_adapter_start(parsed.workdir, parsed.workspace, arguments))
    else:
        parser.print_help()
        return 1
