"""Port advertisement for the HTTP side channel.

The proxy writes the port it listens on to ``<workdir>/proxy/<proxy-id>``
where proxy-id is the hex encoding of the workspace path. Another process that
knows both the workdir and the workspace can find the port without talking to
the proxy first.
"""

from __future__ import annotations

import contextlib
import os
from pathlib import Path

PROXY_FOLDER = "proxy"


class PortFileError(Exception):
    """Port file is missing or does not contain a port number."""


def proxy_id(path: str | os.PathLike[str]) -> str:
    """Stable identity for a workspace: hex of its path, trailing separators trimmed."""
    text = os.fspath(path).rstrip("/")
    return text.encode("utf-8").hex()


def port_file_path(workdir: str | os.PathLike[str], identity: str) -> Path:
    return Path(workdir) / PROXY_FOLDER / identity


def write_port(path: Path, port: int) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(str(port), encoding="ascii")


def read_port(path: Path) -> int:
    """Read the advertised port.

    Raises:
        PortFileError: If the file is missing or corrupted.
    """
    if not path.is_file():
        raise PortFileError(f"Failed to find proxy port file: {path}")
    try:
        port = int(path.read_text(encoding="ascii").strip())
    except (OSError, UnicodeDecodeError, ValueError) as e:
        raise PortFileError(f"Failed to read proxy port, file corrupted: {e}") from e
    if not 0 < port < 65536:
        raise PortFileError(f"Port out of range in {path}: {port}")
    return port


def remove_port(path: Path) -> None:
    with contextlib.suppress(FileNotFoundError):
        path.unlink()
