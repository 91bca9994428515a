"""Configuration loading for lsp-proxy."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from lsp_proxy.transport.correlator import DEFAULT_TIMEOUT

DEFAULT_CONFIG_NAMES = ("lsp-proxy.yaml", ".lsp-proxy.yaml", "lsp-proxy.yml", ".lsp-proxy.yml")


@dataclass
class ShutdownConfig:
    """Shutdown timeout configuration."""

    interrupt_timeout: float = 2.0
    """Seconds to wait after sending interrupt (SIGINT/Ctrl+Break)."""

    terminate_timeout: float = 3.0
    """Seconds to wait after sending terminate (SIGTERM)."""


@dataclass
class HttpConfig:
    """HTTP side channel configuration."""

    host: str = "127.0.0.1"
    port: int = 0
    """0 picks a random free port."""


@dataclass
class Config:
    """lsp-proxy configuration."""

    timeout: float = DEFAULT_TIMEOUT
    """Seconds to wait for the server to answer a proxy request."""

    http: HttpConfig = field(default_factory=HttpConfig)
    shutdown: ShutdownConfig = field(default_factory=ShutdownConfig)

    extensions: list[Path] = field(default_factory=list)
    extensions_path: list[Path] = field(default_factory=list)
    record: Path | None = None

    verbose: int = 2
    quiet: bool = False
    log_file: str | None = None


def load_config(
    config_path: Path | None = None,
    extensions: list[Path] | None = None,
    extensions_path: list[Path] | None = None,
    **overrides: Any,
) -> Config:
    """Load configuration from file and CLI overrides.

    ``overrides`` replace top-level values when they are not None; extension
    lists extend the configured ones.
    """
    config = Config()

    if config_path is None:
        for name in DEFAULT_CONFIG_NAMES:
            if Path(name).exists():
                config_path = Path(name)
                break

    if config_path and config_path.exists():
        config = _load_yaml_config(config_path)

    # CLI overrides (extend, don't replace)
    if extensions:
        config.extensions.extend(extensions)
    if extensions_path:
        config.extensions_path.extend(extensions_path)

    for key, value in overrides.items():
        if value is None:
            continue
        if key == "http_port":
            config.http.port = value
        elif key == "http_host":
            config.http.host = value
        elif hasattr(config, key):
            setattr(config, key, value)
        else:
            raise TypeError(f"Unknown config override: {key}")

    return config


def _load_yaml_config(path: Path) -> Config:
    """Load config from YAML file."""
    with open(path) as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    shutdown_data = data.get("shutdown", {})
    shutdown = ShutdownConfig(
        interrupt_timeout=shutdown_data.get("interrupt_timeout", 2.0),
        terminate_timeout=shutdown_data.get("terminate_timeout", 3.0),
    )

    http_data = data.get("http", {})
    http = HttpConfig(
        host=http_data.get("host", "127.0.0.1"),
        port=int(http_data.get("port", 0)),
    )

    record = data.get("record")

    return Config(
        timeout=float(data.get("timeout", DEFAULT_TIMEOUT)),
        http=http,
        shutdown=shutdown,
        extensions=[Path(p) for p in data.get("extensions", [])],
        extensions_path=[Path(p) for p in data.get("extensions_path", [])],
        record=Path(record) if record else None,
        verbose=data.get("verbose", 2),
        quiet=data.get("quiet", False),
        log_file=data.get("log_file"),
    )
