"""Extension discovery and loading."""

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from lsp_proxy.extension.base import ProxyExtension
from lsp_proxy.extension.recorder import TrafficRecorder
from lsp_proxy.logging import get_logger

if TYPE_CHECKING:
    from lsp_proxy.config import Config

log = get_logger("extension")

MODULE_PREFIX = "lsp_proxy_ext_"


def load_extensions(config: Config) -> list[ProxyExtension]:
    """Load extensions from config.

    Loading order:
    1. Extension files (in order)
    2. Extension directories (alphabetically per directory)

    Returns instantiated extension objects.
    """
    extensions: list[ProxyExtension] = []

    for ext_path in config.extensions:
        ext_path = Path(ext_path).resolve()
        if ext_path.exists():
            extensions.extend(_load_extensions_from_file(ext_path))
        else:
            log.warning("Extension file not found: %s", ext_path)

    for dir_path in config.extensions_path:
        dir_path = Path(dir_path).resolve()
        if dir_path.is_dir():
            for py_file in sorted(dir_path.glob("*.py")):
                if not py_file.name.startswith("_"):
                    extensions.extend(_load_extensions_from_file(py_file))

    return extensions


def _load_extensions_from_file(path: Path) -> list[ProxyExtension]:
    """Load ProxyExtension subclasses from a Python file."""
    extensions: list[ProxyExtension] = []

    module_name = f"{MODULE_PREFIX}{path.stem}_{id(path)}"

    try:
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            return extensions

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        spec.loader.exec_module(module)

        base_classes = {ProxyExtension, TrafficRecorder}

        for name in dir(module):
            obj = getattr(module, name)
            if (
                isinstance(obj, type)
                and issubclass(obj, ProxyExtension)
                and obj not in base_classes
                and obj.__module__ == module_name
            ):
                extensions.append(obj())

    except Exception:
        # Log but don't fail - allow other extensions to load
        log.exception("Failed to load extension from %s", path)

    return extensions
