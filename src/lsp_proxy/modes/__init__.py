"""Operating modes for lsp-proxy."""

from lsp_proxy.modes.proxy import run_proxy
from lsp_proxy.modes.request import run_debug_adapter_start, run_request

__all__ = [
    "run_proxy",
    "run_request",
    "run_debug_adapter_start",
]
