"""Extension system for lsp-proxy."""

from lsp_proxy.extension.base import ProxyExtension
from lsp_proxy.extension.chain import ExtensionChain
from lsp_proxy.extension.loader import load_extensions
from lsp_proxy.extension.recorder import TrafficRecorder

__all__ = [
    "ExtensionChain",
    "ProxyExtension",
    "TrafficRecorder",
    "load_extensions",
]
