"""HTTP side channel for proxy-originated requests."""

from lsp_proxy.bridge.routes import BridgeRequest, create_app
from lsp_proxy.bridge.server import BridgeServer

__all__ = [
    "BridgeRequest",
    "BridgeServer",
    "create_app",
]
