"""Transport layer: framing, routing and request correlation."""

from lsp_proxy.transport.correlator import (
    RequestCancelledError,
    RequestCorrelator,
    RequestError,
    RequestTimeoutError,
)
from lsp_proxy.transport.framing import Frame, FrameDecoder, MalformedFrameError
from lsp_proxy.transport.message import JsonRpcMessage
from lsp_proxy.transport.proxy import LspProxy
from lsp_proxy.transport.router import Decision, Direction, TrafficRouter
from lsp_proxy.transport.stdio import StdioTransport

__all__ = [
    "Decision",
    "Direction",
    "Frame",
    "FrameDecoder",
    "JsonRpcMessage",
    "LspProxy",
    "MalformedFrameError",
    "RequestCancelledError",
    "RequestCorrelator",
    "RequestError",
    "RequestTimeoutError",
    "StdioTransport",
    "TrafficRouter",
]
