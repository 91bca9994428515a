"""Base extension class with overridable observer hooks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from lsp_proxy.transport.router import Decision, Direction

if TYPE_CHECKING:
    from lsp_proxy.transport.framing import Frame
    from lsp_proxy.transport.message import JsonRpcMessage
    from lsp_proxy.transport.router import TrafficRouter


class ProxyExtension:
    """Base extension class - override the hooks you care about.

    Every hook returns a Decision. Returning ``Decision.SUPPRESS`` keeps the
    frame from reaching the other side; the default forwards it untouched.
    A hook that raises is logged and treated as ``Decision.FORWARD``.

    Each direction is routed one frame at a time, and the next frame is only
    decoded once every hook has returned. A server hook must therefore not
    await a proxy request (``LspProxy.request`` or the correlator): its
    response arrives on the same stream and cannot be read until the hook
    returns, so the request always times out. Schedule such work with
    ``asyncio.create_task`` instead.

    Usage:
        class CountDiagnostics(ProxyExtension):
            async def on_server_message(self, message, frame):
                if message.method == "textDocument/publishDiagnostics":
                    self.count += 1
                return Decision.FORWARD
    """

    # === Lifecycle Hooks ===

    def on_initialize(self) -> None:
        """Called at proxy startup, before any traffic."""
        pass

    def on_shutdown(self) -> None:
        """Called when the proxy is shutting down."""
        pass

    # === Traffic Hooks ===

    async def on_client_message(self, message: JsonRpcMessage, frame: Frame) -> Decision:
        """Editor -> server frame."""
        return Decision.FORWARD

    async def on_server_message(self, message: JsonRpcMessage, frame: Frame) -> Decision:
        """Server -> editor frame that did not answer a proxy request."""
        return Decision.FORWARD

    def attach(self, router: TrafficRouter) -> None:
        """Register both hooks as router observers."""
        router.add_observer(Direction.CLIENT, self.on_client_message)
        router.add_observer(Direction.SERVER, self.on_server_message)

    def detach(self, router: TrafficRouter) -> None:
        router.remove_observer(Direction.CLIENT, self.on_client_message)
        router.remove_observer(Direction.SERVER, self.on_server_message)
