"""Extension chain composition."""

from __future__ import annotations

from typing import TYPE_CHECKING

from lsp_proxy.extension.base import ProxyExtension
from lsp_proxy.logging import get_logger

if TYPE_CHECKING:
    from lsp_proxy.transport.router import TrafficRouter

log = get_logger("extension")


class ExtensionChain:
    """Attaches extensions to a router in order.

    Observers run in the order extensions were loaded. Every extension sees
    every frame, even one an earlier extension decided to suppress.
    """

    def __init__(self, extensions: list[ProxyExtension]) -> None:
        self.extensions = extensions

    def __len__(self) -> int:
        return len(self.extensions)

    def initialize_all(self) -> None:
        """Call on_initialize() on all extensions."""
        for ext in self.extensions:
            ext.on_initialize()

    def attach_all(self, router: TrafficRouter) -> None:
        for ext in self.extensions:
            ext.attach(router)

    def detach_all(self, router: TrafficRouter) -> None:
        for ext in self.extensions:
            ext.detach(router)

    def shutdown_all(self) -> None:
        """Call on_shutdown() on all extensions, logging failures."""
        for ext in self.extensions:
            try:
                ext.on_shutdown()
            except Exception:
                log.exception("Extension %s failed to shut down", type(ext).__name__)
