"""Traffic recorder - writes every frame to a JSONL file."""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import IO

from lsp_proxy.extension.base import ProxyExtension
from lsp_proxy.transport.framing import Frame
from lsp_proxy.transport.message import JsonRpcMessage
from lsp_proxy.transport.router import Decision, Direction


class TrafficRecorder(ProxyExtension):
    """Records messages with timestamp and direction; never suppresses."""

    def __init__(self, output: IO[str] | None = None, path: Path | None = None) -> None:
        self.path = path
        self.output = output
        self._owns_output = False

    def on_initialize(self) -> None:
        if self.output is None and self.path is not None:
            self.output = open(self.path, "a", encoding="utf-8")
            self._owns_output = True

    def on_shutdown(self) -> None:
        if self._owns_output and self.output is not None:
            self.output.close()
            self.output = None
            self._owns_output = False

    def record(self, direction: Direction, message: JsonRpcMessage) -> None:
        if self.output is None:
            return
        record = {
            "ts": time.time(),
            "dir": direction.value,
            "msg": message.to_dict(),
        }
        self.output.write(json.dumps(record, separators=(",", ":")) + "\n")
        self.output.flush()

    async def on_client_message(self, message: JsonRpcMessage, frame: Frame) -> Decision:
        self.record(Direction.CLIENT, message)
        return Decision.FORWARD

    async def on_server_message(self, message: JsonRpcMessage, frame: Frame) -> Decision:
        self.record(Direction.SERVER, message)
        return Decision.FORWARD
