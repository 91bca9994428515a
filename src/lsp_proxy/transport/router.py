"""Frame routing between the editor and the language server."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from enum import Enum
from typing import TYPE_CHECKING

from lsp_proxy.logging import TRACE, get_logger
from lsp_proxy.transport.framing import Frame, FrameDecoder, MalformedFrameError, parse_body
from lsp_proxy.transport.message import JsonRpcMessage

if TYPE_CHECKING:
    from lsp_proxy.transport.correlator import RequestCorrelator

log = get_logger("router")


class Direction(str, Enum):
    """Which way a frame is travelling."""

    CLIENT = "client"  # editor -> server
    SERVER = "server"  # server -> editor


class Decision(Enum):
    """What an observer wants done with a frame."""

    FORWARD = "forward"
    SUPPRESS = "suppress"


Observer = Callable[[JsonRpcMessage, Frame], Awaitable[Decision]]
Sink = Callable[[bytes], Awaitable[None]]


class TrafficRouter:
    """Routes decoded frames through observers to the opposite side.

    Forwarded frames are always the original bytes; a parsed message is only
    handed to observers for inspection.

    Args:
        to_server: Writes bytes to the language server's stdin.
        to_client: Writes bytes to the editor (our stdout).
        correlator: Consulted for server frames answering proxy requests.
    """

    def __init__(
        self,
        to_server: Sink,
        to_client: Sink,
        correlator: RequestCorrelator | None = None,
    ) -> None:
        self.correlator = correlator
        self._sinks: dict[Direction, Sink] = {
            Direction.CLIENT: to_server,
            Direction.SERVER: to_client,
        }
        self._decoders: dict[Direction, FrameDecoder] = {
            Direction.CLIENT: FrameDecoder(),
            Direction.SERVER: FrameDecoder(),
        }
        self._observers: dict[Direction, list[Observer]] = {
            Direction.CLIENT: [],
            Direction.SERVER: [],
        }

    def add_observer(self, direction: Direction, observer: Observer) -> None:
        """Register an observer for frames travelling in ``direction``."""
        self._observers[direction].append(observer)

    def remove_observer(self, direction: Direction, observer: Observer) -> None:
        if observer in self._observers[direction]:
            self._observers[direction].remove(observer)

    def observers(self, direction: Direction) -> list[Observer]:
        return list(self._observers[direction])

    async def pump(self, direction: Direction, chunks: AsyncIterator[bytes]) -> None:
        """Decode and route every chunk from one side until EOF."""
        async for chunk in chunks:
            await self.feed(direction, chunk)
        decoder = self._decoders[direction]
        if decoder.buffered:
            log.warning(
                "%s stream closed with %d undecoded bytes", direction.value, decoder.buffered
            )

    async def feed(self, direction: Direction, chunk: bytes) -> int:
        """Feed one chunk and route any frames it completes.

        Returns the number of frames routed.
        """
        decoder = self._decoders[direction]
        decoder.feed(chunk)
        routed = 0
        while True:
            try:
                for frame in decoder.frames():
                    await self.route(direction, frame)
                    routed += 1
            except MalformedFrameError as e:
                log.error("Dropping malformed %s frame: %s", direction.value, e)
                continue
            return routed

    async def route(self, direction: Direction, frame: Frame) -> Decision:
        """Decide on a single frame and forward it if nobody suppresses it."""
        data = parse_body(frame)
        if data is None:
            log.warning("Dropping %s frame with unparsable body", direction.value)
            return Decision.SUPPRESS

        message = JsonRpcMessage.from_dict(data)
        log.log(TRACE, "%s: %s", direction.value, frame.body[:2000])

        if (
            direction is Direction.SERVER
            and self.correlator is not None
            and self.correlator.try_resolve(message)
        ):
            return Decision.SUPPRESS

        decision = await self._decide(direction, message, frame)
        if decision is Decision.FORWARD:
            await self._sinks[direction](frame.raw)
        else:
            log.debug("Suppressed %s frame %s", direction.value, message.method or message.id)
        return decision

    async def _decide(
        self, direction: Direction, message: JsonRpcMessage, frame: Frame
    ) -> Decision:
        decision = Decision.FORWARD
        for observer in self._observers[direction]:
            try:
                verdict = await observer(message, frame)
            except Exception:
                # A failing observer counts as FORWARD; the link stays up
                log.exception(
                    "Observer %r failed on %s frame %s",
                    observer,
                    direction.value,
                    message.method or message.id,
                )
                continue
            if verdict is Decision.SUPPRESS:
                decision = Decision.SUPPRESS
        return decision
