"""Shared test utilities for lsp-proxy tests."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

from lsp_proxy.transport.framing import FrameDecoder, parse_body


def frame(body: bytes | str | dict[str, Any], extra_headers: str = "") -> bytes:
    """Build raw frame bytes around ``body``.

    Args:
        body: Raw body bytes, a string, or a dict serialized with json.dumps.
        extra_headers: Additional header lines, each ending in CRLF.
    """
    if isinstance(body, dict):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode("utf-8")
    return f"Content-Length: {len(body)}\r\n{extra_headers}\r\n".encode("ascii") + body


def decode_all(data: bytes) -> list[dict[str, Any] | None]:
    """Decode every frame in ``data`` into its JSON body."""
    decoder = FrameDecoder()
    decoder.feed(data)
    return [parse_body(f) for f in decoder.frames()]


async def settle(rounds: int = 5) -> None:
    """Let callbacks and freshly created tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class RecordingSink:
    """Async byte sink that remembers every write."""

    def __init__(self) -> None:
        self.writes: list[bytes] = []

    async def __call__(self, data: bytes) -> None:
        self.writes.append(data)

    @property
    def data(self) -> bytes:
        return b"".join(self.writes)

    def messages(self) -> list[dict[str, Any] | None]:
        return decode_all(self.data)


class FakeWriter:
    """Stand-in for asyncio.StreamWriter."""

    def __init__(self) -> None:
        self.data = bytearray()
        self.closed = False

    def write(self, data: bytes) -> None:
        self.data.extend(data)

    async def drain(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        pass

    def messages(self) -> list[dict[str, Any] | None]:
        return decode_all(bytes(self.data))


class FakeTimer:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeClock:
    """Scheduler with manually advanced time."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = sorted(
            (t for t in self.timers if not t.cancelled and t.when <= self.now),
            key=lambda t: t.when,
        )
        for timer in due:
            self.timers.remove(timer)
            timer.callback()
