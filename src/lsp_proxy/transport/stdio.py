"""Raw byte stream transport over stdio and subprocess pipes."""

from __future__ import annotations

import asyncio
import contextlib
import sys
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

READ_CHUNK_SIZE = 64 * 1024


@dataclass
class StdioTransport:
    """Async byte transport.

    Reads arrive as arbitrary chunks; framing is left to the caller so the
    bytes can be forwarded unmodified. Writes are serialized so that frames
    from different producers never interleave.
    """

    reader: asyncio.StreamReader | None = None
    writer: asyncio.StreamWriter | None = None
    _write_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @classmethod
    async def from_stdio(cls) -> StdioTransport:
        """Create transport from stdin/stdout."""
        loop = asyncio.get_running_loop()

        # Create reader for stdin
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)

        # Create writer for stdout
        writer_transport, writer_protocol = await loop.connect_write_pipe(
            asyncio.streams.FlowControlMixin, sys.stdout
        )
        writer = asyncio.StreamWriter(writer_transport, writer_protocol, reader, loop)

        return cls(reader=reader, writer=writer)

    @classmethod
    async def from_process(
        cls,
        process: asyncio.subprocess.Process,
    ) -> StdioTransport:
        """Create transport from subprocess stdin/stdout."""
        if process.stdin is None or process.stdout is None:
            raise ValueError("Process must have stdin and stdout pipes")

        return cls(
            reader=process.stdout,
            writer=process.stdin,
        )

    async def write(self, data: bytes) -> None:
        """Write bytes and wait for the transport to drain."""
        if self.writer is None:
            return

        async with self._write_lock:
            self.writer.write(data)
            await self.writer.drain()

    async def chunks(self) -> AsyncIterator[bytes]:
        """Iterate over incoming chunks until EOF."""
        if self.reader is None:
            return
        while True:
            chunk = await self.reader.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            yield chunk

    async def close(self) -> None:
        """Close the transport."""
        if self.writer is not None:
            self.writer.close()
            with contextlib.suppress(ConnectionError, BrokenPipeError):
                await self.writer.wait_closed()
