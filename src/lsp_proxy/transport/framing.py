"""LSP base protocol framing over raw byte streams.

The proxy must forward editor and server traffic byte-for-byte, so instead of
reading one parsed message at a time this module decodes an arbitrary sequence
of byte chunks into complete frames and keeps the exact bytes of each frame.

LSP Header Format:
    Content-Length: <length>\r\n
    [Content-Type: <type>]\r\n
    \r\n
    <json-rpc-message>

Header names are matched case-insensitively. Chunks may contain zero, one, a
partial, or many frames; a frame is only emitted once all of its body bytes
have arrived.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

# Header constants
CONTENT_LENGTH = "content-length"
HEADER_ENCODING = "ascii"
CONTENT_ENCODING = "utf-8"
CRLF = b"\r\n"
HEADER_SEPARATOR = b"\r\n\r\n"


class MalformedFrameError(Exception):
    """Error in LSP message framing.

    Raised when:
    - Content-Length header is missing
    - Content-Length value is not a valid integer
    - Content-Length value is negative
    - Header block is not ASCII
    """

    pass


@dataclass(frozen=True)
class Frame:
    """One complete header block plus body, as it appeared on the wire."""

    headers: dict[str, str]
    body: bytes
    raw: bytes

    @property
    def content_length(self) -> int:
        return int(self.headers[CONTENT_LENGTH])


def parse_header(header_bytes: bytes) -> dict[str, str]:
    """Parse LSP headers from raw bytes.

    Args:
        header_bytes: Raw header bytes without the trailing CRLF CRLF separator.

    Returns:
        Dictionary mapping lower-cased header names to stripped values.

    Raises:
        MalformedFrameError: If Content-Length is missing or invalid.

    Example:
        >>> parse_header(b"Content-Length: 42\\r\\nContent-Type: application/json")
        {'content-length': '42', 'content-type': 'application/json'}
    """
    try:
        header_text = header_bytes.decode(HEADER_ENCODING)
    except UnicodeDecodeError as e:
        raise MalformedFrameError(f"Header contains non-ASCII characters: {e}") from e

    headers: dict[str, str] = {}
    for line in header_text.split("\r\n"):
        # Lines without a separator carry no header; Content-Length validation
        # below catches a block that is nothing but junk.
        name, sep, value = line.partition(":")
        if not sep:
            continue
        headers[name.strip().lower()] = value.strip()

    if CONTENT_LENGTH not in headers:
        raise MalformedFrameError("Missing required Content-Length header")

    # ASCII decimal digits only; int() alone would take "+13" or "1_3"
    value = headers[CONTENT_LENGTH]
    digits = value[1:] if value.startswith("-") else value
    if not (digits.isascii() and digits.isdigit()):
        raise MalformedFrameError(f"Invalid Content-Length value: {value!r}")

    length = int(value)
    if length < 0:
        raise MalformedFrameError(f"Negative Content-Length: {length}")

    return headers


class FrameDecoder:
    """Incremental stream-to-frame decoder.

    Usage:
        decoder = FrameDecoder()
        decoder.feed(chunk)
        for frame in decoder.frames():
            ...

    ``frames()`` may be called again after every ``feed()``; it resumes where
    the previous call stopped. If it raises MalformedFrameError the offending
    header block has already been discarded and decoding can continue.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        # Parsed state for the frame at the head of the buffer
        self._headers: dict[str, str] | None = None
        self._headers_length = 0

    @property
    def buffered(self) -> int:
        """Number of bytes received but not yet emitted as a frame."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> None:
        """Append a chunk of bytes from the stream."""
        self._buffer.extend(chunk)

    def frames(self) -> Iterator[Frame]:
        """Yield every complete frame currently in the buffer, in order."""
        while True:
            if self._headers is None:
                # Wait until we get the whole headers block
                headers_end = self._buffer.find(HEADER_SEPARATOR)
                if headers_end == -1:
                    return

                header_bytes = bytes(self._buffer[:headers_end])
                headers_length = headers_end + len(HEADER_SEPARATOR)
                try:
                    headers = parse_header(header_bytes)
                except MalformedFrameError:
                    del self._buffer[:headers_length]
                    raise

                self._headers = headers
                self._headers_length = headers_length

            total = self._headers_length + int(self._headers[CONTENT_LENGTH])

            # Wait until we get the whole content part
            if len(self._buffer) < total:
                return

            raw = bytes(self._buffer[:total])
            del self._buffer[:total]
            frame = Frame(
                headers=self._headers,
                body=raw[self._headers_length :],
                raw=raw,
            )
            self._headers = None
            self._headers_length = 0
            yield frame


def encode_message(msg: dict[str, Any]) -> bytes:
    """Serialize a JSON-RPC message with Content-Length framing.

    The length is the UTF-8 byte count of the body, not its character count.

    Raises:
        MalformedFrameError: If the message cannot be serialized to JSON.
    """
    try:
        body = json.dumps(msg, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise MalformedFrameError(f"Message cannot be serialized to JSON: {e}") from e

    body_bytes = body.encode(CONTENT_ENCODING)
    header = f"Content-Length: {len(body_bytes)}\r\n\r\n".encode(HEADER_ENCODING)
    return header + body_bytes


def parse_body(frame: Frame) -> dict[str, Any] | None:
    """Decode a frame body as a JSON object, or None if it is not one."""
    try:
        message = json.loads(frame.body.decode(CONTENT_ENCODING))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(message, dict):
        return None
    return message
