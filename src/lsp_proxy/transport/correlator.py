"""Proxy-originated requests to the language server.

The correlator issues requests the editor never sent, matches their responses
coming back on the server stream, and makes sure those responses are not
forwarded to the editor. Each request has a deadline; on expiry the caller gets
a timeout error and the server is asked to cancel the request.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from lsp_proxy.logging import get_logger
from lsp_proxy.transport.framing import encode_message
from lsp_proxy.transport.message import JsonRpcMessage

log = get_logger("correlator")

DEFAULT_TIMEOUT = 5.0

# LSP "RequestFailed" and "RequestCancelled"
REQUEST_TIMEOUT_CODE = -32803
REQUEST_CANCELLED_CODE = -32800
CANCEL_METHOD = "$/cancelRequest"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]
Sink = Callable[[bytes], Awaitable[None]]


class RequestError(Exception):
    """A proxy-originated request ended without a response.

    ``payload`` is the JSON-RPC error envelope describing why.
    """

    code = 0

    def __init__(self, request_id: str, message: str) -> None:
        self.request_id = request_id
        self.payload: dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": request_id,
            "error": {"code": self.code, "message": message},
        }
        super().__init__(message)


class RequestTimeoutError(RequestError):
    """No response arrived for a proxy-originated request in time."""

    code = REQUEST_TIMEOUT_CODE

    def __init__(self, request_id: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(
            request_id,
            f"Request to language server timed out after {round(timeout * 1000)}ms.",
        )


class RequestCancelledError(RequestError):
    """The request was cancelled before the server answered."""

    code = REQUEST_CANCELLED_CODE

    def __init__(self, request_id: str) -> None:
        super().__init__(request_id, "Request was cancelled.")


@dataclass
class PendingRequest:
    """Bookkeeping for one outstanding request."""

    id: str
    method: str
    future: asyncio.Future[JsonRpcMessage]
    timer: TimerHandle
    deadline: float


class RequestCorrelator:
    """Owns the lifecycle of proxy-originated requests.

    Args:
        sink: Coroutine function writing framed bytes to the server's stdin.
        prefix: Stable identity prefix for correlation ids.
        timeout: Seconds to wait for a response before giving up.
        scheduler: ``(delay, callback) -> handle`` used for deadlines.
            Defaults to the running loop's ``call_later``.
    """

    def __init__(
        self,
        sink: Sink,
        prefix: str,
        timeout: float = DEFAULT_TIMEOUT,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._sink = sink
        self._prefix = prefix
        self.timeout = timeout
        self._scheduler = scheduler
        self._counter = itertools.count(1)
        self._pending: dict[str, PendingRequest] = {}
        # Keep references so fire-and-forget writes are not garbage collected
        self._background: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> frozenset[str]:
        """Ids of requests still awaiting a response."""
        return frozenset(self._pending)

    def next_id(self) -> str:
        return f"{self._prefix}-{next(self._counter)}"

    def _schedule(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        if self._scheduler is not None:
            return self._scheduler(delay, callback)
        return asyncio.get_running_loop().call_later(delay, callback)

    async def issue_request(
        self, method: str, params: Any = None
    ) -> asyncio.Future[JsonRpcMessage]:
        """Send a request to the server.

        Returns a future resolved with the matching response message, or
        failed with RequestTimeoutError once the deadline passes.
        """
        request_id = self.next_id()
        loop = asyncio.get_running_loop()
        future: asyncio.Future[JsonRpcMessage] = loop.create_future()
        timer = self._schedule(self.timeout, lambda: self._expire(request_id))
        self._pending[request_id] = PendingRequest(
            id=request_id,
            method=method,
            future=future,
            timer=timer,
            deadline=loop.time() + self.timeout,
        )

        log.debug("-> request %s %s", request_id, method)
        message = JsonRpcMessage.request(request_id, method, params)
        try:
            await self._sink(encode_message(message.to_dict()))
        except Exception:
            self._discard(request_id)
            raise
        return future

    async def request(self, method: str, params: Any = None) -> JsonRpcMessage:
        """Send a request and wait for its response."""
        future = await self.issue_request(method, params)
        return await future

    async def issue_notification(self, method: str, params: Any = None) -> None:
        """Send a notification to the server. No reply is expected."""
        log.debug("-> notification %s", method)
        message = JsonRpcMessage.notification(method, params)
        await self._sink(encode_message(message.to_dict()))

    async def cancel(self, request_id: str) -> bool:
        """Cancel an outstanding request.

        Returns False (and sends nothing) if the id is not pending.
        """
        entry = self._discard(request_id)
        if entry is None:
            return False
        if not entry.future.done():
            entry.future.set_exception(RequestCancelledError(request_id))
        await self._send_cancel(request_id)
        return True

    def try_resolve(self, message: JsonRpcMessage | None) -> bool:
        """Resolve a pending request with a message from the server.

        Returns True if the message answered one of our requests, in which
        case it must not be forwarded to the editor.
        """
        if message is None or not message.is_response():
            return False
        if not isinstance(message.id, str):
            return False

        entry = self._discard(message.id)
        if entry is None:
            return False

        log.debug("<- response %s %s", entry.id, entry.method)
        if not entry.future.done():
            entry.future.set_result(message)
        return True

    def close(self) -> None:
        """Drop every pending request and its timer."""
        for request_id in list(self._pending):
            entry = self._discard(request_id)
            if entry is not None and not entry.future.done():
                entry.future.set_exception(RequestCancelledError(request_id))
        for task in list(self._background):
            task.cancel()

    def _discard(self, request_id: str) -> PendingRequest | None:
        entry = self._pending.pop(request_id, None)
        if entry is not None:
            entry.timer.cancel()
        return entry

    def _expire(self, request_id: str) -> None:
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return

        error = RequestTimeoutError(request_id, self.timeout)
        log.warning("Request %s (%s) timed out", request_id, entry.method)
        if not entry.future.done():
            entry.future.set_exception(error)

        task = asyncio.ensure_future(self._send_cancel(request_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _send_cancel(self, request_id: str) -> None:
        log.debug("-> %s %s", CANCEL_METHOD, request_id)
        try:
            await self.issue_notification(CANCEL_METHOD, {"id": request_id})
        except (ConnectionError, RuntimeError) as e:
            log.warning("Could not send cancellation for %s: %s", request_id, e)
