"""FastAPI app exposing proxy requests over HTTP."""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from lsp_proxy import __version__
from lsp_proxy.logging import get_logger
from lsp_proxy.transport.correlator import RequestError
from lsp_proxy.transport.message import JsonRpcMessage

log = get_logger("bridge")

Requester = Callable[[str, Any], Awaitable[JsonRpcMessage]]


class BridgeRequest(BaseModel):
    """Body of a side channel request."""

    method: str
    params: Any = None


def create_app(requester: Requester) -> FastAPI:
    """Create the side channel application.

    Args:
        requester: Sends ``(method, params)`` to the language server and
            returns the response message, usually ``RequestCorrelator.request``.
    """
    app = FastAPI(
        title="lsp-proxy",
        description="Out-of-band requests to a proxied language server",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.requester = requester

    @app.exception_handler(StarletteHTTPException)
    async def plain_text_errors(_request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)

    _register_routes(app)
    return app


async def parse_bridge_request(request: Request) -> BridgeRequest:
    """Validate the request body, raising a 400 on anything unusable."""
    body = await request.body()
    try:
        data = json.loads(body)
        return BridgeRequest.model_validate(data)
    except (ValueError, ValidationError) as e:
        log.warning("Rejected side channel request: %s", e)
        raise HTTPException(status_code=400, detail="Bad Request") from e


def _register_routes(app: FastAPI) -> None:
    """Register the single POST route."""

    @app.post("/")
    async def proxy_request(request: Request) -> JSONResponse:
        """Forward ``{method, params}`` to the server and return its response."""
        data = await parse_bridge_request(request)
        requester: Requester = request.app.state.requester

        log.info("Side channel request: %s", data.method)
        try:
            response = await requester(data.method, data.params)
        except RequestError as e:
            # The error envelope goes back with 200, same as a server error
            return JSONResponse(e.payload)
        return JSONResponse(response.to_dict())
