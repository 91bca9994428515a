"""Tests for the side channel HTTP client."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from lsp_proxy.client import (
    DAP_START_COMMAND,
    EXECUTE_COMMAND,
    ProxyClient,
    ProxyClientError,
    port_from_uri,
)
from lsp_proxy.portfile import PortFileError, port_file_path, proxy_id, write_port

WORKSPACE = "/home/dev/project"


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    write_port(port_file_path(tmp_path, proxy_id(WORKSPACE)), 4711)
    return tmp_path


def make_client(workdir: Path, handler) -> tuple[ProxyClient, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    return ProxyClient(workdir, WORKSPACE, transport=httpx.MockTransport(record)), seen


class TestPortFromUri:
    @pytest.mark.parametrize(
        "uri,port",
        [
            ("tcp://127.0.0.1:5005", 5005),
            ("localhost:80", 80),
            ("[::1]:6006", 6006),
            ("tcp://host: 7007 ", 7007),
        ],
    )
    def test_parses_after_last_colon(self, uri: str, port: int) -> None:
        assert port_from_uri(uri) == port

    def test_no_colon(self) -> None:
        with pytest.raises(ProxyClientError, match="Cannot find port"):
            port_from_uri("localhost")

    def test_not_a_number(self) -> None:
        with pytest.raises(ProxyClientError, match="Cannot parse port"):
            port_from_uri("tcp://host:http")


class TestRequest:
    @pytest.mark.asyncio
    async def test_posts_to_advertised_port(self, workdir: Path) -> None:
        client, seen = make_client(
            workdir,
            lambda r: httpx.Response(200, json={"jsonrpc": "2.0", "id": "x-1", "result": [1]}),
        )

        result = await client.request("workspace/symbol", {"query": "foo"})

        assert result == [1]
        assert seen[0].url.host == "127.0.0.1"
        assert seen[0].url.port == 4711
        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {
            "method": "workspace/symbol",
            "params": {"query": "foo"},
        }

    @pytest.mark.asyncio
    async def test_missing_port_file(self, tmp_path: Path) -> None:
        client = ProxyClient(tmp_path, WORKSPACE)

        with pytest.raises(PortFileError):
            await client.request("m")

    @pytest.mark.asyncio
    async def test_error_envelope_raises(self, workdir: Path) -> None:
        client, _ = make_client(
            workdir,
            lambda r: httpx.Response(
                200,
                json={
                    "jsonrpc": "2.0",
                    "id": "x-1",
                    "error": {"code": -32803, "message": "timed out"},
                },
            ),
        )

        with pytest.raises(ProxyClientError, match="timed out") as exc_info:
            await client.request("m")
        assert exc_info.value.code == -32803

    @pytest.mark.asyncio
    async def test_http_error_status(self, workdir: Path) -> None:
        client, _ = make_client(workdir, lambda r: httpx.Response(400, text="Bad Request"))

        with pytest.raises(ProxyClientError, match="400 Bad Request") as exc_info:
            await client.request("m")
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_json(self, workdir: Path) -> None:
        client, _ = make_client(workdir, lambda r: httpx.Response(200, text="<html>"))

        with pytest.raises(ProxyClientError, match="Failed to parse"):
            await client.request("m")

    @pytest.mark.asyncio
    async def test_connection_failure(self, workdir: Path) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client, _ = make_client(workdir, refuse)

        with pytest.raises(ProxyClientError, match="Failed to send request"):
            await client.request("m")


class TestStartDebugAdapter:
    @pytest.mark.asyncio
    async def test_returns_endpoint(self, workdir: Path) -> None:
        client, seen = make_client(
            workdir,
            lambda r: httpx.Response(
                200,
                json={
                    "jsonrpc": "2.0",
                    "id": "x-1",
                    "result": {"name": "debugpy", "uri": "tcp://127.0.0.1:5678"},
                },
            ),
        )

        endpoint = await client.start_debug_adapter({"type": "python"})

        assert endpoint.name == "debugpy"
        assert endpoint.port == 5678
        assert json.loads(seen[0].content) == {
            "method": EXECUTE_COMMAND,
            "params": {"command": DAP_START_COMMAND, "arguments": [{"type": "python"}]},
        }

    @pytest.mark.asyncio
    async def test_unexpected_result(self, workdir: Path) -> None:
        client, _ = make_client(
            workdir,
            lambda r: httpx.Response(200, json={"jsonrpc": "2.0", "id": "x-1", "result": None}),
        )

        with pytest.raises(ProxyClientError, match="Unexpected debug-adapter-start result"):
            await client.start_debug_adapter({})
