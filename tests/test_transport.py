"""
Tests for the httpx transport — real BitcoinClient against pytest-httpx.

Test plan:
- Request shape: POST to the configured url, JSON content type, compact
  JSON-RPC 1.0 envelope with ids counting from 0, Basic Authorization
  header from UserPass or a cookie file, no header for NoAuth
- Outcomes: result decoding, HTTP 500 with an error envelope → ServerError,
  401 → StatusError, empty body → ParseError, null result → EmptyResponseError
- Retry: connection errors and timeouts retried with the injected sleep,
  recovery after a transient failure, exhaustion → MaxRetriesExceededError
- Lifecycle: async with closes the shared httpx client
"""

import base64
import json
from pathlib import Path

import httpx
import pytest
from pytest_httpx import HTTPXMock
from vectors import GENESIS_BLOCK_HASH

from bitcoind_rpc import (
    BitcoinClient,
    CookieFile,
    EmptyResponseError,
    ErrorKind,
    MaxRetriesExceededError,
    ParseError,
    ServerError,
    StatusError,
    UserPass,
)
from bitcoind_rpc.transport import HttpxTransport

URL = "http://127.0.0.1:18443/"


def _basic(user: str, password: str) -> str:
    return "Basic " + base64.b64encode(f"{user}:{password}".encode()).decode()


def _result(value: object, request_id: int = 0) -> dict:
    return {"result": value, "error": None, "id": request_id}


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# ---------------------------------------------------------------------------
# Request shape
# ---------------------------------------------------------------------------


class TestRequestShape:
    @pytest.mark.asyncio
    async def test_post_envelope(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, method="POST", json=_result(GENESIS_BLOCK_HASH))

        async with BitcoinClient(URL) as client:
            block_hash = await client.get_block_hash(0)

        assert str(block_hash) == GENESIS_BLOCK_HASH
        request = httpx_mock.get_requests()[0]
        assert request.method == "POST"
        assert request.headers["Content-Type"] == "application/json"
        assert "Authorization" not in request.headers
        assert request.content == b'{"jsonrpc":"1.0","id":0,"method":"getblockhash","params":[0]}'

    @pytest.mark.asyncio
    async def test_user_pass_header(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, json=_result(101))

        async with BitcoinClient(URL, UserPass("alice", "s3cret")) as client:
            assert await client.get_block_count() == 101

        request = httpx_mock.get_requests()[0]
        assert request.headers["Authorization"] == _basic("alice", "s3cret")

    @pytest.mark.asyncio
    async def test_cookie_header(self, httpx_mock: HTTPXMock, tmp_path: Path) -> None:
        cookie = tmp_path / ".cookie"
        cookie.write_text("__cookie__:f00d\n")
        httpx_mock.add_response(url=URL, json=_result(101))

        async with BitcoinClient(URL, CookieFile(cookie)) as client:
            await client.get_block_count()

        request = httpx_mock.get_requests()[0]
        assert request.headers["Authorization"] == _basic("__cookie__", "f00d")

    @pytest.mark.asyncio
    async def test_ids_increase_per_call(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, json=_result(1))
        httpx_mock.add_response(url=URL, json=_result(2))

        async with BitcoinClient(URL) as client:
            await client.get_block_count()
            await client.get_block_count()

        ids = [json.loads(r.content)["id"] for r in httpx_mock.get_requests()]
        assert ids == [0, 1]


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


class TestOutcomes:
    @pytest.mark.asyncio
    async def test_server_error_envelope(self, httpx_mock: HTTPXMock) -> None:
        error = {"code": -8, "message": "Block height out of range"}
        httpx_mock.add_response(
            url=URL, status_code=500, json={"result": None, "error": error, "id": 0}
        )

        async with BitcoinClient(URL) as client:
            with pytest.raises(ServerError) as exc_info:
                await client.get_block_hash(10_000_000)

        assert exc_info.value.code == -8
        assert exc_info.value.message == "Block height out of range"
        assert len(httpx_mock.get_requests()) == 1

    @pytest.mark.asyncio
    async def test_unauthorized(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, status_code=401, text="")

        async with BitcoinClient(URL, UserPass("alice", "wrong")) as client:
            with pytest.raises(StatusError) as exc_info:
                await client.get_block_count()

        assert exc_info.value.status_code == 401
        assert exc_info.value.kind == ErrorKind.STATUS
        assert len(httpx_mock.get_requests()) == 1

    @pytest.mark.asyncio
    async def test_empty_body(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, text="")

        async with BitcoinClient(URL) as client:
            with pytest.raises(ParseError):
                await client.get_block_count()

    @pytest.mark.asyncio
    async def test_null_result(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, json=_result(None))

        async with BitcoinClient(URL) as client:
            with pytest.raises(EmptyResponseError, match="Empty data received"):
                await client.call("gettxout", ["00" * 32, 0])


# ---------------------------------------------------------------------------
# Retry
# ---------------------------------------------------------------------------


class TestRetry:
    @pytest.mark.asyncio
    async def test_recovers_after_connection_error(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"), url=URL)
        httpx_mock.add_response(url=URL, json=_result(101, request_id=1))
        sleep = RecordingSleep()

        async with BitcoinClient(URL, retry_interval_ms=50, sleep=sleep) as client:
            assert await client.get_block_count() == 101

        assert sleep.delays == [0.05]
        ids = [json.loads(r.content)["id"] for r in httpx_mock.get_requests()]
        assert ids == [0, 1]

    @pytest.mark.asyncio
    async def test_exhaustion(self, httpx_mock: HTTPXMock) -> None:
        for _ in range(4):
            httpx_mock.add_exception(httpx.ConnectError("Connection refused"), url=URL)
        sleep = RecordingSleep()

        async with BitcoinClient(URL, max_retries=3, sleep=sleep) as client:
            with pytest.raises(MaxRetriesExceededError) as exc_info:
                await client.get_block_count()

        assert exc_info.value.max_retries == 3
        assert isinstance(exc_info.value.__cause__, Exception)
        assert len(httpx_mock.get_requests()) == 4
        assert sleep.delays == [1.0, 1.0, 1.0]

    @pytest.mark.asyncio
    async def test_timeout_is_retried(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"), url=URL)
        httpx_mock.add_response(url=URL, json=_result(7, request_id=1))

        async with BitcoinClient(URL, sleep=RecordingSleep()) as client:
            assert await client.get_block_count() == 7


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_injected_client_closed(self) -> None:
        http = httpx.AsyncClient()
        transport = HttpxTransport(client=http)
        async with BitcoinClient(URL, transport=transport):
            pass
        assert http.is_closed
