"""
Transport protocol for bitcoind JSON-RPC calls.

Defines the seam where the HTTP implementation plugs in. The dispatcher
depends on this protocol, not on httpx directly, so tests can swap in a
fake without touching retry or parsing logic.

A call is two suspension points:

    reply = await transport.post(url, body)   # send, receive status line
    text = await reply.read_text()            # read the full body

Keeping them apart lets the classifier tell a failed exchange
(connection, timeout, redirect...) from a failure while reading the body
of a reply that already arrived.

Concrete implementations:
    - HttpxTransport (default, one shared httpx.AsyncClient)
    - FakeTransport (tests, returns canned replies)

Failures are raised as httpx exceptions; the dispatcher classifies them.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx


@runtime_checkable
class TransportReply(Protocol):
    """An HTTP reply whose body has not been read yet."""

    @property
    def status_code(self) -> int: ...

    @property
    def reason_phrase(self) -> str: ...

    async def read_text(self) -> str:
        """Read and decode the full body, releasing the connection."""
        ...


@runtime_checkable
class RpcTransport(Protocol):
    """Async transport for JSON-RPC POST requests."""

    async def post(self, url: str, body: bytes) -> TransportReply:
        """Send a serialized JSON-RPC request.

        Args:
            url: The bitcoind RPC endpoint URL.
            body: The UTF-8 JSON request envelope.

        Returns:
            The reply, with status available and body unread.

        Raises:
            httpx.HTTPError | httpx.InvalidURL: On transport-level
                failures (connection refused, timeout, redirect, etc.).
        """
        ...

    async def aclose(self) -> None: ...


class HttpxReply:
    """TransportReply over a streamed httpx.Response."""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def reason_phrase(self) -> str:
        return self._response.reason_phrase or "Unknown"

    async def read_text(self) -> str:
        try:
            await self._response.aread()
        finally:
            await self._response.aclose()
        return self._response.text


class HttpxTransport:
    """Default transport using one long-lived httpx.AsyncClient.

    The client (and its connection pool) is shared by every clone of a
    BitcoinClient. Default headers carry the content type and the
    pre-computed Authorization header.

    Args:
        timeout_s: Request timeout in seconds.
        authorization: ``Authorization`` header value, or None.
        client: Inject a pre-built AsyncClient (tests, custom TLS).
    """

    def __init__(
        self,
        timeout_s: float = 30.0,
        authorization: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if authorization is not None:
            headers["Authorization"] = authorization
        self._headers = headers
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    async def post(self, url: str, body: bytes) -> HttpxReply:
        request = self._client.build_request(
            "POST",
            url,
            content=body,
            headers=self._headers,
        )
        response = await self._client.send(request, stream=True)
        return HttpxReply(response)

    async def aclose(self) -> None:
        await self._client.aclose()
