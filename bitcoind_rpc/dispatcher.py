"""
Resilient call dispatcher: one logical JSON-RPC call, end to end.

Per attempt:
    1. Allocate a fresh id from the shared counter.
    2. Frame the envelope {"jsonrpc": "1.0", id, method, params}.
    3. POST it through the transport.
    4. Non-2xx status → terminal. StatusError, or ServerError when the
       body is a JSON-RPC error envelope (bitcoind answers RPC errors
       with HTTP 500).
    5. Read the body, parse the envelope (ParseError is terminal).
    6. Structured error → ServerError (terminal, code kept verbatim).
    7. Neither result nor error → EmptyResponseError (terminal).
    8. Transport failure → classify. Retryable kinds sleep the fixed
       interval and go back to 1; terminal kinds raise immediately.
    9. After max_retries retries → MaxRetriesExceededError(max_retries).

Retry accounting: the first attempt plus at most ``max_retries``
retries, each preceded by exactly one delay of ``retry_interval_ms``.

Concurrency: safe to call from many tasks at once. The only shared
mutable state is the id counter. Cancellation is never intercepted: a
cancelled task abandons the in-flight request or the retry sleep.
"""

from __future__ import annotations

import asyncio
import itertools
import threading
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import httpx
from loguru import logger

from bitcoind_rpc.config import RetryPolicy
from bitcoind_rpc.envelope import encode_request, parse_response
from bitcoind_rpc.errors import (
    MaxRetriesExceededError,
    ParseError,
    ServerError,
    StatusError,
    TransportError,
    transport_error_from,
)
from bitcoind_rpc.params import to_value
from bitcoind_rpc.transport import RpcTransport, TransportReply

SleepFn = Callable[[float], Awaitable[None]]


class IdCounter:
    """Monotonic request id source, shared by reference between clones."""

    def __init__(self, start: int = 0) -> None:
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            return next(self._counter)


class Dispatcher:
    """Owns the transport, id counter and retry policy for one endpoint.

    Args:
        url: bitcoind RPC endpoint.
        transport: Injectable transport. Pass a fake for testing.
        retry: Fixed-delay retry policy.
        ids: Id counter. A new one is created when omitted.
        sleep: Awaitable delay function. Defaults to asyncio.sleep;
            inject a recorder in tests.
    """

    def __init__(
        self,
        url: str,
        transport: RpcTransport,
        retry: RetryPolicy | None = None,
        ids: IdCounter | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        self._url = url
        self._transport = transport
        self._retry = retry or RetryPolicy()
        self._ids = ids or IdCounter()
        self._sleep = sleep or asyncio.sleep

    @property
    def url(self) -> str:
        return self._url

    @property
    def retry(self) -> RetryPolicy:
        return self._retry

    @property
    def transport(self) -> RpcTransport:
        return self._transport

    async def call(self, method: str, params: Sequence[Any] = ()) -> Any:
        """Perform one logical call and return the raw JSON result.

        Raises:
            ParamError: Params cannot be encoded (before any I/O).
            StatusError | ServerError | ParseError | EmptyResponseError:
                Terminal outcomes of a completed exchange.
            TransportError: A terminal transport failure.
            MaxRetriesExceededError: Retryable failures outlasted the
                policy.
        """
        encoded = to_value(list(params))
        retries = 0
        while True:
            request_id = self._ids.next()
            body = encode_request(request_id, method, encoded)
            logger.debug(
                f"bitcoind call issued: method={method} id={request_id} attempt={retries + 1}"
            )
            try:
                return await self._attempt(method, request_id, body)
            except TransportError as exc:
                if not exc.retryable:
                    raise
                if retries >= self._retry.max_retries:
                    logger.warning(
                        f"bitcoind call failed: method={method} "
                        f"retries exhausted ({self._retry.max_retries}): {exc}"
                    )
                    raise MaxRetriesExceededError(self._retry.max_retries) from exc
                retries += 1
                logger.warning(
                    f"bitcoind {exc.kind.value} error, retrying: method={method} "
                    f"retry={retries}/{self._retry.max_retries} "
                    f"delay_ms={self._retry.retry_interval_ms}"
                )
                await self._sleep(self._retry.interval_s)

    async def _attempt(self, method: str, request_id: int, body: bytes) -> Any:
        try:
            reply = await self._transport.post(self._url, body)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise transport_error_from(exc) from exc

        logger.debug(
            f"bitcoind response received: method={method} id={request_id} "
            f"status={reply.status_code}"
        )

        if not 200 <= reply.status_code < 300:
            raise await _status_failure(reply)

        try:
            text = await reply.read_text()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise transport_error_from(exc, reading_body=True) from exc

        return parse_response(text).unwrap()


async def _status_failure(reply: TransportReply) -> Exception:
    """Build the terminal error for a non-2xx reply.

    bitcoind reports JSON-RPC 1.0 errors as HTTP 500 with the error
    envelope in the body; those surface as ServerError so callers keep
    the numeric code. Anything else is a StatusError.
    """
    status = StatusError(reply.status_code, reply.reason_phrase)
    try:
        text = await reply.read_text()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        status.__cause__ = exc
        return status

    try:
        response = parse_response(text)
    except ParseError:
        return status
    if response.error is None:
        return status
    return ServerError(response.error.code, response.error.message)
