"""
Error taxonomy for bitcoind JSON-RPC calls.

Every failure a caller can observe is a ``ClientError`` carrying an
``ErrorKind``. The kind decides whether the dispatcher may retry:

    Retryable (request never reliably reached or returned from bitcoind):
        - connection: peer unreachable, reset, proxy failure
        - timeout: connect/read/write/pool timeout
        - request: other transmission failure
        - decode: response body could not be decoded by the transport
          (e.g. malformed chunked or compressed body)

    Terminal (bitcoind understood the request, or it can never be sent):
        - body, status, builder, redirect
        - server (structured JSON-RPC error, code + message)
        - parse, empty_response, max_retries, param
        - xpriv, auth, other

Classification of raw httpx failures is a pure function
(``classify_transport_error``) so the retry policy can be tested
without a network.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum

import httpx

# =========================================================================
# Error kinds
# =========================================================================


class ErrorKind(StrEnum):
    """Closed set of failure kinds."""

    CONNECTION = "connection"
    TIMEOUT = "timeout"
    REQUEST = "request"
    DECODE = "decode"
    BODY = "body"
    STATUS = "status"
    BUILDER = "builder"
    REDIRECT = "redirect"
    SERVER = "server"
    PARSE = "parse"
    EMPTY_RESPONSE = "empty_response"
    MAX_RETRIES = "max_retries"
    PARAM = "param"
    XPRIV = "xpriv"
    AUTH = "auth"
    OTHER = "other"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE


_RETRYABLE = frozenset({
    ErrorKind.CONNECTION,
    ErrorKind.TIMEOUT,
    ErrorKind.REQUEST,
    ErrorKind.DECODE,
})


class RpcErrorCode(IntEnum):
    """bitcoind RPC error codes the client gives meaning to."""

    RPC_MISC_ERROR = -1
    RPC_TYPE_ERROR = -3
    RPC_INVALID_ADDRESS_OR_KEY = -5
    RPC_INVALID_PARAMETER = -8
    RPC_VERIFY_ERROR = -25
    RPC_VERIFY_REJECTED = -26
    RPC_VERIFY_ALREADY_IN_CHAIN = -27
    RPC_IN_WARMUP = -28
    RPC_METHOD_NOT_FOUND = -32601
    RPC_WALLET_NOT_FOUND = -18
    RPC_WALLET_ALREADY_LOADED = -35


# =========================================================================
# Exceptions
# =========================================================================


class ClientError(Exception):
    """Base class for every error raised by the client."""

    kind: ErrorKind = ErrorKind.OTHER

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


class TransportError(ClientError):
    """The HTTP exchange itself failed (no usable reply)."""

    def __init__(self, kind: ErrorKind, detail: str) -> None:
        super().__init__(f"{kind.value} error: {detail}", kind)
        self.detail = detail


class StatusError(ClientError):
    """bitcoind answered with a non-2xx HTTP status."""

    kind = ErrorKind.STATUS

    def __init__(self, status_code: int, reason: str) -> None:
        super().__init__(f"HTTP {status_code} {reason}")
        self.status_code = status_code
        self.reason = reason


class ServerError(ClientError):
    """bitcoind returned a structured JSON-RPC error."""

    kind = ErrorKind.SERVER

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message


class ParseError(ClientError):
    """The response could not be parsed into the expected shape."""

    kind = ErrorKind.PARSE


class DecodeError(ParseError):
    """A wire value failed its strict domain decoding."""


class EmptyResponseError(ClientError):
    """Envelope carried neither a result nor an error."""

    kind = ErrorKind.EMPTY_RESPONSE

    def __init__(self, message: str = "Empty data received") -> None:
        super().__init__(message)


class MaxRetriesExceededError(ClientError):
    """Retryable failures persisted past the configured limit."""

    kind = ErrorKind.MAX_RETRIES

    def __init__(self, max_retries: int) -> None:
        super().__init__(f"Max retries exceeded: {max_retries}")
        self.max_retries = max_retries


class ParamError(ClientError):
    """A call parameter cannot be serialized. Raised before any I/O."""

    kind = ErrorKind.PARAM


class XprivError(ClientError):
    """The wallet's descriptors did not yield an extended private key."""

    kind = ErrorKind.XPRIV

    def __init__(self, message: str = "Could not get xpriv from wallet") -> None:
        super().__init__(message)


class AuthError(ClientError):
    """Credentials could not be resolved (unusable cookie file)."""

    kind = ErrorKind.AUTH


# =========================================================================
# Transport failure classification (pure)
# =========================================================================

_BUILDER_ERRORS = (httpx.InvalidURL, httpx.UnsupportedProtocol, httpx.LocalProtocolError)
_CONNECTION_ERRORS = (httpx.NetworkError, httpx.RemoteProtocolError, httpx.ProxyError)


def classify_transport_error(
    exc: BaseException,
    *,
    reading_body: bool = False,
) -> ErrorKind:
    """Map a raw httpx failure to an ErrorKind.

    Args:
        exc: The exception raised by the HTTP layer.
        reading_body: True when the failure happened while reading the
            body of a reply whose headers had already arrived.

    Returns:
        The ErrorKind. Unrecognized exceptions map to OTHER (terminal).
    """
    if isinstance(exc, httpx.TimeoutException):
        return ErrorKind.TIMEOUT
    if isinstance(exc, httpx.DecodingError):
        return ErrorKind.DECODE
    if isinstance(exc, httpx.TooManyRedirects):
        return ErrorKind.REDIRECT
    if isinstance(exc, httpx.HTTPStatusError):
        return ErrorKind.STATUS
    if isinstance(exc, _BUILDER_ERRORS):
        return ErrorKind.BUILDER
    if reading_body and isinstance(exc, httpx.RequestError):
        return ErrorKind.BODY
    if isinstance(exc, _CONNECTION_ERRORS):
        return ErrorKind.CONNECTION
    if isinstance(exc, httpx.RequestError):
        return ErrorKind.REQUEST
    return ErrorKind.OTHER


def transport_error_from(
    exc: BaseException,
    *,
    reading_body: bool = False,
) -> TransportError:
    """Wrap a raw httpx failure in a TransportError of the classified kind."""
    kind = classify_transport_error(exc, reading_body=reading_body)
    return TransportError(kind, str(exc) or type(exc).__name__)
