"""
JSON-RPC 1.0 envelope framing for bitcoind.

Request:
    {"jsonrpc": "1.0", "id": <uint>, "method": <str>, "params": [...]}

Response:
    {"result": <value|null>, "error": {"code": <int>, "message": <str>}|null,
     "id": <uint>}

Exactly one of ``result`` / ``error`` is populated in a well-formed
response. A response with neither is a protocol violation
(``EmptyResponseError``), never a silent ``None``.

Fractional JSON numbers are parsed as ``Decimal`` so BTC amounts reach
the codec exactly as bitcoind printed them.

Pure functions, no I/O.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from bitcoind_rpc.errors import EmptyResponseError, ParseError, ServerError
from bitcoind_rpc.params import to_json_bytes

JSONRPC_VERSION = "1.0"


def build_request(request_id: int, method: str, params: list[Any]) -> dict[str, Any]:
    """Build the request envelope for one attempt."""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "method": method,
        "params": params,
    }


def encode_request(request_id: int, method: str, params: list[Any]) -> bytes:
    """Build and serialize the request envelope.

    Raises:
        ParamError: If the params cannot be serialized.
    """
    return to_json_bytes(build_request(request_id, method, params))


@dataclass(frozen=True)
class RpcError:
    """Structured error object from a JSON-RPC response."""

    code: int
    message: str


@dataclass(frozen=True)
class RpcResponse:
    """A parsed response envelope."""

    result: Any
    error: RpcError | None
    id: Any

    def unwrap(self) -> Any:
        """Return the result or raise the envelope's error.

        Raises:
            ServerError: The envelope carries a structured error.
            EmptyResponseError: Neither result nor error is present.
        """
        if self.error is not None:
            raise ServerError(self.error.code, self.error.message)
        if self.result is None:
            raise EmptyResponseError()
        return self.result


def parse_response(text: str) -> RpcResponse:
    """Parse a response body into an RpcResponse.

    Raises:
        ParseError: The body is not JSON, not an object, or carries an
            error member that is not ``{"code": int, "message": str}``.
    """
    try:
        data = json.loads(text, parse_float=Decimal)
    except ValueError as exc:
        raise ParseError(f"invalid JSON-RPC response: {exc}") from exc

    if not isinstance(data, dict):
        raise ParseError(f"JSON-RPC response is not an object: {type(data).__name__}")

    return RpcResponse(
        result=data.get("result"),
        error=_parse_error(data.get("error")),
        id=data.get("id"),
    )


def _parse_error(raw: Any) -> RpcError | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ParseError(f"JSON-RPC error is not an object: {raw!r}")

    code = raw.get("code")
    message = raw.get("message")
    if isinstance(code, bool) or not isinstance(code, int):
        raise ParseError(f"JSON-RPC error code is not an integer: {code!r}")
    if not isinstance(message, str):
        raise ParseError(f"JSON-RPC error message is not a string: {message!r}")
    return RpcError(code=code, message=message)
