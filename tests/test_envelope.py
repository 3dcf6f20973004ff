"""
Tests for JSON-RPC envelope framing and response parsing.

Test plan:
- Request: jsonrpc "1.0", id, method, params; compact UTF-8 bytes
- Response: result returned, structured error → ServerError with code
  kept verbatim, neither → EmptyResponseError regardless of id
- Malformed: non-JSON, non-object, malformed error member → ParseError
- Numbers: floats parse as Decimal so amounts stay exact
"""

import json
from decimal import Decimal

import pytest

from bitcoind_rpc.envelope import build_request, encode_request, parse_response
from bitcoind_rpc.errors import EmptyResponseError, ParseError, ServerError


class TestRequest:
    def test_shape(self) -> None:
        assert build_request(7, "getblockcount", []) == {
            "jsonrpc": "1.0",
            "id": 7,
            "method": "getblockcount",
            "params": [],
        }

    def test_encoded_is_compact_json(self) -> None:
        body = encode_request(1, "getblockhash", [0])
        assert body == b'{"jsonrpc":"1.0","id":1,"method":"getblockhash","params":[0]}'

    def test_encoded_is_utf8(self) -> None:
        body = encode_request(1, "setlabel", ["addr", "café"])
        assert json.loads(body.decode("utf-8"))["params"][1] == "café"
        assert "café".encode() in body


class TestResponse:
    def test_result(self) -> None:
        response = parse_response('{"result": 42, "error": null, "id": 1}')
        assert response.unwrap() == 42
        assert response.id == 1

    def test_structured_error(self) -> None:
        response = parse_response(
            '{"result": null, "error": {"code": -27, "message": "already in chain"}, "id": 1}'
        )
        with pytest.raises(ServerError) as exc_info:
            response.unwrap()
        assert exc_info.value.code == -27
        assert exc_info.value.message == "already in chain"

    @pytest.mark.parametrize(
        "text",
        [
            '{"result": null, "error": null, "id": 1}',
            '{"result": null, "error": null, "id": 99}',
            '{"id": 1}',
            "{}",
        ],
    )
    def test_empty(self, text: str) -> None:
        with pytest.raises(EmptyResponseError, match="Empty data received"):
            parse_response(text).unwrap()

    def test_floats_are_decimal(self) -> None:
        response = parse_response('{"result": {"amount": 0.1}, "error": null, "id": 1}')
        assert response.unwrap()["amount"] == Decimal("0.1")

    def test_falsy_result_is_not_empty(self) -> None:
        assert parse_response('{"result": false, "error": null, "id": 1}').unwrap() is False
        assert parse_response('{"result": [], "error": null, "id": 1}').unwrap() == []


class TestMalformed:
    @pytest.mark.parametrize(
        "text",
        [
            "",
            "<html>Internal Server Error</html>",
            "[1, 2, 3]",
            '"just a string"',
            '{"result": 1, "error": "boom", "id": 1}',
            '{"result": null, "error": {"code": "x", "message": "m"}, "id": 1}',
            '{"result": null, "error": {"code": true, "message": "m"}, "id": 1}',
            '{"result": null, "error": {"code": -1}, "id": 1}',
        ],
    )
    def test_parse_error(self, text: str) -> None:
        with pytest.raises(ParseError):
            parse_response(text)
