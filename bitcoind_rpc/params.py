"""
Encoding of call parameters into JSON-ready values.

Facade methods hand the dispatcher domain objects (hashes, amounts,
fee rates, argument models). ``to_value`` lowers them to plain JSON
types; ``to_json_bytes`` serializes the result. Both raise ``ParamError``
for anything that cannot be represented, so an unencodable argument
fails before any network activity.

Serialization rules:
    - No whitespace, UTF-8 (no ASCII escapes).
    - NaN and infinities are rejected.
    - ``Decimal`` is emitted as a JSON number.
    - ``Amount`` / ``SignedAmount`` are sent in BTC, as bitcoind expects.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from decimal import Decimal
from enum import Enum
from typing import Any

from bitcoind_rpc.address import UncheckedAddress
from bitcoind_rpc.codec import Amount, FeeRate, Hash256, SignedAmount
from bitcoind_rpc.errors import ParamError
from bitcoind_rpc.psbt import Psbt


def to_value(obj: Any) -> Any:
    """Lower a parameter to JSON-compatible Python values.

    Raises:
        ParamError: If the object (or anything nested in it) has no JSON
            representation.
    """
    if obj is None or isinstance(obj, (bool, str)):
        return obj
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (Amount, SignedAmount)):
        return float(obj.to_btc())
    if isinstance(obj, int):
        return int(obj)
    if isinstance(obj, float):
        if obj != obj or obj in (float("inf"), float("-inf")):
            raise ParamError(f"Error creating value: {obj} is not a finite number")
        return obj
    if isinstance(obj, Decimal):
        if not obj.is_finite():
            raise ParamError(f"Error creating value: {obj} is not a finite number")
        return float(obj)
    if isinstance(obj, (Hash256, UncheckedAddress, Psbt)):
        return str(obj)
    if isinstance(obj, FeeRate):
        return float(obj.to_sat_per_vb())
    if hasattr(obj, "to_dict"):
        return to_value(obj.to_dict())
    if isinstance(obj, Mapping):
        result: dict[str, Any] = {}
        for key, value in obj.items():
            if not isinstance(key, str):
                raise ParamError(f"Error creating value: object key {key!r} is not a string")
            result[key] = to_value(value)
        return result
    if isinstance(obj, Sequence) and not isinstance(obj, (bytes, bytearray)):
        return [to_value(item) for item in obj]
    raise ParamError(f"Error creating value: {type(obj).__name__} is not JSON serializable")


def to_json_bytes(obj: Any) -> bytes:
    """Serialize already-lowered values to compact UTF-8 JSON.

    Raises:
        ParamError: If json rejects the value.
    """
    try:
        text = json.dumps(
            obj,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as exc:
        raise ParamError(f"Error creating value: {exc}") from exc
    return text.encode("utf-8")
