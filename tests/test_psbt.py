"""
Tests for PSBT structural parsing.

Test plan:
- Valid: BIP-174 vector parses, map counts follow the unsigned tx,
  re-serialization reproduces the input exactly
- Invalid: bad base64, missing magic, missing unsigned tx, duplicate
  keys, trailing bytes, signed "unsigned" transaction, unknown version
"""

import base64

import pytest
from vectors import GENESIS_TX_HEX, PSBT_BASE64

from bitcoind_rpc.errors import DecodeError
from bitcoind_rpc.psbt import PSBT_MAGIC, Psbt, PsbtError


def _global_pair(key: bytes, value: bytes) -> bytes:
    assert len(key) < 0xFD and len(value) < 0xFD
    return bytes([len(key)]) + key + bytes([len(value)]) + value


class TestValidPsbt:
    def test_parses(self) -> None:
        psbt = Psbt.from_base64(PSBT_BASE64)
        assert len(psbt.unsigned_tx.vin) == 1
        assert len(psbt.inputs) == 1
        assert len(psbt.outputs) == 2
        assert psbt.version == 0

    def test_round_trip_is_exact(self) -> None:
        psbt = Psbt.from_base64(PSBT_BASE64)
        assert psbt.to_base64() == PSBT_BASE64
        assert str(psbt) == PSBT_BASE64

    def test_from_bytes(self) -> None:
        raw = base64.b64decode(PSBT_BASE64)
        assert Psbt.from_bytes(raw).to_bytes() == raw

    def test_equality(self) -> None:
        assert Psbt.from_base64(PSBT_BASE64) == Psbt.from_base64(PSBT_BASE64)


class TestInvalidPsbt:
    def test_bad_base64(self) -> None:
        with pytest.raises(PsbtError, match="base64"):
            Psbt.from_base64("invalid_base64_data")

    def test_error_is_decode_error(self) -> None:
        with pytest.raises(DecodeError):
            Psbt.from_base64("")

    def test_missing_magic(self) -> None:
        raw = base64.b64decode(PSBT_BASE64)
        with pytest.raises(PsbtError, match="magic"):
            Psbt.from_bytes(b"pstb\xff" + raw[5:])

    def test_missing_unsigned_tx(self) -> None:
        with pytest.raises(PsbtError, match="no unsigned transaction"):
            Psbt.from_bytes(PSBT_MAGIC + b"\x00")

    def test_duplicate_key(self) -> None:
        tx = Psbt.from_base64(PSBT_BASE64).global_map[b"\x00"]
        pair = _global_pair(b"\x00", tx)
        with pytest.raises(PsbtError, match="duplicate"):
            Psbt.from_bytes(PSBT_MAGIC + pair + pair + b"\x00")

    def test_trailing_data(self) -> None:
        raw = base64.b64decode(PSBT_BASE64)
        with pytest.raises(PsbtError, match="trailing"):
            Psbt.from_bytes(raw + b"\x00")

    def test_truncated(self) -> None:
        raw = base64.b64decode(PSBT_BASE64)
        with pytest.raises(PsbtError):
            Psbt.from_bytes(raw[:-3])

    def test_signed_transaction_rejected(self) -> None:
        pair = _global_pair(b"\x00", bytes.fromhex(GENESIS_TX_HEX))
        with pytest.raises(PsbtError, match="scriptSig"):
            Psbt.from_bytes(PSBT_MAGIC + pair + b"\x00")

    def test_unsupported_version(self) -> None:
        psbt = Psbt.from_base64(PSBT_BASE64)
        tx = psbt.global_map[b"\x00"]
        body = base64.b64decode(PSBT_BASE64)[len(PSBT_MAGIC) + len(_global_pair(b"\x00", tx)) + 1 :]
        versioned = (
            PSBT_MAGIC
            + _global_pair(b"\x00", tx)
            + _global_pair(b"\xfb", (2).to_bytes(4, "little"))
            + b"\x00"
            + body
        )
        with pytest.raises(PsbtError, match="version"):
            Psbt.from_bytes(versioned)
