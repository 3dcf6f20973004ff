"""
Partially Signed Bitcoin Transactions (BIP-174, version 0).

Binary layout:

    magic       b"psbt\\xff"
    global map  key-value pairs, terminated by 0x00
    input maps  one per unsigned-tx input, each terminated by 0x00
    output maps one per unsigned-tx output, each terminated by 0x00

Each pair is ``<compact-size keylen><key><compact-size valuelen><value>``
where ``key[0]`` is the key type. The global map must carry exactly one
unsigned transaction (key type 0x00) with empty scriptSigs and no
witnesses; its input and output counts determine how many maps follow.

Only structure is validated. Per-input and per-output fields are kept as
raw key/value bytes and re-serialized verbatim, so a parse followed by
``to_bytes()`` reproduces the original encoding.
"""

from __future__ import annotations

import base64
import binascii
import io
from dataclasses import dataclass

from bitcoin.core import CTransaction
from bitcoin.core.serialize import BytesSerializer, SerializationError

from bitcoind_rpc.errors import DecodeError

PSBT_MAGIC = b"psbt\xff"
PSBT_GLOBAL_UNSIGNED_TX = 0x00
PSBT_GLOBAL_VERSION = 0xFB

PsbtMap = dict[bytes, bytes]


class PsbtError(DecodeError):
    """The PSBT is not well-formed."""


@dataclass(frozen=True)
class Psbt:
    """A parsed PSBT.

    Attributes:
        unsigned_tx: The global unsigned transaction.
        global_map: All global key/value pairs, including the unsigned tx.
        inputs: One key/value map per transaction input.
        outputs: One key/value map per transaction output.
    """

    unsigned_tx: CTransaction
    global_map: PsbtMap
    inputs: tuple[PsbtMap, ...]
    outputs: tuple[PsbtMap, ...]

    @property
    def version(self) -> int:
        raw = self.global_map.get(bytes([PSBT_GLOBAL_VERSION]))
        return int.from_bytes(raw, "little") if raw else 0

    @classmethod
    def from_base64(cls, text: str) -> Psbt:
        """Parse a base64 PSBT string.

        Raises:
            PsbtError: On invalid base64 or a malformed PSBT.
        """
        try:
            raw = base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise PsbtError(f"PSBT: invalid base64: {exc}") from exc
        return cls.from_bytes(raw)

    @classmethod
    def from_bytes(cls, raw: bytes) -> Psbt:
        """Parse a binary PSBT.

        Raises:
            PsbtError: On any structural violation.
        """
        if not raw.startswith(PSBT_MAGIC):
            raise PsbtError("PSBT: missing magic bytes")

        f = io.BytesIO(raw)
        f.seek(len(PSBT_MAGIC))
        try:
            global_map = _read_map(f, "global")
            unsigned_tx = _unsigned_tx(global_map)
            inputs = tuple(_read_map(f, f"input {i}") for i in range(len(unsigned_tx.vin)))
            outputs = tuple(_read_map(f, f"output {i}") for i in range(len(unsigned_tx.vout)))
        except SerializationError as exc:
            raise PsbtError(f"PSBT: {exc}") from exc

        if f.read(1):
            raise PsbtError("PSBT: trailing data after last output map")

        psbt = cls(unsigned_tx, global_map, inputs, outputs)
        if psbt.version != 0:
            raise PsbtError(f"PSBT: unsupported version {psbt.version}")
        return psbt

    def to_bytes(self) -> bytes:
        f = io.BytesIO()
        f.write(PSBT_MAGIC)
        for psbt_map in (self.global_map, *self.inputs, *self.outputs):
            _write_map(f, psbt_map)
        return f.getvalue()

    def to_base64(self) -> str:
        return base64.b64encode(self.to_bytes()).decode("ascii")

    def __str__(self) -> str:
        return self.to_base64()


# =========================================================================
# Map (de)serialization
# =========================================================================


def _read_map(f: io.BytesIO, where: str) -> PsbtMap:
    pairs: PsbtMap = {}
    while True:
        key = BytesSerializer.stream_deserialize(f)
        if not key:
            return pairs
        value = BytesSerializer.stream_deserialize(f)
        if key in pairs:
            raise PsbtError(f"PSBT: duplicate key {key.hex()} in {where} map")
        pairs[key] = value


def _write_map(f: io.BytesIO, psbt_map: PsbtMap) -> None:
    for key, value in psbt_map.items():
        BytesSerializer.stream_serialize(key, f)
        BytesSerializer.stream_serialize(value, f)
    f.write(b"\x00")


def _unsigned_tx(global_map: PsbtMap) -> CTransaction:
    for key in global_map:
        if key[0] == PSBT_GLOBAL_UNSIGNED_TX and len(key) != 1:
            raise PsbtError("PSBT: unsigned tx key must be a single byte")

    raw = global_map.get(bytes([PSBT_GLOBAL_UNSIGNED_TX]))
    if raw is None:
        raise PsbtError("PSBT: global map has no unsigned transaction")

    try:
        tx = CTransaction.deserialize(raw)
    except (SerializationError, ValueError) as exc:
        raise PsbtError(f"PSBT: unsigned transaction: {exc}") from exc

    if not tx.vin:
        raise PsbtError("PSBT: unsigned transaction has no inputs")
    if any(len(txin.scriptSig) for txin in tx.vin) or tx.has_witness():
        raise PsbtError("PSBT: unsigned transaction must have empty scriptSigs and witnesses")
    return tx
