"""
Strict decoders for the loosely typed values bitcoind puts on the wire.

bitcoind represents money as BTC floats, identifiers and consensus
records as hex strings, PSBTs as base64, and transaction outputs as
single-key objects. Every decoder here is total: it returns a value or
raises ``DecodeError``. Malformed server data never crashes the client
and is never silently clamped, truncated or defaulted.

Values:
    - ``Amount`` / ``SignedAmount``: integer satoshis (BTC x 100,000,000).
    - ``Txid`` / ``Wtxid`` / ``BlockHash``: 32 bytes, internal byte order,
      displayed as reversed hex like bitcoind does.
    - ``CTransaction`` / ``CBlockHeader`` / ``CBlock``: python-bitcoinlib
      consensus deserialization of hex records.
    - ``FeeRate``: stored in sat per 1000 weight units; decoded from
      sat/vB values.
    - ``Psbt``: see ``bitcoind_rpc.psbt``.
    - ``ExtendedPrivateKey``: BIP-32 xprv/tprv.
    - ``CreateRawTransactionOutput``: address+amount or opaque data.

Addresses live in ``bitcoind_rpc.address``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Self, TypeVar

from bitcoin.base58 import Base58Error, CBase58Data
from bitcoin.core import COIN, CBlock, CBlockHeader, CTransaction, b2lx, b2x, lx, x
from bitcoin.core.serialize import SerializationError

from bitcoind_rpc.address import Network
from bitcoind_rpc.errors import DecodeError
from bitcoind_rpc.psbt import Psbt

_Number = int | float | Decimal

# =========================================================================
# Amounts
# =========================================================================


def _to_decimal(value: object, what: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise DecodeError(f"{what}: expected a number, got {type(value).__name__}")
    # repr() keeps the shortest round-tripping form of a float
    number = Decimal(repr(value)) if isinstance(value, float) else Decimal(value)
    if not number.is_finite():
        raise DecodeError(f"{what}: {value} is not finite")
    return number


class _Satoshis(int):
    """Integer satoshi count with a bounded range."""

    _MIN = 0
    _MAX = 0

    def __new__(cls, sats: int) -> Self:
        if isinstance(sats, bool) or not isinstance(sats, int):
            raise TypeError(f"{cls.__name__} takes an int, got {type(sats).__name__}")
        if not cls._MIN <= sats <= cls._MAX:
            raise ValueError(f"{cls.__name__} out of range: {sats}")
        return super().__new__(cls, sats)

    @classmethod
    def from_sat(cls, sats: int) -> Self:
        return cls(sats)

    @classmethod
    def from_btc(cls, btc: object) -> Self:
        """Convert a BTC value to satoshis.

        Raises:
            DecodeError: Non-numeric, non-finite, sub-satoshi precision,
                or out of range for this type.
        """
        what = cls.__name__
        number = _to_decimal(btc, what)
        # scaling by COIN adds at most 9 digits; keep the product exact
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, len(number.as_tuple().digits) + 9)
            try:
                scaled = number * COIN
            except ArithmeticError as exc:
                raise DecodeError(f"{what}: {btc} is out of range") from exc
            sub_satoshi = scaled != scaled.to_integral_value()
        if sub_satoshi:
            raise DecodeError(f"{what}: {btc} has more precision than one satoshi")
        try:
            return cls(int(scaled))
        except ValueError as exc:
            raise DecodeError(str(exc)) from exc

    def to_sat(self) -> int:
        return int(self)

    def to_btc(self) -> Decimal:
        return Decimal(int(self)).scaleb(-8)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self)} sat)"


class Amount(_Satoshis):
    """Non-negative amount in satoshis."""

    _MIN = 0
    _MAX = 2**64 - 1


class SignedAmount(_Satoshis):
    """Amount in satoshis that may be negative (outgoing wallet activity)."""

    _MIN = -(2**63)
    _MAX = 2**63 - 1


def decode_amount(value: object) -> Amount:
    """Decode a BTC float into an unsigned Amount. Negatives are rejected."""
    return Amount.from_btc(value)


def decode_signed_amount(value: object) -> SignedAmount:
    """Decode a BTC float into a SignedAmount."""
    return SignedAmount.from_btc(value)


def decode_optional_amount(value: object) -> Amount | None:
    return None if value is None else decode_amount(value)


def decode_optional_signed_amount(value: object) -> SignedAmount | None:
    return None if value is None else decode_signed_amount(value)


# =========================================================================
# Hash identifiers
# =========================================================================

_H = TypeVar("_H", bound="Hash256")


@dataclass(frozen=True)
class Hash256:
    """A 32-byte double-SHA256 identifier in internal byte order."""

    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != 32:
            raise ValueError(f"{type(self).__name__} must be 32 bytes, got {len(self.raw)}")

    @classmethod
    def from_hex(cls: type[_H], text: object) -> _H:
        """Parse display (byte-reversed) hex.

        Raises:
            DecodeError: Not a string of exactly 64 hex characters.
        """
        what = cls.__name__
        if not isinstance(text, str):
            raise DecodeError(f"{what}: expected a hex string, got {type(text).__name__}")
        if len(text) != 64:
            raise DecodeError(f"{what}: expected 64 hex characters, got {len(text)}")
        try:
            return cls(lx(text))
        except ValueError as exc:
            raise DecodeError(f"{what}: invalid hex {text!r}") from exc

    def to_hex(self) -> str:
        return b2lx(self.raw)

    def __str__(self) -> str:
        return self.to_hex()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_hex()})"


class Txid(Hash256):
    """Transaction id (hash of the non-witness serialization)."""

    @classmethod
    def of(cls, tx: CTransaction) -> Txid:
        return cls(tx.GetTxid())


class Wtxid(Hash256):
    """Witness transaction id."""


class BlockHash(Hash256):
    """Block header hash."""


def decode_txid(value: object) -> Txid:
    return Txid.from_hex(value)


def decode_optional_txid(value: object) -> Txid | None:
    return None if value is None else Txid.from_hex(value)


def decode_wtxid(value: object) -> Wtxid:
    return Wtxid.from_hex(value)


def decode_block_hash(value: object) -> BlockHash:
    return BlockHash.from_hex(value)


def decode_optional_block_hash(value: object) -> BlockHash | None:
    return None if value is None else BlockHash.from_hex(value)


# =========================================================================
# Consensus-serialized records
# =========================================================================

_R = TypeVar("_R", CTransaction, CBlockHeader, CBlock)


def _decode_record(cls: type[_R], value: object, what: str) -> _R:
    if not isinstance(value, str):
        raise DecodeError(f"{what}: expected a hex string, got {type(value).__name__}")
    try:
        raw = x(value)
    except ValueError as exc:
        raise DecodeError(f"{what}: invalid hex: {exc}") from exc
    try:
        record: _R = cls.deserialize(raw)
    except (SerializationError, ValueError) as exc:
        raise DecodeError(f"{what}: {exc}") from exc
    return record


def decode_transaction(value: object) -> CTransaction:
    """Decode a consensus-serialized transaction hex string.

    Raises:
        DecodeError: Invalid hex, truncated record, or trailing bytes.
    """
    return _decode_record(CTransaction, value, "transaction")


def decode_optional_transaction(value: object) -> CTransaction | None:
    """Decode a transaction that may not be present (null or empty string)."""
    if value is None or value == "":
        return None
    return decode_transaction(value)


def decode_block_header(value: object) -> CBlockHeader:
    return _decode_record(CBlockHeader, value, "block header")


def decode_block(value: object) -> CBlock:
    return _decode_record(CBlock, value, "block")


def encode_transaction(tx: CTransaction) -> str:
    """Consensus-serialize a transaction as hex for broadcast RPCs."""
    return b2x(tx.serialize())


# =========================================================================
# Fee rates
# =========================================================================

_WU_PER_VB = 4
_KWU = 1000
_MAX_SAT_PER_VB = (2**64 - 1) * _WU_PER_VB // _KWU


@dataclass(frozen=True, order=True)
class FeeRate:
    """Fee rate in satoshis per 1000 weight units (sat/kwu)."""

    sat_per_kwu: int

    def __post_init__(self) -> None:
        if self.sat_per_kwu < 0:
            raise ValueError(f"fee rate must be non-negative, got {self.sat_per_kwu}")

    @classmethod
    def from_sat_per_vb(cls, sat_per_vb: int) -> FeeRate:
        return cls(sat_per_vb * _KWU // _WU_PER_VB)

    @classmethod
    def from_sat_per_kwu(cls, sat_per_kwu: int) -> FeeRate:
        return cls(sat_per_kwu)

    def to_sat_per_vb(self) -> Decimal:
        return Decimal(self.sat_per_kwu * _WU_PER_VB) / _KWU

    def to_sat_per_vb_floor(self) -> int:
        return self.sat_per_kwu * _WU_PER_VB // _KWU

    def to_sat_per_vb_ceil(self) -> int:
        return -(-self.sat_per_kwu * _WU_PER_VB // _KWU)


def decode_fee_rate(value: object) -> FeeRate:
    """Decode a sat/vB value, rounding half away from zero.

    The wire value is already per virtual byte; it is not re-scaled.

    Raises:
        DecodeError: Non-numeric, non-finite, or negative value.
    """
    rate = _to_decimal(value, "fee rate")
    if rate < 0:
        raise DecodeError(f"fee rate: {value} is negative")
    try:
        sat_per_vb = int(rate.to_integral_value(rounding=ROUND_HALF_UP))
    except InvalidOperation as exc:
        raise DecodeError(f"fee rate: {value} is out of range") from exc
    if sat_per_vb > _MAX_SAT_PER_VB:
        raise DecodeError(f"fee rate: {value} is out of range")
    return FeeRate.from_sat_per_vb(sat_per_vb)


# =========================================================================
# PSBT
# =========================================================================


def decode_psbt(value: object) -> Psbt:
    """Decode a base64 PSBT. Absent or empty values are errors here.

    Raises:
        DecodeError: Not a string, invalid base64, or malformed PSBT.
    """
    if not isinstance(value, str):
        raise DecodeError(f"PSBT: expected a base64 string, got {type(value).__name__}")
    return Psbt.from_base64(value)


def decode_optional_psbt(value: object) -> Psbt | None:
    """Decode a PSBT that may not be present yet (null or empty string)."""
    if value is None or value == "":
        return None
    return decode_psbt(value)


# =========================================================================
# Extended private keys (BIP-32)
# =========================================================================

XPRV_VERSIONS: dict[bytes, Network] = {
    bytes.fromhex("0488ade4"): Network.MAIN,
    bytes.fromhex("04358394"): Network.TEST,
}


@dataclass(frozen=True)
class ExtendedPrivateKey:
    """A BIP-32 extended private key.

    ``network`` is MAIN for xprv and TEST for tprv; tprv keys are shared
    by every non-main chain.
    """

    network: Network
    depth: int
    parent_fingerprint: bytes
    child_number: int
    chain_code: bytes = field(repr=False)
    secret: bytes = field(repr=False)
    encoded: str = field(repr=False)

    def __str__(self) -> str:
        return self.encoded


def decode_xpriv(value: object) -> ExtendedPrivateKey:
    """Decode a base58check xprv/tprv string.

    Raises:
        DecodeError: Bad base58, bad checksum, wrong length, unknown
            version, or a key field that is not a private key.
    """
    if not isinstance(value, str):
        raise DecodeError(f"xpriv: expected a string, got {type(value).__name__}")
    try:
        data = CBase58Data(value)
    except (Base58Error, ValueError) as exc:
        raise DecodeError(f"xpriv: {exc}") from exc

    raw = bytes([data.nVersion]) + bytes(data)
    if len(raw) != 78:
        raise DecodeError(f"xpriv: expected 78 bytes, got {len(raw)}")

    network = XPRV_VERSIONS.get(raw[:4])
    if network is None:
        raise DecodeError(f"xpriv: unknown version {raw[:4].hex()}")
    if raw[45] != 0:
        raise DecodeError("xpriv: key data is not a private key")

    return ExtendedPrivateKey(
        network=network,
        depth=raw[4],
        parent_fingerprint=raw[5:9],
        child_number=int.from_bytes(raw[9:13], "big"),
        chain_code=raw[13:45],
        secret=raw[46:78],
        encoded=value,
    )


# =========================================================================
# Transaction output specifications
# =========================================================================


@dataclass(frozen=True)
class AddressAmount:
    """Pay ``amount`` BTC to ``address``."""

    address: str
    amount: _Number

    def to_dict(self) -> dict[str, _Number]:
        return {self.address: self.amount}


@dataclass(frozen=True)
class OutputData:
    """An opaque hex payload (OP_RETURN output)."""

    data: str

    def to_dict(self) -> dict[str, str]:
        return {"data": self.data}


CreateRawTransactionOutput = AddressAmount | OutputData


def decode_output_spec(value: object) -> CreateRawTransactionOutput:
    """Decode an output specification by its shape.

    Accepted shapes:
        {"data": "<hex>"}                          -> OutputData
        {"address": "<addr>", "amount": <number>}  -> AddressAmount
        {"<addr>": <number>}                       -> AddressAmount

    Raises:
        DecodeError: The object matches none of the shapes.
    """
    if not isinstance(value, dict):
        raise DecodeError(f"output: expected an object, got {type(value).__name__}")

    if value.keys() == {"data"} and isinstance(value["data"], str):
        return OutputData(value["data"])

    if value.keys() == {"address", "amount"} and isinstance(value["address"], str):
        return AddressAmount(value["address"], _output_amount(value["amount"]))

    if len(value) == 1:
        ((address, amount),) = value.items()
        if address != "data":
            return AddressAmount(address, _output_amount(amount))

    raise DecodeError(f"output: unrecognized shape {sorted(value)}")


def _output_amount(value: object) -> _Number:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise DecodeError(f"output amount: expected a number, got {type(value).__name__}")
    _to_decimal(value, "output amount")
    return value
