"""
Result and argument models for bitcoind RPC methods.

Results are frozen dataclasses built with ``from_dict`` from the raw JSON
result; arguments expose ``to_dict`` (or ``to_params``) for the wire.

Decoding rules:
    - Wire names follow bitcoind (``bestblockhash``, ``tx-results``,
      ``scriptPubKey``, ``bip125-replaceable``...); attributes are
      snake_case.
    - Missing required members, members of the wrong JSON type, and
      values failing their domain codec raise ``DecodeError`` naming the
      model and member.
    - Unknown members are ignored, so newer bitcoind releases that add
      fields keep decoding.
    - Money is ``Amount`` / ``SignedAmount``; ids are ``Txid`` /
      ``Wtxid`` / ``BlockHash``; raw records are python-bitcoinlib
      objects.

Arguments omit members that are None instead of sending null.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum
from typing import Any, TypeVar

from bitcoin.core import CTransaction
from loguru import logger

from bitcoind_rpc.address import UncheckedAddress, decode_address
from bitcoind_rpc.codec import (
    Amount,
    BlockHash,
    CreateRawTransactionOutput,
    FeeRate,
    SignedAmount,
    Txid,
    Wtxid,
    decode_amount,
    decode_block_hash,
    decode_fee_rate,
    decode_optional_psbt,
    decode_optional_transaction,
    decode_psbt,
    decode_signed_amount,
    decode_transaction,
    decode_txid,
    decode_wtxid,
)
from bitcoind_rpc.errors import DecodeError
from bitcoind_rpc.psbt import Psbt

T = TypeVar("T")

# =========================================================================
# Field access
# =========================================================================


class _Fields:
    """Typed access to the members of one JSON object."""

    def __init__(self, data: object, model: str) -> None:
        if not isinstance(data, dict):
            raise DecodeError(f"{model}: expected an object, got {type(data).__name__}")
        self._data = data
        self._model = model

    def _error(self, key: str, expected: str, value: object) -> DecodeError:
        return DecodeError(
            f"{self._model}.{key}: expected {expected}, got {type(value).__name__}"
        )

    def _required(self, key: str) -> Any:
        if key not in self._data:
            raise DecodeError(f"{self._model}: missing required member {key!r}")
        return self._data[key]

    def has(self, key: str) -> bool:
        return self._data.get(key) is not None

    # --- Scalars ---

    def text(self, key: str) -> str:
        value = self._required(key)
        if not isinstance(value, str):
            raise self._error(key, "a string", value)
        return value

    def opt_text(self, key: str) -> str | None:
        return self.text(key) if self.has(key) else None

    def integer(self, key: str) -> int:
        value = self._required(key)
        if isinstance(value, bool) or not isinstance(value, int):
            raise self._error(key, "an integer", value)
        return value

    def opt_integer(self, key: str) -> int | None:
        return self.integer(key) if self.has(key) else None

    def boolean(self, key: str) -> bool:
        value = self._required(key)
        if not isinstance(value, bool):
            raise self._error(key, "a boolean", value)
        return value

    def opt_boolean(self, key: str) -> bool | None:
        return self.boolean(key) if self.has(key) else None

    def number(self, key: str) -> float:
        value = self._required(key)
        if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
            raise self._error(key, "a number", value)
        return float(value)

    def opt_number(self, key: str) -> float | None:
        return self.number(key) if self.has(key) else None

    # --- Codec-backed ---

    def decoded(self, key: str, decoder: Callable[[Any], T]) -> T:
        value = self._required(key)
        try:
            return decoder(value)
        except DecodeError as exc:
            raise DecodeError(f"{self._model}.{key}: {exc}") from exc

    def opt_decoded(self, key: str, decoder: Callable[[Any], T]) -> T | None:
        return self.decoded(key, decoder) if self.has(key) else None

    def items(self, key: str, decoder: Callable[[Any], T]) -> tuple[T, ...]:
        value = self._required(key)
        if not isinstance(value, list):
            raise self._error(key, "an array", value)
        return self._decode_items(key, value, decoder)

    def opt_items(self, key: str, decoder: Callable[[Any], T]) -> tuple[T, ...] | None:
        return self.items(key, decoder) if self.has(key) else None

    def _decode_items(
        self, key: str, values: list[Any], decoder: Callable[[Any], T]
    ) -> tuple[T, ...]:
        decoded = []
        for index, item in enumerate(values):
            try:
                decoded.append(decoder(item))
            except DecodeError as exc:
                raise DecodeError(f"{self._model}.{key}[{index}]: {exc}") from exc
        return tuple(decoded)


def decode_string(value: object) -> str:
    if not isinstance(value, str):
        raise DecodeError(f"expected a string, got {type(value).__name__}")
    return value


def decode_list(value: object, decoder: Callable[[Any], T], what: str) -> list[T]:
    """Decode a top-level JSON array result item by item."""
    if not isinstance(value, list):
        raise DecodeError(f"{what}: expected an array, got {type(value).__name__}")
    decoded = []
    for index, item in enumerate(value):
        try:
            decoded.append(decoder(item))
        except DecodeError as exc:
            raise DecodeError(f"{what}[{index}]: {exc}") from exc
    return decoded


def _without_none(members: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in members.items() if value is not None}


# =========================================================================
# Enums
# =========================================================================


class TransactionCategory(StrEnum):
    """Wallet transaction category (``listtransactions`` / ``gettransaction``)."""

    SEND = "send"
    RECEIVE = "receive"
    GENERATE = "generate"
    IMMATURE = "immature"
    ORPHAN = "orphan"


def _category(value: object) -> TransactionCategory:
    try:
        return TransactionCategory(decode_string(value))
    except ValueError as exc:
        raise DecodeError(f"unknown transaction category {value!r}") from exc


class SighashType(StrEnum):
    """Signature hash types accepted by ``walletprocesspsbt``."""

    DEFAULT = "DEFAULT"
    ALL = "ALL"
    NONE = "NONE"
    SINGLE = "SINGLE"
    ALL_ANYONECANPAY = "ALL|ANYONECANPAY"
    NONE_ANYONECANPAY = "NONE|ANYONECANPAY"
    SINGLE_ANYONECANPAY = "SINGLE|ANYONECANPAY"


# =========================================================================
# Chain and mempool results
# =========================================================================


@dataclass(frozen=True)
class GetBlockchainInfo:
    """Result of ``getblockchaininfo``.

    ``chain`` is the network name (main, test, testnet4, signet, regtest).
    The pruning members are only present when pruning is enabled.
    """

    chain: str
    blocks: int
    headers: int
    best_block_hash: BlockHash
    difficulty: float
    median_time: int
    verification_progress: float
    initial_block_download: bool
    chain_work: str
    size_on_disk: int
    pruned: bool
    prune_height: int | None = None
    automatic_pruning: bool | None = None
    prune_target_size: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> GetBlockchainInfo:
        f = _Fields(data, cls.__name__)
        return cls(
            chain=f.text("chain"),
            blocks=f.integer("blocks"),
            headers=f.integer("headers"),
            best_block_hash=f.decoded("bestblockhash", decode_block_hash),
            difficulty=f.number("difficulty"),
            median_time=f.integer("mediantime"),
            verification_progress=f.number("verificationprogress"),
            initial_block_download=f.boolean("initialblockdownload"),
            chain_work=f.text("chainwork"),
            size_on_disk=f.integer("size_on_disk"),
            pruned=f.boolean("pruned"),
            prune_height=f.opt_integer("pruneheight"),
            automatic_pruning=f.opt_boolean("automatic_pruning"),
            prune_target_size=f.opt_integer("prune_target_size"),
        )


@dataclass(frozen=True)
class GetBlockVerbosityOne:
    """Result of ``getblock <hash> 1``."""

    hash: BlockHash
    confirmations: int
    size: int
    stripped_size: int | None
    weight: int
    height: int
    version: int
    version_hex: str
    merkle_root: str
    tx: tuple[Txid, ...]
    time: int
    median_time: int | None
    nonce: int
    bits: str
    difficulty: float
    chain_work: str
    n_tx: int
    previous_block_hash: BlockHash | None
    next_block_hash: BlockHash | None

    @classmethod
    def from_dict(cls, data: Any) -> GetBlockVerbosityOne:
        f = _Fields(data, cls.__name__)
        return cls(
            hash=f.decoded("hash", decode_block_hash),
            confirmations=f.integer("confirmations"),
            size=f.integer("size"),
            stripped_size=f.opt_integer("strippedsize"),
            weight=f.integer("weight"),
            height=f.integer("height"),
            version=f.integer("version"),
            version_hex=f.text("versionHex"),
            merkle_root=f.text("merkleroot"),
            tx=f.items("tx", decode_txid),
            time=f.integer("time"),
            median_time=f.opt_integer("mediantime"),
            nonce=f.integer("nonce"),
            bits=f.text("bits"),
            difficulty=f.number("difficulty"),
            chain_work=f.text("chainwork"),
            n_tx=f.integer("nTx"),
            previous_block_hash=f.opt_decoded("previousblockhash", decode_block_hash),
            next_block_hash=f.opt_decoded("nextblockhash", decode_block_hash),
        )


@dataclass(frozen=True)
class GetMempoolInfo:
    """Result of ``getmempoolinfo``. Fee members are BTC/kvB."""

    loaded: bool
    size: int
    bytes: int
    usage: int
    maxmempool: int
    mempoolminfee: float
    minrelaytxfee: float
    unbroadcastcount: int

    @classmethod
    def from_dict(cls, data: Any) -> GetMempoolInfo:
        f = _Fields(data, cls.__name__)
        return cls(
            loaded=f.boolean("loaded"),
            size=f.integer("size"),
            bytes=f.integer("bytes"),
            usage=f.integer("usage"),
            maxmempool=f.integer("maxmempool"),
            mempoolminfee=f.number("mempoolminfee"),
            minrelaytxfee=f.number("minrelaytxfee"),
            unbroadcastcount=f.integer("unbroadcastcount"),
        )


@dataclass(frozen=True)
class MempoolEntryFees:
    base: Amount
    modified: Amount
    ancestor: Amount
    descendant: Amount

    @classmethod
    def from_dict(cls, data: Any) -> MempoolEntryFees:
        f = _Fields(data, cls.__name__)
        return cls(
            base=f.decoded("base", decode_amount),
            modified=f.decoded("modified", decode_amount),
            ancestor=f.decoded("ancestor", decode_amount),
            descendant=f.decoded("descendant", decode_amount),
        )


@dataclass(frozen=True)
class MempoolEntry:
    """One transaction of ``getrawmempool true``."""

    vsize: int
    weight: int
    time: int
    height: int
    wtxid: Wtxid
    fees: MempoolEntryFees
    depends: tuple[Txid, ...]
    spent_by: tuple[Txid, ...]
    descendant_count: int | None = None
    descendant_size: int | None = None
    ancestor_count: int | None = None
    ancestor_size: int | None = None
    bip125_replaceable: bool | None = None
    unbroadcast: bool | None = None

    @classmethod
    def from_dict(cls, data: Any) -> MempoolEntry:
        f = _Fields(data, cls.__name__)
        return cls(
            vsize=f.integer("vsize"),
            weight=f.integer("weight"),
            time=f.integer("time"),
            height=f.integer("height"),
            wtxid=f.decoded("wtxid", decode_wtxid),
            fees=f.decoded("fees", MempoolEntryFees.from_dict),
            depends=f.items("depends", decode_txid),
            spent_by=f.items("spentby", decode_txid),
            descendant_count=f.opt_integer("descendantcount"),
            descendant_size=f.opt_integer("descendantsize"),
            ancestor_count=f.opt_integer("ancestorcount"),
            ancestor_size=f.opt_integer("ancestorsize"),
            bip125_replaceable=f.opt_boolean("bip125-replaceable"),
            unbroadcast=f.opt_boolean("unbroadcast"),
        )


def decode_raw_mempool_verbose(data: Any) -> dict[Txid, MempoolEntry]:
    """Decode ``getrawmempool true``: an object keyed by txid."""
    if not isinstance(data, dict):
        raise DecodeError(f"getrawmempool: expected an object, got {type(data).__name__}")
    entries: dict[Txid, MempoolEntry] = {}
    for key, value in data.items():
        try:
            entries[decode_txid(key)] = MempoolEntry.from_dict(value)
        except DecodeError as exc:
            raise DecodeError(f"getrawmempool[{key}]: {exc}") from exc
    return entries


@dataclass(frozen=True)
class GetRawTransactionVerbosityOne:
    """Result of ``getrawtransaction <txid> 1``.

    ``transaction`` is decoded from the ``hex`` member. Block members are
    only present for confirmed transactions.
    """

    transaction: CTransaction
    txid: Txid
    hash: Wtxid
    size: int
    vsize: int
    version: int
    locktime: int
    in_active_chain: bool | None = None
    blockhash: BlockHash | None = None
    confirmations: int | None = None
    time: int | None = None
    blocktime: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> GetRawTransactionVerbosityOne:
        f = _Fields(data, cls.__name__)
        return cls(
            transaction=f.decoded("hex", decode_transaction),
            txid=f.decoded("txid", decode_txid),
            hash=f.decoded("hash", decode_wtxid),
            size=f.integer("size"),
            vsize=f.integer("vsize"),
            version=f.integer("version"),
            locktime=f.integer("locktime"),
            in_active_chain=f.opt_boolean("in_active_chain"),
            blockhash=f.opt_decoded("blockhash", decode_block_hash),
            confirmations=f.opt_integer("confirmations"),
            time=f.opt_integer("time"),
            blocktime=f.opt_integer("blocktime"),
        )


@dataclass(frozen=True)
class ScriptPubkey:
    asm: str
    hex: str
    script_type: str
    address: str | None = None
    req_sigs: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ScriptPubkey:
        f = _Fields(data, cls.__name__)
        return cls(
            asm=f.text("asm"),
            hex=f.text("hex"),
            script_type=f.text("type"),
            address=f.opt_text("address"),
            req_sigs=f.opt_integer("reqSigs"),
        )


@dataclass(frozen=True)
class GetTxOut:
    """Result of ``gettxout``: an unspent output and its confirmations."""

    best_block: BlockHash
    confirmations: int
    value: Amount
    coinbase: bool
    script_pubkey: ScriptPubkey | None = None

    @classmethod
    def from_dict(cls, data: Any) -> GetTxOut:
        f = _Fields(data, cls.__name__)
        # older releases spelled it scriptPubkey
        script_key = "scriptPubKey" if f.has("scriptPubKey") else "scriptPubkey"
        return cls(
            best_block=f.decoded("bestblock", decode_block_hash),
            confirmations=f.integer("confirmations"),
            value=f.decoded("value", decode_amount),
            coinbase=f.boolean("coinbase"),
            script_pubkey=f.opt_decoded(script_key, ScriptPubkey.from_dict),
        )


# =========================================================================
# Broadcast results
# =========================================================================


@dataclass(frozen=True)
class TestMempoolAccept:
    """One entry of ``testmempoolaccept``."""

    __test__ = False  # not a pytest test class

    txid: Txid
    allowed: bool | None = None
    reject_reason: str | None = None
    wtxid: Wtxid | None = None
    vsize: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> TestMempoolAccept:
        f = _Fields(data, cls.__name__)
        reason_key = "reject-reason" if f.has("reject-reason") else "reject_reason"
        return cls(
            txid=f.decoded("txid", decode_txid),
            allowed=f.opt_boolean("allowed"),
            reject_reason=f.opt_text(reason_key),
            wtxid=f.opt_decoded("wtxid", decode_wtxid),
            vsize=f.opt_integer("vsize"),
        )


@dataclass(frozen=True)
class SubmitPackageTxResultFees:
    """Fees of one package member.

    ``effective_fee_rate`` (BTC/kvB) is absent when the transaction was
    already in the mempool; ``effective_includes`` lists the wtxids whose
    fees and sizes it covers.
    """

    base_fee: Amount
    effective_fee_rate: float | None = None
    effective_includes: tuple[Wtxid, ...] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> SubmitPackageTxResultFees:
        f = _Fields(data, cls.__name__)
        return cls(
            base_fee=f.decoded("base", decode_amount),
            effective_fee_rate=f.opt_number("effective-feerate"),
            effective_includes=f.opt_items("effective-includes", decode_wtxid),
        )


@dataclass(frozen=True)
class SubmitPackageTxResult:
    """Per-transaction result of ``submitpackage``.

    ``other_wtxid`` set means a same-txid, different-witness transaction
    was already in the mempool and this one was ignored.
    """

    txid: Txid
    other_wtxid: Wtxid | None = None
    vsize: int | None = None
    fees: SubmitPackageTxResultFees | None = None
    error: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> SubmitPackageTxResult:
        f = _Fields(data, cls.__name__)
        return cls(
            txid=f.decoded("txid", decode_txid),
            other_wtxid=f.opt_decoded("other-wtxid", decode_wtxid),
            vsize=f.opt_integer("vsize"),
            fees=f.opt_decoded("fees", SubmitPackageTxResultFees.from_dict),
            error=f.opt_text("error"),
        )


@dataclass(frozen=True)
class SubmitPackage:
    """Result of ``submitpackage``.

    ``package_msg`` is "success" when every transaction was accepted or
    already present. ``tx_results`` is keyed by wtxid.
    """

    package_msg: str
    tx_results: dict[Wtxid, SubmitPackageTxResult]
    replaced_transactions: tuple[Txid, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> SubmitPackage:
        f = _Fields(data, cls.__name__)
        raw_results = f.decoded("tx-results", _object)
        tx_results: dict[Wtxid, SubmitPackageTxResult] = {}
        for key, value in raw_results.items():
            try:
                tx_results[decode_wtxid(key)] = SubmitPackageTxResult.from_dict(value)
            except DecodeError as exc:
                raise DecodeError(f"{cls.__name__}.tx-results[{key}]: {exc}") from exc
        return cls(
            package_msg=f.text("package_msg"),
            tx_results=tx_results,
            replaced_transactions=f.opt_items("replaced-transactions", decode_txid) or (),
        )


def _object(value: object) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise DecodeError(f"expected an object, got {type(value).__name__}")
    return value


# =========================================================================
# Wallet results
# =========================================================================


@dataclass(frozen=True)
class GetTransactionDetail:
    category: TransactionCategory
    amount: SignedAmount
    vout: int
    address: str | None = None
    label: str | None = None
    fee: SignedAmount | None = None
    abandoned: bool | None = None

    @classmethod
    def from_dict(cls, data: Any) -> GetTransactionDetail:
        f = _Fields(data, cls.__name__)
        return cls(
            category=f.decoded("category", _category),
            amount=f.decoded("amount", decode_signed_amount),
            vout=f.integer("vout"),
            address=f.opt_text("address"),
            label=f.opt_text("label"),
            fee=f.opt_decoded("fee", decode_signed_amount),
            abandoned=f.opt_boolean("abandoned"),
        )


@dataclass(frozen=True)
class GetTransaction:
    """Result of ``gettransaction`` for a wallet transaction.

    ``amount`` and ``fee`` are signed: negative for outgoing activity.
    ``confirmations`` is negative for conflicted transactions.
    """

    amount: SignedAmount
    confirmations: int
    txid: Txid
    time: int
    timereceived: int
    bip125_replaceable: str
    details: tuple[GetTransactionDetail, ...]
    hex: CTransaction
    fee: SignedAmount | None = None
    generated: bool | None = None
    trusted: bool | None = None
    blockhash: BlockHash | None = None
    blockheight: int | None = None
    blockindex: int | None = None
    blocktime: int | None = None
    wtxid: Wtxid | None = None
    walletconflicts: tuple[Txid, ...] = ()
    replaced_by_txid: Txid | None = None
    replaces_txid: Txid | None = None
    comment: str | None = None
    to: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> GetTransaction:
        f = _Fields(data, cls.__name__)
        return cls(
            amount=f.decoded("amount", decode_signed_amount),
            confirmations=f.integer("confirmations"),
            txid=f.decoded("txid", decode_txid),
            time=f.integer("time"),
            timereceived=f.integer("timereceived"),
            bip125_replaceable=f.text("bip125-replaceable"),
            details=f.items("details", GetTransactionDetail.from_dict),
            hex=f.decoded("hex", decode_transaction),
            fee=f.opt_decoded("fee", decode_signed_amount),
            generated=f.opt_boolean("generated"),
            trusted=f.opt_boolean("trusted"),
            blockhash=f.opt_decoded("blockhash", decode_block_hash),
            blockheight=f.opt_integer("blockheight"),
            blockindex=f.opt_integer("blockindex"),
            blocktime=f.opt_integer("blocktime"),
            wtxid=f.opt_decoded("wtxid", decode_wtxid),
            walletconflicts=f.opt_items("walletconflicts", decode_txid) or (),
            replaced_by_txid=f.opt_decoded("replaced_by_txid", decode_txid),
            replaces_txid=f.opt_decoded("replaces_txid", decode_txid),
            comment=f.opt_text("comment"),
            to=f.opt_text("to"),
        )

    def block_height(self) -> int:
        """Height of the containing block, 0 while unconfirmed."""
        if self.confirmations <= 0:
            return 0
        if self.blockheight is None:
            logger.warning(
                f"transaction {self.txid} confirmed but has no blockheight, using 0"
            )
            return 0
        return self.blockheight


@dataclass(frozen=True)
class ListUnspent:
    """One UTXO of ``listunspent``."""

    txid: Txid
    vout: int
    address: UncheckedAddress
    script_pubkey: str
    amount: Amount
    confirmations: int
    spendable: bool
    solvable: bool
    safe: bool
    label: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ListUnspent:
        f = _Fields(data, cls.__name__)
        return cls(
            txid=f.decoded("txid", decode_txid),
            vout=f.integer("vout"),
            address=f.decoded("address", decode_address),
            script_pubkey=f.text("scriptPubKey"),
            amount=f.decoded("amount", decode_amount),
            confirmations=f.integer("confirmations"),
            spendable=f.boolean("spendable"),
            solvable=f.boolean("solvable"),
            safe=f.boolean("safe"),
            label=f.opt_text("label"),
        )


@dataclass(frozen=True)
class ListTransactions:
    """One entry of ``listtransactions``. ``amount`` is negative for sends."""

    address: UncheckedAddress
    category: TransactionCategory
    amount: SignedAmount
    confirmations: int
    txid: Txid
    label: str | None = None
    trusted: bool | None = None
    generated: bool | None = None
    blockhash: BlockHash | None = None
    blockheight: int | None = None
    blockindex: int | None = None
    blocktime: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ListTransactions:
        f = _Fields(data, cls.__name__)
        return cls(
            address=f.decoded("address", decode_address),
            category=f.decoded("category", _category),
            amount=f.decoded("amount", decode_signed_amount),
            confirmations=f.integer("confirmations"),
            txid=f.decoded("txid", decode_txid),
            label=f.opt_text("label"),
            trusted=f.opt_boolean("trusted"),
            generated=f.opt_boolean("generated"),
            blockhash=f.opt_decoded("blockhash", decode_block_hash),
            blockheight=f.opt_integer("blockheight"),
            blockindex=f.opt_integer("blockindex"),
            blocktime=f.opt_integer("blocktime"),
        )


@dataclass(frozen=True)
class GetAddressInfo:
    """Result of ``getaddressinfo``. Ownership flags may be unknown (None)."""

    address: UncheckedAddress
    is_mine: bool | None = None
    is_watchonly: bool | None = None
    solvable: bool | None = None

    @classmethod
    def from_dict(cls, data: Any) -> GetAddressInfo:
        f = _Fields(data, cls.__name__)
        return cls(
            address=f.decoded("address", decode_address),
            is_mine=f.opt_boolean("ismine"),
            is_watchonly=f.opt_boolean("iswatchonly"),
            solvable=f.opt_boolean("solvable"),
        )


@dataclass(frozen=True)
class WalletCreateFundedPsbt:
    """Result of ``walletcreatefundedpsbt``.

    Attributes:
        psbt: Funded, unsigned PSBT.
        fee: Absolute fee paid.
        change_pos: Index of the change output, -1 when there is none.
    """

    psbt: Psbt
    fee: Amount
    change_pos: int

    @classmethod
    def from_dict(cls, data: Any) -> WalletCreateFundedPsbt:
        f = _Fields(data, cls.__name__)
        return cls(
            psbt=f.decoded("psbt", decode_psbt),
            fee=f.decoded("fee", decode_amount),
            change_pos=f.integer("changepos"),
        )


# =========================================================================
# Signing results
# =========================================================================


@dataclass(frozen=True)
class SignRawTransactionWithWalletError:
    txid: Txid
    vout: int
    script_sig: str
    sequence: int
    error: str

    @classmethod
    def from_dict(cls, data: Any) -> SignRawTransactionWithWalletError:
        f = _Fields(data, cls.__name__)
        return cls(
            txid=f.decoded("txid", decode_txid),
            vout=f.integer("vout"),
            script_sig=f.text("scriptSig"),
            sequence=f.integer("sequence"),
            error=f.text("error"),
        )


@dataclass(frozen=True)
class SignRawTransactionWithWallet:
    """Result of ``signrawtransactionwithwallet``.

    ``complete`` is False when more signatures are needed (multisig);
    ``errors`` then explains which inputs could not be signed.
    """

    hex: str
    complete: bool
    errors: tuple[SignRawTransactionWithWalletError, ...] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> SignRawTransactionWithWallet:
        f = _Fields(data, cls.__name__)
        return cls(
            hex=f.text("hex"),
            complete=f.boolean("complete"),
            errors=f.opt_items("errors", SignRawTransactionWithWalletError.from_dict),
        )

    def transaction(self) -> CTransaction:
        """Decode ``hex`` into a transaction. Raises DecodeError."""
        return decode_transaction(self.hex)


@dataclass(frozen=True)
class ListDescriptor:
    desc: str

    @classmethod
    def from_dict(cls, data: Any) -> ListDescriptor:
        return cls(desc=_Fields(data, cls.__name__).text("desc"))


@dataclass(frozen=True)
class ListDescriptors:
    """Result of ``listdescriptors``."""

    descriptors: tuple[ListDescriptor, ...]

    @classmethod
    def from_dict(cls, data: Any) -> ListDescriptors:
        f = _Fields(data, cls.__name__)
        return cls(descriptors=f.items("descriptors", ListDescriptor.from_dict))


@dataclass(frozen=True)
class ImportDescriptorResult:
    success: bool
    warnings: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> ImportDescriptorResult:
        f = _Fields(data, cls.__name__)
        return cls(
            success=f.boolean("success"),
            warnings=f.opt_items("warnings", decode_string) or (),
        )


@dataclass(frozen=True)
class WalletProcessPsbtResult:
    """Result of ``walletprocesspsbt``.

    ``hex`` is only present once the PSBT is complete and extracted;
    ``psbt`` may be absent after extraction.
    """

    complete: bool
    psbt: Psbt | None = None
    hex: CTransaction | None = None

    @classmethod
    def from_dict(cls, data: Any) -> WalletProcessPsbtResult:
        f = _Fields(data, cls.__name__)
        return cls(
            complete=f.boolean("complete"),
            psbt=f.opt_decoded("psbt", decode_optional_psbt),
            hex=f.opt_decoded("hex", decode_optional_transaction),
        )


@dataclass(frozen=True)
class PsbtBumpFee:
    """Result of ``psbtbumpfee``.

    ``origfee`` and ``fee`` are decoded as sat/vB fee rates.
    """

    psbt: Psbt
    origfee: FeeRate
    fee: FeeRate
    errors: tuple[str, ...] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> PsbtBumpFee:
        f = _Fields(data, cls.__name__)
        return cls(
            psbt=f.decoded("psbt", decode_psbt),
            origfee=f.decoded("origfee", decode_fee_rate),
            fee=f.decoded("fee", decode_fee_rate),
            errors=f.opt_items("errors", decode_string),
        )


# =========================================================================
# Arguments
# =========================================================================


@dataclass(frozen=True)
class CreateRawTransactionInput:
    txid: Txid | str
    vout: int

    def to_dict(self) -> dict[str, Any]:
        return {"txid": str(self.txid), "vout": self.vout}


@dataclass(frozen=True)
class CreateRawTransaction:
    """Arguments of ``createrawtransaction``."""

    inputs: tuple[CreateRawTransactionInput, ...] | list[CreateRawTransactionInput]
    outputs: tuple[CreateRawTransactionOutput, ...] | list[CreateRawTransactionOutput]


@dataclass(frozen=True)
class PreviousTransactionOutput:
    """A parent output for ``signrawtransactionwithwallet``.

    Lets the wallet sign spends of outputs not yet in the chain (1P1C
    package relay).
    """

    txid: Txid | str
    vout: int
    script_pubkey: str
    redeem_script: str | None = None
    witness_script: str | None = None
    amount: Amount | float | Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        return _without_none({
            "txid": str(self.txid),
            "vout": self.vout,
            "scriptPubKey": self.script_pubkey,
            "redeemScript": self.redeem_script,
            "witnessScript": self.witness_script,
            "amount": self.amount,
        })


@dataclass(frozen=True)
class ImportDescriptor:
    """One request of ``importdescriptors``.

    ``timestamp`` is a UNIX time or "now".
    """

    desc: str
    timestamp: str | int = "now"
    active: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return _without_none({
            "desc": self.desc,
            "active": self.active,
            "timestamp": self.timestamp,
        })


@dataclass(frozen=True)
class CreateWallet:
    """Arguments of ``createwallet`` / ``loadwallet``."""

    wallet_name: str
    load_on_startup: bool | None = None

    def create_params(self) -> list[Any]:
        # wallet_name, disable_private_keys, blank, passphrase,
        # avoid_reuse, descriptors, load_on_startup
        return [self.wallet_name, False, False, "", False, True, self.load_on_startup]

    def load_params(self) -> list[Any]:
        return [self.wallet_name, self.load_on_startup]


@dataclass(frozen=True)
class WalletCreateFundedPsbtOptions:
    """Options of ``walletcreatefundedpsbt``.

    ``fee_rate`` is sat/vB and overrides ``conf_target``.
    """

    fee_rate: float | Decimal | None = None
    lock_unspents: bool | None = None
    conf_target: int | None = None
    replaceable: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return _without_none({
            "fee_rate": self.fee_rate,
            "lockUnspents": self.lock_unspents,
            "conf_target": self.conf_target,
            "replaceable": self.replaceable,
        })


@dataclass(frozen=True)
class ListUnspentQueryOptions:
    """``query_options`` of ``listunspent``. Amounts are sent as BTC."""

    minimum_amount: Amount | None = None
    maximum_amount: Amount | None = None
    maximum_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return _without_none({
            "minimumAmount": self.minimum_amount,
            "maximumAmount": self.maximum_amount,
            "maximumCount": self.maximum_count,
        })


@dataclass(frozen=True)
class PsbtBumpFeeOptions:
    """Options of ``psbtbumpfee``.

    Attributes:
        conf_target: Confirmation target in blocks.
        fee_rate: New fee rate, sent as sat/vB.
        replaceable: Keep the replacement BIP-125 replaceable.
        estimate_mode: "unset", "economical" or "conservative".
        outputs: Replacement outputs.
        original_change_index: Change output to recycle.
    """

    conf_target: int | None = None
    fee_rate: FeeRate | None = None
    replaceable: bool | None = None
    estimate_mode: str | None = None
    outputs: tuple[CreateRawTransactionOutput, ...] | list[CreateRawTransactionOutput] | None = None
    original_change_index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return _without_none({
            "conf_target": self.conf_target,
            "fee_rate": self.fee_rate,
            "replaceable": self.replaceable,
            "estimate_mode": self.estimate_mode,
            "outputs": None if self.outputs is None else list(self.outputs),
            "original_change_index": self.original_change_index,
        })
