"""
Capability contracts grouping bitcoind RPC methods by required trust.

    Reader       read-only chain and mempool queries
    Broadcaster  transaction relay
    Wallet       watch-only wallet queries and PSBT funding
    Signer       operations that touch private keys

BitcoinClient implements all four. Code that only needs to read the chain
should accept a ``Reader``; test doubles can implement just the group
under test.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from bitcoin.core import CBlock, CBlockHeader, CTransaction

from bitcoind_rpc.address import Network, UncheckedAddress
from bitcoind_rpc.codec import (
    BlockHash,
    CreateRawTransactionOutput,
    ExtendedPrivateKey,
    Txid,
)
from bitcoind_rpc.psbt import Psbt
from bitcoind_rpc.types import (
    CreateRawTransaction,
    CreateRawTransactionInput,
    GetAddressInfo,
    GetBlockchainInfo,
    GetMempoolInfo,
    GetRawTransactionVerbosityOne,
    GetTransaction,
    GetTxOut,
    ImportDescriptor,
    ImportDescriptorResult,
    ListTransactions,
    ListUnspent,
    ListUnspentQueryOptions,
    MempoolEntry,
    PreviousTransactionOutput,
    PsbtBumpFee,
    PsbtBumpFeeOptions,
    SighashType,
    SignRawTransactionWithWallet,
    SubmitPackage,
    TestMempoolAccept,
    WalletCreateFundedPsbt,
    WalletCreateFundedPsbtOptions,
    WalletProcessPsbtResult,
)


@runtime_checkable
class Reader(Protocol):
    """Read-only chain and mempool queries."""

    async def estimate_smart_fee(self, conf_target: int) -> int:
        """Estimated fee rate in sat/vB for confirmation within ``conf_target`` blocks."""
        ...

    async def get_block_header(self, block_hash: BlockHash) -> CBlockHeader: ...

    async def get_block(self, block_hash: BlockHash) -> CBlock: ...

    async def get_block_height(self, block_hash: BlockHash) -> int: ...

    async def get_block_header_at(self, height: int) -> CBlockHeader: ...

    async def get_block_at(self, height: int) -> CBlock: ...

    async def get_block_count(self) -> int: ...

    async def get_block_hash(self, height: int) -> BlockHash: ...

    async def get_blockchain_info(self) -> GetBlockchainInfo: ...

    async def get_current_timestamp(self) -> int:
        """Header time of the chain tip."""
        ...

    async def get_raw_mempool(self) -> list[Txid]: ...

    async def get_raw_mempool_verbose(self) -> dict[Txid, MempoolEntry]: ...

    async def get_mempool_info(self) -> GetMempoolInfo: ...

    async def get_raw_transaction_verbosity_zero(self, txid: Txid) -> CTransaction: ...

    async def get_raw_transaction_verbosity_one(
        self, txid: Txid
    ) -> GetRawTransactionVerbosityOne: ...

    async def get_tx_out(self, txid: Txid, vout: int, include_mempool: bool) -> GetTxOut: ...

    async def network(self) -> Network: ...


@runtime_checkable
class Broadcaster(Protocol):
    """Transaction relay."""

    async def send_raw_transaction(self, tx: CTransaction) -> Txid:
        """Broadcast ``tx``. Already-confirmed transactions count as success."""
        ...

    async def test_mempool_accept(self, tx: CTransaction) -> list[TestMempoolAccept]: ...

    async def submit_package(self, transactions: Sequence[CTransaction]) -> SubmitPackage: ...


@runtime_checkable
class Wallet(Protocol):
    """Watch-only wallet queries and PSBT funding."""

    async def get_new_address(self) -> UncheckedAddress: ...

    async def get_transaction(self, txid: Txid) -> GetTransaction: ...

    async def get_utxos(self) -> list[ListUnspent]: ...

    async def list_transactions(self, count: int | None = None) -> list[ListTransactions]: ...

    async def list_wallets(self) -> list[str]: ...

    async def create_raw_transaction(self, raw_tx: CreateRawTransaction) -> CTransaction: ...

    async def wallet_create_funded_psbt(
        self,
        inputs: Sequence[CreateRawTransactionInput],
        outputs: Sequence[CreateRawTransactionOutput],
        locktime: int | None = None,
        options: WalletCreateFundedPsbtOptions | None = None,
        bip32_derivs: bool | None = None,
    ) -> WalletCreateFundedPsbt: ...

    async def get_address_info(self, address: UncheckedAddress | str) -> GetAddressInfo: ...

    async def list_unspent(
        self,
        min_conf: int | None = None,
        max_conf: int | None = None,
        addresses: Sequence[UncheckedAddress | str] | None = None,
        include_unsafe: bool | None = None,
        query_options: ListUnspentQueryOptions | None = None,
    ) -> list[ListUnspent]: ...


@runtime_checkable
class Signer(Protocol):
    """Operations that create signatures or expose key material."""

    async def sign_raw_transaction_with_wallet(
        self,
        tx: CTransaction,
        prev_outputs: Sequence[PreviousTransactionOutput] | None = None,
    ) -> SignRawTransactionWithWallet: ...

    async def get_xpriv(self) -> ExtendedPrivateKey | None:
        """The wallet's taproot master key, or None when retrieval is disabled."""
        ...

    async def import_descriptors(
        self, descriptors: Sequence[ImportDescriptor], wallet_name: str
    ) -> list[ImportDescriptorResult]: ...

    async def wallet_process_psbt(
        self,
        psbt: Psbt | str,
        sign: bool | None = None,
        sighashtype: SighashType | None = None,
        bip32_derivs: bool | None = None,
    ) -> WalletProcessPsbtResult: ...

    async def psbt_bump_fee(
        self, txid: Txid, options: PsbtBumpFeeOptions | None = None
    ) -> PsbtBumpFee: ...
