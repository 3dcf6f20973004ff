"""
BitcoinClient: the typed facade over the resilient dispatcher.

Every method is a thin call-site: shape the params, make one dispatcher
call (two for the ``*_at`` lookups and ``get_current_timestamp``), decode
the result into a model. Retry, id allocation, envelope parsing and
error classification all live in the dispatcher.

Two methods carry domain rules:
    - ``send_raw_transaction`` treats RPC_VERIFY_ALREADY_IN_CHAIN (-27)
      as success and returns the locally computed txid.
    - ``get_xpriv`` returns None without any network activity unless the
      client was built with ``xpriv_retrievable=True``.

Usage:
    async with BitcoinClient(url, CookieFile(path)) as client:
        height = await client.get_block_count()
"""

from __future__ import annotations

import warnings
from collections.abc import Sequence
from decimal import Decimal
from typing import Any

from bitcoin.core import CBlock, CBlockHeader, CTransaction
from loguru import logger

from bitcoind_rpc.address import Network, UncheckedAddress, decode_address, parse_network
from bitcoind_rpc.auth import Auth, NoAuth, authorization_header
from bitcoind_rpc.codec import (
    BlockHash,
    CreateRawTransactionOutput,
    ExtendedPrivateKey,
    Txid,
    decode_block,
    decode_block_hash,
    decode_block_header,
    decode_transaction,
    decode_txid,
    decode_xpriv,
    encode_transaction,
)
from bitcoind_rpc.config import DEFAULT_TIMEOUT_S, ClientConfig, RetryPolicy
from bitcoind_rpc.dispatcher import Dispatcher, SleepFn
from bitcoind_rpc.errors import (
    ClientError,
    DecodeError,
    RpcErrorCode,
    ServerError,
    XprivError,
)
from bitcoind_rpc.psbt import Psbt
from bitcoind_rpc.transport import HttpxTransport, RpcTransport
from bitcoind_rpc.types import (
    CreateRawTransaction,
    CreateRawTransactionInput,
    CreateWallet,
    GetAddressInfo,
    GetBlockchainInfo,
    GetBlockVerbosityOne,
    GetMempoolInfo,
    GetRawTransactionVerbosityOne,
    GetTransaction,
    GetTxOut,
    ImportDescriptor,
    ImportDescriptorResult,
    ListDescriptors,
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
    decode_list,
    decode_raw_mempool_verbose,
    decode_string,
)

# Fallback when estimatesmartfee has no estimate (BTC/kvB), i.e. 1 sat/vB.
DEFAULT_FEE_RATE_BTC_PER_KVB = Decimal("0.00001")

DEFAULT_MIN_CONF = 1
DEFAULT_MAX_CONF = 9_999_999


class BitcoinClient:
    """Async bitcoind JSON-RPC client implementing Reader, Broadcaster,
    Wallet and Signer.

    Args:
        url: RPC endpoint, e.g. ``"http://127.0.0.1:18443"``. Append
            ``/wallet/<name>`` to target one wallet on a multi-wallet node.
        auth: NoAuth, UserPass or CookieFile. Resolved once, here.
        max_retries: Retries after the first attempt (default 3).
        retry_interval_ms: Fixed delay before each retry (default 1000).
        xpriv_retrievable: Allow ``get_xpriv`` to query the wallet.
        timeout_s: Transport timeout in seconds.
        transport: Inject a transport (tests, custom HTTP setup).
        sleep: Inject the retry delay function (tests).

    Raises:
        AuthError: The cookie file cannot be read.
        ValueError: Invalid url, retry policy or timeout.
    """

    def __init__(
        self,
        url: str,
        auth: Auth | None = None,
        max_retries: int | None = None,
        retry_interval_ms: int | None = None,
        *,
        xpriv_retrievable: bool = False,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: RpcTransport | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        config = ClientConfig(
            url=url,
            auth=auth or NoAuth(),
            retry=RetryPolicy.from_overrides(max_retries, retry_interval_ms),
            timeout_s=timeout_s,
            xpriv_retrievable=xpriv_retrievable,
        )
        authorization = authorization_header(config.auth)
        if transport is None:
            transport = HttpxTransport(timeout_s=config.timeout_s, authorization=authorization)
        self._config = config
        self._dispatcher = Dispatcher(config.url, transport, config.retry, sleep=sleep)
        logger.debug(
            f"bitcoind client created: url={config.url} "
            f"auth={type(config.auth).__name__} max_retries={config.retry.max_retries} "
            f"retry_interval_ms={config.retry.retry_interval_ms}"
        )

    @classmethod
    def _sharing(cls, config: ClientConfig, dispatcher: Dispatcher) -> BitcoinClient:
        client = cls.__new__(cls)
        client._config = config
        client._dispatcher = dispatcher
        return client

    @property
    def config(self) -> ClientConfig:
        return self._config

    def clone(self) -> BitcoinClient:
        """A new handle sharing transport, id counter and retry policy."""
        return self._sharing(self._config, self._dispatcher)

    async def call(self, method: str, params: Sequence[Any] = ()) -> Any:
        """Raw escape hatch: any RPC method, undecoded JSON result."""
        return await self._dispatcher.call(method, params)

    async def aclose(self) -> None:
        """Close the shared transport. Affects every clone."""
        await self._dispatcher.transport.aclose()

    async def __aenter__(self) -> BitcoinClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # =====================================================================
    # Reader
    # =====================================================================

    async def estimate_smart_fee(self, conf_target: int) -> int:
        """Fee rate in sat/vB, truncated.

        Falls back to 1 sat/vB when bitcoind has no estimate yet (e.g. a
        fresh regtest chain).
        """
        result = await self.call("estimatesmartfee", [conf_target])
        feerate = result.get("feerate") if isinstance(result, dict) else None
        if feerate is None:
            logger.debug(
                f"no fee estimate for conf_target={conf_target}, using "
                f"{DEFAULT_FEE_RATE_BTC_PER_KVB} BTC/kvB"
            )
            feerate = DEFAULT_FEE_RATE_BTC_PER_KVB
        if isinstance(feerate, bool) or not isinstance(feerate, (int, float, Decimal)):
            raise DecodeError(f"estimatesmartfee.feerate: expected a number, got {feerate!r}")
        return int(Decimal(str(feerate)) * 100_000_000 / 1000)

    async def get_block_header(self, block_hash: BlockHash) -> CBlockHeader:
        result = await self.call("getblockheader", [block_hash, False])
        return decode_block_header(result)

    async def get_block(self, block_hash: BlockHash) -> CBlock:
        result = await self.call("getblock", [block_hash, 0])
        return decode_block(result)

    async def get_block_height(self, block_hash: BlockHash) -> int:
        result = await self.call("getblock", [block_hash])
        return GetBlockVerbosityOne.from_dict(result).height

    async def get_block_header_at(self, height: int) -> CBlockHeader:
        return await self.get_block_header(await self.get_block_hash(height))

    async def get_block_at(self, height: int) -> CBlock:
        return await self.get_block(await self.get_block_hash(height))

    async def get_block_count(self) -> int:
        result = await self.call("getblockcount")
        if isinstance(result, bool) or not isinstance(result, int):
            raise DecodeError(f"getblockcount: expected an integer, got {result!r}")
        return result

    async def get_block_hash(self, height: int) -> BlockHash:
        return decode_block_hash(await self.call("getblockhash", [height]))

    async def get_blockchain_info(self) -> GetBlockchainInfo:
        return GetBlockchainInfo.from_dict(await self.call("getblockchaininfo"))

    async def get_current_timestamp(self) -> int:
        best = decode_block_hash(await self.call("getbestblockhash"))
        block = await self.get_block(best)
        return block.nTime

    async def get_raw_mempool(self) -> list[Txid]:
        return decode_list(await self.call("getrawmempool"), decode_txid, "getrawmempool")

    async def get_raw_mempool_verbose(self) -> dict[Txid, MempoolEntry]:
        return decode_raw_mempool_verbose(await self.call("getrawmempool", [True]))

    async def get_mempool_info(self) -> GetMempoolInfo:
        return GetMempoolInfo.from_dict(await self.call("getmempoolinfo"))

    async def get_raw_transaction_verbosity_zero(self, txid: Txid) -> CTransaction:
        result = await self.call("getrawtransaction", [txid, 0])
        return decode_transaction(result)

    async def get_raw_transaction_verbosity_one(
        self, txid: Txid
    ) -> GetRawTransactionVerbosityOne:
        result = await self.call("getrawtransaction", [txid, 1])
        return GetRawTransactionVerbosityOne.from_dict(result)

    async def get_tx_out(self, txid: Txid, vout: int, include_mempool: bool) -> GetTxOut:
        """The unspent output ``txid:vout``.

        Raises:
            EmptyResponseError: The output is spent or never existed
                (bitcoind returns null).
        """
        result = await self.call("gettxout", [txid, vout, include_mempool])
        return GetTxOut.from_dict(result)

    async def network(self) -> Network:
        info = await self.get_blockchain_info()
        return parse_network(info.chain)

    # =====================================================================
    # Broadcaster
    # =====================================================================

    async def send_raw_transaction(self, tx: CTransaction) -> Txid:
        """Broadcast ``tx`` and return its txid.

        A transaction that is already confirmed is reported by bitcoind as
        error -27; that is success here, and the txid is computed
        locally. Every other error propagates unchanged.
        """
        raw = encode_transaction(tx)
        logger.debug(f"broadcasting transaction: {len(raw) // 2} bytes")
        try:
            result = await self.call("sendrawtransaction", [raw])
        except ServerError as exc:
            if exc.code != RpcErrorCode.RPC_VERIFY_ALREADY_IN_CHAIN:
                raise
            txid = Txid.of(tx)
            logger.debug(f"transaction {txid} already in chain, treating broadcast as done")
            return txid
        return decode_txid(result)

    async def test_mempool_accept(self, tx: CTransaction) -> list[TestMempoolAccept]:
        result = await self.call("testmempoolaccept", [[encode_transaction(tx)]])
        return decode_list(result, TestMempoolAccept.from_dict, "testmempoolaccept")

    async def submit_package(self, transactions: Sequence[CTransaction]) -> SubmitPackage:
        """Submit a package (e.g. 1P1C) for mempool acceptance and relay."""
        raw = [encode_transaction(tx) for tx in transactions]
        return SubmitPackage.from_dict(await self.call("submitpackage", [raw]))

    # =====================================================================
    # Wallet
    # =====================================================================

    async def get_new_address(self) -> UncheckedAddress:
        return decode_address(await self.call("getnewaddress"))

    async def get_transaction(self, txid: Txid) -> GetTransaction:
        return GetTransaction.from_dict(await self.call("gettransaction", [txid]))

    async def get_utxos(self) -> list[ListUnspent]:
        """Every wallet UTXO with bitcoind's default filters.

        Deprecated: use ``list_unspent``.
        """
        warnings.warn(
            "get_utxos is deprecated, use list_unspent",
            DeprecationWarning,
            stacklevel=2,
        )
        result = await self.call("listunspent")
        return decode_list(result, ListUnspent.from_dict, "listunspent")

    async def list_transactions(self, count: int | None = None) -> list[ListTransactions]:
        result = await self.call("listtransactions", [count])
        return decode_list(result, ListTransactions.from_dict, "listtransactions")

    async def list_wallets(self) -> list[str]:
        return decode_list(await self.call("listwallets"), decode_string, "listwallets")

    async def create_raw_transaction(self, raw_tx: CreateRawTransaction) -> CTransaction:
        result = await self.call(
            "createrawtransaction", [list(raw_tx.inputs), list(raw_tx.outputs)]
        )
        return decode_transaction(result)

    async def wallet_create_funded_psbt(
        self,
        inputs: Sequence[CreateRawTransactionInput],
        outputs: Sequence[CreateRawTransactionOutput],
        locktime: int | None = None,
        options: WalletCreateFundedPsbtOptions | None = None,
        bip32_derivs: bool | None = None,
    ) -> WalletCreateFundedPsbt:
        """Let the wallet select coins and add change for a PSBT.

        Args:
            inputs: Inputs that must be spent; empty lets the wallet choose.
            outputs: Destination outputs.
            locktime: Raw locktime (default 0).
            options: Funding options (fee rate, RBF, ...).
            bip32_derivs: Include BIP-32 derivation paths.
        """
        params = [
            list(inputs),
            list(outputs),
            0 if locktime is None else locktime,
            {} if options is None else options,
            bip32_derivs,
        ]
        result = await self.call("walletcreatefundedpsbt", params)
        return WalletCreateFundedPsbt.from_dict(result)

    async def get_address_info(self, address: UncheckedAddress | str) -> GetAddressInfo:
        result = await self.call("getaddressinfo", [str(address)])
        return GetAddressInfo.from_dict(result)

    async def list_unspent(
        self,
        min_conf: int | None = None,
        max_conf: int | None = None,
        addresses: Sequence[UncheckedAddress | str] | None = None,
        include_unsafe: bool | None = None,
        query_options: ListUnspentQueryOptions | None = None,
    ) -> list[ListUnspent]:
        params: list[Any] = [
            DEFAULT_MIN_CONF if min_conf is None else min_conf,
            DEFAULT_MAX_CONF if max_conf is None else max_conf,
            [str(address) for address in addresses or ()],
            True if include_unsafe is None else include_unsafe,
        ]
        if query_options is not None:
            params.append(query_options)
        result = await self.call("listunspent", params)
        return decode_list(result, ListUnspent.from_dict, "listunspent")

    # =====================================================================
    # Signer
    # =====================================================================

    async def sign_raw_transaction_with_wallet(
        self,
        tx: CTransaction,
        prev_outputs: Sequence[PreviousTransactionOutput] | None = None,
    ) -> SignRawTransactionWithWallet:
        params: list[Any] = [encode_transaction(tx)]
        if prev_outputs is not None:
            params.append(list(prev_outputs))
        result = await self.call("signrawtransactionwithwallet", params)
        return SignRawTransactionWithWallet.from_dict(result)

    async def get_xpriv(self) -> ExtendedPrivateKey | None:
        """The master key of the wallet's taproot descriptor.

        Returns None, without contacting bitcoind, unless the client was
        built with ``xpriv_retrievable=True``.

        Raises:
            ClientError: The wallet has no descriptors.
            XprivError: No ``tr(`` descriptor, or its key does not parse.
        """
        if not self._config.xpriv_retrievable:
            return None

        result = await self.call("listdescriptors", [True])
        descriptors = ListDescriptors.from_dict(result).descriptors
        if not descriptors:
            raise ClientError("No descriptors found")

        for descriptor in descriptors:
            if "tr(" not in descriptor.desc:
                continue
            key = descriptor.desc.split("tr(", 1)[1]
            if key.startswith("["):
                # key origin, e.g. [e61b318f/20000'/20']
                key = key.partition("]")[2]
            key = key.split("/", 1)[0]
            try:
                return decode_xpriv(key)
            except DecodeError as exc:
                raise XprivError() from exc
        raise XprivError()

    async def import_descriptors(
        self, descriptors: Sequence[ImportDescriptor], wallet_name: str
    ) -> list[ImportDescriptorResult]:
        """Create or load ``wallet_name``, then import ``descriptors``.

        Create and load failures are logged and ignored: the wallet
        usually already exists or is already loaded.
        """
        wallet = CreateWallet(wallet_name=wallet_name, load_on_startup=True)
        try:
            await self.call("createwallet", wallet.create_params())
        except ClientError as exc:
            logger.warning(f"createwallet {wallet_name} failed, continuing: {exc}")
        try:
            await self.call("loadwallet", wallet.load_params())
        except ClientError as exc:
            logger.warning(f"loadwallet {wallet_name} failed, continuing: {exc}")

        result = await self.call("importdescriptors", [list(descriptors)])
        return decode_list(result, ImportDescriptorResult.from_dict, "importdescriptors")

    async def wallet_process_psbt(
        self,
        psbt: Psbt | str,
        sign: bool | None = None,
        sighashtype: SighashType | None = None,
        bip32_derivs: bool | None = None,
    ) -> WalletProcessPsbtResult:
        params: list[Any] = [str(psbt), True if sign is None else sign]
        if sighashtype is not None or bip32_derivs is not None:
            # positional: bip32_derivs needs the sighash slot filled
            params.append(SighashType.DEFAULT if sighashtype is None else sighashtype)
        if bip32_derivs is not None:
            params.append(bip32_derivs)
        result = await self.call("walletprocesspsbt", params)
        return WalletProcessPsbtResult.from_dict(result)

    async def psbt_bump_fee(
        self, txid: Txid, options: PsbtBumpFeeOptions | None = None
    ) -> PsbtBumpFee:
        params: list[Any] = [txid]
        if options is not None:
            params.append(options)
        return PsbtBumpFee.from_dict(await self.call("psbtbumpfee", params))
