"""
bitcoind-rpc: resilient, strongly-typed async JSON-RPC client for bitcoind.

Public API:
    BitcoinClient              the client; implements every capability
    Reader / Broadcaster / Wallet / Signer
                               capability protocols
    NoAuth / UserPass / CookieFile
                               authentication modes
    ClientError and subclasses typed failures, see errors.ErrorKind
"""

from __future__ import annotations

from bitcoind_rpc.address import Network, UncheckedAddress, decode_address
from bitcoind_rpc.auth import CookieFile, NoAuth, UserPass
from bitcoind_rpc.capabilities import Broadcaster, Reader, Signer, Wallet
from bitcoind_rpc.client import BitcoinClient
from bitcoind_rpc.codec import (
    AddressAmount,
    Amount,
    BlockHash,
    ExtendedPrivateKey,
    FeeRate,
    OutputData,
    SignedAmount,
    Txid,
    Wtxid,
)
from bitcoind_rpc.config import ClientConfig, RetryPolicy, xpriv_retrievable_from_env
from bitcoind_rpc.errors import (
    AuthError,
    ClientError,
    DecodeError,
    EmptyResponseError,
    ErrorKind,
    MaxRetriesExceededError,
    ParamError,
    ParseError,
    RpcErrorCode,
    ServerError,
    StatusError,
    TransportError,
    XprivError,
)
from bitcoind_rpc.psbt import Psbt

__all__ = [
    "AddressAmount",
    "Amount",
    "AuthError",
    "BitcoinClient",
    "BlockHash",
    "Broadcaster",
    "ClientConfig",
    "ClientError",
    "CookieFile",
    "DecodeError",
    "EmptyResponseError",
    "ErrorKind",
    "ExtendedPrivateKey",
    "FeeRate",
    "MaxRetriesExceededError",
    "Network",
    "NoAuth",
    "OutputData",
    "ParamError",
    "ParseError",
    "Psbt",
    "Reader",
    "RetryPolicy",
    "RpcErrorCode",
    "ServerError",
    "SignedAmount",
    "Signer",
    "StatusError",
    "TransportError",
    "Txid",
    "UncheckedAddress",
    "UserPass",
    "Wallet",
    "Wtxid",
    "XprivError",
    "decode_address",
    "xpriv_retrievable_from_env",
]
__version__ = "0.1.0"
