"""
Bitcoin addresses as bitcoind reports them, without trusting their network.

An address string does not reliably declare its network: testnet, signet
and testnet4 share prefixes, and a server reply is not an authority on
which chain the caller meant. Decoding therefore yields an
``UncheckedAddress`` that records every network the encoding is valid
for. The caller performs the check explicitly with ``require_network``.

Supported encodings:
    - base58check P2PKH / P2SH
    - bech32 segwit witness v0 (P2WPKH / P2WSH)
    - bech32m segwit witness v1+ (BIP-350), with v1 32-byte programs
      reported as P2TR

Each witness version must carry its own checksum variant: a v0 program
under bech32m, or a v1+ program under bech32, is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

import bech32
from bitcoin.base58 import Base58Error, CBase58Data

from bitcoind_rpc.errors import DecodeError


class Network(StrEnum):
    """Chains bitcoind can run on, named as ``getblockchaininfo.chain``."""

    MAIN = "main"
    TEST = "test"
    TESTNET4 = "testnet4"
    SIGNET = "signet"
    REGTEST = "regtest"


@dataclass(frozen=True)
class NetworkParams:
    """Address prefixes for one network."""

    p2pkh_version: int
    p2sh_version: int
    bech32_hrp: str


NETWORK_PARAMS: dict[Network, NetworkParams] = {
    Network.MAIN: NetworkParams(0x00, 0x05, "bc"),
    Network.TEST: NetworkParams(0x6F, 0xC4, "tb"),
    Network.TESTNET4: NetworkParams(0x6F, 0xC4, "tb"),
    Network.SIGNET: NetworkParams(0x6F, 0xC4, "tb"),
    Network.REGTEST: NetworkParams(0x6F, 0xC4, "bcrt"),
}


def parse_network(chain: str) -> Network:
    """Parse a ``getblockchaininfo.chain`` value.

    Raises:
        DecodeError: If the chain name is unknown.
    """
    try:
        return Network(chain)
    except ValueError as exc:
        raise DecodeError(f"unknown network: {chain!r}") from exc


class AddressType(StrEnum):
    P2PKH = "p2pkh"
    P2SH = "p2sh"
    P2WPKH = "p2wpkh"
    P2WSH = "p2wsh"
    P2TR = "p2tr"
    WITNESS_UNKNOWN = "witness_unknown"


@dataclass(frozen=True)
class UncheckedAddress:
    """A syntactically valid address whose network is not yet confirmed.

    Attributes:
        text: The address exactly as received.
        address_type: Script template the address encodes.
        payload: Hash160, witness program, or script hash bytes.
        networks: Every network whose prefixes accept this encoding.
        witness_version: Segwit version, or None for base58 addresses.
    """

    text: str
    address_type: AddressType
    payload: bytes
    networks: frozenset[Network]
    witness_version: int | None = None

    def __str__(self) -> str:
        return self.text

    def is_valid_for_network(self, network: Network) -> bool:
        return network in self.networks

    def require_network(self, network: Network) -> UncheckedAddress:
        """Return self if the address belongs to ``network``.

        Raises:
            DecodeError: If the encoding is not valid on ``network``.
        """
        if network not in self.networks:
            raise DecodeError(
                f"address {self.text} is not valid for network {network.value}"
            )
        return self


def decode_address(value: object) -> UncheckedAddress:
    """Decode an address string into an UncheckedAddress.

    Raises:
        DecodeError: If the value is not a string or is not a valid
            base58check, bech32 or bech32m address for any known network.
    """
    if not isinstance(value, str):
        raise DecodeError(f"address: expected a string, got {type(value).__name__}")

    hrp, _, _ = bech32.bech32_decode(value)
    if hrp is not None:
        return _decode_segwit(value, hrp)
    return _decode_base58(value)


def _decode_segwit(value: str, hrp: str) -> UncheckedAddress:
    networks = frozenset(
        net for net, params in NETWORK_PARAMS.items() if params.bech32_hrp == hrp
    )
    if not networks:
        raise DecodeError(f"address {value}: unknown bech32 prefix {hrp!r}")

    version, program = bech32.decode(hrp, value)
    if version is None or program is None:
        raise DecodeError(f"address {value}: invalid witness program")

    payload = bytes(program)
    if version == 0:
        kind = AddressType.P2WPKH if len(payload) == 20 else AddressType.P2WSH
    elif version == 1 and len(payload) == 32:
        kind = AddressType.P2TR
    else:
        kind = AddressType.WITNESS_UNKNOWN
    return UncheckedAddress(value, kind, payload, networks, witness_version=version)


def _decode_base58(value: str) -> UncheckedAddress:
    try:
        data = CBase58Data(value)
    except (Base58Error, ValueError) as exc:
        raise DecodeError(f"address {value}: {exc}") from exc

    payload = bytes(data)
    if len(payload) != 20:
        raise DecodeError(f"address {value}: expected 20-byte payload, got {len(payload)}")

    p2pkh = frozenset(
        net for net, params in NETWORK_PARAMS.items() if params.p2pkh_version == data.nVersion
    )
    if p2pkh:
        return UncheckedAddress(value, AddressType.P2PKH, payload, p2pkh)

    p2sh = frozenset(
        net for net, params in NETWORK_PARAMS.items() if params.p2sh_version == data.nVersion
    )
    if p2sh:
        return UncheckedAddress(value, AddressType.P2SH, payload, p2sh)

    raise DecodeError(f"address {value}: unknown version byte {data.nVersion:#04x}")
