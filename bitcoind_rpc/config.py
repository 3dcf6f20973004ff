"""
Client configuration.

Construction parameters:
    url                 bitcoind RPC endpoint (e.g. "http://127.0.0.1:18443").
    auth                NoAuth | UserPass | CookieFile.
    retry               RetryPolicy (max_retries=3, retry_interval_ms=1000).
    timeout_s           Transport timeout in seconds (default 30.0).
    xpriv_retrievable   Opt-in for Signer.get_xpriv (default False).

All values are immutable for the lifetime of a client.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from bitcoind_rpc.auth import Auth, NoAuth

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_INTERVAL_MS = 1_000
DEFAULT_TIMEOUT_S = 30.0

XPRIV_RETRIEVABLE_ENV = "BITCOIN_XPRIV_RETRIEVABLE"


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-delay retry policy (no backoff growth).

    Attributes:
        max_retries: Retries allowed after the first attempt (1..255).
        retry_interval_ms: Delay before each retry, in milliseconds.
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    retry_interval_ms: int = DEFAULT_RETRY_INTERVAL_MS

    def __post_init__(self) -> None:
        if isinstance(self.max_retries, bool) or not 1 <= self.max_retries <= 255:
            raise ValueError(f"max_retries must be in 1..255, got: {self.max_retries}")
        if self.retry_interval_ms < 0:
            raise ValueError(
                f"retry_interval_ms must be >= 0, got: {self.retry_interval_ms}"
            )

    @property
    def interval_s(self) -> float:
        return self.retry_interval_ms / 1000

    @classmethod
    def from_overrides(
        cls,
        max_retries: int | None = None,
        retry_interval_ms: int | None = None,
    ) -> RetryPolicy:
        """Build a policy where None means "use the default"."""
        return cls(
            max_retries=DEFAULT_MAX_RETRIES if max_retries is None else max_retries,
            retry_interval_ms=(
                DEFAULT_RETRY_INTERVAL_MS if retry_interval_ms is None else retry_interval_ms
            ),
        )


@dataclass(frozen=True)
class ClientConfig:
    """Everything needed to build a BitcoinClient."""

    url: str
    auth: Auth = field(default_factory=NoAuth)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    timeout_s: float = DEFAULT_TIMEOUT_S
    xpriv_retrievable: bool = False

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("url must be non-empty")
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got: {self.timeout_s}")


def xpriv_retrievable_from_env(environ: Mapping[str, str] | None = None) -> bool:
    """Whether BITCOIN_XPRIV_RETRIEVABLE is set in the environment.

    Any value, including an empty one, counts as set. Read once by the
    caller and passed to the client as ``xpriv_retrievable``.
    """
    env = os.environ if environ is None else environ
    return XPRIV_RETRIEVABLE_ENV in env
