"""
Authentication modes for bitcoind's RPC server.

Three modes:
    - ``NoAuth``: no Authorization header.
    - ``UserPass``: static ``rpcuser`` / ``rpcpassword``.
    - ``CookieFile``: path to bitcoind's ``.cookie`` file.

Credentials are resolved once, when the client is built, into a
pre-computed ``Authorization: Basic ...`` header. The cookie file is
read exactly once: first line only, split on the first colon.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from pathlib import Path

from bitcoind_rpc.errors import AuthError


@dataclass(frozen=True)
class NoAuth:
    """Connect without credentials."""

    def user_pass(self) -> tuple[str, str] | None:
        return None


@dataclass(frozen=True)
class UserPass:
    """Static username and password."""

    username: str
    password: str = field(repr=False)

    def user_pass(self) -> tuple[str, str] | None:
        return (self.username, self.password)


@dataclass(frozen=True)
class CookieFile:
    """bitcoind cookie file (``<datadir>/.cookie``)."""

    path: Path | str

    def user_pass(self) -> tuple[str, str] | None:
        """Read ``username:password`` from the first line of the file.

        Raises:
            AuthError: If the file is missing, unreadable, empty, or its
                first line has no colon.
        """
        try:
            with open(self.path, encoding="utf-8") as fd:
                line = fd.readline()
        except OSError as exc:
            raise AuthError(f"Invalid cookie file {self.path}: {exc}") from exc

        line = line.rstrip("\r\n")
        username, sep, password = line.partition(":")
        if not sep:
            raise AuthError(f"Invalid cookie file {self.path}")
        return (username, password)


Auth = NoAuth | UserPass | CookieFile


def authorization_header(auth: Auth) -> str | None:
    """Resolve credentials into an ``Authorization`` header value.

    Returns:
        ``"Basic <base64(user:pass)>"``, or None for NoAuth.
    """
    pair = auth.user_pass()
    if pair is None:
        return None
    username, password = pair
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"
