"""
Connection settings for the remote store: host, scheme, port and token.
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlsplit

import httpx

from .errors import ConfigurationError

DEFAULT_HOST = "database.macstudio.pro"
DEFAULT_TIMEOUT = 30.0

TOKEN_ENV = "REMOTESTORE_TOKEN"
URL_ENV = "REMOTESTORE_URL"


@dataclass(frozen=True)
class Connection:
    """
    Where and how to reach the store. Immutable once built.
    `transport` replaces the network (e.g. httpx.MockTransport in tests).
    """

    host: str
    tls: bool = True
    port: Optional[int] = None
    token: str = field(default="", repr=False)
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, repr=False, compare=False)
    timeout: Optional[float] = DEFAULT_TIMEOUT

    @property
    def scheme(self) -> str:
        return "https" if self.tls else "http"

    @property
    def base_url(self) -> str:
        netloc = f"[{self.host}]" if ":" in self.host else self.host
        if self.port is not None:
            netloc = f"{netloc}:{self.port}"
        return f"{self.scheme}://{netloc}"

    @classmethod
    def from_url(
        cls,
        token: Optional[str],
        url: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ) -> "Connection":
        """
        Build a connection from a token and an optional base URL.
        Without a URL the default host over https is used.
        """
        if not token:
            raise ConfigurationError("a valid authorization token must be provided")
        if not url:
            return cls(host=DEFAULT_HOST, tls=True, token=token, transport=transport, timeout=timeout)

        parsed = urlsplit(url)
        if parsed.scheme not in ("http", "https"):
            raise ConfigurationError(f"unsupported scheme in store URL: {url!r}")
        if not parsed.hostname:
            raise ConfigurationError(f"store URL has no hostname: {url!r}")
        try:
            port = parsed.port
        except ValueError as e:
            raise ConfigurationError(f"invalid port in store URL: {url!r}") from e
        return cls(
            host=parsed.hostname,
            tls=parsed.scheme != "http",
            port=port,
            token=token,
            transport=transport,
            timeout=timeout,
        )

    @classmethod
    def from_env(cls, **kwargs) -> "Connection":
        """Read REMOTESTORE_TOKEN and REMOTESTORE_URL from the environment."""
        return cls.from_url(os.environ.get(TOKEN_ENV), os.environ.get(URL_ENV), **kwargs)
