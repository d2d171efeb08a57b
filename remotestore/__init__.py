"""Async client for a remote key/value content store over HTTP(S)."""

from .client import RemoteStoreClient
from .connection import Connection
from .errors import (
    ConfigurationError,
    DecodeError,
    RemoteError,
    RemoteStoreError,
    TransportError,
)
from .handle import StoredObject

__version__ = "0.1.0"

__all__ = [
    "RemoteStoreClient",
    "Connection",
    "StoredObject",
    "RemoteStoreError",
    "ConfigurationError",
    "TransportError",
    "RemoteError",
    "DecodeError",
]
