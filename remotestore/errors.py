"""
Errors raised by the remote store client.
"""

from typing import Optional


class RemoteStoreError(Exception):
    """Base class for every error the client raises."""


class ConfigurationError(RemoteStoreError, ValueError):
    """Missing token or unusable base URL. Raised at construction time."""


class TransportError(RemoteStoreError):
    """The request failed before a complete response was obtained."""


class RemoteError(RemoteStoreError):
    """The server answered with a status the operation does not accept."""

    def __init__(self, status: int, message: Optional[str] = None):
        self.status = status
        super().__init__(message or f"remote store responded with status {status}")


class DecodeError(RemoteStoreError, ValueError):
    """A response body could not be decoded the way its key requires."""
