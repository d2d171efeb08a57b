"""
Client for the remote content store. Uses HTTP(S) via httpx.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .codec import (
    as_bytes,
    content_path,
    decode_value,
    encode_value,
    is_json_key,
    is_stream,
    iter_chunks,
    list_path,
    load_json,
)
from .connection import DEFAULT_TIMEOUT, Connection
from .errors import DecodeError, RemoteError, TransportError
from .handle import StoredObject

logger = logging.getLogger(__name__)


class RemoteStoreClient:
    """
    Async client for the content store. Methods: get(key), set(key, data),
    delete(key), list(prefix), handle(key, defaults) and the raw request().

    Every call issues its own request; nothing is cached between calls.
    Use as `async with RemoteStoreClient(token, url) as store:` or call aclose().
    """

    def __init__(
        self,
        token: Optional[str] = None,
        url: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        connection: Optional[Connection] = None,
    ):
        if connection is None:
            connection = Connection.from_url(token, url, transport=transport, timeout=timeout)
        self._conn = connection
        self._http: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_env(cls, **kwargs) -> "RemoteStoreClient":
        return cls(connection=Connection.from_env(**kwargs))

    @property
    def connection(self) -> Connection:
        return self._conn

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self._conn.base_url,
                transport=self._conn.transport,
                timeout=self._conn.timeout,
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "RemoteStoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def request(
        self,
        path: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        data: Any = None,
    ) -> httpx.Response:
        """
        Send one request and return the response as soon as its headers
        arrive. The body is left unread; the caller must aclose() it.

        data may be bytes/str (sent in one piece) or a stream (sync or async
        iterable of chunks, or a readable file), sent with chunked encoding.
        The connection token always replaces any caller-supplied
        authorization header.
        """
        hdrs = httpx.Headers(headers or {})
        hdrs["authorization"] = self._conn.token
        content = None
        if data is not None:
            if is_stream(data):
                hdrs["Transfer-Encoding"] = "chunked"
                content = iter_chunks(data)
            else:
                content = as_bytes(data)

        http = self._client()
        req = http.build_request(method, path, headers=hdrs, content=content)
        try:
            response = await http.send(req, stream=True)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e
        logger.debug("%s %s -> %d", method, path, response.status_code)
        return response

    async def _read(self, response: httpx.Response) -> bytes:
        """Drain and close a response."""
        try:
            return await response.aread()
        except httpx.HTTPError as e:
            raise TransportError(f"reading response body failed: {e}") from e
        finally:
            await response.aclose()

    async def _expect_ok(self, response: httpx.Response) -> None:
        await response.aclose()
        if response.status_code != 200:
            raise RemoteError(response.status_code)

    async def get(self, key: str, *, raw: bool = False) -> Any:
        """
        Fetch the value stored under key.

        `.json` keys decode as JSON and `.txt` keys as text, unless raw is set;
        other keys (and raw mode) return bytes. A missing key is not an error:
        it yields {} for a decoded `.json` key and None otherwise.
        """
        response = await self.request(content_path(key), "GET")
        if response.status_code == 200:
            body = await self._read(response)
            return body if raw else decode_value(key, body)
        await response.aclose()
        if response.status_code == 404:
            return {} if is_json_key(key) and not raw else None
        raise RemoteError(response.status_code)

    async def set(self, key: str, data: Any) -> str:
        """Store data under key. For `.json` keys anything but bytes or a stream is JSON-encoded."""
        response = await self.request(content_path(key), "PUT", data=encode_value(key, data))
        await self._expect_ok(response)
        return key

    async def delete(self, key: str) -> str:
        """Delete key. No request body is sent."""
        response = await self.request(content_path(key), "DELETE")
        await self._expect_ok(response)
        return key

    async def list(self, key: str = "") -> List[str]:
        """List the entries under key, in the order the server returns them."""
        response = await self.request(list_path(key), "GET")
        if response.status_code != 200:
            await response.aclose()
            raise RemoteError(response.status_code)
        names = load_json(await self._read(response))
        if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
            raise DecodeError(f"listing for {key!r} is not a JSON array of strings")
        return names

    async def handle(self, key: str, defaults: Optional[Dict[str, Any]] = None) -> StoredObject:
        """Fetch key as a JSON object and wrap it for save()/delete()."""
        return await StoredObject.load(self, key, defaults)
