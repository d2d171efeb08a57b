"""
Key-suffix value codec: `.json` keys carry JSON, `.txt` keys carry UTF-8 text,
anything else is raw bytes. Also classifies upload bodies as buffers or streams.
"""

import asyncio
import json
from typing import Any, AsyncIterator, Union
from urllib.parse import quote

from .errors import DecodeError, TransportError

CHUNK_SIZE = 64 * 1024

Buffer = Union[bytes, bytearray, memoryview, str]
_BUFFER_TYPES = (bytes, bytearray, memoryview, str)


def quote_key(key: str) -> str:
    """Percent-encode a key the way encodeURIComponent does."""
    return quote(key, safe="!~*'()")


def content_path(key: str) -> str:
    return "/content/" + quote_key(key)


def list_path(key: str) -> str:
    return "/list/" + quote_key(key)


def is_json_key(key: str) -> bool:
    return key.endswith(".json")


def is_text_key(key: str) -> bool:
    return key.endswith(".txt")


def is_buffer(data: Any) -> bool:
    return isinstance(data, _BUFFER_TYPES)


def is_stream(data: Any) -> bool:
    """
    True for lazy chunk producers: async iterables, iterators/generators
    and readable file objects. Lists and dicts are values, not streams.
    """
    if is_buffer(data):
        return False
    return hasattr(data, "__aiter__") or hasattr(data, "__next__") or callable(getattr(data, "read", None))


def as_bytes(data: Buffer) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"expected bytes or str, got {type(data).__name__}")


def dump_json(value: Any) -> bytes:
    """Compact JSON, e.g. {"n":1}."""
    return json.dumps(value, separators=(",", ":")).encode("utf-8")


def load_json(body: bytes) -> Any:
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"response is not valid JSON: {e}") from e


def encode_value(key: str, value: Any) -> Any:
    """
    Turn a value into an upload body for key. Bytes and streams pass
    through unchanged. For `.json` keys every other value, str included,
    is JSON-serialized; other keys also accept str as UTF-8 text.
    """
    if isinstance(value, (bytes, bytearray, memoryview)) or is_stream(value):
        return value
    if is_json_key(key):
        return dump_json(value)
    if isinstance(value, str):
        return value
    raise TypeError(
        f"cannot store {type(value).__name__} under {key!r}: "
        "only .json keys accept structured values"
    )


def decode_value(key: str, body: bytes) -> Any:
    """Decode a fetched body according to the key suffix."""
    if is_json_key(key):
        return load_json(body)
    if is_text_key(key):
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"{key!r} is not valid UTF-8 text: {e}") from e
    return body


async def iter_chunks(source: Any) -> AsyncIterator[bytes]:
    """
    Yield upload chunks from a stream source. Blocking file reads run in a
    worker thread. A failure inside the source aborts the request as a
    TransportError.
    """
    try:
        if hasattr(source, "__aiter__"):
            async for chunk in source:
                if chunk:
                    yield as_bytes(chunk)
        elif callable(getattr(source, "read", None)):
            while True:
                chunk = await asyncio.to_thread(source.read, CHUNK_SIZE)
                if not chunk:
                    break
                yield as_bytes(chunk)
        else:
            for chunk in source:
                if chunk:
                    yield as_bytes(chunk)
    except Exception as e:
        raise TransportError(f"upload source failed: {e}") from e
