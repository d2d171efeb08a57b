"""
StoredObject: a JSON object held under one key, with save/delete bound to it.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

from .codec import dump_json, load_json
from .errors import DecodeError

if TYPE_CHECKING:
    from .client import RemoteStoreClient


@dataclass
class StoredObject:
    """
    Local copy of the mapping stored under `key`. Only `data` is ever
    written back; the key and client are bindings, not content.
    """

    key: str
    client: "RemoteStoreClient" = field(repr=False, compare=False)
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    async def load(
        cls,
        client: "RemoteStoreClient",
        key: str,
        defaults: Optional[Dict[str, Any]] = None,
    ) -> "StoredObject":
        """Start from defaults, then overlay what the store holds (stored fields win)."""
        obj = cls(key=key, client=client, data=dict(defaults or {}))
        obj.data.update(await obj._fetch())
        return obj

    async def _fetch(self) -> Dict[str, Any]:
        body = await self.client.get(self.key, raw=True)
        if body is None:
            return {}
        value = load_json(body)
        if not isinstance(value, dict):
            raise DecodeError(f"{self.key!r} does not hold a JSON object")
        return value

    async def refresh(self) -> None:
        """Replace local data with the stored mapping."""
        self.data = await self._fetch()

    async def save(self) -> str:
        return await self.client.set(self.key, dump_json(self.data))

    async def delete(self) -> str:
        key = await self.client.delete(self.key)
        self.data.clear()
        return key

    def get(self, name: str, default: Any = None) -> Any:
        return self.data.get(name, default)

    def __getitem__(self, name: str) -> Any:
        return self.data[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self.data[name] = value

    def __delitem__(self, name: str) -> None:
        del self.data[name]

    def __contains__(self, name: object) -> bool:
        return name in self.data

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)
