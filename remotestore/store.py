"""
Directory-backed content store used by the reference server.
Each key is a file path under the data directory; every write is fsync'd
to a temp file and renamed into place, so readers never see partial values.
"""

import os
import tempfile
import threading
from pathlib import Path
from typing import Optional

_TMP_PREFIX = ".tmp-"


class InvalidKey(ValueError):
    """Key is empty, escapes the data directory, or names a directory."""


class ContentStore:
    """
    Files under data_dir, addressed by slash-separated keys.
    """

    def __init__(self, data_dir: str = "data"):
        self._root = Path(data_dir).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str, allow_root: bool = False) -> Path:
        path = (self._root / key.lstrip("/")).resolve()
        if path == self._root:
            if allow_root:
                return path
            raise InvalidKey("empty key")
        if self._root not in path.parents:
            raise InvalidKey(f"key escapes data directory: {key!r}")
        if path.name.startswith(_TMP_PREFIX):
            raise InvalidKey(f"reserved key: {key!r}")
        return path

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        with self._lock:
            if not path.is_file():
                return None
            return path.read_bytes()

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        with self._lock:
            if path.is_dir():
                raise InvalidKey(f"key names a directory: {key!r}")
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=_TMP_PREFIX, dir=path.parent)
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp, path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise

    def delete(self, key: str) -> bool:
        """Remove key. Returns False if it did not exist."""
        path = self._path(key)
        with self._lock:
            if not path.is_file():
                return False
            path.unlink()
            return True

    def list(self, prefix: str = "") -> Optional[list[str]]:
        """
        Sorted names directly under prefix; directories end with "/".
        None if prefix is not a directory.
        """
        path = self._path(prefix, allow_root=True)
        with self._lock:
            if not path.is_dir():
                return None
            names = []
            for child in path.iterdir():
                if child.name.startswith(_TMP_PREFIX):
                    continue
                names.append(child.name + "/" if child.is_dir() else child.name)
        return sorted(names)
