"""JSON file-based storage — one list-valued document per key."""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Callable, List


class StoreError(RuntimeError):
    """Persistent storage could not be read or written."""


class JsonStorage:
    """File-based JSON storage with atomic writes.

    Every read-modify-write goes through ``update`` under one lock, so the
    store serialises its own writes.
    """

    def __init__(self, storage_dir: str = "data"):
        self._storage_dir = Path(storage_dir)
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    @property
    def storage_dir(self) -> Path:
        return self._storage_dir

    def _path(self, key: str) -> Path:
        return self._storage_dir / f"{key}.json"

    def load(self, key: str) -> list:
        path = self._path(key)
        with self._lock:
            if not path.exists():
                return []
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                raise StoreError(f"failed to read {path}: {e}") from e
        if not isinstance(raw, list):
            raise StoreError(f"{path} does not contain a JSON list")
        return raw

    def save(self, key: str, data: list) -> None:
        path = self._path(key)
        content = json.dumps(data, ensure_ascii=False, indent=2)
        with self._lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Atomic write: temp file in the same directory, then replace
            fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                os.replace(tmp_path, str(path))
            except BaseException:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
                raise

    def update(self, key: str, fn: Callable[[List[dict]], List[dict]]) -> List[dict]:
        """Load, transform and save ``key`` as one serialised step."""
        with self._lock:
            data = fn(self.load(key))
            self.save(key, data)
            return data
