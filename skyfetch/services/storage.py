"""
Key-value persistence used by the weather cache.

The cache only needs get/set/remove on string values. Any backend that
satisfies KeyValueStore can be plugged in.
"""

import json
from pathlib import Path
from typing import Protocol

from loguru import logger


class KeyValueStore(Protocol):
    """Synchronous string key-value store."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """In-process store. Contents are lost when the process exits."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStore:
    """
    Store backed by a single JSON object on disk.

    The whole file is rewritten on every set/remove. Fine for the handful of
    cache slots the weather cache uses.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def _dump(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
        tmp_path.replace(self.path)

    def _load_for_write(self) -> dict[str, str]:
        """Current contents, or an empty object if the file is unreadable."""
        try:
            return self._load()
        except ValueError as e:
            logger.warning(f"[JsonFileStore] Discarding unreadable {self.path}: {e}")
            return {}

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load_for_write()
        data[key] = value
        self._dump(data)
        logger.debug(f"[JsonFileStore] SET {key} -> {self.path}")

    def remove(self, key: str) -> None:
        try:
            data = self._load()
        except ValueError as e:
            logger.warning(f"[JsonFileStore] Discarding unreadable {self.path}: {e}")
            self._dump({})
            return
        if data.pop(key, None) is not None:
            self._dump(data)
            logger.debug(f"[JsonFileStore] REMOVE {key}")
