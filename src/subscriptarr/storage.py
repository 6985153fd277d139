"""
storage.py

Durable key/value storage used by the quota scheduler and the response cache.

The on-disk format is one flat JSON object. Writes go to a temp file and are
swapped in with Path.replace, so a crash never leaves a half-written file.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Protocol

from subscriptarr.logger import get_logger

logger = get_logger(__name__)


class Storage(Protocol):
    async def get(self, keys: Iterable[str] | None = None) -> Dict[str, Any]: ...

    async def set(self, mapping: Dict[str, Any]) -> None: ...

    async def remove(self, keys: Iterable[str]) -> None: ...

    async def keys(self) -> List[str]: ...


class MemoryStorage:
    """Process-local storage. Useful for dry runs and tests."""

    def __init__(self, initial: Dict[str, Any] | None = None):
        self._data: Dict[str, Any] = dict(initial or {})

    async def get(self, keys: Iterable[str] | None = None) -> Dict[str, Any]:
        if keys is None:
            return dict(self._data)
        return {k: self._data[k] for k in keys if k in self._data}

    async def set(self, mapping: Dict[str, Any]) -> None:
        self._data.update(mapping)

    async def remove(self, keys: Iterable[str]) -> None:
        for k in keys:
            self._data.pop(k, None)

    async def keys(self) -> List[str]:
        return list(self._data.keys())


def _read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: Path, obj: Any) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False, sort_keys=True)
    tmp.replace(path)


class JsonFileStorage:
    """
    JSON-file backed storage.

    The whole document is held in memory after the first load; every mutation
    rewrites the file. All access is serialized with an asyncio.Lock.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: Dict[str, Any] | None = None
        self._lock = asyncio.Lock()

    def _load(self) -> Dict[str, Any]:
        if self._data is not None:
            return self._data

        data: Dict[str, Any] = {}
        if self.path.exists():
            try:
                obj = _read_json(self.path)
                if isinstance(obj, dict):
                    data = obj
                else:
                    logger.warning(f"Storage file {self.path} is not an object; starting fresh.")
            except (OSError, ValueError) as e:
                logger.warning(f"Storage file corrupted, starting fresh: {e}")

        self._data = data
        return data

    async def _flush(self) -> None:
        assert self._data is not None
        self.path.parent.mkdir(parents=True, exist_ok=True)
        snapshot = dict(self._data)
        await asyncio.to_thread(_write_json, self.path, snapshot)

    async def get(self, keys: Iterable[str] | None = None) -> Dict[str, Any]:
        async with self._lock:
            data = self._load()
            if keys is None:
                return dict(data)
            return {k: data[k] for k in keys if k in data}

    async def set(self, mapping: Dict[str, Any]) -> None:
        async with self._lock:
            self._load().update(mapping)
            await self._flush()

    async def remove(self, keys: Iterable[str]) -> None:
        async with self._lock:
            data = self._load()
            removed = [k for k in keys if k in data]
            for k in removed:
                del data[k]
            if removed:
                await self._flush()

    async def keys(self) -> List[str]:
        async with self._lock:
            return list(self._load().keys())
