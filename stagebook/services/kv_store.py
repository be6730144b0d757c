"""
Key-value stores backing the artist collection.

Every backend exposes the same small async interface (get/set/delete/ping/info)
and stores JSON-compatible values. A value is always replaced as a whole;
there is no locking, so concurrent read-modify-write cycles can lose updates.
"""
import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote

import redis.asyncio as redis
from redis.exceptions import RedisError

from stagebook.config import Settings
from stagebook.core.exceptions import StoreError

logger = logging.getLogger(__name__)

def _decode(raw: str) -> Any:
    """Decode a stored payload; undecodable text is returned as-is."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


class KeyValueStore(ABC):
    """Whole-value key-value store."""

    backend: str = "unknown"

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the value stored under key, or None."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> str:
        """Replace the value under key. Returns "OK"."""

    @abstractmethod
    async def delete(self, key: str) -> int:
        """Remove key. Returns the number of keys removed."""

    async def ping(self) -> str:
        return "PONG"

    @abstractmethod
    async def info(self) -> dict[str, Any]:
        """Describe the backend for diagnostics."""

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryStore(KeyValueStore):
    """Process-lifetime store. Data is lost on restart."""

    backend = "memory"

    def __init__(self):
        self._data: dict[str, Any] = {}

    async def get(self, key: str) -> Any | None:
        return self._data.get(key)

    async def set(self, key: str, value: Any) -> str:
        # Round-trip through JSON so callers never share mutable state with the store
        try:
            self._data[key] = json.loads(json.dumps(value))
        except (TypeError, ValueError) as e:
            raise StoreError(f"Value for {key!r} is not JSON serializable: {e}") from e
        return "OK"

    async def delete(self, key: str) -> int:
        if key not in self._data:
            return 0
        del self._data[key]
        return 1

    async def info(self) -> dict[str, Any]:
        return {
            "store": self.backend,
            "keys": list(self._data.keys()),
            "size": len(self._data),
            "isFallback": True,
            "warning": "This is an in-memory store and will not persist between restarts",
        }


class JsonFileStore(KeyValueStore):
    """Stores each key as ``<data_dir>/<key>.json``."""

    backend = "file"

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        # Percent-encoding keeps distinct keys in distinct files
        return self.data_dir / f"{quote(key, safe='')}.json"

    def _read(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        return _decode(path.read_text(encoding="utf-8"))

    def _write(self, key: str, payload: str) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        # Write to a temp file and rename so readers never see a partial file
        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{path.stem}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _remove(self, key: str) -> int:
        path = self._path(key)
        if not path.exists():
            return 0
        path.unlink()
        return 1

    async def get(self, key: str) -> Any | None:
        try:
            return await asyncio.to_thread(self._read, key)
        except OSError as e:
            logger.error(f"[JsonFileStore] Failed to read {key}: {e}")
            raise StoreError(f"Failed to read {key}: {e}") from e

    async def set(self, key: str, value: Any) -> str:
        try:
            payload = json.dumps(value, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Value for {key!r} is not JSON serializable: {e}") from e
        try:
            await asyncio.to_thread(self._write, key, payload)
        except OSError as e:
            logger.error(f"[JsonFileStore] Failed to write {key}: {e}")
            raise StoreError(f"Failed to write {key}: {e}") from e
        return "OK"

    async def delete(self, key: str) -> int:
        try:
            return await asyncio.to_thread(self._remove, key)
        except OSError as e:
            logger.error(f"[JsonFileStore] Failed to delete {key}: {e}")
            raise StoreError(f"Failed to delete {key}: {e}") from e

    async def info(self) -> dict[str, Any]:
        keys = sorted(unquote(p.stem) for p in self.data_dir.glob("*.json")) if self.data_dir.exists() else []
        return {
            "store": self.backend,
            "path": str(self.data_dir.resolve()),
            "keys": keys,
            "size": len(keys),
            "isFallback": False,
        }


class RedisStore(KeyValueStore):
    """Hosted Redis store with JSON-encoded values."""

    backend = "redis"

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        if client is None:
            if not url:
                raise ValueError("RedisStore needs a url or a client")
            client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        self._client = client

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self._client.get(key)
        except RedisError as e:
            logger.error(f"[RedisStore] GET {key} failed: {type(e).__name__}: {e}")
            raise StoreError(f"Failed to read {key}: {e}") from e
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        return _decode(raw)

    async def set(self, key: str, value: Any) -> str:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Value for {key!r} is not JSON serializable: {e}") from e
        try:
            await self._client.set(key, payload)
        except RedisError as e:
            logger.error(f"[RedisStore] SET {key} failed: {type(e).__name__}: {e}")
            raise StoreError(f"Failed to write {key}: {e}") from e
        return "OK"

    async def delete(self, key: str) -> int:
        try:
            return int(await self._client.delete(key))
        except RedisError as e:
            logger.error(f"[RedisStore] DEL {key} failed: {type(e).__name__}: {e}")
            raise StoreError(f"Failed to delete {key}: {e}") from e

    async def ping(self) -> str:
        try:
            await self._client.ping()
        except RedisError as e:
            raise StoreError(f"Redis ping failed: {e}") from e
        return "PONG"

    async def info(self) -> dict[str, Any]:
        return {
            "store": self.backend,
            "connected": await self._is_connected(),
            "isFallback": False,
        }

    async def _is_connected(self) -> bool:
        try:
            await self.ping()
            return True
        except StoreError:
            return False

    async def close(self) -> None:
        await self._client.aclose()


def create_store(settings: Settings) -> KeyValueStore:
    """Build the store selected by ``settings.store_backend``."""
    backend = settings.store_backend
    if backend == "memory":
        logger.warning("[KVStore] Using in-memory store; data will not survive a restart")
        return InMemoryStore()
    if backend == "file":
        logger.info(f"[KVStore] Using JSON file store at {settings.data_dir}")
        return JsonFileStore(settings.data_dir)
    if backend == "redis":
        logger.info("[KVStore] Using Redis store")
        return RedisStore(url=settings.redis_url)
    raise ValueError(f"Unknown store backend: {backend}")
