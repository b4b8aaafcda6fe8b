"""
Cart Storage - async key-value backends for the persisted cart

Backends:
- MemoryStorage: process-local dict (tests, demos)
- FileStorage: one JSON file per key under a directory (device-local store)
- RedisStorage: Upstash Redis over REST (shared deployments)
"""

import asyncio
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol, runtime_checkable

from upstash_redis.asyncio import Redis as AsyncRedis

from storefront.config import StoreConfig
from storefront.errors import (
    ERROR_REDIS_NOT_CONFIGURED,
    ERROR_STORAGE_BACKEND_UNKNOWN,
    StorageError,
)
from storefront.logging import get_logger

logger = get_logger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.:-]+$")


@runtime_checkable
class KeyValueStorage(Protocol):
    """Asynchronous string key-value store."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...


class MemoryStorage:
    """In-process storage. Survives only as long as the instance."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def peek(self, key: str) -> Optional[str]:
        """Synchronous read for inspection."""
        return self._data.get(key)


class FileStorage:
    """
    Directory-backed storage: key ``k`` lives in ``<directory>/k.json``.

    Writes go to a temp file in the same directory and are moved into place
    with os.replace, so a crash never leaves a half-written value behind.
    Disk I/O runs in a worker thread to keep the event loop free.
    """

    def __init__(self, directory: os.PathLike | str):
        self.directory = Path(directory)

    def _path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Unsupported storage key: {key!r}")
        return self.directory / f"{key}.json"

    def _read(self, path: Path) -> Optional[str]:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, path: Path, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(value)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, self._path_for(key))

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, self._path_for(key), value)


class RedisStorage:
    """Upstash Redis storage with optional expiry for abandoned carts."""

    def __init__(self, client: AsyncRedis, ttl_seconds: Optional[int] = None):
        self._redis = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_credentials(
        cls,
        url: str,
        token: str,
        ttl_seconds: Optional[int] = None,
    ) -> "RedisStorage":
        if not url or not token:
            raise StorageError(ERROR_REDIS_NOT_CONFIGURED)
        return cls(AsyncRedis(url=url, token=token), ttl_seconds=ttl_seconds)

    async def get(self, key: str) -> Optional[str]:
        return await self._redis.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.ttl_seconds:
            await self._redis.set(key, value, ex=self.ttl_seconds)
        else:
            await self._redis.set(key, value)


def create_storage(config: StoreConfig) -> KeyValueStorage:
    """Build the cart storage backend selected by configuration."""
    backend = config.cart_storage_backend
    if backend == "memory":
        storage: KeyValueStorage = MemoryStorage()
    elif backend == "file":
        storage = FileStorage(config.cart_storage_dir)
    elif backend == "redis":
        storage = RedisStorage.from_credentials(
            config.upstash_redis_rest_url,
            config.upstash_redis_rest_token,
            ttl_seconds=config.cart_ttl_seconds,
        )
    else:
        raise StorageError(f"{ERROR_STORAGE_BACKEND_UNKNOWN}: {backend}")

    logger.info(f"Cart storage backend: {backend}")
    return storage


__all__ = [
    "KeyValueStorage",
    "MemoryStorage",
    "FileStorage",
    "RedisStorage",
    "create_storage",
]
