"""
Snapshot persistence - coalescing background writer

Every cart mutation hands the writer a fully serialized snapshot. Only the
latest payload is kept: a single background task writes it, and the next
write starts only after the previous one finished. Writes therefore never
reorder, and the last scheduled snapshot is always the last one stored.
"""

import asyncio
from typing import Optional

from storefront.errors import ERROR_CART_SAVE_FAILED
from storefront.logging import get_logger

from .storage import KeyValueStorage

logger = get_logger(__name__)


class SnapshotWriter:
    """Single-slot write queue in front of a KeyValueStorage key."""

    def __init__(self, storage: KeyValueStorage, key: str, paused: bool = False):
        self._storage = storage
        self._key = key
        self._pending: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        self._paused = paused
        self.writes_completed = 0
        self.writes_failed = 0

    @property
    def key(self) -> str:
        return self._key

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, payload: str) -> None:
        """Replace the pending payload and make sure a writer task is running."""
        self._pending = payload
        self._ensure_draining()

    def pause(self) -> None:
        """Hold pending payloads; a write already in flight still completes."""
        self._paused = True

    def resume(self) -> None:
        self._paused = False
        self._ensure_draining()

    def discard_pending(self) -> None:
        self._pending = None

    def _ensure_draining(self) -> None:
        if self._paused or self._pending is None or self.in_flight:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Sync caller: keep the payload until a loop is available
            logger.debug("No running event loop, cart write left pending")
            return
        self._task = loop.create_task(self._drain())

    async def _drain(self) -> None:
        while self._pending is not None and not self._paused:
            payload = self._pending
            self._pending = None
            try:
                await self._storage.set(self._key, payload)
                self.writes_completed += 1
            except Exception as e:
                self.writes_failed += 1
                logger.error(f"{ERROR_CART_SAVE_FAILED}: {e}", exc_info=True)

    async def flush(self) -> None:
        """
        Wait until no write is in flight and nothing writable is pending.

        Payloads held by ``pause()`` are left pending.
        """
        while True:
            if self.in_flight:
                await self._task
                continue
            if self._pending is not None and not self._paused:
                self._task = asyncio.get_running_loop().create_task(self._drain())
                continue
            return


__all__ = ["SnapshotWriter"]
