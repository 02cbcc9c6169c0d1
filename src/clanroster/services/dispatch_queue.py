from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

log = logging.getLogger("clanroster.queue")

Delivery = Callable[[], Awaitable[None]]

DEFAULT_MAX_SIZE = 1_000


@dataclass
class DispatchStats:
    enqueued: int = 0
    dropped: int = 0
    delivered: int = 0
    failed: int = 0


class DispatchQueue:
    """Single-consumer queue for notifier and role-sync deliveries.

    Deliveries run one at a time in enqueue order. A failing delivery is
    logged and counted; it never propagates back to the operation that
    enqueued it.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE) -> None:
        self.max_size = max(1, max_size)
        self.stats = DispatchStats()
        self._q: asyncio.Queue[Delivery] = asyncio.Queue(maxsize=self.max_size)
        self._worker: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._consume(), name="clanroster-dispatch")
        log.info("Dispatch worker started (max_size=%d)", self.max_size)

    async def stop(self) -> None:
        """Cancel the worker; anything still queued is abandoned."""
        if self._worker is None:
            return
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        log.info("Dispatch worker stopped (%d undelivered)", self._q.qsize())

    def size(self) -> int:
        return self._q.qsize()

    def enqueue(self, delivery: Delivery) -> bool:
        try:
            self._q.put_nowait(delivery)
        except asyncio.QueueFull:
            self.stats.dropped += 1
            log.warning("Dispatch queue full (%d); dropping delivery", self.max_size)
            return False
        self.stats.enqueued += 1
        return True

    async def join(self) -> None:
        """Wait until every queued delivery has run or failed."""
        await self._q.join()

    async def _consume(self) -> None:
        while True:
            delivery = await self._q.get()
            try:
                await delivery()
            except Exception:
                self.stats.failed += 1
                log.exception("Delivery failed")
            else:
                self.stats.delivered += 1
            finally:
                self._q.task_done()
