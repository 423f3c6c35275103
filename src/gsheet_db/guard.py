import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

logger = logging.getLogger(__name__)


class MutationGuard:
    """Single-slot gate serializing mutations on one mapped sheet.

    Waiters are admitted in arrival order. The slot is released on every exit
    path of the ``async with`` block, including exceptions and cancellation.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = asyncio.Lock()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def hold(self, operation: str) -> AsyncIterator[None]:
        if self._lock.locked():
            logger.debug(f"[{self.name}] {operation} waiting for running mutation")
        async with self._lock:
            logger.debug(f"[{self.name}] {operation} acquired mutation guard")
            try:
                yield
            finally:
                logger.debug(f"[{self.name}] {operation} released mutation guard")
