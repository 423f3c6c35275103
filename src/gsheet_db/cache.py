"""Write-through local mirror of a mapped sheet.

The mirror has two levels: an in-memory ``CacheEntry`` with an expiration,
and a CSV snapshot on disk. Both are replaced wholesale on every refresh,
never patched, so concurrent readers always see one complete snapshot.

Example:
    >>> cache = SheetCache(codec, Path(".gsheet_cache") / "id_Users.csv", timedelta(minutes=5))
    >>> await cache.initialize()
    >>> await cache.store(records)
    >>> await cache.load()  # fresh in-memory entry, no disk or API access
"""

import asyncio
import csv
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Generic, TypeVar

from .codec import RowCodec
from .columns import SheetModel

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=SheetModel)


@dataclass
class CacheEntry(Generic[T]):
    records: list[T]
    expiration: timedelta
    timestamp: float = field(default_factory=lambda: datetime.now().timestamp())

    def is_expired(self) -> bool:
        current_timestamp = datetime.now().timestamp()
        return current_timestamp > self.timestamp + self.expiration.total_seconds()


def _copy(records: list[T]) -> list[T]:
    return [record.model_copy(deep=True) for record in records]


class SheetCache(Generic[T]):
    """In-memory entry plus CSV snapshot for one mapped sheet.

    Attributes:
        codec: Row codec of the cached record type.
        cache_file: Path of the CSV snapshot.
        expiration: How long an entry (or snapshot) stays fresh.
    """

    def __init__(self, codec: RowCodec[T], cache_file: Path, expiration: timedelta):
        self.codec = codec
        self.cache_file = cache_file
        self.expiration = expiration
        self._entry: CacheEntry[T] | None = None
        self._generation = 0
        self._snapshot_lock = asyncio.Lock()

    @property
    def entry(self) -> CacheEntry[T] | None:
        return self._entry

    @property
    def generation(self) -> int:
        """Counter bumped by every ``store`` and ``invalidate``."""
        return self._generation

    async def initialize(self) -> None:
        """Ensure the cache directory exists."""
        await asyncio.to_thread(
            self.cache_file.parent.mkdir, parents=True, exist_ok=True
        )

    async def store(self, records: list[T], if_generation: int | None = None) -> bool:
        """Replace the in-memory entry and the snapshot with ``records``.

        Args:
            records: Complete contents of the sheet.
            if_generation: Only store when the cache is still at this
                generation, so records fetched before a newer ``store`` or
                ``invalidate`` do not overwrite it.

        Returns:
            False if the records were discarded as stale.
        """
        if if_generation is not None and if_generation != self._generation:
            logger.info(f"Discarded stale rows for {self.cache_file}")
            return False

        self._generation += 1
        generation = self._generation
        self._entry = CacheEntry(records=_copy(records), expiration=self.expiration)

        async with self._snapshot_lock:
            # Skipped when a newer store or invalidate came first.
            if generation == self._generation:
                await asyncio.to_thread(self._write_snapshot, self._entry.records)
        logger.info(f"Cached {len(records)} rows to {self.cache_file}")
        return True

    async def load(self) -> list[T] | None:
        """Return copies of the cached records, or None when neither level is fresh."""
        entry = self._entry
        if entry is not None and not entry.is_expired():
            return _copy(entry.records)

        generation = self._generation
        async with self._snapshot_lock:
            snapshot = await asyncio.to_thread(self._read_snapshot)
        if snapshot is None:
            return None

        records, mtime = snapshot
        if generation == self._generation:
            self._entry = CacheEntry(
                records=records, expiration=self.expiration, timestamp=mtime
            )
        logger.info(f"Loaded {len(records)} rows from {self.cache_file}")
        return _copy(records)

    async def invalidate(self) -> None:
        """Drop the in-memory entry and delete the snapshot."""
        self._generation += 1
        self._entry = None
        async with self._snapshot_lock:
            await asyncio.to_thread(self.cache_file.unlink, missing_ok=True)
        logger.info(f"Invalidated cache {self.cache_file}")

    def _write_snapshot(self, records: list[T]) -> None:
        tmp_file = self.cache_file.with_suffix(".tmp")
        with tmp_file.open("w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(self.codec.header())
            for record in records:
                writer.writerow(self.codec.encode(record))

        os.replace(tmp_file, self.cache_file)

    def _read_snapshot(self) -> tuple[list[T], float] | None:
        try:
            mtime = self.cache_file.stat().st_mtime
        except FileNotFoundError:
            return None

        if datetime.now().timestamp() > mtime + self.expiration.total_seconds():
            logger.info(f"Snapshot {self.cache_file} is expired")
            return None

        with self.cache_file.open("r", newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))

        # First row is the header
        return self.codec.decode_rows(rows[1:]), mtime
