"""Typed CRUD access to one Google Sheet.

``SheetDatabase`` maps a ``SheetModel`` subclass onto the rows of a sheet.
Row 1 holds the header; every following row is one record.

Mutations (``add``, ``add_many``, ``update``, ``remove``) hold the instance's
mutation guard, so at most one of them talks to the sheet at a time. Reads
are not gated: a read that runs while a mutation is in flight may see the
sheet before or after the write, and may see the write before the local
cache has been refreshed.

Example:
    >>> class User(SheetModel):
    ...     id: Annotated[int, sheet_column(0)]
    ...     name: Annotated[str, sheet_column(1)]
    >>> store = GSpreadStore.from_keys_dir(Path("keys"))
    >>> users = await SheetDatabase.connect(User, store, "1BxiMV...", "Users")
    >>> await users.add(User(id=1, name="Ada"))
    True
    >>> await users.search(lambda u: u.name.startswith("A"))
    [User(id=1, name='Ada')]
"""

import asyncio
import logging
import math
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar

from .cache import SheetCache
from .codec import RowCodec
from .columns import SheetModel, resolve_columns
from .config import DatabaseOptions
from .consts import HEADER_ROW_COUNT
from .exceptions import ConfigurationError, InvalidArgumentError
from .guard import MutationGuard
from .retry import execute_with_retry
from .schemas import DimensionRange, Page
from .store import SheetStore
from .utils import sheet_range

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=SheetModel)
R = TypeVar("R")

Predicate = Callable[[T], bool]


class SheetDatabase(Generic[T]):
    """Typed table stored in one sheet of a spreadsheet.

    Use :meth:`connect` to build an instance; it validates the record type,
    looks up the sheet and writes the header row when the sheet is empty.

    Attributes:
        model: Record type stored in the sheet.
        store: Remote tabular store.
        spreadsheet_id: Google Sheets spreadsheet ID.
        sheet_name: Title of the sheet/tab.
        sheet_id: Numeric id of the sheet, resolved on connect.
        options: Cache and retry options.
        codec: Row codec for ``model``.
        cache: Local mirror, or None when caching is disabled.
    """

    def __init__(
        self,
        model: type[T],
        store: SheetStore,
        spreadsheet_id: str,
        sheet_name: str,
        options: DatabaseOptions | None = None,
    ) -> None:
        # Fails fast on duplicate columns, before any remote call.
        resolve_columns(model)

        self.model = model
        self.store = store
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        self.options = options or DatabaseOptions()
        self.codec: RowCodec[T] = RowCodec(model)
        self.sheet_id: int | None = None
        self.guard = MutationGuard(f"{spreadsheet_id}/{sheet_name}")
        self.cache: SheetCache[T] | None = None

        if self.options.enable_local_cache:
            self.cache = SheetCache(
                self.codec,
                self.options.local_cache_path / f"{spreadsheet_id}_{sheet_name}.csv",
                self.options.cache_expiration,
            )

    @classmethod
    async def connect(
        cls,
        model: type[T],
        store: SheetStore,
        spreadsheet_id: str,
        sheet_name: str,
        options: DatabaseOptions | None = None,
    ) -> "SheetDatabase[T]":
        """Create and initialize a mapped sheet.

        Raises:
            DuplicateColumnError: If two fields of ``model`` share a column.
            ConfigurationError: If ``sheet_name`` is not in the spreadsheet.
            TransientStoreError: If the store keeps failing after retries.
        """
        database = cls(model, store, spreadsheet_id, sheet_name, options)
        await database.initialize()
        return database

    @property
    def data_range(self) -> str:
        return sheet_range(self.sheet_name, self.codec.width)

    async def _call(self, operation: Callable[..., R], *args: Any) -> R:
        """Run one blocking store call in a worker thread, with retry."""

        async def _in_thread(*call_args: Any) -> R:
            return await asyncio.to_thread(operation, *call_args)

        return await execute_with_retry(
            _in_thread,
            *args,
            max_retries=self.options.max_retries,
            retry_delay=self.options.retry_delay,
            timeout=self.options.retry_timeout,
        )

    async def initialize(self) -> None:
        sheets = await self._call(self.store.get_sheet_metadata, self.spreadsheet_id)
        sheet = next((s for s in sheets if s.title == self.sheet_name), None)
        if sheet is None:
            raise ConfigurationError(
                f"Sheet '{self.sheet_name}' not found in the spreadsheet."
            )
        self.sheet_id = sheet.sheetId

        header_range = sheet_range(self.sheet_name, self.codec.width, 1, 1)
        header = await self._call(self.store.get_range, self.spreadsheet_id, header_range)
        if not header or not any(cell != "" for cell in header[0]):
            await self._add_header_row(header_range)

        if self.cache is not None:
            await self.cache.initialize()
            await self.refresh_cache()

        logger.info(
            f"Connected {self.model.__name__} to {self.spreadsheet_id} -> {self.sheet_name}"
        )

    async def _add_header_row(self, header_range: str) -> None:
        await self._call(
            self.store.update_range,
            self.spreadsheet_id,
            header_range,
            [self.codec.header()],
            "RAW",
        )
        logger.info(f"Wrote header row to {self.sheet_name}: {self.codec.header()}")

    async def _get_all_rows(self) -> list[list[Any]]:
        """All rows of the mapped range, header included."""
        return await self._call(self.store.get_range, self.spreadsheet_id, self.data_range)

    async def _fetch_records(self) -> list[T]:
        rows = await self._get_all_rows()
        return self.codec.decode_rows(rows[HEADER_ROW_COUNT:])

    async def refresh_cache(self) -> None:
        """Re-fetch the whole sheet into the local mirror.

        The fetched rows are dropped when a mutation refreshed the mirror
        while they were in flight.
        """
        if self.cache is None:
            return
        generation = self.cache.generation
        records = await self._fetch_records()
        await self.cache.store(records, if_generation=generation)

    async def _refresh_after_mutation(self) -> None:
        if self.cache is None:
            return
        try:
            # Runs under the guard after the write, so it always replaces the mirror.
            await self.cache.store(await self._fetch_records())
        except Exception:
            logger.exception(
                f"Failed to refresh cache for {self.sheet_name}, invalidating it"
            )
            await self.cache.invalidate()

    async def _mutate(self, operation: str, action: Callable[[], Awaitable[bool]]) -> bool:
        async with self.guard.hold(operation):
            changed = await action()
            if changed:
                await self._refresh_after_mutation()
            return changed

    async def add(self, item: T) -> bool:
        """Append one record after the last occupied row.

        Returns:
            True if the store reports at least one inserted row.
        """

        async def _add() -> bool:
            updated_rows = await self._call(
                self.store.append_rows,
                self.spreadsheet_id,
                self.data_range,
                [self.codec.encode(item)],
                self.options.value_input_option,
            )
            logger.info(f"Added {updated_rows} row(s) to {self.sheet_name}")
            return updated_rows > 0

        return await self._mutate("add", _add)

    async def add_many(self, items: Sequence[T]) -> bool:
        """Append several records in one request.

        The append is a single API call, so the batch lands as a whole or not
        at all.

        Returns:
            True if the store reports at least one inserted row; False for an
            empty ``items``.
        """
        if not items:
            return False

        async def _add_many() -> bool:
            rows = [self.codec.encode(item) for item in items]
            updated_rows = await self._call(
                self.store.append_rows,
                self.spreadsheet_id,
                self.data_range,
                rows,
                self.options.value_input_option,
            )
            logger.info(f"Added {updated_rows} row(s) to {self.sheet_name}")
            return updated_rows > 0

        return await self._mutate("add_many", _add_many)

    async def remove(self, predicate: Predicate[T]) -> bool:
        """Delete every row whose record matches ``predicate``.

        Returns:
            True if at least one row was deleted.
        """

        async def _remove() -> bool:
            rows = await self._get_all_rows()
            indices_to_remove = [
                i
                for i in range(HEADER_ROW_COUNT, len(rows))
                if predicate(self.codec.decode(rows[i]))
            ]
            if not indices_to_remove:
                return False

            if self.sheet_id is None:
                raise ConfigurationError(
                    f"Sheet '{self.sheet_name}' is not initialized, use connect()"
                )
            # Bottom-up so earlier deletions do not shift later indices.
            requests = [
                DimensionRange(sheetId=self.sheet_id, startIndex=i, endIndex=i + 1)
                for i in sorted(indices_to_remove, reverse=True)
            ]
            await self._call(self.store.batch_mutate, self.spreadsheet_id, requests)
            logger.info(f"Removed {len(requests)} row(s) from {self.sheet_name}")
            return True

        return await self._mutate("remove", _remove)

    async def update(self, predicate: Predicate[T], updated_item: T) -> bool:
        """Replace every row matching ``predicate`` with ``updated_item``.

        Non-matching rows are written back exactly as they were read.

        Returns:
            True if at least one row matched.
        """

        async def _update() -> bool:
            rows = await self._get_all_rows()
            new_row = self.codec.encode(updated_item)
            updated_rows = list(rows[:HEADER_ROW_COUNT])
            matched = 0

            for row in rows[HEADER_ROW_COUNT:]:
                if predicate(self.codec.decode(row)):
                    updated_rows.append(list(new_row))
                    matched += 1
                else:
                    updated_rows.append(row)

            if not matched:
                return False

            await self._call(
                self.store.update_range,
                self.spreadsheet_id,
                sheet_range(self.sheet_name, self.codec.width, 1, len(rows)),
                updated_rows,
                self.options.value_input_option,
            )
            logger.info(f"Updated {matched} row(s) in {self.sheet_name}")
            return True

        return await self._mutate("update", _update)

    async def get_all(self, use_cache: bool = True) -> list[T]:
        """All records in sheet order.

        Args:
            use_cache: Serve from the local mirror when it is enabled and fresh.
        """
        if self.cache is None:
            return await self._fetch_records()

        if use_cache:
            records = await self.cache.load()
            if records is not None:
                return records

        # Rows fetched before a newer store or invalidate are not cached.
        generation = self.cache.generation
        records = await self._fetch_records()
        await self.cache.store(records, if_generation=generation)
        return records

    async def search(self, predicate: Predicate[T], use_cache: bool = True) -> list[T]:
        """Records matching ``predicate``, in sheet order."""
        return [item for item in await self.get_all(use_cache) if predicate(item)]

    async def get_page(
        self, page_size: int, page_number: int, use_cache: bool = True
    ) -> Page[T]:
        """Return one page of records.

        Args:
            page_size: Records per page (>= 1).
            page_number: 1-based page number (>= 1).

        Raises:
            InvalidArgumentError: If either argument is not strictly positive.
        """
        if page_size <= 0:
            raise InvalidArgumentError(f"page_size must be positive, got {page_size}")
        if page_number <= 0:
            raise InvalidArgumentError(
                f"page_number must be positive, got {page_number}"
            )

        records = await self.get_all(use_cache)
        start = (page_number - 1) * page_size
        return Page(
            items=records[start : start + page_size],
            total_pages=math.ceil(len(records) / page_size),
            total_items=len(records),
            page_number=page_number,
            page_size=page_size,
        )
