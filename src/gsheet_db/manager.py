"""Manager module for handling multiple mapped sheets.

This module provides the SheetDatabaseManager class for managing several
SheetDatabase instances that share one store and one set of options.

Classes:
    SheetDatabaseManager: Central manager for multiple mapped sheets.

Example:
    >>> from gsheet_db import DatabaseOptions, GSpreadStore, SheetDatabaseManager
    >>> manager = SheetDatabaseManager(GSpreadStore.from_keys_dir(Path("keys")))
    >>> users = await manager.add_sheet(User, "spreadsheet_id_1", "Users")
    >>> await users.get_all()
"""

import asyncio
import logging
from typing import TypeVar

from .columns import SheetModel
from .config import DatabaseOptions
from .database import SheetDatabase
from .store import SheetStore

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=SheetModel)


class SheetDatabaseManager:
    """Central manager for multiple mapped sheets.

    Each ``(spreadsheet_id, sheet_name)`` pair gets one SheetDatabase. The
    instances stay independent: every one has its own mutation guard and its
    own cache, even when two of them point at the same spreadsheet.

    Attributes:
        store: Remote store shared by every managed sheet.
        options: Options passed to every managed sheet.
        sheets: Dictionary mapping (spreadsheet_id, sheet_name) tuples to
            SheetDatabase instances.
    """

    def __init__(self, store: SheetStore, options: DatabaseOptions | None = None):
        self.store = store
        self.options = options or DatabaseOptions()
        # A dict to hold SheetDatabase instances, keyed by (spreadsheet_id, sheet_name)
        self.sheets: dict[tuple[str, str], SheetDatabase] = {}
        # One lock per key, so concurrent add_sheet calls connect only once
        self._connect_locks: dict[tuple[str, str], asyncio.Lock] = {}

        if self.options.enable_local_cache:
            # Ensure cache directory exists
            self.options.local_cache_path.mkdir(parents=True, exist_ok=True)

    async def add_sheet(
        self, model: type[T], spreadsheet_id: str, sheet_name: str
    ) -> SheetDatabase[T]:
        """Connect a sheet and keep it in the manager.

        If a sheet with the same ID and name already exists, returns the
        existing instance instead of creating a new one.

        Raises:
            ValueError: If the existing instance maps a different record type.
        """
        key = (spreadsheet_id, sheet_name)
        lock = self._connect_locks.setdefault(key, asyncio.Lock())
        async with lock:
            if key in self.sheets:
                existing = self.sheets[key]
                if existing.model is not model:
                    raise ValueError(
                        f"Sheet {spreadsheet_id} - {sheet_name} is already mapped to "
                        f"{existing.model.__name__}"
                    )
                return existing

            database = await SheetDatabase.connect(
                model, self.store, spreadsheet_id, sheet_name, self.options
            )
            self.sheets[key] = database
            logger.info(f"Added sheet {spreadsheet_id} - {sheet_name}")
            return database

    def get_sheet(self, spreadsheet_id: str, sheet_name: str) -> SheetDatabase:
        """Get a SheetDatabase instance from the manager.

        Raises:
            ValueError: If the sheet is not found in the manager.
        """
        key = (spreadsheet_id, sheet_name)
        if key not in self.sheets:
            raise ValueError(f"Sheet not found: {spreadsheet_id} - {sheet_name}")

        return self.sheets[key]

    def remove_sheet(self, spreadsheet_id: str, sheet_name: str) -> None:
        """Remove a sheet from the manager.

        Note: The cached CSV snapshot is not deleted from disk.
        """
        key = (spreadsheet_id, sheet_name)
        if key in self.sheets:
            del self.sheets[key]
        self._connect_locks.pop(key, None)

    def clear_all_sheets(self) -> None:
        self.sheets.clear()
        self._connect_locks.clear()
