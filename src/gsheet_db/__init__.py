"""gsheet-db: typed records stored as Google Sheets rows.

This package maps pydantic models onto the rows of a Google Sheet and exposes
CRUD operations over that mapping, with retry on failure and an optional
local cache.

Features:
    - Column positions from ``Annotated`` metadata, with automatic fill-in
    - Lossless JSON encoding of non-string fields
    - Add, bulk add, search, paginate, update and remove by predicate
    - One mutation at a time per mapped sheet
    - Exponential backoff retry with an optional deadline
    - Write-through in-memory and CSV cache

Main Classes:
    SheetModel: Base class for record types.
    SheetDatabase: CRUD operations for one mapped sheet.
    SheetDatabaseManager: Manager for multiple mapped sheets.
    GSpreadStore: Google Sheets store backed by gspread.
    DatabaseOptions: Cache and retry configuration.

Quick Start:
    >>> from pathlib import Path
    >>> from typing import Annotated
    >>> from gsheet_db import GSpreadStore, SheetDatabase, SheetModel, sheet_column
    >>>
    >>> class User(SheetModel):
    ...     id: Annotated[int, sheet_column(0)]
    ...     name: Annotated[str, sheet_column(1)]
    >>>
    >>> store = GSpreadStore.from_keys_dir(Path("keys"))
    >>> users = await SheetDatabase.connect(User, store, "your_spreadsheet_id", "Users")
    >>> await users.add(User(id=1, name="Ada"))
    True
"""

from .cache import CacheEntry, SheetCache
from .codec import RowCodec
from .columns import SHEET_IGNORE, ColumnMapping, SheetModel, resolve_columns, sheet_column
from .config import DatabaseOptions
from .consts import COL_INDEX_META, IGNORE_META
from .database import SheetDatabase
from .exceptions import (
    CellDecodeError,
    ColumnConflictError,
    ConfigurationError,
    DuplicateColumnError,
    InvalidArgumentError,
    SheetError,
    TransientStoreError,
)
from .manager import SheetDatabaseManager
from .schemas import Page, SheetProperties
from .store import GSpreadStore, SheetStore

__version__ = "0.1.0"
__all__ = [
    # Models
    "SheetModel",
    "ColumnMapping",
    "resolve_columns",
    "sheet_column",
    "SHEET_IGNORE",
    "COL_INDEX_META",
    "IGNORE_META",
    "RowCodec",
    "Page",
    "SheetProperties",
    # Database
    "SheetDatabase",
    "SheetDatabaseManager",
    "DatabaseOptions",
    "SheetCache",
    "CacheEntry",
    # Store
    "SheetStore",
    "GSpreadStore",
    # Errors
    "SheetError",
    "ConfigurationError",
    "DuplicateColumnError",
    "ColumnConflictError",
    "CellDecodeError",
    "InvalidArgumentError",
    "TransientStoreError",
]
