"""Utility functions for gsheet-db.

This module provides helper functions for building A1 ranges for a mapped
sheet.

Functions:
    column_letter: Convert a 0-based column index to its A1 letter(s).
    sheet_range: Build an absolute A1 range covering the mapped columns.
    sleep_for: Await a delay with a log message.

Example:
    >>> from gsheet_db.utils import sheet_range
    >>> sheet_range("Users", width=3)
    "'Users'!A:C"
"""

import asyncio
import logging

from gspread.utils import absolute_range_name, rowcol_to_a1

logger = logging.getLogger(__name__)


def column_letter(index: int) -> str:
    """Convert a 0-based column index to its A1 column letters.

    Example:
        >>> column_letter(0)
        'A'
        >>> column_letter(27)
        'AB'
    """
    return rowcol_to_a1(1, index + 1).rstrip("0123456789")


def sheet_range(
    sheet_name: str,
    width: int,
    start_row: int | None = None,
    end_row: int | None = None,
) -> str:
    """Build an absolute A1 range over the first ``width`` columns.

    Args:
        sheet_name: Title of the sheet/tab.
        width: Number of mapped columns, starting at column A.
        start_row: First 1-based row, or None for an unbounded column range.
        end_row: Last 1-based row (inclusive), or None to run to the last row.

    Returns:
        A range such as ``'Users'!A:C``, ``'Users'!A1:C1`` or ``'Users'!A1:C``.
    """
    last_col = column_letter(max(width, 1) - 1)
    start = f"A{start_row}" if start_row is not None else "A"
    end = f"{last_col}{end_row}" if end_row is not None else last_col
    return absolute_range_name(sheet_name, f"{start}:{end}")


async def sleep_for(delay: float, message: str = "") -> None:
    """Sleep with optional log message"""
    if message:
        logger.info(message)
    else:
        logger.info(f"Sleep for {delay} seconds")
    await asyncio.sleep(delay)
