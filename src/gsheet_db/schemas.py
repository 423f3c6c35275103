"""Data schemas for gsheet-db.

This module defines Pydantic data models used throughout the library, mostly
for representing Google Sheets API structures and paginated results.

Classes:
    SheetProperties: Title and numeric id of one sheet (tab) of a spreadsheet.
    DimensionRange: A span of rows or columns on one sheet.
    Page: One page of records returned by ``SheetDatabase.get_page``.

Example:
    >>> from gsheet_db.schemas import DimensionRange
    >>> rows = DimensionRange(sheetId=0, startIndex=3, endIndex=4)
    >>> rows.to_delete_request()["deleteDimension"]["range"]["dimension"]
    'ROWS'
"""

from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class SheetProperties(BaseModel):
    """Title and numeric id of a sheet inside a spreadsheet."""

    title: str
    sheetId: int


class DimensionRange(BaseModel):
    """A half-open span ``[startIndex, endIndex)`` of rows on one sheet."""

    sheetId: int
    dimension: Literal["ROWS", "COLUMNS"] = "ROWS"
    startIndex: int = Field(ge=0)
    endIndex: int = Field(ge=1)

    def to_delete_request(self) -> dict[str, Any]:
        """Build the ``deleteDimension`` request body for ``batchUpdate``."""
        return {"deleteDimension": {"range": self.model_dump()}}


class Page(BaseModel, Generic[T]):
    """One page of records.

    Attributes:
        items: Records on this page, in sheet order.
        total_pages: ``ceil(total_items / page_size)``; 0 for an empty sheet.
        total_items: Number of data rows in the sheet.
        page_number: 1-based page number that was requested.
        page_size: Requested page size.
    """

    items: list[T]
    total_pages: int
    total_items: int
    page_number: int
    page_size: int
