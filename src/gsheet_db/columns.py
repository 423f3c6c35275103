"""Column resolution for sheet-backed record types.

Record types are pydantic models whose fields carry ``Annotated`` metadata
dictionaries naming their column::

    class User(SheetModel):
        id: Annotated[int, {COL_INDEX_META: 0}]
        name: Annotated[str, {COL_INDEX_META: 1}]
        email: str                                   # auto-assigned
        session: Annotated[str, {IGNORE_META: True}] = ""

Explicit indices win. Unannotated fields take the lowest free index in
declaration order; once every slot below the highest explicit index is taken
the row is widened past it. Ignored fields are never mapped.
"""

import functools
import logging
from dataclasses import dataclass
from typing import Final, Mapping

from pydantic import BaseModel
from pydantic.fields import FieldInfo

from .consts import COL_INDEX_META, IGNORE_META
from .exceptions import ConfigurationError, DuplicateColumnError

logger = logging.getLogger(__name__)

SHEET_IGNORE: Final[dict[str, bool]] = {IGNORE_META: True}


def sheet_column(index: int) -> dict[str, int]:
    """Metadata dictionary placing a field at a 0-based column."""
    return {COL_INDEX_META: index}


@dataclass(frozen=True)
class ColumnMapping:
    """Resolved field -> column assignment of one record type.

    Attributes:
        model_name: Name of the record type.
        field_index: Field names mapped to 0-based columns, in declaration order.
        width: Length of an encoded row (``max(column) + 1``).
    """

    model_name: str
    field_index: Mapping[str, int]
    width: int

    def header(self) -> list[str]:
        header = [""] * self.width
        for field_name, index in self.field_index.items():
            header[index] = field_name
        return header


def _column_metadata(field_info: FieldInfo) -> tuple[int | None, bool]:
    index = None
    ignored = False
    for metadata in field_info.metadata:
        if not isinstance(metadata, dict):
            continue
        if metadata.get(IGNORE_META):
            ignored = True
        if COL_INDEX_META in metadata:
            index = metadata[COL_INDEX_META]
    return index, ignored


def resolve_fields(model_name: str, fields: Mapping[str, FieldInfo]) -> ColumnMapping:
    """Resolve the column mapping of an ordered field set.

    Raises:
        ConfigurationError: If an explicit index is not a non-negative int.
        DuplicateColumnError: If two fields claim the same explicit index.
    """
    explicit: dict[int, str] = {}
    unassigned: list[str] = []

    for field_name, field_info in fields.items():
        index, ignored = _column_metadata(field_info)
        if ignored:
            continue
        if index is None:
            unassigned.append(field_name)
            continue
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise ConfigurationError(
                f"Invalid column index {index!r} for {model_name}.{field_name}"
            )
        if index in explicit:
            raise DuplicateColumnError(model_name, index, (explicit[index], field_name))
        explicit[index] = field_name

    max_explicit = max(explicit, default=-1)
    free_slots = [i for i in range(max_explicit + 1) if i not in explicit]

    assigned: dict[str, int] = {name: index for index, name in explicit.items()}
    next_index = max_explicit + 1
    for field_name in unassigned:
        if free_slots:
            assigned[field_name] = free_slots.pop(0)
        else:
            assigned[field_name] = next_index
            next_index += 1

    # Keep declaration order so headers and logs read like the model.
    field_index = {name: assigned[name] for name in fields if name in assigned}
    width = max(field_index.values(), default=-1) + 1

    logger.debug(f"Resolved columns for {model_name}: {field_index}")
    return ColumnMapping(model_name=model_name, field_index=field_index, width=width)


@functools.cache
def resolve_columns(model: type[BaseModel]) -> ColumnMapping:
    """Resolve and cache the column mapping of a record type."""
    return resolve_fields(model.__name__, model.model_fields)


class SheetModel(BaseModel):
    """Base class for records stored as sheet rows."""

    @classmethod
    def column_mapping(cls) -> ColumnMapping:
        return resolve_columns(cls)

    @classmethod
    def mapping_fields(cls) -> dict[str, int]:
        """
        Get a mapping of model field names to 0-based column indexes.
        Returns:
            dict: Mapping of mapped field names to column indexes.
        """
        return dict(cls.column_mapping().field_index)

    @classmethod
    def header(cls) -> list[str]:
        return cls.column_mapping().header()
