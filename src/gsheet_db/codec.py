"""Row codec: converts records to sheet rows and back.

Cells only store text, numbers and booleans, so values go through their
field's pydantic ``TypeAdapter`` as JSON. Strings pass through untouched when
the field is text-only (``str`` or ``str | None``) or when the raw text reads
back as the same value (a ``str`` enum member). Otherwise they are written
quoted, so ``"42"`` in a ``str | int`` field does not read back as a number.

``None`` is written as an empty cell, and an empty cell reads back as the
field's default. For a ``str | None`` field this means ``""`` and ``None``
share the empty cell: both decode to the default.
"""

import json
import logging
import types
from decimal import Decimal
from typing import Any, Generic, Sequence, TypeVar, Union, get_args, get_origin

from pydantic import TypeAdapter, ValidationError

from .columns import ColumnMapping, SheetModel, resolve_columns
from .consts import BOOLEAN_LITERALS
from .exceptions import CellDecodeError, ColumnConflictError, DuplicateColumnError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=SheetModel)

_ZERO_VALUES: dict[Any, Any] = {
    str: "",
    int: 0,
    float: 0.0,
    bool: False,
    Decimal: Decimal(0),
    bytes: b"",
}
_ZERO_CONTAINERS: dict[Any, type] = {
    list: list,
    dict: dict,
    set: set,
    frozenset: frozenset,
    tuple: tuple,
}


def zero_value(annotation: Any) -> Any:
    """Return the zero value of a field annotation, or None when it has none."""
    origin = get_origin(annotation)
    if origin in (Union, types.UnionType):
        if type(None) in get_args(annotation):
            return None
        return zero_value(get_args(annotation)[0])
    if origin in _ZERO_CONTAINERS:
        return _ZERO_CONTAINERS[origin]()
    if annotation in _ZERO_CONTAINERS:
        return _ZERO_CONTAINERS[annotation]()
    return _ZERO_VALUES.get(annotation)


def _is_text(annotation: Any) -> bool:
    if annotation is str:
        return True
    if get_origin(annotation) in (Union, types.UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        return args == [str]
    return False


class RowCodec(Generic[T]):
    """Encode/decode pair for one record type.

    Attributes:
        model: The record type.
        mapping: Resolved column mapping of ``model``.
    """

    def __init__(self, model: type[T]) -> None:
        self.model = model
        self.mapping: ColumnMapping = self._resolve()
        self._adapters: dict[str, TypeAdapter] = {
            field_name: TypeAdapter(model.model_fields[field_name].annotation)
            for field_name in self.mapping.field_index
        }

    def _resolve(self) -> ColumnMapping:
        try:
            return resolve_columns(self.model)
        except DuplicateColumnError as e:
            raise ColumnConflictError(e.model_name, e.index, e.fields) from e

    @property
    def width(self) -> int:
        return self.mapping.width

    def header(self) -> list[str]:
        return self.mapping.header()

    def encode_value(self, field_name: str, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, str):
            annotation = self.model.model_fields[field_name].annotation
            # Raw text is kept only when it reads back as the same value.
            if _is_text(annotation) or self.decode_value(field_name, value) == value:
                return value
        return self._adapters[field_name].dump_json(value).decode("utf-8")

    def decode_value(self, field_name: str, cell: Any) -> Any:
        annotation = self.model.model_fields[field_name].annotation
        if _is_text(annotation):
            return cell if isinstance(cell, str) else str(cell)

        text = cell if isinstance(cell, str) else json.dumps(cell)
        if text.strip().lower() in BOOLEAN_LITERALS:
            text = text.strip().lower()

        adapter = self._adapters[field_name]
        try:
            return adapter.validate_json(text)
        except ValidationError:
            logger.debug(
                f"Cell {cell!r} of {self.model.__name__}.{field_name} is not JSON, "
                "parsing leniently"
            )

        try:
            return adapter.validate_python(text)
        except ValidationError as e:
            raise CellDecodeError(
                f"Cannot decode {cell!r} into {self.model.__name__}.{field_name}"
            ) from e

    def encode(self, record: T) -> list[str]:
        """Convert a record to a row of ``width`` cells."""
        row = [""] * self.mapping.width
        for field_name, index in self.mapping.field_index.items():
            row[index] = self.encode_value(field_name, getattr(record, field_name))
        return row

    def decode(self, row: Sequence[Any]) -> T:
        """Convert a (possibly short) row back to a record.

        Missing, empty and ignored cells leave the field at its default, or at
        the zero value of its type when it declares no default.
        """
        values: dict[str, Any] = {}
        for field_name, field_info in self.model.model_fields.items():
            index = self.mapping.field_index.get(field_name)
            cell = row[index] if index is not None and index < len(row) else None
            if cell is not None and cell != "":
                values[field_name] = self.decode_value(field_name, cell)
            elif field_info.is_required():
                values[field_name] = zero_value(field_info.annotation)

        try:
            return self.model.model_validate(values)
        except ValidationError as e:
            raise CellDecodeError(
                f"Row cannot be decoded into {self.model.__name__}: {e.errors()}"
            ) from e

    def decode_rows(self, rows: Sequence[Sequence[Any]]) -> list[T]:
        return [self.decode(row) for row in rows]
