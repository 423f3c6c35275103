from .consts import RATE_LIMIT_KEYWORDS, RATE_LIMIT_STATUS_CODES


class SheetError(Exception):
    """Base class for every error raised by gsheet-db."""


class ConfigurationError(SheetError):
    """The mapped sheet or the record type is misconfigured."""


class DuplicateColumnError(SheetError):
    """Two fields of a record type resolve to the same column."""

    def __init__(self, model_name: str, index: int, fields: tuple[str, str]) -> None:
        self.model_name = model_name
        self.index = index
        self.fields = fields
        super().__init__(
            f"Duplicate column index {index} on {model_name}: "
            f"{fields[0]!r} and {fields[1]!r}"
        )


class ColumnConflictError(DuplicateColumnError):
    """Raised by the row codec when a record type has conflicting columns."""


class CellDecodeError(SheetError):
    """A cell could not be converted back to its field type."""


class InvalidArgumentError(SheetError, ValueError):
    """A caller passed an out-of-range argument (page size, page number)."""


class TransientStoreError(SheetError):
    """A call to the remote tabular store failed.

    Attributes:
        status_code: HTTP status of the failed call, when one is known.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_rate_limit(self) -> bool:
        if self.status_code in RATE_LIMIT_STATUS_CODES:
            return True

        error_message = str(self).lower()
        return any(keyword in error_message for keyword in RATE_LIMIT_KEYWORDS)
