"""Remote tabular store used by mapped sheets.

``SheetStore`` is the narrow contract a mapped sheet needs from the remote
service. ``GSpreadStore`` implements it on top of gspread's HTTP client, so
every call is one Google Sheets API request.

Example:
    >>> from pathlib import Path
    >>> from gsheet_db import GSpreadStore
    >>> store = GSpreadStore.from_keys_dir(Path("keys"))
    >>> [sheet.title for sheet in store.get_sheet_metadata("1BxiMV...")]
    ['Users', 'Orders']
"""

import contextlib
import logging
import random
from pathlib import Path
from typing import Any, Iterator, Protocol, Sequence

from gspread import service_account
from gspread.exceptions import APIError
from gspread.http_client import HTTPClient
from gspread.utils import InsertDataOption
from requests.exceptions import RequestException

from .exceptions import ConfigurationError, TransientStoreError
from .schemas import DimensionRange, SheetProperties

logger = logging.getLogger(__name__)


class SheetStore(Protocol):
    """Synchronous contract of the remote tabular store."""

    def get_sheet_metadata(self, spreadsheet_id: str) -> list[SheetProperties]: ...

    def get_range(self, spreadsheet_id: str, a1_range: str) -> list[list[Any]]: ...

    def append_rows(
        self,
        spreadsheet_id: str,
        a1_range: str,
        rows: Sequence[Sequence[Any]],
        value_input_option: str,
    ) -> int: ...

    def update_range(
        self,
        spreadsheet_id: str,
        a1_range: str,
        rows: Sequence[Sequence[Any]],
        value_input_option: str,
    ) -> int: ...

    def batch_mutate(
        self, spreadsheet_id: str, requests: Sequence[DimensionRange]
    ) -> dict[str, Any]: ...


@contextlib.contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    """Re-raise transport failures as TransientStoreError."""
    try:
        yield
    except APIError as e:
        response = getattr(e, "response", None)
        status_code = getattr(response, "status_code", None)
        error = TransientStoreError(f"{operation} failed: {e}", status_code=status_code)
        if error.is_rate_limit:
            logger.warning(f"Rate limit error during {operation}: {e}")
        raise error from e
    except RequestException as e:
        response = getattr(e, "response", None)
        status_code = getattr(response, "status_code", None)
        raise TransientStoreError(
            f"{operation} failed: {e}", status_code=status_code
        ) from e


class GSpreadStore:
    """SheetStore backed by a gspread ``HTTPClient``.

    Attributes:
        http_client: Authenticated gspread HTTP client.
    """

    def __init__(self, http_client: HTTPClient) -> None:
        self.http_client = http_client

    @classmethod
    def from_service_account(cls, filename: Path | str) -> "GSpreadStore":
        """Authenticate with one service account JSON key."""
        return cls(service_account(filename=str(filename)).http_client)

    @classmethod
    def from_keys_dir(cls, keys_dir: Path) -> "GSpreadStore":
        """Authenticate with a random service account key from a directory.

        Raises:
            FileNotFoundError: If the keys directory does not exist.
            ConfigurationError: If no JSON key files are found.
        """
        if not keys_dir.exists():
            raise FileNotFoundError(f"Keys directory does not exist: {keys_dir}")

        keys = [f for f in keys_dir.iterdir() if f.is_file() and f.suffix == ".json"]
        if not keys:
            raise ConfigurationError(f"No JSON key files found in {keys_dir}")

        logger.info(f"Loaded {len(keys)} service account key(s)")
        key_path = random.choice(keys)
        logger.info(f"Using key: {key_path.name}")
        return cls.from_service_account(key_path)

    def get_sheet_metadata(self, spreadsheet_id: str) -> list[SheetProperties]:
        with _translate_errors("fetch sheet metadata"):
            res = self.http_client.fetch_sheet_metadata(
                spreadsheet_id, params={"fields": "sheets.properties"}
            )

        return [
            SheetProperties.model_validate(sheet["properties"])
            for sheet in res.get("sheets", [])
        ]

    def get_range(self, spreadsheet_id: str, a1_range: str) -> list[list[Any]]:
        with _translate_errors(f"get {a1_range}"):
            res = self.http_client.values_get(id=spreadsheet_id, range=a1_range)

        return res.get("values", [])

    def append_rows(
        self,
        spreadsheet_id: str,
        a1_range: str,
        rows: Sequence[Sequence[Any]],
        value_input_option: str,
    ) -> int:
        params = {
            "valueInputOption": value_input_option,
            "insertDataOption": InsertDataOption.insert_rows,
        }
        with _translate_errors(f"append to {a1_range}"):
            res = self.http_client.values_append(
                spreadsheet_id, a1_range, params, {"values": [list(r) for r in rows]}
            )

        return res.get("updates", {}).get("updatedRows", 0)

    def update_range(
        self,
        spreadsheet_id: str,
        a1_range: str,
        rows: Sequence[Sequence[Any]],
        value_input_option: str,
    ) -> int:
        with _translate_errors(f"update {a1_range}"):
            res = self.http_client.values_update(
                spreadsheet_id,
                a1_range,
                params={"valueInputOption": value_input_option},
                body={"values": [list(r) for r in rows]},
            )

        return res.get("updatedRows", 0)

    def batch_mutate(
        self, spreadsheet_id: str, requests: Sequence[DimensionRange]
    ) -> dict[str, Any]:
        body = {"requests": [r.to_delete_request() for r in requests]}
        with _translate_errors("batch update"):
            return self.http_client.batch_update(spreadsheet_id, body)
