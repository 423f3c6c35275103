from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from gsheet_db import DatabaseOptions

from fakes import FakeSheetStore


@pytest.fixture
def store() -> FakeSheetStore:
    return FakeSheetStore()


@pytest.fixture
def options() -> DatabaseOptions:
    return DatabaseOptions(max_retries=3, retry_delay=timedelta(0))


@pytest.fixture
def cached_options(tmp_path: Path) -> DatabaseOptions:
    return DatabaseOptions(
        enable_local_cache=True,
        local_cache_path=tmp_path / "cache",
        max_retries=3,
        retry_delay=timedelta(0),
    )
