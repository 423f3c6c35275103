import asyncio
from datetime import timedelta

import pytest

from gsheet_db import (
    ColumnConflictError,
    ConfigurationError,
    DatabaseOptions,
    SheetDatabase,
    TransientStoreError,
)
from gsheet_db.retry import execute_with_retry, is_retryable

from fakes import User


class Flaky:
    def __init__(self, failures: int, error: Exception | None = None) -> None:
        self.failures = failures
        self.error = error or TransientStoreError("boom", status_code=503)
        self.attempts = 0

    async def __call__(self, value: int) -> int:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise self.error
        return value * 2


def run(operation, *args, max_retries=3, retry_delay=timedelta(0), timeout=None):
    return asyncio.run(
        execute_with_retry(
            operation,
            *args,
            max_retries=max_retries,
            retry_delay=retry_delay,
            timeout=timeout,
        )
    )


def test_succeeds_after_transient_failures() -> None:
    operation = Flaky(failures=2)

    assert run(operation, 21) == 42
    assert operation.attempts == 3


def test_exhausted_retries_raise_last_error() -> None:
    operation = Flaky(failures=5)

    with pytest.raises(TransientStoreError) as exc_info:
        run(operation, 1)

    assert exc_info.value is operation.error
    assert operation.attempts == 3


def test_foreign_exceptions_are_retried() -> None:
    operation = Flaky(failures=1, error=ConnectionResetError("reset"))

    assert run(operation, 2) == 4
    assert operation.attempts == 2


@pytest.mark.parametrize(
    "error",
    [ColumnConflictError("User", 0, ("a", "b")), ConfigurationError("bad sheet")],
)
def test_programming_errors_are_not_retried(error: Exception) -> None:
    operation = Flaky(failures=5, error=error)

    with pytest.raises(type(error)):
        run(operation, 1)

    assert operation.attempts == 1
    assert not is_retryable(error)


def test_backoff_is_exponential(monkeypatch) -> None:
    waits: list[float] = []

    async def fake_sleep_for(delay: float, message: str = "") -> None:
        waits.append(delay)

    monkeypatch.setattr("gsheet_db.retry.sleep_for", fake_sleep_for)

    with pytest.raises(TransientStoreError):
        run(Flaky(failures=5), 1, max_retries=4, retry_delay=timedelta(seconds=2))

    assert waits == [2.0, 4.0, 8.0]


def test_timeout_bounds_all_attempts() -> None:
    async def slow(value: int) -> int:
        await asyncio.sleep(1)
        return value

    with pytest.raises(TimeoutError):
        run(slow, 1, timeout=timedelta(milliseconds=50))


def test_database_retries_store_calls(store) -> None:
    options = DatabaseOptions(max_retries=3, retry_delay=timedelta(0))
    store.failures["get_sheet_metadata"] = 2

    database = asyncio.run(SheetDatabase.connect(User, store, "doc", "Users", options))

    assert database.sheet_id == 7
    assert len(store.calls_to("get_sheet_metadata")) == 3
