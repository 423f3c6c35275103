from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from gsheet_db import DatabaseOptions

ENV_KEYS = (
    "ENABLE_LOCAL_CACHE",
    "LOCAL_CACHE_PATH",
    "CACHE_EXPIRATION",
    "MAX_RETRIES",
    "RETRY_DELAY",
    "RETRY_TIMEOUT",
    "VALUE_INPUT_OPTION",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        # setenv registers the key for restore on teardown
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


def test_defaults() -> None:
    options = DatabaseOptions()

    assert options.enable_local_cache is False
    assert options.local_cache_path == Path(".gsheet_cache")
    assert options.cache_expiration == timedelta(minutes=5)
    assert options.max_retries == 3
    assert options.retry_delay == timedelta(seconds=2)
    assert options.retry_timeout is None
    assert options.value_input_option == "USER_ENTERED"


def test_from_env(tmp_path: Path) -> None:
    env_file = tmp_path / "settings.env"
    env_file.write_text(
        "ENABLE_LOCAL_CACHE=true\n"
        "LOCAL_CACHE_PATH=/tmp/sheets\n"
        "CACHE_EXPIRATION=PT60S\n"
        "MAX_RETRIES=5\n"
        "RETRY_DELAY=PT1.5S\n"
        "VALUE_INPUT_OPTION=RAW\n",
        encoding="utf-8",
    )

    options = DatabaseOptions.from_env(str(env_file))

    assert options.enable_local_cache is True
    assert options.local_cache_path == Path("/tmp/sheets")
    assert options.cache_expiration == timedelta(seconds=60)
    assert options.max_retries == 5
    assert options.retry_delay == timedelta(seconds=1.5)
    assert options.value_input_option == "RAW"


def test_max_retries_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        DatabaseOptions(max_retries=0)


@pytest.mark.parametrize("seconds", [0.5, 0.001])
def test_retry_delay_below_one_second_is_rejected(seconds: float) -> None:
    with pytest.raises(ValidationError):
        DatabaseOptions(retry_delay=timedelta(seconds=seconds))


@pytest.mark.parametrize("seconds", [0, 1, 2.5])
def test_retry_delay_zero_or_growing_is_accepted(seconds: float) -> None:
    assert DatabaseOptions(retry_delay=timedelta(seconds=seconds)).retry_delay == timedelta(seconds=seconds)
