"""Configuration module for gsheet-db.

This module provides the options container read by every mapped sheet:
local cache settings, retry policy and the value input option used for writes.

Classes:
    DatabaseOptions: Configuration container for a mapped sheet.

Example:
    >>> from pathlib import Path
    >>> from gsheet_db import DatabaseOptions
    >>> options = DatabaseOptions(
    ...     enable_local_cache=True,
    ...     local_cache_path=Path(".cache"),
    ... )
    >>> print(options.max_retries)
    3
"""

import os
from datetime import timedelta
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .consts import (
    DEFAULT_CACHE_DIR,
    DEFAULT_CACHE_EXPIRATION,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
)


class DatabaseOptions(BaseModel):
    """Options for a mapped sheet.

    Every field can be given by name or by its upper-case environment alias,
    so the same model validates keyword arguments and ``os.environ``.

    Attributes:
        enable_local_cache: Mirror the sheet in memory and in a CSV snapshot.
        local_cache_path: Directory where CSV snapshots are stored.
        cache_expiration: How long a cache entry stays fresh.
        max_retries: Maximum number of attempts for each remote call.
        retry_delay: Backoff base; attempt ``k`` waits ``retry_delay ** k`` seconds.
            Either zero (retry at once) or at least one second, since a base
            below one second would shrink the wait on every attempt.
        retry_timeout: Optional deadline for a whole retried call.
        value_input_option: How Google Sheets interprets written values.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    enable_local_cache: bool = Field(default=False, alias="ENABLE_LOCAL_CACHE")
    local_cache_path: Path = Field(
        default=DEFAULT_CACHE_DIR,
        alias="LOCAL_CACHE_PATH",
        description="Directory for storing cached CSV snapshots",
    )
    cache_expiration: timedelta = Field(
        default=DEFAULT_CACHE_EXPIRATION, alias="CACHE_EXPIRATION"
    )
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=1, alias="MAX_RETRIES")
    retry_delay: timedelta = Field(default=DEFAULT_RETRY_DELAY, alias="RETRY_DELAY")
    retry_timeout: timedelta | None = Field(default=None, alias="RETRY_TIMEOUT")
    value_input_option: Literal["USER_ENTERED", "RAW"] = Field(
        default="USER_ENTERED", alias="VALUE_INPUT_OPTION"
    )

    @field_validator("retry_delay")
    @classmethod
    def validate_retry_delay(cls, value: timedelta) -> timedelta:
        if timedelta(0) < value < timedelta(seconds=1):
            raise ValueError("retry_delay must be 0 or at least 1 second")
        return value

    @staticmethod
    def from_env(dotenv_path: str = "settings.env") -> "DatabaseOptions":
        load_dotenv(dotenv_path)
        return DatabaseOptions.model_validate(os.environ)
