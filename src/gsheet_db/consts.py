from datetime import timedelta
from pathlib import Path
from typing import Final

COL_INDEX_META: Final[str] = "col_index_xxx"
IGNORE_META: Final[str] = "is_ignore_xxx"

HEADER_ROW_COUNT: Final[int] = 1

DEFAULT_CACHE_DIR: Final[Path] = Path(".gsheet_cache")
DEFAULT_CACHE_EXPIRATION: Final[timedelta] = timedelta(minutes=5)
DEFAULT_MAX_RETRIES: Final[int] = 3
DEFAULT_RETRY_DELAY: Final[timedelta] = timedelta(seconds=2)

RATE_LIMIT_STATUS_CODES: Final[tuple[int, ...]] = (429, 403)
RATE_LIMIT_KEYWORDS: Final[tuple[str, ...]] = (
    "rate limit",
    "quota",
    "too many requests",
    "user rate limit",
)

BOOLEAN_LITERALS: Final[frozenset[str]] = frozenset({"true", "false"})
