"""
Runtime settings for Base table sync.

Defaults mirror the store's documented limits (100 records per page) and
the write pacing the store tolerates without throttling (a one second
pause after every ten writes).
"""

import os
from dataclasses import dataclass, field

DEFAULT_BASE_URL = "https://base-api.feishu.cn"
DEFAULT_PRIMARY_KEY_SYNONYMS = ("id", "编号", "序号")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class SyncSettings:
    """
    Tunables for the table store client and the apply phase.

    Attributes:
        base_url: Table store API origin
        page_size: Records requested per list call (store maximum is 500)
        timeout: Per-request timeout in seconds
        max_retries: Retry attempts for read calls
        retry_delay: Initial backoff delay in seconds for read calls
        pause_every: Insert a pause after this many writes (0 disables)
        pause_seconds: Length of that pause in seconds
        max_errors: Number of error messages kept in an apply report
        primary_key_synonyms: Substrings that mark a field as a likely key
    """

    base_url: str = DEFAULT_BASE_URL
    page_size: int = 100
    timeout: float = 30.0
    max_retries: int = 3
    retry_delay: float = 1.0
    pause_every: int = 10
    pause_seconds: float = 1.0
    max_errors: int = 10
    primary_key_synonyms: tuple[str, ...] = field(default=DEFAULT_PRIMARY_KEY_SYNONYMS)

    def __post_init__(self):
        if not 1 <= self.page_size <= 500:
            raise ValueError(f"page_size must be between 1 and 500, got {self.page_size}")
        if self.pause_every < 0:
            raise ValueError("pause_every must be >= 0")
        if self.pause_seconds < 0:
            raise ValueError("pause_seconds must be >= 0")
        if self.max_errors < 0:
            raise ValueError("max_errors must be >= 0")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")

    @classmethod
    def from_env(cls) -> "SyncSettings":
        """
        Build settings from environment variables

        Environment variables:
            LARK_BASE_URL, LARK_PAGE_SIZE, LARK_TIMEOUT, LARK_MAX_RETRIES,
            LARK_RETRY_DELAY, SYNC_PAUSE_EVERY, SYNC_PAUSE_SECONDS,
            SYNC_MAX_ERRORS, SYNC_PRIMARY_KEY_SYNONYMS (comma-separated)

        Raises:
            ValueError: If a variable holds an unparseable or out-of-range value
        """
        synonyms_raw = os.getenv("SYNC_PRIMARY_KEY_SYNONYMS")
        if synonyms_raw:
            synonyms = tuple(s.strip() for s in synonyms_raw.split(",") if s.strip())
        else:
            synonyms = DEFAULT_PRIMARY_KEY_SYNONYMS

        return cls(
            base_url=os.getenv("LARK_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            page_size=_env_int("LARK_PAGE_SIZE", 100),
            timeout=_env_float("LARK_TIMEOUT", 30.0),
            max_retries=_env_int("LARK_MAX_RETRIES", 3),
            retry_delay=_env_float("LARK_RETRY_DELAY", 1.0),
            pause_every=_env_int("SYNC_PAUSE_EVERY", 10),
            pause_seconds=_env_float("SYNC_PAUSE_SECONDS", 1.0),
            max_errors=_env_int("SYNC_MAX_ERRORS", 10),
            primary_key_synonyms=synonyms,
        )
