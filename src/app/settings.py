"""Configuration helpers for the review scheduler runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass


DEFAULT_APP_NAME = "Study Review Scheduler"
DEFAULT_MAX_REVIEW_ATTEMPTS = 3
DEFAULT_DUE_CACHE_MAX_ENTRIES = 1024


def _read_int(name: str, default: int, minimum: int) -> int:
    try:
        value = int(os.getenv(name, str(default)))
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer.") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be at least {minimum}.")
    return value


@dataclass(frozen=True)
class AppSettings:
    """Strongly typed application settings loaded from environment variables."""

    app_name: str
    app_env: str
    log_level: str
    review_max_attempts: int
    due_cache_ttl_seconds: int
    due_cache_max_entries: int

    @property
    def due_cache_enabled(self) -> bool:
        return self.due_cache_ttl_seconds > 0

    @classmethod
    def from_env(cls) -> AppSettings:
        """Construct settings directly from environment variables."""
        return cls(
            app_name=os.getenv("APP_NAME", DEFAULT_APP_NAME),
            app_env=os.getenv("APP_ENV", "development"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            review_max_attempts=_read_int("REVIEW_MAX_ATTEMPTS", DEFAULT_MAX_REVIEW_ATTEMPTS, 1),
            due_cache_ttl_seconds=_read_int("DUE_CACHE_TTL_SECONDS", 0, 0),
            due_cache_max_entries=_read_int("DUE_CACHE_MAX_ENTRIES", DEFAULT_DUE_CACHE_MAX_ENTRIES, 1),
        )
