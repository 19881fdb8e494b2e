"""Bootstrap logic for wiring the review item service."""

from __future__ import annotations

import logging

from src.app.settings import AppSettings
from src.db import get_session_factory, run_migrations_if_needed
from src.review import DueItemsCache, ReviewItemService


LOGGER = logging.getLogger(__name__)


def configure_logging(log_level: str) -> None:
    """Set up project-wide logging configuration."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=log_level,
    )


def build_review_service(settings: AppSettings) -> ReviewItemService:
    """Apply pending migrations and return a service bound to the configured database."""
    try:
        run_migrations_if_needed()
    except Exception:
        LOGGER.exception("Database migrations failed. Aborting startup.")
        raise

    due_cache = None
    if settings.due_cache_enabled:
        due_cache = DueItemsCache(
            ttl_seconds=settings.due_cache_ttl_seconds,
            max_entries=settings.due_cache_max_entries,
        )
        LOGGER.info(
            "Due-items cache enabled (ttl=%ss, max_entries=%s).",
            settings.due_cache_ttl_seconds,
            settings.due_cache_max_entries,
        )

    return ReviewItemService(
        get_session_factory(),
        max_review_attempts=settings.review_max_attempts,
        due_cache=due_cache,
    )
