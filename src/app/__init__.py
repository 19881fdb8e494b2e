"""Application bootstrap helpers for the Study Review Scheduler project."""

from .runtime import build_review_service, configure_logging
from .settings import AppSettings

__all__ = ["build_review_service", "configure_logging", "AppSettings"]
