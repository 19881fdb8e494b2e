"""Spaced-repetition scheduling and owner-scoped item lifecycle."""

from .cache import DueItemsCache
from .errors import ConflictError, InternalError, InvalidArgumentError, NotFoundError, ReviewItemError
from .models import ItemSource, ReviewItem, ReviewRecord
from .service import ReviewItemService
from .srs import ReviewSchedule, calculate_next_schedule

__all__ = [
    "ConflictError",
    "DueItemsCache",
    "InternalError",
    "InvalidArgumentError",
    "ItemSource",
    "NotFoundError",
    "ReviewItem",
    "ReviewItemError",
    "ReviewItemService",
    "ReviewRecord",
    "ReviewSchedule",
    "calculate_next_schedule",
]
