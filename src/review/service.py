"""Owner-scoped lifecycle operations for spaced-repetition items."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.db.items import (
    ItemPayload,
    apply_review,
    as_utc,
    delete_owned_item,
    get_owned_item,
    insert_item,
    list_due_items,
    list_item_reviews,
    list_owner_items,
    update_item_content,
)
from src.review.cache import DueItemsCache
from src.review.errors import ConflictError, InternalError, InvalidArgumentError, NotFoundError
from src.review.models import ItemSource, ReviewItem, ReviewRecord
from src.review.srs import MAX_QUALITY, MIN_QUALITY, calculate_next_schedule


LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_REVIEW_ATTEMPTS = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_owner(owner_id: object) -> str:
    if not isinstance(owner_id, str) or not owner_id.strip():
        raise InvalidArgumentError("owner_id must be a non-empty string.")
    return owner_id


def _require_item_id(item_id: object) -> int:
    if isinstance(item_id, bool) or not isinstance(item_id, int) or item_id < 1:
        raise InvalidArgumentError("item_id must be a positive integer.")
    return item_id


def _require_quality(quality: object) -> int:
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidArgumentError("Review quality must be an integer between 0 and 5.")
    if quality < MIN_QUALITY or quality > MAX_QUALITY:
        raise InvalidArgumentError("Review quality must be an integer between 0 and 5.")
    return quality


def _optional_text(name: str, value: object) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise InvalidArgumentError(f"{name} must be a string.")
    return value


def _require_content(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError("original_content is required and must not be empty.")
    return value


def _require_source(source: object) -> ItemSource:
    if isinstance(source, str):
        try:
            return ItemSource(source.strip().lower())
        except ValueError:
            pass
    allowed = ", ".join(member.value for member in ItemSource)
    raise InvalidArgumentError(f"source must be one of: {allowed}.")


def _optional_tags(tags: object) -> Optional[list[str]]:
    if tags is None:
        return None
    if isinstance(tags, str) or not isinstance(tags, Iterable):
        raise InvalidArgumentError("tags must be a collection of strings.")
    values = list(tags)
    if not all(isinstance(tag, str) for tag in values):
        raise InvalidArgumentError("tags must be a collection of strings.")
    return values


class ReviewItemService:
    """Create, review, query, edit and delete a user's review items.

    Every lookup is filtered by owner, so items of other users are reported as
    missing. Reviews use an optimistic version check: a review that loses a
    race against another writer re-reads the item and recomputes, and after
    ``max_review_attempts`` lost races a :class:`ConflictError` is raised.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Optional[Callable[[], datetime]] = None,
        max_review_attempts: int = DEFAULT_MAX_REVIEW_ATTEMPTS,
        due_cache: Optional[DueItemsCache] = None,
    ) -> None:
        if max_review_attempts < 1:
            raise ValueError("max_review_attempts must be at least 1.")
        self._session_factory = session_factory
        self._clock = clock or _utcnow
        self._max_review_attempts = max_review_attempts
        self._due_cache = due_cache

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            LOGGER.exception("Store failure during %s.", operation)
            raise InternalError(f"Store failure during {operation}.") from exc

    def _invalidate(self, owner_id: str) -> None:
        if self._due_cache is not None:
            self._due_cache.invalidate(owner_id)

    async def create(
        self,
        owner_id: str,
        original_content: str,
        answer_content: Optional[str] = None,
        study_plan_id: Optional[str] = None,
        task_id: Optional[str] = None,
        source: str = ItemSource.MANUAL.value,
        tags: Optional[Iterable[str]] = None,
    ) -> ReviewItem:
        """Add a new item due one day from now."""
        payload = ItemPayload(
            original_content=_require_content(original_content),
            answer_content=_optional_text("answer_content", answer_content),
            study_plan_id=_optional_text("study_plan_id", study_plan_id),
            task_id=_optional_text("task_id", task_id),
            source=_require_source(source).value,
            tags=_optional_tags(tags) or [],
        )
        owner_id = _require_owner(owner_id)

        async with self._transaction("create") as session:
            record = await insert_item(session, owner_id, payload, now=self._clock())
            item = ReviewItem.from_record(record)

        self._invalidate(owner_id)
        LOGGER.info("Created spaced repetition item %s for owner %s.", item.id, owner_id)
        return item

    async def review(self, item_id: int, owner_id: str, quality: int) -> ReviewItem:
        """Record a recall rating (0-5) and reschedule the item."""
        item_id = _require_item_id(item_id)
        owner_id = _require_owner(owner_id)
        quality = _require_quality(quality)

        for attempt in range(1, self._max_review_attempts + 1):
            async with self._transaction("review") as session:
                record = await get_owned_item(session, item_id, owner_id)
                if record is None:
                    raise NotFoundError(item_id)

                schedule = calculate_next_schedule(
                    quality=quality,
                    repetitions=record.repetitions,
                    interval=record.current_interval,
                    ease_factor=record.ease_factor,
                    lapses=record.lapses,
                    now=self._clock(),
                )
                applied = await apply_review(
                    session,
                    record,
                    quality=quality,
                    expected_version=record.version,
                    next_review_at=schedule.next_review_at,
                    last_reviewed_at=schedule.last_reviewed_at,
                    interval=schedule.interval,
                    ease_factor=schedule.ease_factor,
                    repetitions=schedule.repetitions,
                    lapses=schedule.lapses,
                )
                if applied:
                    item = ReviewItem.from_record(record)

            if applied:
                self._invalidate(owner_id)
                LOGGER.info(
                    "Reviewed item %s with quality %s; next review in %s day(s).",
                    item_id,
                    quality,
                    item.current_interval,
                )
                return item

            LOGGER.warning(
                "Concurrent update of item %s detected (attempt %s of %s).",
                item_id,
                attempt,
                self._max_review_attempts,
            )

        raise ConflictError(
            f"Item {item_id} was modified concurrently; retry the review."
        )

    async def get_due(self, owner_id: str, as_of: Optional[datetime] = None) -> list[ReviewItem]:
        """Return the owner's items due at ``as_of``, most overdue first."""
        owner_id = _require_owner(owner_id)
        as_of = as_utc(as_of if as_of is not None else self._clock())

        if self._due_cache is None:
            async with self._transaction("get_due") as session:
                records = await list_due_items(session, owner_id, as_of)
                return [ReviewItem.from_record(record) for record in records]

        schedule = self._due_cache.get(owner_id)
        if schedule is None:
            token = self._due_cache.read_token()
            async with self._transaction("get_due") as session:
                records = await list_owner_items(session, owner_id)
                schedule = tuple(ReviewItem.from_record(record) for record in records)
            self._due_cache.put(owner_id, schedule, token=token)

        return [item for item in schedule if item.is_due(as_of)]

    async def get_by_id(self, item_id: int, owner_id: str) -> ReviewItem:
        item_id = _require_item_id(item_id)
        owner_id = _require_owner(owner_id)

        async with self._transaction("get_by_id") as session:
            record = await get_owned_item(session, item_id, owner_id)
            if record is None:
                raise NotFoundError(item_id)
            return ReviewItem.from_record(record)

    async def update_content(
        self,
        item_id: int,
        owner_id: str,
        *,
        original_content: Optional[str] = None,
        answer_content: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> ReviewItem:
        """Edit the prompt, answer or tags. ``None`` leaves a field unchanged.

        An empty ``answer_content`` clears the answer; scheduling fields are
        never modified here.
        """
        item_id = _require_item_id(item_id)
        owner_id = _require_owner(owner_id)
        if original_content is not None:
            _require_content(original_content)
        _optional_text("answer_content", answer_content)
        new_tags = _optional_tags(tags)

        async with self._transaction("update_content") as session:
            record = await get_owned_item(session, item_id, owner_id)
            if record is None:
                raise NotFoundError(item_id)
            changed = await update_item_content(
                session,
                record,
                original_content=original_content,
                answer_content=answer_content,
                tags=new_tags,
                now=self._clock(),
            )
            item = ReviewItem.from_record(record)

        if changed:
            self._invalidate(owner_id)
            LOGGER.info("Updated content of item %s.", item_id)
        return item

    async def delete(self, item_id: int, owner_id: str) -> None:
        item_id = _require_item_id(item_id)
        owner_id = _require_owner(owner_id)

        async with self._transaction("delete") as session:
            deleted = await delete_owned_item(session, item_id, owner_id)
            if not deleted:
                raise NotFoundError(item_id)

        self._invalidate(owner_id)
        LOGGER.info("Deleted spaced repetition item %s.", item_id)

    async def list_reviews(self, item_id: int, owner_id: str) -> list[ReviewRecord]:
        """Return the accepted reviews of an owned item, oldest first."""
        item_id = _require_item_id(item_id)
        owner_id = _require_owner(owner_id)

        async with self._transaction("list_reviews") as session:
            record = await get_owned_item(session, item_id, owner_id)
            if record is None:
                raise NotFoundError(item_id)
            reviews = await list_item_reviews(session, item_id)
            return [ReviewRecord.from_record(review) for review in reviews]
