"""Helpers for working with spaced-repetition item persistence."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from . import ItemReview, SpacedRepetitionItem


DEFAULT_EASE_FACTOR = 2.5
INITIAL_INTERVAL_DAYS = 1
DEFAULT_SOURCE = "manual"


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are assumed UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(slots=True)
class ItemPayload:
    """User-supplied content of a spaced-repetition item."""

    original_content: str
    answer_content: Optional[str] = None
    study_plan_id: Optional[str] = None
    task_id: Optional[str] = None
    source: str = DEFAULT_SOURCE
    tags: list[str] = field(default_factory=list)

    def normalized(self) -> "ItemPayload":
        """Return a payload with whitespace stripped and tags de-duplicated."""
        return ItemPayload(
            original_content=self.original_content.strip(),
            answer_content=_clean_optional(self.answer_content),
            study_plan_id=_clean_optional(self.study_plan_id),
            task_id=_clean_optional(self.task_id),
            source=self.source.strip().lower(),
            tags=normalize_tags(self.tags),
        )


def _clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def normalize_tags(tags: Sequence[str]) -> list[str]:
    """Strip tags, drop blanks and keep the first occurrence of each."""
    seen: dict[str, None] = {}
    for tag in tags:
        cleaned = tag.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


async def insert_item(
    session: AsyncSession,
    owner_id: str,
    payload: ItemPayload,
    now: Optional[datetime] = None,
) -> SpacedRepetitionItem:
    """Persist a new item with the initial review schedule."""
    if now is None:
        now = datetime.now(timezone.utc)

    normalized = payload.normalized()
    item = SpacedRepetitionItem(
        owner_id=owner_id,
        original_content=normalized.original_content,
        answer_content=normalized.answer_content,
        study_plan_id=normalized.study_plan_id,
        task_id=normalized.task_id,
        source=normalized.source,
        tags=normalized.tags,
        last_reviewed_at=None,
        next_review_at=as_utc(now + timedelta(days=INITIAL_INTERVAL_DAYS)),
        current_interval=INITIAL_INTERVAL_DAYS,
        ease_factor=DEFAULT_EASE_FACTOR,
        repetitions=0,
        lapses=0,
        version=1,
        created_at=as_utc(now),
        updated_at=as_utc(now),
    )
    session.add(item)
    await session.flush()
    return item


async def get_owned_item(
    session: AsyncSession,
    item_id: int,
    owner_id: str,
) -> Optional[SpacedRepetitionItem]:
    """Return the item when it exists and belongs to ``owner_id``."""
    stmt = select(SpacedRepetitionItem).where(
        SpacedRepetitionItem.id == item_id,
        SpacedRepetitionItem.owner_id == owner_id,
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def list_due_items(
    session: AsyncSession,
    owner_id: str,
    as_of: datetime,
) -> list[SpacedRepetitionItem]:
    """Return the owner's items due at ``as_of``, most overdue first."""
    stmt = (
        select(SpacedRepetitionItem)
        .where(
            SpacedRepetitionItem.owner_id == owner_id,
            SpacedRepetitionItem.next_review_at <= as_utc(as_of),
        )
        .order_by(SpacedRepetitionItem.next_review_at, SpacedRepetitionItem.id)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_owner_items(session: AsyncSession, owner_id: str) -> list[SpacedRepetitionItem]:
    """Return every item of the owner ordered by next review time."""
    stmt = (
        select(SpacedRepetitionItem)
        .where(SpacedRepetitionItem.owner_id == owner_id)
        .order_by(SpacedRepetitionItem.next_review_at, SpacedRepetitionItem.id)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def apply_review(
    session: AsyncSession,
    item: SpacedRepetitionItem,
    *,
    quality: int,
    expected_version: int,
    next_review_at: datetime,
    last_reviewed_at: datetime,
    interval: int,
    ease_factor: float,
    repetitions: int,
    lapses: int,
) -> bool:
    """Write a review outcome if the stored version still matches.

    Returns ``False`` without touching the row when another writer bumped the
    version first. On success the review is appended to the item's history and
    ``item`` is refreshed from the database.
    """
    reviewed_at = as_utc(last_reviewed_at)
    stmt = (
        update(SpacedRepetitionItem)
        .where(
            SpacedRepetitionItem.id == item.id,
            SpacedRepetitionItem.owner_id == item.owner_id,
            SpacedRepetitionItem.version == expected_version,
        )
        .values(
            next_review_at=as_utc(next_review_at),
            last_reviewed_at=reviewed_at,
            current_interval=interval,
            ease_factor=ease_factor,
            repetitions=repetitions,
            lapses=lapses,
            version=SpacedRepetitionItem.version + 1,
            updated_at=reviewed_at,
        )
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    if result.rowcount != 1:
        return False

    session.add(
        ItemReview(
            item_id=item.id,
            quality=quality,
            interval=interval,
            ease_factor=ease_factor,
            reviewed_at=reviewed_at,
        )
    )
    await session.flush()
    await session.refresh(item)
    return True


async def update_item_content(
    session: AsyncSession,
    item: SpacedRepetitionItem,
    *,
    original_content: Optional[str] = None,
    answer_content: Optional[str] = None,
    tags: Optional[Sequence[str]] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Apply content edits to ``item``; scheduling fields are left untouched.

    ``None`` leaves a field as it is. A blank ``answer_content`` is not
    ignored like other empty values would be: it clears the stored answer.
    Returns whether anything changed.
    """
    has_changes = False

    if original_content is not None:
        cleaned = original_content.strip()
        if cleaned != item.original_content:
            item.original_content = cleaned
            has_changes = True

    if answer_content is not None:
        cleaned_answer = answer_content.strip() or None
        if cleaned_answer != item.answer_content:
            item.answer_content = cleaned_answer
            has_changes = True

    if tags is not None:
        cleaned_tags = normalize_tags(tags)
        if cleaned_tags != list(item.tags or []):
            item.tags = cleaned_tags
            has_changes = True

    if has_changes:
        if now is None:
            now = datetime.now(timezone.utc)
        item.updated_at = as_utc(now)
        await session.flush()

    return has_changes


async def delete_owned_item(session: AsyncSession, item_id: int, owner_id: str) -> bool:
    """Delete the owner's item and its review history. Returns whether it existed."""
    stmt = (
        delete(SpacedRepetitionItem)
        .where(
            SpacedRepetitionItem.id == item_id,
            SpacedRepetitionItem.owner_id == owner_id,
        )
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    if result.rowcount == 0:
        return False

    # Backends without enforced foreign keys (SQLite) keep orphans otherwise.
    await session.execute(
        delete(ItemReview)
        .where(ItemReview.item_id == item_id)
        .execution_options(synchronize_session=False)
    )
    return True


async def list_item_reviews(session: AsyncSession, item_id: int) -> list[ItemReview]:
    """Return the review history of an item, oldest first."""
    stmt = select(ItemReview).where(ItemReview.item_id == item_id).order_by(ItemReview.id)
    result = await session.execute(stmt)
    return list(result.scalars().all())
