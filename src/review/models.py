"""Immutable views of persisted review items handed back to callers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from src.db import ItemReview, SpacedRepetitionItem
from src.db.items import as_utc


class ItemSource(str, Enum):
    """Where an item originated. Provenance only."""

    MANUAL = "manual"
    SYLLABUS = "syllabus"
    TASK = "task"
    NOTE = "note"


@dataclass(frozen=True, slots=True)
class ReviewItem:
    """Snapshot of a spaced-repetition item."""

    id: int
    owner_id: str
    original_content: str
    answer_content: Optional[str]
    study_plan_id: Optional[str]
    task_id: Optional[str]
    last_reviewed_at: Optional[datetime]
    next_review_at: datetime
    current_interval: int
    ease_factor: float
    repetitions: int
    lapses: int
    source: ItemSource
    tags: tuple[str, ...]
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: SpacedRepetitionItem) -> "ReviewItem":
        return cls(
            id=record.id,
            owner_id=record.owner_id,
            original_content=record.original_content,
            answer_content=record.answer_content,
            study_plan_id=record.study_plan_id,
            task_id=record.task_id,
            last_reviewed_at=as_utc(record.last_reviewed_at) if record.last_reviewed_at else None,
            next_review_at=as_utc(record.next_review_at),
            current_interval=record.current_interval,
            ease_factor=record.ease_factor,
            repetitions=record.repetitions,
            lapses=record.lapses,
            source=ItemSource(record.source),
            tags=tuple(record.tags or ()),
            version=record.version,
            created_at=as_utc(record.created_at),
            updated_at=as_utc(record.updated_at),
        )

    def is_due(self, as_of: datetime) -> bool:
        return self.next_review_at <= as_of

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly representation with ISO-8601 timestamps."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "original_content": self.original_content,
            "answer_content": self.answer_content,
            "study_plan_id": self.study_plan_id,
            "task_id": self.task_id,
            "last_reviewed_at": self.last_reviewed_at.isoformat() if self.last_reviewed_at else None,
            "next_review_at": self.next_review_at.isoformat(),
            "current_interval": self.current_interval,
            "ease_factor": self.ease_factor,
            "repetitions": self.repetitions,
            "lapses": self.lapses,
            "source": self.source.value,
            "tags": list(self.tags),
            "version": self.version,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class ReviewRecord:
    """One accepted review from an item's history."""

    quality: int
    interval: int
    ease_factor: float
    reviewed_at: datetime

    @classmethod
    def from_record(cls, record: ItemReview) -> "ReviewRecord":
        return cls(
            quality=record.quality,
            interval=record.interval,
            ease_factor=record.ease_factor,
            reviewed_at=as_utc(record.reviewed_at),
        )
