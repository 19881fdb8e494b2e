"""Spaced-repetition scheduling for learning item reviews."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal


MIN_EASE_FACTOR = 1.3
INITIAL_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
PASSING_QUALITY = 3
MIN_QUALITY = 0
MAX_QUALITY = 5
EASE_PRECISION = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class ReviewSchedule:
    """Scheduling fields of an item after receiving a quality rating."""

    next_review_at: datetime
    last_reviewed_at: datetime
    interval: int
    ease_factor: float
    repetitions: int
    lapses: int


def _to_decimal(value: float | int | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(repr(value))


def round_half_away_from_zero(value: float | Decimal) -> int:
    """Round to the nearest integer, ties away from zero (12.5 -> 13)."""
    return int(_to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def next_ease_factor(ease_factor: float, quality: int) -> float:
    """Apply the SM-2 ease adjustment for ``quality``, floored at 1.3.

    Every adjustment is a multiple of 0.01, so the result is kept at two
    decimals in ``Decimal`` to stop float error from piling up over reviews.
    """
    miss = 5 - quality
    delta = Decimal("0.1") - miss * (Decimal("0.08") + miss * Decimal("0.02"))
    updated = (_to_decimal(ease_factor) + delta).quantize(EASE_PRECISION, rounding=ROUND_HALF_UP)
    if updated < _to_decimal(MIN_EASE_FACTOR):
        return MIN_EASE_FACTOR
    return float(updated)


def calculate_next_schedule(
    *,
    quality: int,
    repetitions: int,
    interval: int,
    ease_factor: float,
    lapses: int,
    now: datetime | None = None,
) -> ReviewSchedule:
    """Return the next review schedule using the SM-2 recursion.

    ``quality`` must already be validated to lie in 0..5. The interval is
    derived from the ease factor *before* this review adjusts it. Days are
    added as calendar days, so an aware ``now`` keeps its wall-clock time
    across DST transitions.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    if quality < PASSING_QUALITY:
        repetitions = 0
        interval = INITIAL_INTERVAL_DAYS
        lapses += 1
    else:
        repetitions += 1
        if repetitions == 1:
            interval = INITIAL_INTERVAL_DAYS
        elif repetitions == 2:
            interval = SECOND_INTERVAL_DAYS
        else:
            product = Decimal(interval) * _to_decimal(ease_factor)
            interval = max(INITIAL_INTERVAL_DAYS, round_half_away_from_zero(product))

    return ReviewSchedule(
        next_review_at=now + timedelta(days=interval),
        last_reviewed_at=now,
        interval=interval,
        ease_factor=next_ease_factor(ease_factor, quality),
        repetitions=repetitions,
        lapses=lapses,
    )
