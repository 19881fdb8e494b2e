"""Bounded, time-expiring cache of each owner's review schedule."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from typing import Callable, Optional

from src.review.models import ReviewItem


LOGGER = logging.getLogger(__name__)


class DueItemsCache:
    """Per-owner snapshot of items ordered by next review time.

    Entries expire after ``ttl_seconds`` and the least recently used owner is
    evicted once ``max_entries`` is exceeded. Every write on behalf of an owner
    must call :meth:`invalidate`.

    Readers take a :meth:`read_token` before loading a snapshot and hand it to
    :meth:`put`; a snapshot loaded before the owner's latest invalidation is
    discarded instead of cached.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive.")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1.")
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, tuple[ReviewItem, ...]]] = OrderedDict()
        self._sequence = 0
        self._invalidations: OrderedDict[str, int] = OrderedDict()
        # sequence of the newest invalidation forgotten by pruning
        self._pruned_through = 0
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def read_token(self) -> int:
        return self._sequence

    def _last_invalidation(self, owner_id: str) -> int:
        return self._invalidations.get(owner_id, self._pruned_through)

    def get(self, owner_id: str) -> Optional[tuple[ReviewItem, ...]]:
        entry = self._entries.get(owner_id)
        if entry is None:
            self.misses += 1
            return None

        expires_at, items = entry
        if self._clock() >= expires_at:
            del self._entries[owner_id]
            self.misses += 1
            return None

        self._entries.move_to_end(owner_id)
        self.hits += 1
        return items

    def put(self, owner_id: str, items: tuple[ReviewItem, ...], token: Optional[int] = None) -> bool:
        """Cache ``items`` unless the owner was invalidated after ``token`` was taken."""
        if token is not None and self._last_invalidation(owner_id) > token:
            LOGGER.debug("Discarded stale due-items snapshot for owner %s.", owner_id)
            return False

        self._entries[owner_id] = (self._clock() + self._ttl, items)
        self._entries.move_to_end(owner_id)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            LOGGER.debug("Evicted due-items cache entry for owner %s.", evicted)
        return True

    def invalidate(self, owner_id: str) -> None:
        self._sequence += 1
        self._entries.pop(owner_id, None)
        self._invalidations[owner_id] = self._sequence
        self._invalidations.move_to_end(owner_id)
        while len(self._invalidations) > self._max_entries:
            _, sequence = self._invalidations.popitem(last=False)
            self._pruned_through = max(self._pruned_through, sequence)

    def clear(self) -> None:
        self._entries.clear()
