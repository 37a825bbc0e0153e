"""Bounded, insertion-ordered store of scrape results keyed by requested URL.

Eviction follows insertion order only.  Re-storing a key that is already
present replaces its record in place: the key keeps its original position and
nothing is evicted, because the number of keys does not grow.  This is *not*
an LRU cache: reads never affect eviction order.

The cache does no locking.  Route handlers are coroutines on a single event
loop, so no two operations ever interleave.
"""

import logging
from collections import OrderedDict
from typing import List, Optional

from app.models.record import ContentRecord

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50


class ResultCache:
    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("Cache capacity must be at least 1.")
        self.capacity = capacity
        self._entries: "OrderedDict[str, ContentRecord]" = OrderedDict()

    def get(self, key: str) -> Optional[ContentRecord]:
        """Return the record stored under *key*, or ``None``."""
        return self._entries.get(key)

    def put(self, key: str, record: ContentRecord) -> None:
        """Store *record* under *key*, evicting the oldest key when over capacity."""
        if key in self._entries:
            self._entries[key] = record
            return

        self._entries[key] = record
        if len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted cached result for %s", evicted)

    def values(self) -> List[ContentRecord]:
        """Return every cached record, oldest first."""
        return list(self._entries.values())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
