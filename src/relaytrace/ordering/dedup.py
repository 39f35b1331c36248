# src/relaytrace/ordering/dedup.py
"""Bounded deduplication window.

Remembers recently seen message ids and flags repeats. Memory is bounded by
evicting the oldest-inserted ids once the window is over capacity.

Key design decisions:
- Insertion order, not access order: a repeat does not refresh an entry, so
  eviction is FIFO rather than LRU.
- False negatives are accepted: an id that re-arrives after eviction is
  reported as new.
- Aggregate logging: log every 100 evictions instead of each one.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from datetime import datetime

import structlog

from relaytrace.core.clock import DEFAULT_CLOCK, Clock

logger = structlog.get_logger(__name__)

DEFAULT_WINDOW_SIZE = 1000


class DeduplicationWindow:
    """FIFO-bounded set of recently seen message ids.

    Entries are keyed by the ``(scope, message_id)`` pair, where scope is the
    dedup key built by relaytrace.ordering.keys.build_dedup_key. All scopes
    share the same capacity.

    Thread Safety:
        check() performs lookup, insert and eviction under one lock.

    Attributes:
        evicted_count: Total number of ids evicted due to capacity.

    Example:
        window = DeduplicationWindow(window_size=2)
        window.check("kafka:orders", "m1")  # False
        window.check("kafka:orders", "m1")  # True
    """

    _LOG_INTERVAL = 100

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        clock: Clock = DEFAULT_CLOCK,
        lock: threading.RLock | None = None,
    ) -> None:
        """Initialize the window.

        Args:
            window_size: Maximum number of ids retained. Defaults to 1000.
            clock: Time source for first-seen timestamps.
            lock: Lock guarding the entries; shared with the sequence
                tracker when owned by an OrderingRegistry.

        Raises:
            ValueError: If window_size < 1.
        """
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")
        self._window_size = window_size
        self._clock = clock
        self._entries: OrderedDict[tuple[str, str], datetime] = OrderedDict()
        self._lock = lock if lock is not None else threading.RLock()
        self._evicted_count = 0
        self._last_logged_eviction_count = 0

    @staticmethod
    def compose(scope: str, message_id: str) -> tuple[str, str]:
        return (scope, message_id)

    def check(self, scope: str, message_id: str) -> bool:
        """Report whether message_id was already seen in scope.

        A first sighting is inserted; a repeat leaves the window untouched.

        Returns:
            True if the id is a duplicate, False otherwise.
        """
        composed = self.compose(scope, message_id)
        with self._lock:
            if composed in self._entries:
                return True
            self._entries[composed] = self._clock.now()
            evicted = 0
            while len(self._entries) > self._window_size:
                self._entries.popitem(last=False)
                evicted += 1
            if evicted:
                self._record_evictions(evicted)
        return False

    def _record_evictions(self, evicted: int) -> None:
        """Count evictions and log in aggregate. Must hold _lock."""
        self._evicted_count += evicted
        if self._evicted_count - self._last_logged_eviction_count >= self._LOG_INTERVAL:
            logger.debug(
                "Deduplication window evicting ids",
                evicted_since_last_log=self._evicted_count - self._last_logged_eviction_count,
                evicted_total=self._evicted_count,
                window_size=self._window_size,
            )
            self._last_logged_eviction_count = self._evicted_count

    def first_seen(self, scope: str, message_id: str) -> datetime | None:
        """When the id was first seen, or None if not in the window."""
        with self._lock:
            return self._entries.get(self.compose(scope, message_id))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def evicted_count(self) -> int:
        return self._evicted_count

    def __contains__(self, entry: object) -> bool:
        with self._lock:
            return entry in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
