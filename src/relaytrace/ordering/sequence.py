# src/relaytrace/ordering/sequence.py
"""Per-stream sequence tracking and out-of-order detection.

The tracker remembers the last sequence number seen for every TrackingKey
and flags any message whose sequence is not last + 1. It never waits for
missing messages: after a flagged message the expectation moves to the
newly observed value.

Memory:
    Keys are kept for the lifetime of the tracker. A process that sees an
    unbounded number of distinct partition keys grows this map without
    bound; clear() is the only way to release it.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from typing import TypeVar

from relaytrace.contracts.ordering import OutOfOrderInfo, TrackingKey

T = TypeVar("T")


class SequenceTracker:
    """Tracks last-seen sequence numbers per stream.

    Thread Safety:
        observe() reads and writes the map under one lock, so two
        concurrent observations of the same key can never both see the same
        "before" value. Callers on an event loop get the same guarantee
        because observe() never suspends.

    Example:
        tracker = SequenceTracker()
        key = TrackingKey("kafka", "orders", partition_key="p1")
        tracker.observe(key, 1)  # None (first sighting)
        tracker.observe(key, 2)  # None
        info = tracker.observe(key, 4)
        assert (info.expected_sequence, info.gap) == (3, 1)
    """

    def __init__(self, lock: threading.RLock | None = None) -> None:
        """Initialize the tracker.

        Args:
            lock: Lock guarding the map. OrderingRegistry passes one lock
                shared with its dedup window so both can be reset together.
        """
        self._last_sequence: dict[TrackingKey, int] = {}
        self._lock = lock if lock is not None else threading.RLock()

    def observe(self, key: TrackingKey, sequence: int) -> OutOfOrderInfo | None:
        """Record a sequence number and report disorder.

        Args:
            key: Stream identity
            sequence: Sequence number carried by the message

        Returns:
            None when the message is the first for the key or exactly
            last + 1, otherwise an OutOfOrderInfo describing the gap.
        """
        with self._lock:
            last = self._last_sequence.get(key)
            self._last_sequence[key] = sequence

        if last is None:
            return None
        expected = last + 1
        if sequence == expected:
            return None
        return OutOfOrderInfo(
            current_sequence=sequence,
            expected_sequence=expected,
            partition_key=key.partition_key,
        )

    def observe_batch(
        self,
        items: Iterable[T],
        key_for: Callable[[T], TrackingKey | None],
        sequence_for: Callable[[T], int | None],
    ) -> list[OutOfOrderInfo]:
        """Observe each item independently, in iteration order.

        Items for which key_for or sequence_for returns None are skipped.

        Returns:
            The OutOfOrderInfo of every flagged item, in order.
        """
        flagged: list[OutOfOrderInfo] = []
        for item in items:
            key = key_for(item)
            sequence = sequence_for(item)
            if key is None or sequence is None:
                continue
            info = self.observe(key, sequence)
            if info is not None:
                flagged.append(info)
        return flagged

    def last_sequence(self, key: TrackingKey) -> int | None:
        """Last sequence observed for key, or None if never seen."""
        with self._lock:
            return self._last_sequence.get(key)

    def clear(self) -> None:
        """Forget every stream."""
        with self._lock:
            self._last_sequence.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_sequence)
