# src/relaytrace/ordering/registry.py
"""Ordering state container.

An OrderingRegistry owns one SequenceTracker and one DeduplicationWindow.
Consumers that share a registry share ordering and dedup state; consumers
that must be isolated (multi-tenant processes, tests) construct their own
with create_registry() and pass it to trace_consumer().

A process-wide default registry backs consumers that are not given one.
"""

import threading

import structlog

from relaytrace.core.clock import DEFAULT_CLOCK, Clock
from relaytrace.ordering.dedup import DEFAULT_WINDOW_SIZE, DeduplicationWindow
from relaytrace.ordering.sequence import SequenceTracker

logger = structlog.get_logger(__name__)


class OrderingRegistry:
    """Sequence tracker and dedup window with a shared reset."""

    def __init__(
        self,
        *,
        dedup_window_size: int = DEFAULT_WINDOW_SIZE,
        clock: Clock = DEFAULT_CLOCK,
    ) -> None:
        self._lock = threading.RLock()
        self.sequences = SequenceTracker(lock=self._lock)
        self.dedup = DeduplicationWindow(window_size=dedup_window_size, clock=clock, lock=self._lock)

    def clear(self) -> None:
        """Clear tracker and window together.

        Tracker and window share one lock, so no observation or dedup
        check can run between the two clears.
        """
        with self._lock:
            streams = len(self.sequences)
            ids = len(self.dedup)
            self.sequences.clear()
            self.dedup.clear()
        logger.debug("Ordering state cleared", streams=streams, message_ids=ids)


def create_registry(*, dedup_window_size: int = DEFAULT_WINDOW_SIZE, clock: Clock = DEFAULT_CLOCK) -> OrderingRegistry:
    """Construct an isolated OrderingRegistry."""
    return OrderingRegistry(dedup_window_size=dedup_window_size, clock=clock)


_default_registry = OrderingRegistry()


def get_default_registry() -> OrderingRegistry:
    """Registry used by consumers constructed without an explicit one."""
    return _default_registry


def clear_tracking_state(registry: OrderingRegistry | None = None) -> None:
    """Reset sequence and dedup state.

    Args:
        registry: Registry to reset. Defaults to the process-wide registry.
    """
    (registry if registry is not None else _default_registry).clear()
