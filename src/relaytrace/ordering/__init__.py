"""Ordering diagnostics: sequence tracking and deduplication."""

from relaytrace.ordering.dedup import DEFAULT_WINDOW_SIZE, DeduplicationWindow
from relaytrace.ordering.keys import build_dedup_key, build_tracking_key
from relaytrace.ordering.registry import (
    OrderingRegistry,
    clear_tracking_state,
    create_registry,
    get_default_registry,
)
from relaytrace.ordering.sequence import SequenceTracker

__all__ = [
    "DEFAULT_WINDOW_SIZE",
    "DeduplicationWindow",
    "OrderingRegistry",
    "SequenceTracker",
    "build_dedup_key",
    "build_tracking_key",
    "clear_tracking_state",
    "create_registry",
    "get_default_registry",
]
