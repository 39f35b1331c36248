# tests/unit/ordering/test_registry.py
"""Tests for ordering registries and tracking keys."""

from relaytrace.contracts.ordering import TrackingKey
from relaytrace.ordering.keys import build_dedup_key, build_tracking_key
from relaytrace.ordering.registry import (
    OrderingRegistry,
    clear_tracking_state,
    create_registry,
    get_default_registry,
)


class TestTrackingKeys:
    def test_tracking_key_includes_partition_and_group(self) -> None:
        key = build_tracking_key("kafka", "orders", partition_key="p1", consumer_group="billing")
        assert key == TrackingKey("kafka", "orders", "p1", "billing")
        assert key.as_string() == "kafka:orders:p1@billing"

    def test_bytes_and_str_partition_keys_match(self) -> None:
        assert build_tracking_key("kafka", "orders", partition_key=b"p1") == build_tracking_key(
            "kafka", "orders", partition_key="p1"
        )

    def test_int_partition_key_normalized_to_str(self) -> None:
        assert build_tracking_key("kafka", "orders", partition_key=3).partition_key == "3"

    def test_minimal_key_string(self) -> None:
        assert build_tracking_key("sqs", "jobs").as_string() == "sqs:jobs"

    def test_dedup_key_ignores_partition(self) -> None:
        assert build_dedup_key("kafka", "orders", consumer_group="billing") == "kafka:orders@billing"
        assert build_dedup_key("kafka", "orders") == "kafka:orders"


class TestOrderingRegistry:
    def test_tracker_and_window_share_lock(self) -> None:
        registry = OrderingRegistry()
        assert registry.sequences._lock is registry.dedup._lock

    def test_shared_lock_is_reentrant(self) -> None:
        registry = create_registry()
        registry.dedup.check("kafka:orders", "m1")

        with registry.sequences._lock:
            registry.sequences.observe(TrackingKey("kafka", "orders"), 1)
            clear_tracking_state(registry)

        assert len(registry.sequences) == 0
        assert len(registry.dedup) == 0

    def test_clear_resets_both(self) -> None:
        registry = create_registry(dedup_window_size=10)
        key = TrackingKey("kafka", "orders")
        registry.sequences.observe(key, 1)
        registry.dedup.check("kafka:orders", "m1")

        registry.clear()

        assert len(registry.sequences) == 0
        assert len(registry.dedup) == 0

    def test_create_registry_is_isolated(self) -> None:
        first = create_registry()
        second = create_registry()
        first.dedup.check("kafka:orders", "m1")

        assert second.dedup.check("kafka:orders", "m1") is False

    def test_create_registry_window_size(self) -> None:
        assert create_registry(dedup_window_size=5).dedup.window_size == 5

    def test_default_registry_is_shared(self) -> None:
        assert get_default_registry() is get_default_registry()

    def test_clear_tracking_state_defaults_to_process_registry(self) -> None:
        default = get_default_registry()
        default.dedup.check("kafka:orders", "m1")

        clear_tracking_state()

        assert len(default.dedup) == 0

    def test_clear_tracking_state_with_explicit_registry(self) -> None:
        registry = create_registry()
        registry.dedup.check("kafka:orders", "m1")
        get_default_registry().dedup.check("kafka:orders", "m1")

        clear_tracking_state(registry)

        assert len(registry.dedup) == 0
        assert len(get_default_registry().dedup) == 1
