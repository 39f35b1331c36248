"""Key composition for sequence tracking and deduplication."""

from typing import Any

from relaytrace.contracts.ordering import TrackingKey


def _normalize_partition_key(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def build_tracking_key(
    system: str,
    destination: str,
    *,
    partition_key: Any = None,
    consumer_group: str | None = None,
) -> TrackingKey:
    """Build the sequence-tracking identity for one message.

    Partition keys arrive in whatever shape the broker client uses (str,
    bytes, int); they are normalized to str so ``b"p1"`` and ``"p1"`` land
    in the same stream.
    """
    return TrackingKey(
        system=system,
        destination=destination,
        partition_key=_normalize_partition_key(partition_key),
        consumer_group=consumer_group,
    )


def build_dedup_key(system: str, destination: str, *, consumer_group: str | None = None) -> str:
    """Build the deduplication scope for one destination.

    Partition keys are deliberately not part of the scope: a message id
    redelivered on a different partition after a rebalance is still a
    duplicate. All partitions of a destination share one window capacity.
    """
    return TrackingKey(system=system, destination=destination, consumer_group=consumer_group).as_string()
