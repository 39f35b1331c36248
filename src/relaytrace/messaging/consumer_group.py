# src/relaytrace/messaging/consumer_group.py
"""Consumer-group membership state machine.

One ConsumerGroupTracker belongs to one trace_consumer wrapper and lives as
long as it. Broker client callbacks drive it through ConsumerContext:

    assigned  -> partitions replaced, active, state=stable
    revoked   -> partitions removed, state=empty if none remain,
                 otherwise preparing_rebalance
    lost      -> partitions removed, inactive, state=dead

``dead`` is sticky until the next ``assigned`` event. Generation and member
id carried on an event overwrite the stored values (last write wins);
callers serialize rebalance events in their client's callback order.

Every transition is also written to the span of the operation that
reported it. Without a ConsumerGroupTrackingConfig the tracker still emits
telemetry but keeps no readable state.
"""

import threading
from collections.abc import Callable
from dataclasses import replace
from typing import TYPE_CHECKING, Any

import structlog

from relaytrace.contracts import attributes as attrs
from relaytrace.contracts.consumer_group import (
    ConsumerGroupState,
    PartitionAssignment,
    PartitionLag,
    RebalanceEvent,
)
from relaytrace.contracts.enums import ConsumerGroupStateKind, RebalanceType
from relaytrace.core.clock import DEFAULT_CLOCK, Clock, to_epoch_ms

if TYPE_CHECKING:
    from opentelemetry.util.types import AttributeValue

    from relaytrace.contracts.protocols import SpanContextProtocol
    from relaytrace.messaging.config import ConsumerGroupTrackingConfig

logger = structlog.get_logger(__name__)


def _without(
    assigned: tuple[PartitionAssignment, ...],
    removed: tuple[PartitionAssignment, ...],
) -> tuple[PartitionAssignment, ...]:
    gone = {p.identity for p in removed}
    return tuple(p for p in assigned if p.identity not in gone)


def apply_rebalance(state: ConsumerGroupState, event: RebalanceEvent) -> ConsumerGroupState:
    """Pure transition function: the state after one rebalance event."""
    match event.type:
        case RebalanceType.ASSIGNED:
            next_state = replace(
                state,
                assigned_partitions=tuple(event.partitions),
                is_active=True,
                state=ConsumerGroupStateKind.STABLE,
            )
        case RebalanceType.REVOKED:
            remaining = _without(state.assigned_partitions, event.partitions)
            next_state = replace(
                state,
                assigned_partitions=remaining,
                state=ConsumerGroupStateKind.EMPTY if not remaining else ConsumerGroupStateKind.PREPARING_REBALANCE,
            )
        case RebalanceType.LOST:
            next_state = replace(
                state,
                assigned_partitions=_without(state.assigned_partitions, event.partitions),
                is_active=False,
                state=ConsumerGroupStateKind.DEAD,
            )
        case _:
            raise ValueError(f"Unknown rebalance type: {event.type!r}")

    if event.generation is not None:
        next_state = replace(next_state, generation=event.generation)
    if event.member_id is not None:
        next_state = replace(next_state, member_id=event.member_id)
    return next_state


def rebalance_fields(event: RebalanceEvent, state: ConsumerGroupState | None) -> dict[str, "AttributeValue"]:
    """Span attributes for a rebalance, given the resulting state (if tracked)."""
    fields: dict[str, AttributeValue] = {
        attrs.CONSUMER_GROUP_REBALANCE_TYPE: event.type.value,
        attrs.CONSUMER_GROUP_REBALANCE_PARTITION_COUNT: len(event.partitions),
    }
    generation = event.generation if event.generation is not None else (state.generation if state else None)
    if generation is not None:
        fields[attrs.CONSUMER_GROUP_GENERATION] = generation
    member_id = event.member_id if event.member_id is not None else (state.member_id if state else None)
    if member_id:
        fields[attrs.CONSUMER_GROUP_MEMBER_ID] = member_id
    if event.reason:
        fields[attrs.CONSUMER_GROUP_REBALANCE_REASON] = event.reason
    if state is not None and state.state is not None:
        fields[attrs.CONSUMER_GROUP_STATE] = state.state.value
    return fields


class ConsumerGroupTracker:
    """Membership state for one consumer, plus its span telemetry.

    Example:
        tracker = ConsumerGroupTracker(ConsumerGroupTrackingConfig(group_id="billing"))
        tracker.record_rebalance(span, RebalanceEvent(
            type=RebalanceType.ASSIGNED,
            partitions=(PartitionAssignment("orders", 0), PartitionAssignment("orders", 1)),
            timestamp=clock.now(),
            generation=3,
        ))
        assert tracker.state().state == ConsumerGroupStateKind.STABLE
    """

    def __init__(
        self,
        config: "ConsumerGroupTrackingConfig | None",
        *,
        default_group_id: str | None = None,
        clock: Clock = DEFAULT_CLOCK,
    ) -> None:
        """Initialize the tracker.

        Args:
            config: Tracking configuration; None disables state tracking
            default_group_id: Group id used when config.group_id is unset
                (the consumer's consumer_group)
            clock: Time source for heartbeats
        """
        self._config = config
        self._clock = clock
        self._lock = threading.Lock()
        self._state: ConsumerGroupState | None = None
        if config is not None:
            self._state = ConsumerGroupState(
                group_id=config.group_id or default_group_id or "",
                member_id=config.member_id,
                group_instance_id=config.group_instance_id,
            )

    @property
    def enabled(self) -> bool:
        """Whether membership state is tracked."""
        return self._state is not None

    def record_rebalance(
        self,
        span: "SpanContextProtocol",
        event: RebalanceEvent,
        *,
        callback_context: Any = None,
    ) -> ConsumerGroupState | None:
        """Apply a rebalance event, annotate the span and run callbacks.

        Callbacks receive ``callback_context`` (the ConsumerContext) and run
        after the state change; their exceptions propagate.

        Returns:
            The new state snapshot, or None when tracking is disabled.
        """
        with self._lock:
            if self._state is not None:
                self._state = apply_rebalance(self._state, event)
            snapshot = self._state

        fields = rebalance_fields(event, snapshot)
        span.set_attributes(fields)
        span.add_event(
            attrs.consumer_group_event_name(event.type.value),
            {**fields, attrs.CONSUMER_GROUP_PARTITIONS: [p.label() for p in event.partitions]},
        )
        logger.debug(
            "Consumer group rebalance",
            rebalance_type=event.type.value,
            partitions=len(event.partitions),
            state=snapshot.state.value if snapshot and snapshot.state else None,
        )

        config = self._config
        if config is not None:
            if config.on_rebalance is not None:
                config.on_rebalance(callback_context, event)
            specific: Callable[[Any, tuple[PartitionAssignment, ...]], None] | None
            if event.type == RebalanceType.ASSIGNED:
                specific = config.on_partitions_assigned
            else:
                specific = config.on_partitions_revoked
            if specific is not None:
                specific(callback_context, tuple(event.partitions))
        return snapshot

    def record_heartbeat(self, span: "SpanContextProtocol", healthy: bool, latency_ms: float | None = None) -> None:
        """Record a heartbeat; the group state is unchanged."""
        now = self._clock.now()
        with self._lock:
            if self._state is not None:
                self._state = replace(self._state, last_heartbeat=now)

        fields: dict[str, AttributeValue] = {attrs.CONSUMER_GROUP_HEARTBEAT_HEALTHY: healthy}
        if latency_ms is not None:
            fields[attrs.CONSUMER_GROUP_HEARTBEAT_LATENCY_MS] = latency_ms
        span.set_attributes(fields)
        span.add_event(attrs.EVENT_CONSUMER_GROUP_HEARTBEAT, {**fields, "timestamp_ms": to_epoch_ms(now)})

    def record_partition_lag(self, span: "SpanContextProtocol", lag: PartitionLag) -> None:
        """Record a lag measurement; assignments are not touched."""
        span.set_attribute(attrs.partition_lag_key(lag.topic, lag.partition), lag.lag)
        span.add_event(
            attrs.EVENT_PARTITION_LAG_RECORDED,
            {
                attrs.DESTINATION_NAME: lag.topic,
                attrs.DESTINATION_PARTITION_ID: str(lag.partition),
                attrs.KAFKA_MESSAGE_OFFSET: lag.current_offset,
                attrs.KAFKA_HIGH_WATERMARK: lag.end_offset,
                attrs.KAFKA_CONSUMER_LAG: lag.lag,
                "timestamp_ms": to_epoch_ms(lag.timestamp),
            },
        )

    def state(self) -> ConsumerGroupState | None:
        """Current snapshot, or None when tracking is disabled."""
        with self._lock:
            return self._state

    def member_id(self) -> str | None:
        with self._lock:
            return self._state.member_id if self._state is not None else None

    def assigned_partitions(self) -> tuple[PartitionAssignment, ...]:
        with self._lock:
            return self._state.assigned_partitions if self._state is not None else ()
