# src/relaytrace/messaging/config.py
"""Runtime configuration for producer and consumer wrappers.

These are frozen dataclasses rather than pydantic models because they carry
callables (extractors, callbacks, lag getters). File-based settings live in
relaytrace.core.config and convert into these via ``to_config()``.

Extractor fields accept a path string, a callable, or an Extractor; they
are normalized to an Extractor at construction, so a bad value fails when
the wrapper is configured rather than on the first message.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any

from relaytrace.contracts.extractors import Extractor, as_extractor

if TYPE_CHECKING:
    from relaytrace.adapters.base import ConsumerAdapter, ProducerAdapter
    from relaytrace.contracts.consumer_group import PartitionAssignment, RebalanceEvent
    from relaytrace.contracts.ordering import OutOfOrderInfo
    from relaytrace.contracts.protocols import ContextExtractor
    from relaytrace.messaging.context import ConsumerContext, ProducerContext

_EXTRACTOR_FIELDS = (
    "message_id_from",
    "partition_from",
    "key_from",
    "sequence_from",
    "partition_key_from",
    "headers_from",
)


def _normalize_extractors(instance: object) -> None:
    for f in fields(instance):  # type: ignore[arg-type]
        if f.name in _EXTRACTOR_FIELDS:
            object.__setattr__(instance, f.name, as_extractor(getattr(instance, f.name)))


@dataclass(frozen=True)
class ProducerConfig:
    """Configuration for trace_producer.

    Attributes:
        system: Messaging system (kafka, rabbitmq, sqs, ...)
        destination: Topic or queue name
        message_id_from: Extractor for messaging.message.id
        partition_from: Extractor for the Kafka destination partition
        key_from: Extractor for the Kafka message key
        sequence_from: Extractor for messaging.message.sequence_number
        partition_key_from: Extractor for messaging.message.partition_key
        attributes: Static attributes set on every span
        propagate_baggage: Include W3C baggage in get_all_propagation_headers()
        adapter: System-specific attribute/header hooks
        before_send: Called with (ctx, args) before the wrapped function runs
        on_error: Called with (error, ctx) when the wrapped function raises
    """

    system: str
    destination: str
    message_id_from: Extractor | None = None
    partition_from: Extractor | None = None
    key_from: Extractor | None = None
    sequence_from: Extractor | None = None
    partition_key_from: Extractor | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)
    propagate_baggage: bool = False
    adapter: ProducerAdapter | None = None
    before_send: Callable[[ProducerContext, tuple[Any, ...]], None] | None = None
    on_error: Callable[[BaseException, ProducerContext], None] | None = None

    def __post_init__(self) -> None:
        _normalize_extractors(self)


@dataclass(frozen=True)
class LagMetricsConfig:
    """Consumer lag extraction hooks.

    get_end_offset and get_committed_offset may return an awaitable; async
    consumers await it, sync consumers skip awaitable results.
    """

    get_current_offset: Callable[[Any], int | None] | None = None
    get_end_offset: Callable[[], int | Awaitable[int]] | None = None
    get_committed_offset: Callable[[], int | Awaitable[int]] | None = None
    get_partition: Callable[[Any], int | None] | None = None


@dataclass(frozen=True)
class OrderingConfig:
    """Ordering and deduplication diagnostics for a consumer.

    Sequence tracking runs when sequence_from is set and
    detect_out_of_order is True. Deduplication runs when message_id_from is
    set and detect_duplicates is True. Both only observe; they never skip
    or reorder messages.

    Attributes:
        sequence_from: Extractor for the per-message sequence number
        partition_key_from: Extractor for the partition key (stream identity)
        message_id_from: Extractor for the message id used for dedup
        detect_out_of_order: Enable sequence tracking
        detect_duplicates: Enable dedup tracking
        on_out_of_order: Called with (ctx, info) for each flagged message
        on_duplicate: Called with (ctx, message_id) for each duplicate
    """

    sequence_from: Extractor | None = None
    partition_key_from: Extractor | None = None
    message_id_from: Extractor | None = None
    detect_out_of_order: bool = True
    detect_duplicates: bool = True
    on_out_of_order: Callable[[ConsumerContext, OutOfOrderInfo], None] | None = None
    on_duplicate: Callable[[ConsumerContext, str], None] | None = None

    def __post_init__(self) -> None:
        _normalize_extractors(self)

    @property
    def tracks_sequence(self) -> bool:
        return self.detect_out_of_order and self.sequence_from is not None

    @property
    def tracks_duplicates(self) -> bool:
        return self.detect_duplicates and self.message_id_from is not None


@dataclass(frozen=True)
class ConsumerGroupTrackingConfig:
    """Consumer-group state tracking for one consumer instance.

    Attributes:
        group_id: Group id; defaults to the consumer's consumer_group
        member_id: Initial member id, overwritten by rebalance events
        group_instance_id: Static membership id, if used
        on_rebalance: Called with (ctx, event) for every rebalance
        on_partitions_assigned: Called with (ctx, partitions) on assigned
        on_partitions_revoked: Called with (ctx, partitions) on revoked or lost
    """

    group_id: str | None = None
    member_id: str | None = None
    group_instance_id: str | None = None
    on_rebalance: Callable[[ConsumerContext, RebalanceEvent], None] | None = None
    on_partitions_assigned: Callable[[ConsumerContext, tuple[PartitionAssignment, ...]], None] | None = None
    on_partitions_revoked: Callable[[ConsumerContext, tuple[PartitionAssignment, ...]], None] | None = None


@dataclass(frozen=True)
class ConsumerConfig:
    """Configuration for trace_consumer.

    Attributes:
        system: Messaging system
        destination: Topic or queue name
        consumer_group: Consumer group name
        headers_from: Extractor for the trace header mapping of a message
        batch_mode: Handler receives a list of messages as first argument
        attributes: Static attributes set on every span
        lag_metrics: Consumer lag extraction hooks
        ordering: Sequence/dedup diagnostics
        consumer_group_tracking: Group membership tracking
        custom_context_extractor: Decoder tried when W3C decoding finds nothing
        adapter: System-specific header/attribute hooks
        on_dlq: Called with (ctx, reason) after record_dlq
        on_error: Called with (error, ctx) when the wrapped function raises
    """

    system: str
    destination: str
    consumer_group: str | None = None
    headers_from: Extractor | None = None
    batch_mode: bool = False
    attributes: Mapping[str, Any] = field(default_factory=dict)
    lag_metrics: LagMetricsConfig | None = None
    ordering: OrderingConfig | None = None
    consumer_group_tracking: ConsumerGroupTrackingConfig | None = None
    custom_context_extractor: ContextExtractor | None = None
    adapter: ConsumerAdapter | None = None
    on_dlq: Callable[[ConsumerContext, str], None] | None = None
    on_error: Callable[[BaseException, ConsumerContext], None] | None = None

    def __post_init__(self) -> None:
        _normalize_extractors(self)

    @property
    def effective_headers_from(self) -> Extractor | None:
        """Explicit headers_from, else the adapter's."""
        if self.headers_from is not None:
            return self.headers_from
        if self.adapter is not None:
            return as_extractor(self.adapter.headers_from)
        return None

    @property
    def effective_context_extractor(self) -> ContextExtractor | None:
        """Explicit custom_context_extractor, else the adapter's."""
        if self.custom_context_extractor is not None:
            return self.custom_context_extractor
        if self.adapter is not None:
            return self.adapter.custom_context_extractor
        return None
