# src/relaytrace/messaging/context.py
"""Per-operation contexts handed to wrapped producer and consumer functions.

A context lives for exactly one call of the wrapped function. It exposes
the span capability of that call's span, plus the messaging operations
(header injection for producers; DLQ, retry, replay, group and ordering
queries for consumers). Operation-scoped state (decoded links, ordering
results) lives here and nowhere else.
"""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from opentelemetry.trace import Link

from relaytrace.core.clock import DEFAULT_CLOCK, Clock
from relaytrace.messaging.propagation import inject_all_headers, inject_trace_headers
from relaytrace.messaging.recorder import FailureRecorder

if TYPE_CHECKING:
    from opentelemetry.trace import Status
    from opentelemetry.util.types import AttributeValue

    from relaytrace.contracts.consumer_group import (
        ConsumerGroupState,
        PartitionAssignment,
        PartitionLag,
        RebalanceEvent,
    )
    from relaytrace.contracts.dlq import DLQOptions, DLQRecord, ReplayOptions
    from relaytrace.contracts.ordering import OutOfOrderInfo
    from relaytrace.contracts.protocols import SpanContextProtocol
    from relaytrace.messaging.config import ConsumerConfig, ProducerConfig
    from relaytrace.messaging.consumer_group import ConsumerGroupTracker


class _SpanDelegate:
    """Forwards the span capability to the operation's span."""

    def __init__(self, span: "SpanContextProtocol") -> None:
        self._span = span

    @property
    def span(self) -> "SpanContextProtocol":
        return self._span

    def set_attribute(self, key: str, value: "AttributeValue") -> None:
        self._span.set_attribute(key, value)

    def set_attributes(self, attributes: Mapping[str, "AttributeValue"]) -> None:
        self._span.set_attributes(attributes)

    def add_event(self, name: str, attributes: Mapping[str, "AttributeValue"] | None = None) -> None:
        self._span.add_event(name, attributes)

    def add_link(self, link: Link) -> None:
        self._span.add_link(link)

    def add_links(self, links: Sequence[Link]) -> None:
        self._span.add_links(links)

    def record_exception(self, exception: BaseException) -> None:
        self._span.record_exception(exception)

    def set_status(self, status: "Status") -> None:
        self._span.set_status(status)

    def is_recording(self) -> bool:
        return self._span.is_recording()


class ProducerContext(_SpanDelegate):
    """Context for one publish call."""

    def __init__(self, span: "SpanContextProtocol", config: "ProducerConfig") -> None:
        super().__init__(span)
        self._config = config

    def get_trace_headers(self) -> dict[str, str]:
        """W3C ``traceparent`` (and ``tracestate``) for the publish span."""
        return inject_trace_headers()

    def get_all_propagation_headers(self) -> dict[str, str]:
        """All propagation headers to attach to the outgoing message.

        Includes baggage when the producer enables propagate_baggage, plus
        any adapter custom headers (which win on key collisions).
        """
        headers = inject_all_headers(include_baggage=self._config.propagate_baggage)
        adapter = self._config.adapter
        if adapter is not None and adapter.custom_headers is not None:
            headers.update(adapter.custom_headers(self))
        return headers


class ConsumerContext(_SpanDelegate):
    """Context for one process (or batch receive) call.

    Example:
        @trace_consumer(ConsumerConfig(system="kafka", destination="orders", headers_from="headers"))
        def handle(ctx, message):
            try:
                process(message)
            except ValidationError as e:
                ctx.record_dlq("invalid payload", "orders-dlq", DLQOptions(original_error=e))
    """

    def __init__(
        self,
        span: "SpanContextProtocol",
        config: "ConsumerConfig",
        tracker: "ConsumerGroupTracker",
        *,
        clock: Clock = DEFAULT_CLOCK,
    ) -> None:
        super().__init__(span)
        self._config = config
        self._tracker = tracker
        self._links: list[Link] = []
        self._out_of_order: list[OutOfOrderInfo] = []
        self._duplicate_ids: list[str] = []
        self._recorder = FailureRecorder(span, lambda: self._links, clock=clock)

    # -- links --------------------------------------------------------------

    @property
    def links(self) -> tuple[Link, ...]:
        """Links added during this operation, in order."""
        return tuple(self._links)

    def add_link(self, link: Link) -> None:
        self._links.append(link)
        self._span.add_link(link)

    def add_links(self, links: Sequence[Link]) -> None:
        self._links.extend(links)
        self._span.add_links(links)

    # -- failures -----------------------------------------------------------

    def record_dlq(
        self,
        reason: str,
        dlq_name_or_options: "str | DLQOptions | None" = None,
        options: "DLQOptions | None" = None,
    ) -> "DLQRecord":
        """Record a dead-letter decision, then call the on_dlq callback.

        Accepts ``(reason)``, ``(reason, dlq_name)``, ``(reason, options)``
        or ``(reason, dlq_name, options)``. When a producer link was decoded
        for this operation and ``options.link_to_producer`` is left True,
        the producer's trace and span ids are recorded with it.

        Raises:
            MessagingConfigError: If the arguments match no accepted shape.
        """
        record = self._recorder.record_dlq(reason, dlq_name_or_options, options)
        if self._config.on_dlq is not None:
            self._config.on_dlq(self, reason)
        return record

    def record_retry(self, attempt: int, max_attempts: int | None = None) -> None:
        self._recorder.record_retry(attempt, max_attempts)

    def record_replay(self, options: "ReplayOptions | None" = None) -> None:
        self._recorder.record_replay(options)

    # -- consumer group -----------------------------------------------------

    def record_rebalance(self, event: "RebalanceEvent") -> "ConsumerGroupState | None":
        return self._tracker.record_rebalance(self._span, event, callback_context=self)

    def record_heartbeat(self, healthy: bool, latency_ms: float | None = None) -> None:
        self._tracker.record_heartbeat(self._span, healthy, latency_ms)

    def record_partition_lag(self, lag: "PartitionLag") -> None:
        self._tracker.record_partition_lag(self._span, lag)

    def get_consumer_group_state(self) -> "ConsumerGroupState | None":
        """Group snapshot; None when the consumer has no group tracking configured."""
        return self._tracker.state()

    def get_member_id(self) -> str | None:
        return self._tracker.member_id()

    def get_assigned_partitions(self) -> "tuple[PartitionAssignment, ...]":
        return self._tracker.assigned_partitions()

    # -- ordering -----------------------------------------------------------

    def get_ordering_info(self) -> "tuple[OutOfOrderInfo, ...]":
        """Out-of-order diagnostics flagged during this operation (empty if in order)."""
        return tuple(self._out_of_order)

    def is_duplicate(self) -> bool:
        """Whether any message of this operation was seen before."""
        return bool(self._duplicate_ids)

    @property
    def duplicate_ids(self) -> tuple[str, ...]:
        """Message ids of this operation that were seen before."""
        return tuple(self._duplicate_ids)

    def note_out_of_order(self, info: "OutOfOrderInfo") -> None:
        """Store a flagged message; called by the ordering diagnostics."""
        self._out_of_order.append(info)

    def note_duplicate(self, message_id: str) -> None:
        """Store a duplicate id; called by the ordering diagnostics."""
        self._duplicate_ids.append(message_id)
