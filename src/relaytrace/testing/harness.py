# src/relaytrace/testing/harness.py
"""Recording harness for asserting on producer/consumer interactions.

Wrapped handlers report what they did to the harness (usually from inside
the handler, using the operation's context); tests then assert on the
recorded calls.

Example:
    harness = MessagingTestHarness()

    @trace_consumer(config)
    def handle(ctx, message):
        harness.record_consumer_context(ctx, system="kafka", destination="orders", payload=message.payload)

    for message in create_duplicate_scenario(["a", "b"], [0]):
        handle(message)

    harness.assert_consumer_processed("orders", message_count=3, has_duplicates=True)
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from opentelemetry.trace import Link

from relaytrace.contracts.consumer_group import RebalanceEvent
from relaytrace.contracts.enums import RebalanceType
from relaytrace.contracts.ordering import OutOfOrderInfo
from relaytrace.core.clock import DEFAULT_CLOCK, Clock
from relaytrace.testing.scenarios import extract_span_id_from_header, extract_trace_id_from_header

if TYPE_CHECKING:
    from relaytrace.messaging.context import ConsumerContext, ProducerContext


@dataclass(frozen=True, slots=True)
class RecordedProducerCall:
    destination: str
    system: str
    payload: Any
    headers: dict[str, str]
    timestamp: datetime
    trace_id: str | None = None
    span_id: str | None = None


@dataclass(frozen=True, slots=True)
class RecordedConsumerCall:
    destination: str
    system: str
    payload: Any
    timestamp: datetime
    consumer_group: str | None = None
    headers: dict[str, str] | None = None
    producer_links: tuple[Link, ...] = ()
    is_duplicate: bool = False
    out_of_order_info: OutOfOrderInfo | None = None
    dlq_reason: str | None = None
    retry_attempt: int | None = None


@dataclass(frozen=True, slots=True)
class RecordedRebalance:
    destination: str
    consumer_group: str
    event: RebalanceEvent


@dataclass
class MessagingTestHarness:
    """Collects producer, consumer and rebalance records; assertion helpers raise AssertionError."""

    clock: Clock = DEFAULT_CLOCK
    producer_calls: list[RecordedProducerCall] = field(default_factory=list)
    consumer_calls: list[RecordedConsumerCall] = field(default_factory=list)
    rebalance_events: list[RecordedRebalance] = field(default_factory=list)

    # -- recording ------------------------------------------------------------

    def record_producer_call(
        self,
        *,
        destination: str,
        system: str,
        payload: Any,
        headers: dict[str, str] | None = None,
    ) -> RecordedProducerCall:
        headers = dict(headers or {})
        traceparent = headers.get("traceparent", "")
        call = RecordedProducerCall(
            destination=destination,
            system=system,
            payload=payload,
            headers=headers,
            timestamp=self.clock.now(),
            trace_id=extract_trace_id_from_header(traceparent) if traceparent else None,
            span_id=extract_span_id_from_header(traceparent) if traceparent else None,
        )
        self.producer_calls.append(call)
        return call

    def record_producer_context(
        self,
        ctx: "ProducerContext",
        *,
        destination: str,
        system: str,
        payload: Any,
    ) -> RecordedProducerCall:
        """Record a publish using the headers the producer context would inject."""
        return self.record_producer_call(
            destination=destination,
            system=system,
            payload=payload,
            headers=ctx.get_all_propagation_headers(),
        )

    def record_consumer_call(self, call: RecordedConsumerCall) -> None:
        self.consumer_calls.append(call)

    def record_consumer_context(
        self,
        ctx: "ConsumerContext",
        *,
        destination: str,
        system: str,
        payload: Any,
        consumer_group: str | None = None,
        headers: dict[str, str] | None = None,
        dlq_reason: str | None = None,
        retry_attempt: int | None = None,
    ) -> RecordedConsumerCall:
        """Record a consume using the links and diagnostics of the consumer context."""
        infos = ctx.get_ordering_info()
        call = RecordedConsumerCall(
            destination=destination,
            system=system,
            payload=payload,
            timestamp=self.clock.now(),
            consumer_group=consumer_group,
            headers=headers,
            producer_links=ctx.links,
            is_duplicate=ctx.is_duplicate(),
            out_of_order_info=infos[0] if infos else None,
            dlq_reason=dlq_reason,
            retry_attempt=retry_attempt,
        )
        self.consumer_calls.append(call)
        return call

    def record_rebalance_event(self, event: RebalanceEvent, *, destination: str, consumer_group: str) -> None:
        self.rebalance_events.append(RecordedRebalance(destination, consumer_group, event))

    # -- queries --------------------------------------------------------------

    def get_producer_calls(self, destination: str | None = None) -> list[RecordedProducerCall]:
        return [c for c in self.producer_calls if destination is None or c.destination == destination]

    def get_consumer_calls(self, destination: str | None = None) -> list[RecordedConsumerCall]:
        return [c for c in self.consumer_calls if destination is None or c.destination == destination]

    def get_last_producer_call(self, destination: str | None = None) -> RecordedProducerCall | None:
        calls = self.get_producer_calls(destination)
        return calls[-1] if calls else None

    def get_last_consumer_call(self, destination: str | None = None) -> RecordedConsumerCall | None:
        calls = self.get_consumer_calls(destination)
        return calls[-1] if calls else None

    # -- assertions -----------------------------------------------------------

    def assert_producer_called(
        self,
        destination: str,
        *,
        message_count: int | None = None,
        has_trace_headers: bool = False,
        trace_id: str | None = None,
        payload_matcher: Callable[[Any], bool] | None = None,
    ) -> None:
        calls = self.get_producer_calls(destination)
        if not calls:
            raise AssertionError(f"Expected producer to be called for destination '{destination}', but it was not called")
        if message_count is not None and len(calls) != message_count:
            raise AssertionError(f"Expected {message_count} producer calls for '{destination}', got {len(calls)}")
        if has_trace_headers:
            missing = [c for c in calls if not c.headers.get("traceparent")]
            if missing:
                raise AssertionError(
                    f"Expected all producer calls for '{destination}' to have trace headers, but {len(missing)} did not"
                )
        if trace_id is not None and not any(c.trace_id == trace_id for c in calls):
            raise AssertionError(f"Expected producer call for '{destination}' with trace id '{trace_id}', but none found")
        if payload_matcher is not None and not any(payload_matcher(c.payload) for c in calls):
            raise AssertionError(f"Expected producer call for '{destination}' to match payload matcher, but none did")

    def assert_producer_not_called(self, destination: str | None = None) -> None:
        calls = self.get_producer_calls(destination)
        if calls:
            target = f"for '{destination}'" if destination else "at all"
            raise AssertionError(f"Expected producer not to be called {target}, but it was called {len(calls)} times")

    def assert_consumer_processed(
        self,
        destination: str,
        *,
        message_count: int | None = None,
        consumer_group: str | None = None,
        has_producer_links: bool = False,
        has_duplicates: bool | None = None,
        has_out_of_order: bool | None = None,
        has_dlq: bool | None = None,
    ) -> None:
        calls = self.get_consumer_calls(destination)
        if not calls:
            raise AssertionError(
                f"Expected consumer to process messages for destination '{destination}', but none were processed"
            )
        if message_count is not None and len(calls) != message_count:
            raise AssertionError(f"Expected {message_count} consumer calls for '{destination}', got {len(calls)}")
        if consumer_group is not None and any(c.consumer_group != consumer_group for c in calls):
            raise AssertionError(
                f"Expected consumer group '{consumer_group}' for '{destination}', but found different groups"
            )
        if has_producer_links:
            missing = [c for c in calls if not c.producer_links]
            if missing:
                raise AssertionError(
                    f"Expected all consumer calls for '{destination}' to have producer links, "
                    f"but {len(missing)} did not"
                )
        self._assert_flag(destination, "duplicate messages", has_duplicates, sum(c.is_duplicate for c in calls))
        self._assert_flag(
            destination,
            "out-of-order messages",
            has_out_of_order,
            sum(c.out_of_order_info is not None for c in calls),
        )
        self._assert_flag(destination, "DLQ routing", has_dlq, sum(c.dlq_reason is not None for c in calls))

    @staticmethod
    def _assert_flag(destination: str, what: str, expected: bool | None, count: int) -> None:
        if expected is None:
            return
        if expected and count == 0:
            raise AssertionError(f"Expected {what} for '{destination}', but none were detected")
        if not expected and count > 0:
            raise AssertionError(f"Expected no {what} for '{destination}', but {count} were detected")

    def assert_consumer_not_called(self, destination: str | None = None) -> None:
        calls = self.get_consumer_calls(destination)
        if calls:
            target = f"for '{destination}'" if destination else "at all"
            raise AssertionError(f"Expected consumer not to be called {target}, but it processed {len(calls)} messages")

    def assert_rebalance_occurred(
        self,
        destination: str,
        rebalance_type: RebalanceType,
        partition_count: int | None = None,
    ) -> None:
        events = [r for r in self.rebalance_events if r.destination == destination and r.event.type == rebalance_type]
        if not events:
            raise AssertionError(f"Expected rebalance '{rebalance_type}' for '{destination}', but none occurred")
        if partition_count is not None and not any(len(r.event.partitions) == partition_count for r in events):
            raise AssertionError(
                f"Expected rebalance '{rebalance_type}' for '{destination}' with {partition_count} partitions, "
                "but none matched"
            )

    def reset(self) -> None:
        self.producer_calls.clear()
        self.consumer_calls.clear()
        self.rebalance_events.clear()
