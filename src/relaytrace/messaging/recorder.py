# src/relaytrace/messaging/recorder.py
"""Dead-letter, retry and replay annotations for consumer spans.

The recorder only writes telemetry. It does not route messages, schedule
retries or persist anything; the application does that and reports what it
did through ConsumerContext.
"""

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from opentelemetry.trace import Link

from relaytrace.contracts import attributes as attrs
from relaytrace.contracts.dlq import DLQOptions, DLQRecord, ReplayOptions
from relaytrace.contracts.enums import LinkSource
from relaytrace.contracts.errors import MessagingConfigError
from relaytrace.core.clock import DEFAULT_CLOCK, Clock
from relaytrace.messaging.attributes import sanitize_attributes

if TYPE_CHECKING:
    from opentelemetry.util.types import AttributeValue

    from relaytrace.contracts.protocols import SpanContextProtocol


def normalize_dlq_call(
    reason: str,
    dlq_name_or_options: str | DLQOptions | None,
    options: DLQOptions | None,
    links: Sequence[Link],
) -> DLQRecord:
    """Resolve the accepted record_dlq argument shapes into one DLQRecord.

    Accepted shapes: ``(reason)``, ``(reason, name)``, ``(reason, options)``
    and ``(reason, name, options)``. A positional name wins over
    ``options.dlq_name``.

    Raises:
        MessagingConfigError: For any other combination of argument types.
    """
    match dlq_name_or_options, options:
        case None, None:
            name, opts = None, DLQOptions()
        case str() as name, None:
            opts = DLQOptions()
        case DLQOptions() as opts, None:
            name = opts.dlq_name
        case str() as name, DLQOptions() as opts:
            pass
        case None, DLQOptions() as opts:
            name = opts.dlq_name
        case _:
            raise MessagingConfigError(
                "record_dlq expects (reason), (reason, dlq_name), (reason, DLQOptions) "
                f"or (reason, dlq_name, DLQOptions); got ({type(dlq_name_or_options).__name__}, "
                f"{type(options).__name__})"
            )

    return DLQRecord(
        reason=reason,
        reason_category=opts.reason_category,
        dlq_name=name,
        attempt_count=opts.attempt_count,
        original_error=opts.original_error,
        metadata=opts.metadata,
        producer_link=first_producer_link(links) if opts.link_to_producer else None,
    )


def first_producer_link(links: Sequence[Link]) -> Link | None:
    """First link decoded from producer headers in this operation."""
    for link in links:
        source = link.attributes.get(attrs.LINK_SOURCE) if link.attributes else None
        if source == LinkSource.PRODUCER.value:
            return link
    return None


def dlq_attributes(record: DLQRecord) -> dict[str, "AttributeValue"]:
    """Span attributes (and dlq_routed event fields) for a DLQ record."""
    result: dict[str, AttributeValue] = {attrs.DLQ_REASON: record.reason}
    if record.dlq_name:
        result[attrs.DLQ_NAME] = record.dlq_name
    if record.reason_category:
        result[attrs.DLQ_REASON_CATEGORY] = record.reason_category
    if record.attempt_count is not None:
        result[attrs.DLQ_ATTEMPT_COUNT] = record.attempt_count
    if record.original_error is not None:
        result[attrs.DLQ_ORIGINAL_ERROR_TYPE] = type(record.original_error).__name__
        result[attrs.DLQ_ORIGINAL_ERROR_MESSAGE] = str(record.original_error)
    if record.metadata:
        result.update(metadata_fields(record.metadata))
    if record.producer_link is not None:
        producer = record.producer_link.context
        result[attrs.DLQ_PRODUCER_TRACE_ID] = format(producer.trace_id, "032x")
        result[attrs.DLQ_PRODUCER_SPAN_ID] = format(producer.span_id, "016x")
    return result


class FailureRecorder:
    """Writes DLQ, retry and replay telemetry onto one consumer span.

    Args:
        span: Span of the current consumer operation
        links: Returns the links decoded so far in this operation
        clock: Time source for replay dwell time
    """

    def __init__(
        self,
        span: "SpanContextProtocol",
        links: Callable[[], Sequence[Link]],
        *,
        clock: Clock = DEFAULT_CLOCK,
    ) -> None:
        self._span = span
        self._links = links
        self._clock = clock

    def record_dlq(
        self,
        reason: str,
        dlq_name_or_options: str | DLQOptions | None = None,
        options: DLQOptions | None = None,
    ) -> DLQRecord:
        """Annotate the span with a dead-letter decision.

        Returns:
            The normalized record, so callers can forward it to their own
            routing code.
        """
        record = normalize_dlq_call(reason, dlq_name_or_options, options, self._links())
        fields = dlq_attributes(record)
        self._span.set_attributes(fields)
        self._span.add_event(attrs.EVENT_DLQ_ROUTED, fields)
        return record

    def record_retry(self, attempt: int, max_attempts: int | None = None) -> None:
        fields: dict[str, AttributeValue] = {attrs.RETRY_COUNT: attempt}
        if max_attempts is not None:
            fields[attrs.RETRY_MAX_ATTEMPTS] = max_attempts
        self._span.set_attributes(fields)
        self._span.add_event(attrs.EVENT_RETRY_ATTEMPT, fields)

    def record_replay(self, options: ReplayOptions | None = None) -> None:
        """Annotate the span as processing a message replayed from a DLQ.

        Dwell time is measured from ``options.dlq_timestamp`` to now. When
        the original dead-letter span context is known it is linked with
        ``messaging.link.source = "dlq_replay"``.
        """
        opts = options if options is not None else ReplayOptions()
        fields: dict[str, AttributeValue] = {attrs.REPLAY_ATTEMPT: opts.attempt if opts.attempt is not None else 1}
        if opts.dlq_timestamp is not None:
            dwell = self._clock.now() - opts.dlq_timestamp
            fields[attrs.REPLAY_DLQ_DWELL_TIME_MS] = max(0, int(dwell.total_seconds() * 1000))
        if opts.original_dlq_name:
            fields[attrs.REPLAY_ORIGINAL_DLQ_NAME] = opts.original_dlq_name

        self._span.set_attributes(fields)
        self._span.add_event(attrs.EVENT_DLQ_REPLAY, fields)

        if opts.original_dlq_span_context is not None and opts.original_dlq_span_context.is_valid:
            self._span.add_link(Link(opts.original_dlq_span_context, {attrs.LINK_SOURCE: LinkSource.DLQ_REPLAY.value}))


def metadata_fields(metadata: Mapping[str, Any]) -> dict[str, "AttributeValue"]:
    """Prefix and sanitize caller metadata for DLQ attributes."""
    return sanitize_attributes({f"{attrs.DLQ_METADATA_PREFIX}.{key}": value for key, value in metadata.items()})
