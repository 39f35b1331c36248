"""Dead-letter, replay and retry contracts."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from opentelemetry.trace import Link, SpanContext


@dataclass(frozen=True, slots=True)
class DLQOptions:
    """Optional detail for a dead-letter decision.

    Attributes:
        reason_category: Coarse category (see DLQReasonCategory)
        dlq_name: Dead-letter destination; overridden by a positional name
        attempt_count: Processing attempts made before giving up
        original_error: Exception that caused the routing
        metadata: Extra caller fields, recorded under messaging.dlq.metadata.*
        link_to_producer: Attach the producer trace/span ids when a producer
            link was decoded for this operation
    """

    reason_category: str | None = None
    dlq_name: str | None = None
    attempt_count: int | None = None
    original_error: BaseException | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    link_to_producer: bool = True


@dataclass(frozen=True, slots=True)
class DLQRecord:
    """Canonical form of a record_dlq call after argument normalization."""

    reason: str
    reason_category: str | None = None
    dlq_name: str | None = None
    attempt_count: int | None = None
    original_error: BaseException | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    producer_link: Link | None = None


@dataclass(frozen=True, slots=True)
class ReplayOptions:
    """Provenance of a message replayed out of a dead-letter queue.

    Attributes:
        attempt: Replay attempt number (1-based)
        dlq_timestamp: When the message entered the DLQ; used for dwell time
        original_dlq_name: DLQ the message is being replayed from
        original_dlq_span_context: Span context of the original dlq_routed
            span; linked so replayed processing can be traced back
    """

    attempt: int | None = None
    dlq_timestamp: datetime | None = None
    original_dlq_name: str | None = None
    original_dlq_span_context: SpanContext | None = None
