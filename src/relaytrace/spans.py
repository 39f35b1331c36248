# src/relaytrace/spans.py
"""OpenTelemetry span factory for messaging operations.

Creates PRODUCER and CONSUMER spans named after the OpenTelemetry messaging
conventions and hands callers a uniform span surface (SpanContextProtocol).
Falls back to no-op mode when no tracer is configured.

Span names:
    {system}.publish {destination}   producer
    {system}.process {destination}   consumer, one message per call
    {system}.receive {destination}   consumer, batch per call
"""

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from opentelemetry.trace import SpanKind, Status, StatusCode

from relaytrace.contracts.enums import MessagingOperation

if TYPE_CHECKING:
    from opentelemetry.trace import Link, Span, Tracer
    from opentelemetry.util.types import AttributeValue

    from relaytrace.contracts.protocols import SpanContextProtocol


class NoOpSpan:
    """No-op span for when tracing is disabled."""

    def set_attribute(self, key: str, value: Any) -> None:
        """No-op."""
        pass

    def set_attributes(self, attributes: Mapping[str, Any]) -> None:
        """No-op."""
        pass

    def add_event(self, name: str, attributes: Mapping[str, Any] | None = None) -> None:
        """No-op."""
        pass

    def add_link(self, link: Any) -> None:
        """No-op."""
        pass

    def add_links(self, links: Sequence[Any]) -> None:
        """No-op."""
        pass

    def set_status(self, status: Any) -> None:
        """No-op."""
        pass

    def record_exception(self, exception: BaseException) -> None:
        """No-op."""
        pass

    def is_recording(self) -> bool:
        """Always False for no-op."""
        return False


class SpanHandle:
    """Adapts an OpenTelemetry Span to SpanContextProtocol.

    OpenTelemetry spans take link context and attributes as separate
    arguments and have no bulk add; this adapter accepts Link objects.
    """

    def __init__(self, span: "Span") -> None:
        self._span = span

    @property
    def span(self) -> "Span":
        """The wrapped OpenTelemetry span."""
        return self._span

    def set_attribute(self, key: str, value: "AttributeValue") -> None:
        self._span.set_attribute(key, value)

    def set_attributes(self, attributes: Mapping[str, "AttributeValue"]) -> None:
        self._span.set_attributes(attributes)

    def add_event(self, name: str, attributes: Mapping[str, "AttributeValue"] | None = None) -> None:
        self._span.add_event(name, attributes=attributes)

    def add_link(self, link: "Link") -> None:
        self._span.add_link(link.context, link.attributes)

    def add_links(self, links: Sequence["Link"]) -> None:
        for link in links:
            self.add_link(link)

    def set_status(self, status: "Status") -> None:
        self._span.set_status(status)

    def record_exception(self, exception: BaseException) -> None:
        self._span.record_exception(exception)

    def is_recording(self) -> bool:
        return self._span.is_recording()


class SpanFactory:
    """Factory for messaging spans.

    When no tracer is provided, all span methods yield a shared NoOpSpan.

    Exceptions are not recorded by the OpenTelemetry context manager; the
    producer/consumer wrappers record them explicitly so that the error
    callback sees a span that already carries the failure.

    Example:
        factory = SpanFactory(tracer=opentelemetry.trace.get_tracer("relaytrace"))

        with factory.producer_span("kafka", "orders") as span:
            span.set_attribute("messaging.message.id", "m1")
    """

    # Singleton no-op span to avoid repeated allocations
    _NOOP_SPAN = NoOpSpan()

    def __init__(self, tracer: "Tracer | None" = None) -> None:
        """Initialize with optional tracer.

        Args:
            tracer: OpenTelemetry tracer. If None, spans are no-ops.
        """
        self._tracer = tracer

    @property
    def enabled(self) -> bool:
        """Whether tracing is enabled."""
        return self._tracer is not None

    @contextmanager
    def _span(self, name: str, kind: SpanKind) -> Iterator["SpanHandle | NoOpSpan"]:
        if self._tracer is None:
            yield self._NOOP_SPAN
            return

        with self._tracer.start_as_current_span(
            name,
            kind=kind,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            yield SpanHandle(span)

    @contextmanager
    def producer_span(self, system: str, destination: str) -> Iterator["SpanHandle | NoOpSpan"]:
        """Create a PRODUCER span for one publish call.

        Args:
            system: Messaging system (kafka, rabbitmq, sqs, ...)
            destination: Topic or queue name

        Yields:
            SpanHandle or NoOpSpan if tracing disabled (never None)
        """
        with self._span(span_name(system, MessagingOperation.PUBLISH, destination), SpanKind.PRODUCER) as span:
            yield span

    @contextmanager
    def consumer_span(
        self,
        system: str,
        destination: str,
        *,
        batch: bool = False,
    ) -> Iterator["SpanHandle | NoOpSpan"]:
        """Create a CONSUMER span for one process (or batch receive) call.

        Args:
            system: Messaging system
            destination: Topic or queue name
            batch: True for batch handlers (operation "receive")

        Yields:
            SpanHandle or NoOpSpan
        """
        operation = MessagingOperation.RECEIVE if batch else MessagingOperation.PROCESS
        with self._span(span_name(system, operation, destination), SpanKind.CONSUMER) as span:
            yield span


def span_name(system: str, operation: MessagingOperation, destination: str) -> str:
    """Span name per the messaging conventions: ``"{system}.{operation} {destination}"``."""
    return f"{system}.{operation.value} {destination}"


def record_failure(span: "SpanContextProtocol", error: BaseException) -> None:
    """Record an exception and mark the span as failed."""
    span.record_exception(error)
    span.set_status(Status(StatusCode.ERROR, f"{type(error).__name__}: {error}"))
