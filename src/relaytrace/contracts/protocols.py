"""Protocol definitions for the capabilities relaytrace consumes.

The span itself and the wire codec belong to OpenTelemetry. relaytrace only
depends on the narrow surfaces below so tests can substitute recording
doubles (see relaytrace.testing.RecordingSpan).
"""

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from opentelemetry.trace import Link, SpanContext, Status
    from opentelemetry.util.types import AttributeValue


@runtime_checkable
class SpanContextProtocol(Protocol):
    """Telemetry surface of an active span.

    Implementations:
    - relaytrace.spans.SpanHandle: wraps an OpenTelemetry Span
    - relaytrace.spans.NoOpSpan: used when tracing is disabled
    - relaytrace.testing.RecordingSpan: captures everything for assertions

    None of these methods raise on valid input; attribute values must be
    primitives or homogeneous sequences of primitives.
    """

    def set_attribute(self, key: str, value: "AttributeValue") -> None: ...

    def set_attributes(self, attributes: Mapping[str, "AttributeValue"]) -> None: ...

    def add_event(self, name: str, attributes: Mapping[str, "AttributeValue"] | None = None) -> None: ...

    def add_link(self, link: "Link") -> None: ...

    def add_links(self, links: Sequence["Link"]) -> None: ...

    def record_exception(self, exception: BaseException) -> None: ...

    def set_status(self, status: "Status") -> None: ...

    def is_recording(self) -> bool: ...


@runtime_checkable
class PropagationCodec(Protocol):
    """Decodes trace headers carried on a message into a span link.

    decode() must not raise for malformed headers; it returns None instead.
    """

    def decode(self, headers: Mapping[str, str]) -> "Link | None": ...


ContextExtractor = Callable[[Mapping[str, str]], "SpanContext | None"]
"""Decoder for non-W3C header formats (Datadog, B3, X-Ray, ...)."""
