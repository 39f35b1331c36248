# src/relaytrace/messaging/propagation.py
"""Trace-context propagation between producers and consumers.

Producers inject W3C ``traceparent``/``tracestate`` (and optionally
``baggage``) headers. Consumers decode them back into span links: the
consumer span is linked to, not parented by, the producer span, because
consumption is asynchronous and may fan in many producers.

Decoding order per message:
1. W3C trace context (W3CPropagationCodec)
2. The configured custom context extractor (Datadog, B3, X-Ray, ...)

A decoder that raises or finds nothing means "no link for this message";
it never fails the consumer.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import structlog
from opentelemetry import trace
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.context import Context
from opentelemetry.trace import Link, SpanContext
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from relaytrace.contracts.attributes import LINK_SOURCE
from relaytrace.contracts.enums import LinkSource
from relaytrace.contracts.extractors import Extractor, extract_from_message
from relaytrace.contracts.protocols import ContextExtractor, PropagationCodec

logger = structlog.get_logger(__name__)

_TRACE_CONTEXT = TraceContextTextMapPropagator()
_BAGGAGE = W3CBaggagePropagator()


def normalize_headers(raw: Any) -> dict[str, str] | None:
    """Coerce broker header shapes into a lower-cased ``str -> str`` dict.

    Accepts mappings and sequences of ``(key, value)`` pairs (the Kafka
    client shape). Byte values are decoded as UTF-8; None values dropped.

    Returns:
        The normalized headers, or None if raw is not a header container.
    """
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        items: Iterable[tuple[Any, Any]] = raw.items()
    elif isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
        items = raw
    else:
        return None

    headers: dict[str, str] = {}
    try:
        for key, value in items:
            if value is None:
                continue
            name = key.decode("utf-8", errors="replace") if isinstance(key, bytes) else str(key)
            text = value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)
            headers[name.lower()] = text
    except (TypeError, ValueError) as e:
        logger.debug("Ignoring malformed header container", error=str(e))
        return None
    return headers


def producer_link(span_context: SpanContext) -> Link:
    """Wrap a decoded span context as a producer link."""
    return Link(span_context, {LINK_SOURCE: LinkSource.PRODUCER.value})


class W3CPropagationCodec:
    """Decode W3C trace-context headers into a producer link."""

    def decode(self, headers: Mapping[str, str]) -> Link | None:
        try:
            ctx = _TRACE_CONTEXT.extract(carrier=dict(headers), context=Context())
        except Exception as e:
            logger.debug("W3C trace context decode failed", error=str(e))
            return None
        span_context = trace.get_current_span(ctx).get_span_context()
        if not span_context.is_valid:
            return None
        return producer_link(span_context)


DEFAULT_CODEC: PropagationCodec = W3CPropagationCodec()


def create_link_from_headers(
    headers: Mapping[str, str],
    *,
    custom_extractor: ContextExtractor | None = None,
    codec: PropagationCodec = DEFAULT_CODEC,
) -> Link | None:
    """Decode one message's headers into a link.

    Args:
        headers: Normalized header mapping
        custom_extractor: Decoder tried when the codec finds nothing
        codec: Standard-format decoder

    Returns:
        A producer link, or None when no decoder recognizes the headers.
    """
    link = codec.decode(headers)
    if link is not None:
        return link
    if custom_extractor is None:
        return None

    try:
        span_context = custom_extractor(headers)
    except Exception as e:
        logger.debug("Custom context extractor failed", error=str(e))
        return None
    if span_context is None or not span_context.is_valid:
        return None
    return producer_link(span_context)


def extract_headers(headers_from: Extractor, message: Any) -> dict[str, str] | None:
    """Pull and normalize the header mapping of one message."""
    try:
        raw = extract_from_message(headers_from, message)
    except Exception as e:
        logger.debug("Header extractor failed", error=str(e))
        return None
    return normalize_headers(raw)


def extract_links(
    messages: Iterable[Any],
    headers_from: Extractor,
    *,
    custom_extractor: ContextExtractor | None = None,
    codec: PropagationCodec = DEFAULT_CODEC,
) -> list[Link]:
    """Decode every message independently; messages without a link are skipped."""
    links: list[Link] = []
    for message in messages:
        headers = extract_headers(headers_from, message)
        if not headers:
            continue
        link = create_link_from_headers(headers, custom_extractor=custom_extractor, codec=codec)
        if link is not None:
            links.append(link)
    return links


def inject_trace_headers() -> dict[str, str]:
    """W3C trace-context headers for the active span.

    Returns:
        ``{"traceparent": ...}`` plus ``tracestate`` when present.
        traceparent is an empty string when no span is active.
    """
    carrier: dict[str, str] = {}
    _TRACE_CONTEXT.inject(carrier)
    result = {"traceparent": carrier.get("traceparent", "")}
    if carrier.get("tracestate"):
        result["tracestate"] = carrier["tracestate"]
    return result


def inject_all_headers(*, include_baggage: bool) -> dict[str, str]:
    """All propagation headers for the active context, optionally with baggage."""
    carrier: dict[str, str] = {}
    _TRACE_CONTEXT.inject(carrier)
    if include_baggage:
        _BAGGAGE.inject(carrier)
    return carrier
