# src/relaytrace/adapters/context_extractors.py
"""Decoders for non-W3C trace header formats.

Each extractor takes the normalized (lower-cased) header mapping of a
message and returns a remote SpanContext, or None when the headers are
absent or malformed. They never raise.

Use them as ConsumerConfig.custom_context_extractor; they run only when
W3C traceparent decoding finds nothing.
"""

import re
from collections.abc import Mapping

from opentelemetry.trace import SpanContext, TraceFlags

_XRAY_ROOT = re.compile(r"Root=1-([a-f0-9]{8})-([a-f0-9]{24})", re.IGNORECASE)
_XRAY_PARENT = re.compile(r"Parent=([a-f0-9]{16})", re.IGNORECASE)
_XRAY_SAMPLED = re.compile(r"Sampled=([01])")
_HEX = re.compile(r"^[0-9a-fA-F]+$")


def _header(headers: Mapping[str, str], *names: str) -> str | None:
    for name in names:
        value = headers.get(name)
        if value:
            return value
    return None


def _flags(sampled: bool) -> TraceFlags:
    return TraceFlags(TraceFlags.SAMPLED if sampled else TraceFlags.DEFAULT)


def _remote_context(trace_id_hex: str, span_id_hex: str, sampled: bool) -> SpanContext | None:
    if not _HEX.match(trace_id_hex) or not _HEX.match(span_id_hex):
        return None
    if len(trace_id_hex) > 32 or len(span_id_hex) > 16:
        return None
    context = SpanContext(
        trace_id=int(trace_id_hex, 16),
        span_id=int(span_id_hex, 16),
        is_remote=True,
        trace_flags=_flags(sampled),
    )
    return context if context.is_valid else None


def datadog_context_extractor(headers: Mapping[str, str]) -> SpanContext | None:
    """Datadog headers (``x-datadog-trace-id``, ``x-datadog-parent-id``).

    Datadog sends 64-bit decimal ids; they are converted to hex and
    left-padded to the OpenTelemetry widths. A sampling priority <= 0 means
    not sampled; a missing priority means sampled.
    """
    trace_id = _header(headers, "x-datadog-trace-id")
    span_id = _header(headers, "x-datadog-parent-id")
    if not trace_id or not span_id:
        return None
    try:
        trace_int = int(trace_id, 10)
        span_int = int(span_id, 10)
    except ValueError:
        return None
    if trace_int < 0 or span_int < 0:
        return None

    priority = _header(headers, "x-datadog-sampling-priority")
    sampled = True
    if priority is not None:
        try:
            sampled = int(priority, 10) > 0
        except ValueError:
            sampled = True

    return _remote_context(f"{trace_int:032x}", f"{span_int:016x}", sampled)


def b3_context_extractor(headers: Mapping[str, str]) -> SpanContext | None:
    """Zipkin B3 headers, single-header (``b3``) or multi-header form.

    Single header: ``{TraceId}-{SpanId}-{SamplingState}-{ParentSpanId}``;
    ``"0"`` alone means "not sampled, no trace". Multi-header:
    ``x-b3-traceid``, ``x-b3-spanid`` and ``x-b3-sampled`` (or
    ``x-b3-flags``); sampling defaults to true when unspecified.
    """
    single = _header(headers, "b3")
    if single:
        if single == "0":
            return None
        parts = single.split("-")
        if len(parts) >= 2 and parts[0] and parts[1]:
            sampled_flag = parts[2] if len(parts) > 2 else None
            sampled = sampled_flag not in ("0", "d")
            return _remote_context(parts[0].rjust(32, "0"), parts[1].rjust(16, "0"), sampled)

    trace_id = _header(headers, "x-b3-traceid")
    span_id = _header(headers, "x-b3-spanid")
    if not trace_id or not span_id:
        return None
    sampled_header = _header(headers, "x-b3-sampled", "x-b3-flags")
    sampled = sampled_header is None or sampled_header in ("1", "true")
    return _remote_context(trace_id.rjust(32, "0"), span_id.rjust(16, "0"), sampled)


def xray_context_extractor(headers: Mapping[str, str]) -> SpanContext | None:
    """AWS X-Ray header ``x-amzn-trace-id``.

    Format: ``Root=1-{8 hex timestamp}-{24 hex random};Parent={16 hex};Sampled={0|1}``.
    The trace id is the timestamp and random parts concatenated.
    """
    value = _header(headers, "x-amzn-trace-id")
    if not value:
        return None
    root = _XRAY_ROOT.search(value)
    parent = _XRAY_PARENT.search(value)
    if root is None or parent is None:
        return None
    sampled_match = _XRAY_SAMPLED.search(value)
    sampled = sampled_match.group(1) == "1" if sampled_match else True
    return _remote_context(f"{root.group(1)}{root.group(2)}", parent.group(1), sampled)
