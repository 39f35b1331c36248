# src/relaytrace/adapters/builtin.py
"""Built-in adapters for NATS JetStream, Temporal and Cloudflare Queues.

The adapters duck-type the client message objects: they read mapping keys
or attributes and never import the client libraries. Fields that are
missing on a message are simply not recorded.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from relaytrace.adapters.base import ConsumerAdapter, MessagingAdapter, ProducerAdapter
from relaytrace.adapters.hookspecs import hookimpl
from relaytrace.core.clock import to_epoch_ms

# Headers probed when a NATS header container only supports get()
_TRACE_HEADER_NAMES = (
    "traceparent",
    "tracestate",
    "baggage",
    "x-b3-traceid",
    "x-b3-spanid",
    "x-b3-sampled",
    "b3",
)


def _field(source: Any, *names: str) -> Any:
    """First non-None value among names, read as mapping key or attribute."""
    if source is None:
        return None
    for name in names:
        if isinstance(source, Mapping):
            value = source.get(name)
        else:
            try:
                value = getattr(source, name, None)
            except Exception:
                # nats-py raises from Msg.metadata on core (non-JetStream) messages
                value = None
        if value is not None:
            return value
    return None


def _put(attributes: dict[str, Any], key: str, value: Any) -> None:
    if value is not None and value != "":
        attributes[key] = value


# =============================================================================
# NATS
# =============================================================================


def _nats_publish_attributes(_ctx: Any, args: tuple[Any, ...]) -> dict[str, Any]:
    message = args[0] if args else None
    attributes: dict[str, Any] = {}
    _put(attributes, "nats.subject", _field(message, "subject"))
    _put(attributes, "nats.reply_to", _field(message, "reply_to", "reply"))
    _put(attributes, "nats.stream", _field(message, "stream"))
    return attributes


def _nats_headers(message: Any) -> dict[str, str] | None:
    headers = _field(message, "headers")
    if headers is None:
        return None
    if isinstance(headers, Mapping):
        return {str(k): str(v) for k, v in headers.items() if isinstance(v, str)} or None

    getter = getattr(headers, "get", None)
    if callable(getter):
        found = {name: value for name in _TRACE_HEADER_NAMES if isinstance(value := getter(name), str) and value}
        if found:
            return found

    items = getattr(headers, "items", None)
    if callable(items):
        found = {k: v for k, v in items() if isinstance(k, str) and isinstance(v, str)}
        if found:
            return found
    return None


def _nats_process_attributes(_ctx: Any, message: Any) -> dict[str, Any]:
    attributes: dict[str, Any] = {}
    _put(attributes, "nats.subject", _field(message, "subject"))
    _put(attributes, "nats.reply_to", _field(message, "reply", "reply_to"))
    metadata = _field(message, "metadata", "info")
    _put(attributes, "nats.stream", _field(metadata, "stream"))
    _put(attributes, "nats.consumer", _field(metadata, "consumer"))
    _put(attributes, "nats.delivered_count", _field(metadata, "num_delivered", "delivered_count"))
    _put(attributes, "nats.pending", _field(metadata, "num_pending", "pending"))
    return attributes


NATS_ADAPTER = MessagingAdapter(
    name="nats",
    producer=ProducerAdapter(custom_attributes=_nats_publish_attributes),
    consumer=ConsumerAdapter(headers_from=_nats_headers, custom_attributes=_nats_process_attributes),
)


# =============================================================================
# Temporal
# =============================================================================


def _temporal_signal_attributes(_ctx: Any, args: tuple[Any, ...]) -> dict[str, Any]:
    info = args[0] if args else None
    attributes: dict[str, Any] = {}
    _put(attributes, "temporal.workflow_id", _field(info, "workflow_id"))
    _put(attributes, "temporal.run_id", _field(info, "run_id", "workflow_run_id"))
    _put(attributes, "temporal.task_queue", _field(info, "task_queue"))
    _put(attributes, "temporal.workflow_type", _field(info, "workflow_type"))
    return attributes


def _temporal_activity_attributes(_ctx: Any, info: Any) -> dict[str, Any]:
    attributes: dict[str, Any] = {}
    _put(attributes, "temporal.workflow_id", _field(info, "workflow_id"))
    _put(attributes, "temporal.run_id", _field(info, "run_id", "workflow_run_id"))
    _put(attributes, "temporal.activity_id", _field(info, "activity_id"))
    _put(attributes, "temporal.task_queue", _field(info, "task_queue"))
    _put(attributes, "temporal.attempt", _field(info, "attempt"))
    _put(attributes, "temporal.activity_type", _field(info, "activity_type"))
    return attributes


TEMPORAL_ADAPTER = MessagingAdapter(
    name="temporal",
    producer=ProducerAdapter(custom_attributes=_temporal_signal_attributes),
    consumer=ConsumerAdapter(custom_attributes=_temporal_activity_attributes),
)


# =============================================================================
# Cloudflare Queues
# =============================================================================


def _cloudflare_attributes(_ctx: Any, message: Any) -> dict[str, Any]:
    attributes: dict[str, Any] = {}
    _put(attributes, "cloudflare.queue.message_id", _field(message, "id"))
    timestamp = _field(message, "timestamp")
    if isinstance(timestamp, datetime):
        attributes["cloudflare.queue.timestamp_ms"] = to_epoch_ms(timestamp)
    elif isinstance(timestamp, (int, float)) and not isinstance(timestamp, bool):
        attributes["cloudflare.queue.timestamp_ms"] = int(timestamp)
    _put(attributes, "cloudflare.queue.attempts", _field(message, "attempts"))
    return attributes


CLOUDFLARE_QUEUES_ADAPTER = MessagingAdapter(
    name="cloudflare_queues",
    consumer=ConsumerAdapter(custom_attributes=_cloudflare_attributes),
)


class BuiltinAdaptersPlugin:
    """Registers the adapters that ship with relaytrace."""

    @hookimpl
    def relaytrace_get_adapters(self) -> list[MessagingAdapter]:
        return [NATS_ADAPTER, TEMPORAL_ADAPTER, CLOUDFLARE_QUEUES_ADAPTER]
