"""Messaging adapters and non-W3C trace context extractors."""

from relaytrace.adapters.base import ConsumerAdapter, MessagingAdapter, ProducerAdapter
from relaytrace.adapters.builtin import (
    CLOUDFLARE_QUEUES_ADAPTER,
    NATS_ADAPTER,
    TEMPORAL_ADAPTER,
    BuiltinAdaptersPlugin,
)
from relaytrace.adapters.context_extractors import (
    b3_context_extractor,
    datadog_context_extractor,
    xray_context_extractor,
)
from relaytrace.adapters.hookspecs import hookimpl
from relaytrace.adapters.registry import discover_adapters, get_adapter

__all__ = [
    "CLOUDFLARE_QUEUES_ADAPTER",
    "NATS_ADAPTER",
    "TEMPORAL_ADAPTER",
    "BuiltinAdaptersPlugin",
    "ConsumerAdapter",
    "MessagingAdapter",
    "ProducerAdapter",
    "b3_context_extractor",
    "datadog_context_extractor",
    "discover_adapters",
    "get_adapter",
    "hookimpl",
    "xray_context_extractor",
]
