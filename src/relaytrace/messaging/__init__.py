"""Producer and consumer instrumentation.

Import patterns:
    from relaytrace.messaging import ConsumerConfig, OrderingConfig, trace_consumer
    from relaytrace.messaging import ProducerConfig, trace_producer
"""

from relaytrace.messaging.config import (
    ConsumerConfig,
    ConsumerGroupTrackingConfig,
    LagMetricsConfig,
    OrderingConfig,
    ProducerConfig,
)
from relaytrace.messaging.consumer import trace_consumer
from relaytrace.messaging.consumer_group import ConsumerGroupTracker
from relaytrace.messaging.context import ConsumerContext, ProducerContext
from relaytrace.messaging.producer import trace_producer
from relaytrace.messaging.propagation import (
    W3CPropagationCodec,
    create_link_from_headers,
    extract_links,
    normalize_headers,
)

__all__ = [
    "ConsumerConfig",
    "ConsumerContext",
    "ConsumerGroupTracker",
    "ConsumerGroupTrackingConfig",
    "LagMetricsConfig",
    "OrderingConfig",
    "ProducerConfig",
    "ProducerContext",
    "W3CPropagationCodec",
    "create_link_from_headers",
    "extract_links",
    "normalize_headers",
    "trace_consumer",
    "trace_producer",
]
