"""Shared contracts for cross-boundary data types.

Dataclasses, enums, protocols and attribute names that cross subsystem
boundaries live here. This package is a LEAF MODULE: it imports nothing
from relaytrace.core, relaytrace.ordering or relaytrace.messaging.

Runtime wrapper configuration (ProducerConfig, ConsumerConfig, ...) carries
callables and lives in relaytrace.messaging.config; file-based settings
live in relaytrace.core.config.

Import patterns:
    from relaytrace.contracts import RebalanceEvent, PartitionAssignment, DLQOptions
    from relaytrace.contracts import attributes as attrs
"""

from relaytrace.contracts.consumer_group import (
    ConsumerGroupState,
    PartitionAssignment,
    PartitionLag,
    RebalanceEvent,
)
from relaytrace.contracts.dlq import DLQOptions, DLQRecord, ReplayOptions
from relaytrace.contracts.enums import (
    ConsumerGroupStateKind,
    DLQReasonCategory,
    LinkSource,
    MessagingOperation,
    RebalanceType,
)
from relaytrace.contracts.errors import AdapterRegistrationError, MessagingConfigError
from relaytrace.contracts.extractors import (
    Extractor,
    FunctionExtractor,
    PathExtractor,
    as_extractor,
)
from relaytrace.contracts.ordering import OutOfOrderInfo, TrackingKey
from relaytrace.contracts.protocols import ContextExtractor, PropagationCodec, SpanContextProtocol

__all__ = [
    # consumer_group
    "ConsumerGroupState",
    "PartitionAssignment",
    "PartitionLag",
    "RebalanceEvent",
    # dlq
    "DLQOptions",
    "DLQRecord",
    "ReplayOptions",
    # enums
    "ConsumerGroupStateKind",
    "DLQReasonCategory",
    "LinkSource",
    "MessagingOperation",
    "RebalanceType",
    # errors
    "AdapterRegistrationError",
    "MessagingConfigError",
    # extractors
    "Extractor",
    "FunctionExtractor",
    "PathExtractor",
    "as_extractor",
    # ordering
    "OutOfOrderInfo",
    "TrackingKey",
    # protocols
    "ContextExtractor",
    "PropagationCodec",
    "SpanContextProtocol",
]
