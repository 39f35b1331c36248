"""Adapter contracts: system-specific hooks for producer and consumer spans."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from opentelemetry.util.types import AttributeValue

    from relaytrace.contracts.protocols import ContextExtractor
    from relaytrace.messaging.context import ConsumerContext, ProducerContext


@dataclass(frozen=True, slots=True)
class ProducerAdapter:
    """Producer-side hooks.

    Attributes:
        custom_attributes: Called with (ctx, args); returned attributes are
            set on the publish span
        custom_headers: Called with (ctx); returned headers are merged into
            get_all_propagation_headers()
    """

    custom_attributes: Callable[[ProducerContext, tuple[Any, ...]], Mapping[str, AttributeValue]] | None = None
    custom_headers: Callable[[ProducerContext], Mapping[str, str]] | None = None


@dataclass(frozen=True, slots=True)
class ConsumerAdapter:
    """Consumer-side hooks.

    Attributes:
        headers_from: Pulls the trace header mapping out of a message
        custom_attributes: Called with (ctx, message); returned attributes
            are set on the process span
        custom_context_extractor: Decoder for non-W3C header formats
    """

    headers_from: Callable[[Any], Mapping[str, str] | None] | None = None
    custom_attributes: Callable[[ConsumerContext, Any], Mapping[str, AttributeValue]] | None = None
    custom_context_extractor: ContextExtractor | None = None


@dataclass(frozen=True, slots=True)
class MessagingAdapter:
    """Named pair of producer and consumer hooks for one messaging system."""

    name: str
    producer: ProducerAdapter | None = None
    consumer: ConsumerAdapter | None = None
