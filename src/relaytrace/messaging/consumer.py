# src/relaytrace/messaging/consumer.py
"""trace_consumer: CONSUMER spans around process callables.

Usage:
    config = ConsumerConfig(
        system="kafka",
        destination="orders",
        consumer_group="billing",
        headers_from="headers",
        ordering=OrderingConfig(sequence_from="sequence", partition_key_from="key", message_id_from="id"),
    )

    @trace_consumer(config)
    def handle(ctx: ConsumerContext, message: dict) -> None:
        if ctx.is_duplicate():
            return
        process(message)

Per call, in order:
1. static consumer attributes, adapter custom attributes
2. producer links decoded from the message headers
3. lag metrics
4. ordering and duplicate diagnostics
5. the wrapped function

In batch mode the first positional argument is the list of messages; every
message is decoded and diagnosed independently.
"""

import functools
import inspect
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from opentelemetry.trace import Status, StatusCode

from relaytrace.contracts import attributes as attrs
from relaytrace.core.clock import DEFAULT_CLOCK, Clock
from relaytrace.messaging.attributes import consumer_attributes, sanitize_attributes
from relaytrace.messaging.consumer_group import ConsumerGroupTracker
from relaytrace.messaging.context import ConsumerContext
from relaytrace.messaging.diagnostics import OrderingDiagnostics
from relaytrace.messaging.lag import apply_lag, measure_lag, measure_lag_async
from relaytrace.messaging.producer import default_tracer
from relaytrace.messaging.propagation import extract_links
from relaytrace.ordering.registry import OrderingRegistry, get_default_registry
from relaytrace.spans import SpanFactory, record_failure

if TYPE_CHECKING:
    from opentelemetry.trace import Tracer

    from relaytrace.contracts.protocols import SpanContextProtocol
    from relaytrace.messaging.config import ConsumerConfig


def batch_messages(args: Sequence[Any], *, batch_mode: bool) -> list[Any]:
    """Messages of one operation: the batch list, or the single first argument."""
    if not args:
        return []
    first = args[0]
    if batch_mode and isinstance(first, Sequence) and not isinstance(first, (str, bytes, bytearray)):
        return list(first)
    return [first]


def trace_consumer(
    config: "ConsumerConfig",
    *,
    tracer: "Tracer | None" = None,
    registry: OrderingRegistry | None = None,
    clock: Clock = DEFAULT_CLOCK,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorate a process function with a CONSUMER span.

    Each decorated function owns one ConsumerGroupTracker, exposed as
    ``wrapper.consumer_group_tracker``; the ordering registry is exposed as
    ``wrapper.ordering_registry``.

    Args:
        config: Consumer configuration
        tracer: Tracer to use; defaults to the global provider's tracer
        registry: Sequence/dedup state; defaults to the process-wide registry
        clock: Time source for heartbeats and replay dwell time

    Returns:
        Decorator accepting a sync or async function whose first parameter
        is the ConsumerContext.
    """
    factory = SpanFactory(tracer if tracer is not None else default_tracer())
    ordering_registry = registry if registry is not None else get_default_registry()
    static_attributes = consumer_attributes(config)
    headers_from = config.effective_headers_from
    context_extractor = config.effective_context_extractor
    diagnostics = OrderingDiagnostics(config, ordering_registry) if config.ordering is not None else None

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        tracker = ConsumerGroupTracker(
            config.consumer_group_tracking,
            default_group_id=config.consumer_group,
            clock=clock,
        )

        def begin(span: "SpanContextProtocol", args: tuple[Any, ...]) -> tuple[ConsumerContext, list[Any]]:
            span.set_attributes(static_attributes)
            ctx = ConsumerContext(span, config, tracker, clock=clock)
            messages = batch_messages(args, batch_mode=config.batch_mode)

            adapter = config.adapter
            if adapter is not None and adapter.custom_attributes is not None and not config.batch_mode and messages:
                span.set_attributes(sanitize_attributes(adapter.custom_attributes(ctx, messages[0])))

            if config.batch_mode:
                span.set_attribute(attrs.BATCH_MESSAGE_COUNT, len(messages))
            if headers_from is not None:
                links = extract_links(messages, headers_from, custom_extractor=context_extractor)
                if links:
                    ctx.add_links(links)
            return ctx, messages

        def diagnose(ctx: ConsumerContext, messages: list[Any]) -> None:
            if diagnostics is None:
                return
            if config.batch_mode:
                diagnostics.process_batch(ctx, messages)
            elif messages:
                diagnostics.process_message(ctx, messages[0])

        def fail(span: "SpanContextProtocol", ctx: ConsumerContext, error: Exception) -> None:
            record_failure(span, error)
            if config.on_error is not None:
                config.on_error(error, ctx)

        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with factory.consumer_span(config.system, config.destination, batch=config.batch_mode) as span:
                    ctx, messages = begin(span, args)
                    if config.lag_metrics is not None:
                        apply_lag(span, await measure_lag_async(config.lag_metrics, messages, batch=config.batch_mode))
                    diagnose(ctx, messages)
                    try:
                        result = await fn(ctx, *args, **kwargs)
                    except Exception as e:
                        fail(span, ctx, e)
                        raise
                    span.set_status(Status(StatusCode.OK))
                    return result

            wrapper: Any = async_wrapper
        else:

            @functools.wraps(fn)
            def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
                with factory.consumer_span(config.system, config.destination, batch=config.batch_mode) as span:
                    ctx, messages = begin(span, args)
                    if config.lag_metrics is not None:
                        apply_lag(span, measure_lag(config.lag_metrics, messages, batch=config.batch_mode))
                    diagnose(ctx, messages)
                    try:
                        result = fn(ctx, *args, **kwargs)
                    except Exception as e:
                        fail(span, ctx, e)
                        raise
                    span.set_status(Status(StatusCode.OK))
                    return result

            wrapper = sync_wrapper

        wrapper.consumer_group_tracker = tracker
        wrapper.ordering_registry = ordering_registry
        return wrapper

    return decorator
