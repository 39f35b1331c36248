# src/relaytrace/messaging/producer.py
"""trace_producer: PRODUCER spans around publish callables.

Usage:
    @trace_producer(ProducerConfig(system="kafka", destination="orders", message_id_from="id"))
    async def publish(ctx: ProducerContext, order: dict) -> None:
        await producer.send("orders", value=order, headers=list(ctx.get_all_propagation_headers().items()))

    await publish({"id": "o-1", "total": 12})

The wrapped function receives the ProducerContext as its first argument;
callers invoke the returned function without it. Extractors resolve
against the caller's arguments (paths against the first one).
"""

import functools
import inspect
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from relaytrace import __version__
from relaytrace.messaging.attributes import producer_attributes, producer_message_attributes, sanitize_attributes
from relaytrace.messaging.context import ProducerContext
from relaytrace.spans import SpanFactory, record_failure

if TYPE_CHECKING:
    from opentelemetry.trace import Tracer

    from relaytrace.contracts.protocols import SpanContextProtocol
    from relaytrace.messaging.config import ProducerConfig

TRACER_NAME = "relaytrace"


def default_tracer() -> "Tracer":
    """Tracer from the globally configured TracerProvider."""
    return trace.get_tracer(TRACER_NAME, __version__)


def trace_producer(
    config: "ProducerConfig",
    *,
    tracer: "Tracer | None" = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorate a publish function with a PRODUCER span.

    Per call, in order: static and per-message attributes, adapter custom
    attributes, ``before_send(ctx, args)``, then the wrapped function. If it
    raises, the exception is recorded on the span with ERROR status,
    ``on_error(error, ctx)`` runs, and the original exception propagates.

    Args:
        config: Producer configuration
        tracer: Tracer to use; defaults to the global provider's tracer

    Returns:
        Decorator accepting a sync or async function whose first parameter
        is the ProducerContext.
    """
    factory = SpanFactory(tracer if tracer is not None else default_tracer())
    static_attributes = producer_attributes(config)

    def begin(span: "SpanContextProtocol", args: tuple[Any, ...]) -> ProducerContext:
        span.set_attributes(static_attributes)
        span.set_attributes(producer_message_attributes(config, args))
        ctx = ProducerContext(span, config)
        adapter = config.adapter
        if adapter is not None and adapter.custom_attributes is not None:
            span.set_attributes(sanitize_attributes(adapter.custom_attributes(ctx, args)))
        if config.before_send is not None:
            config.before_send(ctx, args)
        return ctx

    def fail(span: "SpanContextProtocol", ctx: ProducerContext, error: Exception) -> None:
        record_failure(span, error)
        if config.on_error is not None:
            config.on_error(error, ctx)

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with factory.producer_span(config.system, config.destination) as span:
                    ctx = begin(span, args)
                    try:
                        result = await fn(ctx, *args, **kwargs)
                    except Exception as e:
                        fail(span, ctx, e)
                        raise
                    span.set_status(Status(StatusCode.OK))
                    return result

            return async_wrapper

        @functools.wraps(fn)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with factory.producer_span(config.system, config.destination) as span:
                ctx = begin(span, args)
                try:
                    result = fn(ctx, *args, **kwargs)
                except Exception as e:
                    fail(span, ctx, e)
                    raise
                span.set_status(Status(StatusCode.OK))
                return result

        return sync_wrapper

    return decorator
