# src/relaytrace/messaging/lag.py
"""Consumer lag extraction.

Offsets come from caller-supplied getters (LagMetricsConfig). Getter
failures are ignored: a missing measurement never fails the consumer.

The end-offset and committed-offset getters may return awaitables. Async
consumers await them; sync consumers cannot, so an awaitable result is
discarded there.
"""

import inspect
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from relaytrace.contracts import attributes as attrs
from relaytrace.messaging.attributes import as_int

if TYPE_CHECKING:
    from opentelemetry.util.types import AttributeValue

    from relaytrace.contracts.protocols import SpanContextProtocol
    from relaytrace.messaging.config import LagMetricsConfig

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class LagReading:
    """Offsets gathered for one consumer operation."""

    current_offset: int | None = None
    partition: int | None = None
    end_offset: int | None = None
    committed_offset: int | None = None
    first_offset: int | None = None
    last_offset: int | None = None

    @property
    def lag(self) -> int | None:
        if self.end_offset is None or self.current_offset is None:
            return None
        return self.end_offset - self.current_offset


def _from_message(getter: Callable[[Any], Any] | None, message: Any, *, field: str) -> int | None:
    if getter is None or message is None:
        return None
    try:
        return as_int(getter(message))
    except Exception as e:
        logger.debug("Lag getter failed", field=field, error=str(e))
        return None


def _call(getter: Callable[[], Any] | None, *, field: str) -> Any:
    if getter is None:
        return None
    try:
        return getter()
    except Exception as e:
        logger.debug("Lag getter failed", field=field, error=str(e))
        return None


def _discard_awaitable(value: Any, *, field: str) -> int | None:
    if inspect.isawaitable(value):
        if inspect.iscoroutine(value):
            value.close()
        logger.debug("Async lag getter ignored by sync consumer", field=field)
        return None
    return as_int(value)


async def _await_value(value: Any, *, field: str) -> int | None:
    if inspect.isawaitable(value):
        try:
            value = await value
        except Exception as e:
            logger.debug("Lag getter failed", field=field, error=str(e))
            return None
    return as_int(value)


def _message_offsets(config: "LagMetricsConfig", messages: Sequence[Any], *, batch: bool) -> dict[str, int | None]:
    first = messages[0] if messages else None
    offsets: dict[str, int | None] = {
        "current_offset": _from_message(config.get_current_offset, first, field="current_offset"),
        "partition": _from_message(config.get_partition, first, field="partition"),
        "first_offset": None,
        "last_offset": None,
    }
    if batch and messages and config.get_current_offset is not None:
        offsets["first_offset"] = offsets["current_offset"]
        offsets["last_offset"] = _from_message(config.get_current_offset, messages[-1], field="last_offset")
    return offsets


def measure_lag(config: "LagMetricsConfig", messages: Sequence[Any], *, batch: bool) -> LagReading:
    """Gather offsets for a sync consumer."""
    offsets = _message_offsets(config, messages, batch=batch)
    end = _discard_awaitable(_call(config.get_end_offset, field="end_offset"), field="end_offset")
    committed = _discard_awaitable(_call(config.get_committed_offset, field="committed_offset"), field="committed_offset")
    return LagReading(end_offset=end, committed_offset=committed, **offsets)


async def measure_lag_async(config: "LagMetricsConfig", messages: Sequence[Any], *, batch: bool) -> LagReading:
    """Gather offsets for an async consumer, awaiting async getters."""
    offsets = _message_offsets(config, messages, batch=batch)
    end = await _await_value(_call(config.get_end_offset, field="end_offset"), field="end_offset")
    committed = await _await_value(
        _call(config.get_committed_offset, field="committed_offset"), field="committed_offset"
    )
    return LagReading(end_offset=end, committed_offset=committed, **offsets)


def apply_lag(span: "SpanContextProtocol", reading: LagReading) -> None:
    """Write a lag reading onto the consumer span."""
    fields: dict[str, AttributeValue] = {}
    if reading.current_offset is not None:
        fields[attrs.KAFKA_MESSAGE_OFFSET] = reading.current_offset
    if reading.partition is not None:
        fields[attrs.KAFKA_PARTITION] = reading.partition
    if reading.committed_offset is not None:
        fields[attrs.KAFKA_COMMITTED_OFFSET] = reading.committed_offset
    if reading.first_offset is not None:
        fields[attrs.BATCH_FIRST_OFFSET] = reading.first_offset
    if reading.last_offset is not None:
        fields[attrs.BATCH_LAST_OFFSET] = reading.last_offset

    lag = reading.lag
    if lag is not None:
        fields[attrs.KAFKA_CONSUMER_LAG] = lag
        span.add_event(
            attrs.EVENT_CONSUMER_LAG_MEASURED,
            {
                attrs.KAFKA_CONSUMER_LAG: lag,
                attrs.KAFKA_MESSAGE_OFFSET: reading.current_offset,
                attrs.KAFKA_HIGH_WATERMARK: reading.end_offset,
            },
        )
    if fields:
        span.set_attributes(fields)
