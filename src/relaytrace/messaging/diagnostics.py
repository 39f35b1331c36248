# src/relaytrace/messaging/diagnostics.py
"""Ordering and duplicate diagnostics for one consumer operation.

Runs after link extraction and before the wrapped function. Results are
written to the span, stored on the ConsumerContext and reported to the
on_out_of_order / on_duplicate callbacks. Nothing here skips or reorders
messages.

Each message is observed with one synchronous call into the registry, so
concurrent operations on the same stream cannot interleave between the read
and the write of the last sequence.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import structlog

from relaytrace.contracts import attributes as attrs
from relaytrace.contracts.extractors import Extractor, extract_from_message
from relaytrace.messaging.attributes import as_int, as_str
from relaytrace.ordering.keys import build_dedup_key, build_tracking_key

if TYPE_CHECKING:
    from opentelemetry.util.types import AttributeValue

    from relaytrace.contracts.ordering import OutOfOrderInfo, TrackingKey
    from relaytrace.messaging.config import ConsumerConfig, OrderingConfig
    from relaytrace.messaging.context import ConsumerContext
    from relaytrace.ordering.registry import OrderingRegistry

logger = structlog.get_logger(__name__)


def _extract(extractor: Extractor | None, message: Any, *, field: str) -> Any:
    if extractor is None:
        return None
    try:
        return extract_from_message(extractor, message)
    except Exception as e:
        logger.debug("Ordering extractor failed", field=field, error=str(e))
        return None


def out_of_order_fields(info: "OutOfOrderInfo") -> dict[str, "AttributeValue"]:
    fields: dict[str, AttributeValue] = {
        attrs.MESSAGE_SEQUENCE_NUMBER: info.current_sequence,
        attrs.ORDERING_EXPECTED_SEQUENCE: info.expected_sequence,
        attrs.ORDERING_GAP: info.gap,
    }
    if info.partition_key is not None:
        fields[attrs.MESSAGE_PARTITION_KEY] = info.partition_key
    return fields


class OrderingDiagnostics:
    """Applies OrderingConfig to the messages of one operation.

    Args:
        config: Consumer configuration (system, destination, group, ordering)
        registry: Sequence and dedup state shared across operations
    """

    def __init__(self, config: "ConsumerConfig", registry: "OrderingRegistry") -> None:
        if config.ordering is None:
            raise ValueError("OrderingDiagnostics requires ConsumerConfig.ordering")
        self._config = config
        self._ordering: OrderingConfig = config.ordering
        self._registry = registry
        self._dedup_scope = build_dedup_key(
            config.system,
            config.destination,
            consumer_group=config.consumer_group,
        )

    def _sequence_of(self, message: Any) -> int | None:
        return as_int(_extract(self._ordering.sequence_from, message, field="sequence"))

    def _tracking_key_of(self, message: Any) -> "TrackingKey":
        return build_tracking_key(
            self._config.system,
            self._config.destination,
            partition_key=_extract(self._ordering.partition_key_from, message, field="partition_key"),
            consumer_group=self._config.consumer_group,
        )

    def _report_out_of_order(self, ctx: "ConsumerContext", info: "OutOfOrderInfo") -> None:
        ctx.note_out_of_order(info)
        ctx.add_event(attrs.EVENT_MESSAGE_OUT_OF_ORDER, out_of_order_fields(info))
        if self._ordering.on_out_of_order is not None:
            self._ordering.on_out_of_order(ctx, info)

    def _check_sequence(self, ctx: "ConsumerContext", message: Any) -> tuple[int | None, Any, "OutOfOrderInfo | None"]:
        key = self._tracking_key_of(message)
        sequence = self._sequence_of(message)
        if sequence is None:
            return None, key.partition_key, None

        info = self._registry.sequences.observe(key, sequence)
        if info is not None:
            self._report_out_of_order(ctx, info)
        return sequence, key.partition_key, info

    def _check_duplicate(self, ctx: "ConsumerContext", message: Any) -> tuple[str | None, bool]:
        raw_id = _extract(self._ordering.message_id_from, message, field="message_id")
        if raw_id is None:
            return None, False
        message_id = as_str(raw_id)
        duplicate = self._registry.dedup.check(self._dedup_scope, message_id)
        if duplicate:
            ctx.note_duplicate(message_id)
            ctx.add_event(attrs.EVENT_MESSAGE_DUPLICATE, {attrs.MESSAGE_ID: message_id})
            if self._ordering.on_duplicate is not None:
                self._ordering.on_duplicate(ctx, message_id)
        return message_id, duplicate

    def process_message(self, ctx: "ConsumerContext", message: Any) -> None:
        """Diagnose a single-message operation."""
        fields: dict[str, AttributeValue] = {}

        if self._ordering.tracks_sequence:
            sequence, partition_key, info = self._check_sequence(ctx, message)
            if sequence is not None:
                fields[attrs.MESSAGE_SEQUENCE_NUMBER] = sequence
                fields[attrs.ORDERING_OUT_OF_ORDER] = info is not None
                if partition_key is not None:
                    fields[attrs.MESSAGE_PARTITION_KEY] = partition_key
                if info is not None:
                    fields[attrs.ORDERING_EXPECTED_SEQUENCE] = info.expected_sequence
                    fields[attrs.ORDERING_GAP] = info.gap

        if self._ordering.tracks_duplicates:
            message_id, duplicate = self._check_duplicate(ctx, message)
            if message_id is not None:
                fields[attrs.MESSAGE_ID] = message_id
                fields[attrs.ORDERING_DUPLICATE] = duplicate

        if fields:
            ctx.set_attributes(fields)

    def process_batch(self, ctx: "ConsumerContext", messages: Sequence[Any]) -> None:
        """Diagnose each message of a batch independently; counts go on the span.

        Sequences are observed first, in batch order, then message ids.
        """
        out_of_order = 0
        duplicates = 0
        if self._ordering.tracks_sequence:
            flagged = self._registry.sequences.observe_batch(messages, self._tracking_key_of, self._sequence_of)
            for info in flagged:
                self._report_out_of_order(ctx, info)
            out_of_order = len(flagged)
        if self._ordering.tracks_duplicates:
            for message in messages:
                _, duplicate = self._check_duplicate(ctx, message)
                if duplicate:
                    duplicates += 1

        fields: dict[str, AttributeValue] = {}
        if self._ordering.tracks_sequence:
            fields[attrs.ORDERING_OUT_OF_ORDER] = out_of_order > 0
            fields[attrs.ORDERING_OUT_OF_ORDER_COUNT] = out_of_order
        if self._ordering.tracks_duplicates:
            fields[attrs.ORDERING_DUPLICATE] = duplicates > 0
            fields[attrs.ORDERING_DUPLICATE_COUNT] = duplicates
        if fields:
            ctx.set_attributes(fields)
