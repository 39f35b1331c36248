"""Attribute builders for publish and receive spans.

Pure functions: they compute attribute maps from configuration and call
arguments and never touch a span. The wrappers apply the results.
"""

import json
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from relaytrace.contracts import attributes as attrs
from relaytrace.contracts.enums import MessagingOperation
from relaytrace.contracts.extractors import Extractor, extract_from_args

if TYPE_CHECKING:
    from opentelemetry.util.types import AttributeValue

    from relaytrace.messaging.config import ConsumerConfig, ProducerConfig

logger = structlog.get_logger(__name__)

_PRIMITIVES = (str, bool, int, float)


def sanitize_attributes(attributes: Mapping[str, Any]) -> dict[str, "AttributeValue"]:
    """Coerce arbitrary values into valid span attribute values.

    - None values are dropped
    - str/bool/int/float pass through
    - sequences keep their primitive members; empty results are dropped
    - anything else is JSON-encoded; values that cannot be encoded are
      skipped rather than failing the operation
    """
    result: dict[str, AttributeValue] = {}
    for key, value in attributes.items():
        if value is None:
            continue
        if isinstance(value, _PRIMITIVES):
            result[key] = value
        elif isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
            clean = [item for item in value if isinstance(item, _PRIMITIVES)]
            if clean:
                result[key] = clean
        else:
            try:
                result[key] = json.dumps(value)
            except (TypeError, ValueError) as e:
                logger.debug("Skipping attribute that cannot be serialized", key=key, error=str(e))
    return result


def safe_extract(extractor: Extractor, args: Sequence[Any], *, field: str) -> Any:
    """Run a producer extractor; extractor failures yield None."""
    try:
        return extract_from_args(extractor, args)
    except Exception as e:
        logger.debug("Extractor failed", field=field, error=str(e))
        return None


def as_int(value: Any) -> int | None:
    """Coerce a sequence number or offset to int; None if not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def as_str(value: Any) -> str:
    """Coerce an id or key to str, decoding bytes as UTF-8."""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def producer_attributes(config: "ProducerConfig") -> dict[str, "AttributeValue"]:
    """Static attributes for every publish span of this producer."""
    result: dict[str, AttributeValue] = {
        attrs.MESSAGING_SYSTEM: config.system,
        attrs.MESSAGING_OPERATION: MessagingOperation.PUBLISH.value,
        attrs.DESTINATION_NAME: config.destination,
    }
    if config.system == "kafka":
        result[attrs.KAFKA_DESTINATION_TOPIC] = config.destination
    result.update(sanitize_attributes(config.attributes))
    return result


def producer_message_attributes(config: "ProducerConfig", args: Sequence[Any]) -> dict[str, "AttributeValue"]:
    """Per-call attributes extracted from the publish arguments."""
    result: dict[str, AttributeValue] = {}

    if config.message_id_from is not None:
        message_id = safe_extract(config.message_id_from, args, field="message_id")
        if message_id is not None:
            result[attrs.MESSAGE_ID] = as_str(message_id)

    if config.partition_from is not None:
        partition = as_int(safe_extract(config.partition_from, args, field="partition"))
        if partition is not None:
            result[attrs.KAFKA_DESTINATION_PARTITION] = partition

    if config.key_from is not None:
        key = safe_extract(config.key_from, args, field="key")
        if key is not None:
            result[attrs.KAFKA_MESSAGE_KEY] = as_str(key)

    if config.sequence_from is not None:
        sequence = as_int(safe_extract(config.sequence_from, args, field="sequence"))
        if sequence is not None:
            result[attrs.MESSAGE_SEQUENCE_NUMBER] = sequence

    if config.partition_key_from is not None:
        partition_key = safe_extract(config.partition_key_from, args, field="partition_key")
        if partition_key is not None:
            result[attrs.MESSAGE_PARTITION_KEY] = as_str(partition_key)

    return result


def consumer_attributes(config: "ConsumerConfig") -> dict[str, "AttributeValue"]:
    """Static attributes for every process/receive span of this consumer."""
    operation = MessagingOperation.RECEIVE if config.batch_mode else MessagingOperation.PROCESS
    result: dict[str, AttributeValue] = {
        attrs.MESSAGING_SYSTEM: config.system,
        attrs.MESSAGING_OPERATION: operation.value,
        attrs.DESTINATION_NAME: config.destination,
    }
    if config.consumer_group:
        result[attrs.CONSUMER_GROUP] = config.consumer_group
        if config.system == "kafka":
            result[attrs.KAFKA_CONSUMER_GROUP] = config.consumer_group
    if config.system == "kafka":
        result[attrs.KAFKA_DESTINATION_TOPIC] = config.destination
    result.update(sanitize_attributes(config.attributes))
    return result

