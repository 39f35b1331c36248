"""Span attribute keys and event names emitted by relaytrace.

Downstream dashboards and alerts match on these literal strings. Changing a
value here is a breaking change for every consumer of the telemetry.
"""

# =============================================================================
# Core messaging semantic conventions
# =============================================================================

MESSAGING_SYSTEM = "messaging.system"
MESSAGING_OPERATION = "messaging.operation"
DESTINATION_NAME = "messaging.destination.name"
DESTINATION_PARTITION_ID = "messaging.destination.partition.id"
CONSUMER_GROUP = "messaging.consumer.group"

MESSAGE_ID = "messaging.message.id"
MESSAGE_SEQUENCE_NUMBER = "messaging.message.sequence_number"
MESSAGE_PARTITION_KEY = "messaging.message.partition_key"

BATCH_MESSAGE_COUNT = "messaging.batch.message_count"
BATCH_FIRST_OFFSET = "messaging.batch.first_offset"
BATCH_LAST_OFFSET = "messaging.batch.last_offset"

LINK_SOURCE = "messaging.link.source"

# Kafka-specific
KAFKA_DESTINATION_TOPIC = "messaging.kafka.destination.topic"
KAFKA_DESTINATION_PARTITION = "messaging.kafka.destination.partition"
KAFKA_MESSAGE_KEY = "messaging.kafka.message.key"
KAFKA_CONSUMER_GROUP = "messaging.kafka.consumer.group"
KAFKA_MESSAGE_OFFSET = "messaging.kafka.message.offset"
KAFKA_PARTITION = "messaging.kafka.partition"
KAFKA_CONSUMER_LAG = "messaging.kafka.consumer_lag"
KAFKA_HIGH_WATERMARK = "messaging.kafka.high_watermark"
KAFKA_COMMITTED_OFFSET = "messaging.kafka.committed_offset"

# =============================================================================
# Ordering diagnostics
# =============================================================================

ORDERING_OUT_OF_ORDER = "messaging.ordering.out_of_order"
ORDERING_OUT_OF_ORDER_COUNT = "messaging.ordering.out_of_order_count"
ORDERING_EXPECTED_SEQUENCE = "messaging.ordering.expected_sequence"
ORDERING_GAP = "messaging.ordering.gap"
ORDERING_DUPLICATE = "messaging.ordering.duplicate"
ORDERING_DUPLICATE_COUNT = "messaging.ordering.duplicate_count"

# =============================================================================
# Consumer group
# =============================================================================

CONSUMER_GROUP_ID = "messaging.consumer_group.id"
CONSUMER_GROUP_MEMBER_ID = "messaging.consumer_group.member_id"
CONSUMER_GROUP_INSTANCE_ID = "messaging.consumer_group.instance_id"
CONSUMER_GROUP_GENERATION = "messaging.consumer_group.generation"
CONSUMER_GROUP_STATE = "messaging.consumer_group.state"
CONSUMER_GROUP_PARTITIONS = "messaging.consumer_group.partitions"
CONSUMER_GROUP_REBALANCE_TYPE = "messaging.consumer_group.rebalance.type"
CONSUMER_GROUP_REBALANCE_PARTITION_COUNT = "messaging.consumer_group.rebalance.partition_count"
CONSUMER_GROUP_REBALANCE_REASON = "messaging.consumer_group.rebalance.reason"
CONSUMER_GROUP_HEARTBEAT_HEALTHY = "messaging.consumer_group.heartbeat.healthy"
CONSUMER_GROUP_HEARTBEAT_LATENCY_MS = "messaging.consumer_group.heartbeat.latency_ms"
# Suffixed with ".<topic>.<partition>"
CONSUMER_GROUP_LAG_PREFIX = "messaging.consumer_group.lag"

# =============================================================================
# Dead-letter, retry and replay
# =============================================================================

DLQ_REASON = "messaging.dlq.reason"
DLQ_REASON_CATEGORY = "messaging.dlq.reason_category"
DLQ_NAME = "messaging.dlq.name"
DLQ_ATTEMPT_COUNT = "messaging.dlq.attempt_count"
DLQ_ORIGINAL_ERROR_TYPE = "messaging.dlq.original_error.type"
DLQ_ORIGINAL_ERROR_MESSAGE = "messaging.dlq.original_error.message"
# Suffixed with ".<metadata key>"
DLQ_METADATA_PREFIX = "messaging.dlq.metadata"
DLQ_PRODUCER_TRACE_ID = "messaging.dlq.producer_trace_id"
DLQ_PRODUCER_SPAN_ID = "messaging.dlq.producer_span_id"

RETRY_COUNT = "messaging.retry.count"
RETRY_MAX_ATTEMPTS = "messaging.retry.max_attempts"

REPLAY_ATTEMPT = "messaging.replay.attempt"
REPLAY_DLQ_DWELL_TIME_MS = "messaging.replay.dlq_dwell_time_ms"
REPLAY_ORIGINAL_DLQ_NAME = "messaging.replay.original_dlq_name"

# =============================================================================
# Event names
# =============================================================================

EVENT_MESSAGE_OUT_OF_ORDER = "message_out_of_order"
EVENT_MESSAGE_DUPLICATE = "message_duplicate"
EVENT_CONSUMER_GROUP_HEARTBEAT = "consumer_group_heartbeat"
EVENT_PARTITION_LAG_RECORDED = "partition_lag_recorded"
EVENT_CONSUMER_LAG_MEASURED = "consumer_lag_measured"
EVENT_DLQ_ROUTED = "dlq_routed"
EVENT_DLQ_REPLAY = "dlq_replay"
EVENT_RETRY_ATTEMPT = "retry_attempt"


def consumer_group_event_name(rebalance_type: str) -> str:
    """Event name for a rebalance: consumer_group_assigned/_revoked/_lost."""
    return f"consumer_group_{rebalance_type}"


def partition_lag_key(topic: str, partition: int) -> str:
    """Per-partition lag attribute key."""
    return f"{CONSUMER_GROUP_LAG_PREFIX}.{topic}.{partition}"
