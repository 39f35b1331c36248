"""Status codes, modes and kinds shared across relaytrace subsystems."""

from enum import StrEnum


class MessagingOperation(StrEnum):
    """Messaging operation recorded in ``messaging.operation``.

    PUBLISH is used by producers. Consumers use PROCESS for single-message
    handlers and RECEIVE for batch handlers.
    """

    PUBLISH = "publish"
    RECEIVE = "receive"
    PROCESS = "process"
    SETTLE = "settle"


class RebalanceType(StrEnum):
    """Kind of consumer-group membership change observed from the broker client."""

    ASSIGNED = "assigned"
    REVOKED = "revoked"
    LOST = "lost"


class ConsumerGroupStateKind(StrEnum):
    """Consumer-group state as seen by one member.

    Values mirror the Kafka group coordinator states. A member starts with
    no state until its first rebalance event arrives.
    """

    STABLE = "stable"
    PREPARING_REBALANCE = "preparing_rebalance"
    COMPLETING_REBALANCE = "completing_rebalance"
    DEAD = "dead"
    EMPTY = "empty"


class DLQReasonCategory(StrEnum):
    """Conventional categories for dead-letter routing.

    ``messaging.dlq.reason_category`` accepts any string; these are the
    values the bundled adapters and tests use.
    """

    VALIDATION = "validation"
    PROCESSING = "processing"
    TIMEOUT = "timeout"
    POISON = "poison"
    MAX_RETRIES = "max_retries"
    UNKNOWN = "unknown"


class LinkSource(StrEnum):
    """Value of ``messaging.link.source`` on span links created by relaytrace."""

    PRODUCER = "producer"
    DLQ_REPLAY = "dlq_replay"
