"""Ordering contracts: stream identity and out-of-order diagnostics."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TrackingKey:
    """Identity of one ordered stream of messages.

    Two messages belong to the same stream when they share the messaging
    system, destination, partition key and consumer group. Partition key and
    consumer group are optional; leaving them unset merges all partitions or
    all groups into one stream.

    Attributes:
        system: Messaging system (kafka, rabbitmq, sqs, ...)
        destination: Topic or queue name
        partition_key: Key the producer used to route the message, if any
        consumer_group: Consumer group observing the stream, if any
    """

    system: str
    destination: str
    partition_key: str | None = None
    consumer_group: str | None = None

    def as_string(self) -> str:
        """Render as ``system:destination[:partition_key][@consumer_group]``."""
        rendered = f"{self.system}:{self.destination}"
        if self.partition_key is not None:
            rendered = f"{rendered}:{self.partition_key}"
        if self.consumer_group is not None:
            rendered = f"{rendered}@{self.consumer_group}"
        return rendered


@dataclass(frozen=True, slots=True)
class OutOfOrderInfo:
    """Diagnostic for a message whose sequence was not last + 1.

    Computed per message and not retained by the tracker; callers that want
    history must keep these themselves.

    Attributes:
        current_sequence: Sequence number carried by the arriving message
        expected_sequence: Sequence the tracker expected (last seen + 1)
        partition_key: Partition key of the stream, if any
    """

    current_sequence: int
    expected_sequence: int
    partition_key: str | None = None

    @property
    def gap(self) -> int:
        """Signed distance from the expected sequence.

        Positive: messages were skipped. Negative: the message is late and
        should have preceded one already seen.
        """
        return self.current_sequence - self.expected_sequence

    @property
    def is_late(self) -> bool:
        """True when the message arrived after a higher sequence was seen."""
        return self.gap < 0
