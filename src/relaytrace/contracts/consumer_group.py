"""Consumer-group membership contracts.

These types cross the boundary between the broker client callbacks (which
observe rebalances, heartbeats and lag) and the consumer-group tracker.
"""

from dataclasses import dataclass
from datetime import datetime

from relaytrace.contracts.enums import ConsumerGroupStateKind, RebalanceType


@dataclass(frozen=True, slots=True)
class PartitionAssignment:
    """One partition owned by a consumer.

    Identity for add/remove is ``(topic, partition)``; offset and metadata
    are informational.
    """

    topic: str
    partition: int
    offset: int | None = None
    metadata: str | None = None

    @property
    def identity(self) -> tuple[str, int]:
        return (self.topic, self.partition)

    def label(self) -> str:
        """Render as ``topic:partition`` for string-list attributes."""
        return f"{self.topic}:{self.partition}"


@dataclass(frozen=True, slots=True)
class RebalanceEvent:
    """A group-membership change reported by the broker client.

    Attributes:
        type: assigned, revoked or lost
        partitions: Partitions the change applies to
        timestamp: When the client observed the change
        generation: Group generation id, if the client exposes it
        member_id: Member id assigned by the coordinator, if known
        reason: Free-form reason reported by the client
    """

    type: RebalanceType
    partitions: tuple[PartitionAssignment, ...]
    timestamp: datetime
    generation: int | None = None
    member_id: str | None = None
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class PartitionLag:
    """A lag measurement for one partition.

    Attributes:
        topic: Topic name
        partition: Partition number
        current_offset: Offset of the last processed message
        end_offset: High watermark of the partition
        timestamp: When the measurement was taken
    """

    topic: str
    partition: int
    current_offset: int
    end_offset: int
    timestamp: datetime

    @property
    def lag(self) -> int:
        return self.end_offset - self.current_offset


@dataclass(frozen=True, slots=True)
class ConsumerGroupState:
    """Snapshot of one consumer's group membership.

    ``state`` is None until the first rebalance event arrives.
    """

    group_id: str
    member_id: str | None = None
    group_instance_id: str | None = None
    assigned_partitions: tuple[PartitionAssignment, ...] = ()
    generation: int | None = None
    is_active: bool = False
    last_heartbeat: datetime | None = None
    state: ConsumerGroupStateKind | None = None
