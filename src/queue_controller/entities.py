"""
Queue Controller Domain Entities.

- Queue: Named admission/accounting boundary for workloads
- QueueSpec: Operator intent (desired lifecycle state)
- QueueStatus: System-computed lifecycle state and pod group counts
- PodGroup: Unit of submitted work bound to exactly one Queue
- QueueRequest: Work item handed to the reconcile worker

Status values mirror the queue API: spec.state is one of Open/Closed,
status.state is one of Open/Closing/Closed/Unknown.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class QueueState(str, Enum):
    """
    Queue lifecycle states.

    - OPEN: Queue accepts workloads
    - CLOSED: Queue rejects workloads, nothing in flight
    - CLOSING: Close requested, bound pod groups still draining
    - UNKNOWN: Spec carries a state the policies do not understand
    """

    OPEN = "Open"
    CLOSED = "Closed"
    CLOSING = "Closing"
    UNKNOWN = "Unknown"


class PodGroupPhase(str, Enum):
    """Pod group phases. Only the first four are counted per queue."""

    PENDING = "Pending"
    RUNNING = "Running"
    UNKNOWN = "Unknown"
    INQUEUE = "Inqueue"
    COMPLETED = "Completed"


class QueueAction(str, Enum):
    """Reconcile actions dispatched per queue."""

    SYNC = "SyncQueue"
    OPEN = "OpenQueue"
    CLOSE = "CloseQueue"


class EventType(str, Enum):
    """Severity of a recorded queue event."""

    NORMAL = "Normal"
    WARNING = "Warning"


def now_iso() -> str:
    """Get current time as ISO format string."""
    return datetime.utcnow().isoformat() + "Z"


@dataclass
class QueueSpec:
    """Operator intent. `state` is an empty string when never declared."""

    state: str = QueueState.OPEN.value
    weight: int = 1


@dataclass
class QueueStatus:
    """
    Observed queue status.

    Compared by full structural equality to decide whether a write is needed,
    so every field here takes part in change detection.
    """

    state: str = ""
    pending: int = 0
    running: int = 0
    unknown: int = 0
    inqueue: int = 0


@dataclass
class Queue:
    """
    A named queue record.

    `resource_version` is bumped by the store on every write and checked on
    update for optimistic concurrency.
    """

    name: str
    spec: QueueSpec = field(default_factory=QueueSpec)
    status: QueueStatus = field(default_factory=QueueStatus)
    resource_version: int = 0
    created_at: str = field(default_factory=now_iso)

    @classmethod
    def create(
        cls,
        name: str,
        state: str = QueueState.OPEN.value,
        weight: int = 1,
    ) -> "Queue":
        """Create a new Queue with the given desired state."""
        return cls(name=name, spec=QueueSpec(state=state, weight=weight))

    def deep_copy(self) -> "Queue":
        return copy.deepcopy(self)


@dataclass
class PodGroup:
    """A unit of submitted work bound to one queue by name."""

    namespace: str
    name: str
    queue: str
    phase: str = PodGroupPhase.PENDING.value
    created_at: str = field(default_factory=now_iso)

    @property
    def key(self) -> str:
        return group_key(self.namespace, self.name)


@dataclass
class QueueRequest:
    """A reconcile request for one queue."""

    queue_name: str
    action: QueueAction = QueueAction.SYNC


@dataclass
class QueueEvent:
    """A user-visible outcome of a queue transition."""

    queue_name: str
    event_type: EventType
    reason: str
    message: str
    event_id: Optional[int] = None
    created_at: str = field(default_factory=now_iso)


def group_key(namespace: str, name: str) -> str:
    """Build a `namespace/name` key, or just `name` for cluster-scoped groups."""
    if namespace:
        return f"{namespace}/{name}"
    return name


def split_group_key(key: str) -> Tuple[str, str]:
    """
    Split a `namespace/name` key.

    Raises:
        ValueError: If the key has more than one separator or an empty name
    """
    parts = key.split("/")
    if len(parts) == 1 and parts[0]:
        return "", parts[0]
    if len(parts) == 2 and parts[1]:
        return parts[0], parts[1]
    raise ValueError(f"unexpected key format: {key!r}")
