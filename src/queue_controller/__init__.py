"""
Queue Controller Core Module.

Keeps each queue's status consistent with its desired lifecycle state and
with the pod groups bound to it:
- Aggregator: counts bound pod groups by phase
- Lifecycle policies: per-state functions choosing the queue's new status
- Reconcile actions: sync / open / close
- QueueStore: durable store adapter
"""

from .entities import (
    QueueState,
    PodGroupPhase,
    QueueAction,
    EventType,
    QueueSpec,
    QueueStatus,
    Queue,
    PodGroup,
    QueueRequest,
    QueueEvent,
    group_key,
    split_group_key,
)
from .errors import (
    QueueControllerError,
    StoreError,
    QueueNotFoundError,
    QueueAlreadyExistsError,
    PodGroupNotFoundError,
    ConflictError,
    MissingStateFunctionError,
)
from .persistence import QueueStore
from .group_index import PodGroupIndex
from .aggregator import aggregate_queue, count_phases
from .state import (
    UpdateQueueStatusFn,
    QueueLifecycleState,
    OpenState,
    ClosingState,
    ClosedState,
    UnknownState,
    new_state,
)
from .events import EventRecorder, StoreEventRecorder
from .controller import QueueController
from .worker import QueueWorker, WorkerState
from .config import ControllerConfig
from .service import QueueControllerService

__all__ = [
    # Entities
    "QueueState",
    "PodGroupPhase",
    "QueueAction",
    "EventType",
    "QueueSpec",
    "QueueStatus",
    "Queue",
    "PodGroup",
    "QueueRequest",
    "QueueEvent",
    "group_key",
    "split_group_key",
    # Errors
    "QueueControllerError",
    "StoreError",
    "QueueNotFoundError",
    "QueueAlreadyExistsError",
    "PodGroupNotFoundError",
    "ConflictError",
    "MissingStateFunctionError",
    # Store
    "QueueStore",
    "PodGroupIndex",
    # Aggregation
    "aggregate_queue",
    "count_phases",
    # Lifecycle
    "UpdateQueueStatusFn",
    "QueueLifecycleState",
    "OpenState",
    "ClosingState",
    "ClosedState",
    "UnknownState",
    "new_state",
    # Events
    "EventRecorder",
    "StoreEventRecorder",
    # Controller
    "QueueController",
    "QueueWorker",
    "WorkerState",
    # Service
    "ControllerConfig",
    "QueueControllerService",
]
