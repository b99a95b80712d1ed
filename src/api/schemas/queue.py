"""
Queue API schemas.

Request/response models for /queues and /podgroups.
"""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from src.queue_controller.entities import PodGroup, Queue, QueueEvent


# =============================================================================
# Queue Schemas
# =============================================================================


class QueueCreateRequest(BaseModel):
    """Request to create a new queue."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=253,
        pattern=r"^[a-z0-9]([-a-z0-9.]*[a-z0-9])?$",
        description="Unique queue name",
        json_schema_extra={"examples": ["default", "batch-training"]},
    )
    state: Literal["Open", "Closed"] = Field(
        default="Open",
        description="Desired lifecycle state",
    )
    weight: int = Field(default=1, ge=1, le=65535, description="Queue weight")


class QueueStatusModel(BaseModel):
    """Observed queue status."""

    state: str = Field(default="", description="Lifecycle state (Open/Closing/Closed/Unknown)")
    pending: int = Field(default=0, description="Pending pod groups")
    running: int = Field(default=0, description="Running pod groups")
    unknown: int = Field(default=0, description="Pod groups in Unknown phase")
    inqueue: int = Field(default=0, description="Inqueue pod groups")


class QueueResponse(BaseModel):
    """Response representing a Queue."""

    name: str
    desired_state: str = Field(..., description="spec.state (Open/Closed)")
    weight: int
    status: QueueStatusModel
    resource_version: int
    created_at: str

    @classmethod
    def from_queue(cls, queue: Queue) -> "QueueResponse":
        return cls(
            name=queue.name,
            desired_state=queue.spec.state,
            weight=queue.spec.weight,
            status=QueueStatusModel(
                state=queue.status.state,
                pending=queue.status.pending,
                running=queue.status.running,
                unknown=queue.status.unknown,
                inqueue=queue.status.inqueue,
            ),
            resource_version=queue.resource_version,
            created_at=queue.created_at,
        )


class QueueListResponse(BaseModel):
    """Response for queue list endpoint."""

    queues: List[QueueResponse] = Field(default_factory=list)
    total: int = Field(..., description="Total number of queues")


class QueueActionResponse(BaseModel):
    """Response for an accepted open/close/sync request."""

    queue: str
    action: str = Field(..., description="OpenQueue / CloseQueue / SyncQueue")
    accepted: bool = True
    message: Optional[str] = None


class QueueEventResponse(BaseModel):
    """A recorded queue event."""

    event_id: Optional[int] = None
    event_type: str = Field(..., description="Normal or Warning")
    reason: str
    message: str
    created_at: str

    @classmethod
    def from_event(cls, event: QueueEvent) -> "QueueEventResponse":
        return cls(
            event_id=event.event_id,
            event_type=event.event_type.value,
            reason=event.reason,
            message=event.message,
            created_at=event.created_at,
        )


class QueueEventListResponse(BaseModel):
    """Response for queue events endpoint."""

    queue: str
    events: List[QueueEventResponse] = Field(default_factory=list)


# =============================================================================
# PodGroup Schemas
# =============================================================================


PodGroupPhaseLiteral = Literal["Pending", "Running", "Unknown", "Inqueue", "Completed"]


class PodGroupCreateRequest(BaseModel):
    """Request to submit a pod group bound to a queue."""

    namespace: str = Field(default="default", description="Pod group namespace")
    name: str = Field(..., min_length=1, description="Pod group name")
    queue: str = Field(..., min_length=1, description="Queue the pod group is bound to")
    phase: PodGroupPhaseLiteral = Field(default="Pending", description="Initial phase")


class PodGroupPhaseRequest(BaseModel):
    """Request to change a pod group's phase."""

    phase: PodGroupPhaseLiteral


class PodGroupResponse(BaseModel):
    """Response representing a PodGroup."""

    namespace: str
    name: str
    queue: str
    phase: str
    created_at: str

    @classmethod
    def from_pod_group(cls, pod_group: PodGroup) -> "PodGroupResponse":
        return cls(
            namespace=pod_group.namespace,
            name=pod_group.name,
            queue=pod_group.queue,
            phase=pod_group.phase,
            created_at=pod_group.created_at,
        )
