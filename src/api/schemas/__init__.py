"""
API Schemas package.

Pydantic models for request/response validation.
"""

from .queue import (
    QueueCreateRequest,
    QueueStatusModel,
    QueueResponse,
    QueueListResponse,
    QueueActionResponse,
    QueueEventResponse,
    QueueEventListResponse,
    PodGroupCreateRequest,
    PodGroupPhaseRequest,
    PodGroupResponse,
)

__all__ = [
    "QueueCreateRequest",
    "QueueStatusModel",
    "QueueResponse",
    "QueueListResponse",
    "QueueActionResponse",
    "QueueEventResponse",
    "QueueEventListResponse",
    "PodGroupCreateRequest",
    "PodGroupPhaseRequest",
    "PodGroupResponse",
]
