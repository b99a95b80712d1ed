"""
PodGroup router.

Submission path for pod groups. Every change re-indexes the pod group and
requests a sync of the queue(s) it affects.
"""

from fastapi import APIRouter, HTTPException, status

from src.queue_controller.entities import PodGroup
from src.queue_controller.errors import PodGroupNotFoundError

from ..schemas.queue import PodGroupCreateRequest, PodGroupPhaseRequest, PodGroupResponse
from .._controller_state import get_controller_service


router = APIRouter()


@router.post("", response_model=PodGroupResponse, status_code=status.HTTP_201_CREATED)
async def submit_pod_group(request: PodGroupCreateRequest):
    """Create (or replace) a pod group bound to a queue."""
    pod_group = get_controller_service().submit_pod_group(
        PodGroup(
            namespace=request.namespace,
            name=request.name,
            queue=request.queue,
            phase=request.phase,
        )
    )
    return PodGroupResponse.from_pod_group(pod_group)


@router.put("/{namespace}/{name}/phase", response_model=PodGroupResponse)
async def set_pod_group_phase(namespace: str, name: str, request: PodGroupPhaseRequest):
    """Record a pod group's new phase."""
    try:
        pod_group = get_controller_service().set_pod_group_phase(namespace, name, request.phase)
    except PodGroupNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return PodGroupResponse.from_pod_group(pod_group)


@router.delete("/{namespace}/{name}", response_model=PodGroupResponse)
async def remove_pod_group(namespace: str, name: str):
    """Delete a pod group and unbind it from its queue."""
    try:
        pod_group = get_controller_service().remove_pod_group(namespace, name)
    except PodGroupNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return PodGroupResponse.from_pod_group(pod_group)
