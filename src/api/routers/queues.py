"""
Queue router.

Endpoints under /queues/* to create and inspect queues and to request
lifecycle actions. Actions are handed to the controller's worker and
applied asynchronously; poll GET /queues/{name} or its events to observe
the outcome.
"""

from fastapi import APIRouter, HTTPException, Query, status

from src.queue_controller.entities import QueueAction
from src.queue_controller.errors import QueueAlreadyExistsError, QueueNotFoundError

from ..schemas.queue import (
    QueueActionResponse,
    QueueCreateRequest,
    QueueEventListResponse,
    QueueEventResponse,
    QueueListResponse,
    QueueResponse,
)
from .._controller_state import get_controller_service


router = APIRouter()


_ACTIONS = {
    "open": QueueAction.OPEN,
    "close": QueueAction.CLOSE,
    "sync": QueueAction.SYNC,
}


@router.post("", response_model=QueueResponse, status_code=status.HTTP_201_CREATED)
async def create_queue(request: QueueCreateRequest):
    """Create a queue. Its status is filled in by the first sync."""
    service = get_controller_service()

    try:
        queue = service.create_queue(request.name, request.state, weight=request.weight)
    except QueueAlreadyExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return QueueResponse.from_queue(queue)


@router.get("", response_model=QueueListResponse)
async def list_queues():
    """List all queues."""
    queues = get_controller_service().list_queues()
    return QueueListResponse(
        queues=[QueueResponse.from_queue(q) for q in queues],
        total=len(queues),
    )


@router.get("/{name}", response_model=QueueResponse)
async def get_queue(name: str):
    """Get a queue's spec and observed status."""
    try:
        queue = get_controller_service().get_queue(name)
    except QueueNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return QueueResponse.from_queue(queue)


@router.delete("/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_queue(name: str):
    """Delete a queue. Bound pod groups are not touched."""
    try:
        get_controller_service().delete_queue(name)
    except QueueNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post(
    "/{name}/{action}",
    response_model=QueueActionResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_queue_action(name: str, action: str):
    """
    Request a lifecycle action: open, close or sync.

    Accepted requests are coalesced per queue; an open/close is never
    replaced by a later sync.
    """
    queue_action = _ACTIONS.get(action)
    if queue_action is None:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown action '{action}'. Use one of: {', '.join(_ACTIONS)}",
        )

    try:
        get_controller_service().request_action(name, queue_action)
    except QueueNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return QueueActionResponse(
        queue=name,
        action=queue_action.value,
        message=f"{queue_action.value} accepted for queue {name}",
    )


@router.get("/{name}/events", response_model=QueueEventListResponse)
async def list_queue_events(name: str, limit: int = Query(default=100, ge=1, le=1000)):
    """List a queue's open/close events, oldest first."""
    events = get_controller_service().list_events(name, limit=limit)
    return QueueEventListResponse(
        queue=name,
        events=[QueueEventResponse.from_event(e) for e in events],
    )
