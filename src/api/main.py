"""
FastAPI application entry point.

Command surface for the queue lifecycle controller: create queues, submit
pod groups, and request open/close/sync actions that the controller's worker
applies in the background.

Optional API key authentication via API_AUTH_ENABLED / API_KEY.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI

from src import __version__
from .routers import queues, podgroups
from ._controller_state import (
    init_controller_service,
    shutdown_controller_service,
    get_controller_service,
)
from .dependencies.auth import verify_api_key


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup builds the controller service, rebuilds the pod group index,
    requests a full resync and starts the worker threads. Shutdown stops
    the workers after in-flight reconciles finish.
    """
    service = init_controller_service()
    if not service.is_running:
        service.start(blocking=False)

    yield

    shutdown_controller_service()


tags_metadata = [
    {
        "name": "queues",
        "description": "Queue lifecycle - create queues, request open/close/sync, inspect status and events",
    },
    {
        "name": "podgroups",
        "description": "Pod group submission - bind pod groups to queues and report their phase",
    },
]

app = FastAPI(
    title="Queue Lifecycle Controller API",
    lifespan=lifespan,
    description="""
## Queue Lifecycle Controller API

Keeps each queue's observed status consistent with its desired state and
with the pod groups bound to it.

### Authentication
When `API_AUTH_ENABLED=true`, all endpoints except `/health` and `/controller/status`
require an `X-API-Key` header matching the `API_KEY` environment variable.

### Usage
```bash
# Start server
uvicorn src.api.main:app --host 127.0.0.1 --port 8000

# Create a queue and close it
curl -X POST http://localhost:8000/queues -H "Content-Type: application/json" \\
  -d '{"name": "q1", "state": "Open"}'
curl -X POST http://localhost:8000/queues/q1/close
```
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=tags_metadata,
)


# Health check - NO authentication (operational endpoints)
@app.get("/health")
async def health_check():
    """Health check endpoint. Not authenticated."""
    return {"status": "ok", "version": __version__}


@app.get("/controller/status")
async def controller_status():
    """
    Get worker status.

    Not authenticated (operational endpoint).
    """
    service = get_controller_service()
    return {
        "worker_state": service.worker.state.value,
        "pending_requests": service.worker.pending_count(),
    }


auth_dependency = [Depends(verify_api_key)]

app.include_router(
    queues.router, prefix="/queues", tags=["queues"], dependencies=auth_dependency
)
app.include_router(
    podgroups.router, prefix="/podgroups", tags=["podgroups"], dependencies=auth_dependency
)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
