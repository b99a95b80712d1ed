"""
Queue Controller Service - Main entry point for the queue lifecycle controller.

This service wires all controller components:
- QueueStore (durable store)
- PodGroupIndex (read-through pod group index)
- StoreEventRecorder (queue events)
- QueueController (reconcile actions)
- QueueWorker (work queue and worker threads)

Usage:
    service = QueueControllerService.create(config)
    service.start()
    # ... worker reconciles queues in background ...
    service.stop()
"""

import logging
from pathlib import Path
from typing import Optional

from .config import ControllerConfig
from .controller import QueueController
from .entities import PodGroup, Queue, QueueAction, QueueEvent, QueueRequest, QueueState
from .errors import PodGroupNotFoundError
from .events import StoreEventRecorder
from .group_index import PodGroupIndex
from .persistence import QueueStore
from .worker import QueueWorker


logger = logging.getLogger(__name__)


class QueueControllerService:
    """
    Coordinates all controller components.

    Provides:
    - Component initialization and wiring
    - Startup with index rebuild and full resync
    - Graceful shutdown
    - API-friendly methods for queue and pod group operations
    """

    def __init__(
        self,
        store: QueueStore,
        group_index: PodGroupIndex,
        controller: QueueController,
        worker: QueueWorker,
        resync_on_start: bool = True,
    ):
        """
        Initialize the service with all components.

        Use QueueControllerService.create() for convenient construction.
        """
        self.store = store
        self.group_index = group_index
        self.controller = controller
        self.worker = worker
        self.resync_on_start = resync_on_start

    @classmethod
    def create(
        cls,
        config: Optional[ControllerConfig] = None,
        db_path: Optional[str | Path] = None,
    ) -> "QueueControllerService":
        """
        Create a service with all components wired together.

        Args:
            config: Controller settings (default: read from environment)
            db_path: Overrides config.db_path when given

        Returns:
            Configured QueueControllerService
        """
        config = config or ControllerConfig.from_env()

        store = QueueStore(db_path or config.db_path)
        group_index = PodGroupIndex(store)
        controller = QueueController(
            store=store,
            group_index=group_index,
            recorder=StoreEventRecorder(store),
        )
        worker = QueueWorker(
            controller,
            workers=config.workers,
            poll_interval=config.poll_interval,
            max_requeue=config.max_requeue,
        )

        return cls(
            store=store,
            group_index=group_index,
            controller=controller,
            worker=worker,
            resync_on_start=config.resync_on_start,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self.worker.is_running()

    def start(self, blocking: bool = False) -> int:
        """
        Rebuild the pod group index, request a full resync and start the worker.

        Returns:
            Number of queues requested for resync
        """
        self.group_index.rebuild()

        requested = 0
        if self.resync_on_start:
            requested = self.controller.resync_all()
            logger.info(f"Requested resync of {requested} queues")

        self.worker.start(blocking=blocking)
        return requested

    def stop(self, timeout: float = 30.0) -> None:
        self.worker.stop(timeout=timeout)

    # =========================================================================
    # Queue Operations
    # =========================================================================

    def create_queue(
        self,
        name: str,
        state: str = QueueState.OPEN.value,
        weight: int = 1,
    ) -> Queue:
        """Create a queue and request its first sync."""
        queue = self.store.create_queue(Queue.create(name=name, state=state, weight=weight))
        self.worker.enqueue(QueueRequest(queue_name=name))
        return queue

    def get_queue(self, name: str) -> Queue:
        return self.store.get_queue(name)

    def list_queues(self) -> list[Queue]:
        return self.store.list_queues()

    def delete_queue(self, name: str) -> None:
        self.store.delete_queue(name)

    def request_action(self, name: str, action: QueueAction) -> QueueRequest:
        """
        Queue an Open/Close/Sync for an existing queue.

        Raises:
            QueueNotFoundError: If the queue doesn't exist
        """
        self.store.get_queue(name)
        request = QueueRequest(queue_name=name, action=action)
        self.worker.enqueue(request)
        return request

    def list_events(self, name: str, limit: int = 100) -> list[QueueEvent]:
        return self.store.list_events(name, limit=limit)

    # =========================================================================
    # PodGroup Operations
    # =========================================================================

    def submit_pod_group(self, pod_group: PodGroup) -> PodGroup:
        """
        Store a pod group and bind it to its queue.

        Re-submitting an existing group replaces it; if its queue changed the
        group is moved so it stays bound to exactly one queue.
        """
        try:
            old = self.store.get_pod_group(pod_group.namespace, pod_group.name)
        except PodGroupNotFoundError:
            old = None

        self.store.create_pod_group(pod_group)
        if old is None:
            self.controller.add_pod_group(pod_group)
        else:
            self.controller.update_pod_group(old, pod_group)
        return pod_group

    def set_pod_group_phase(self, namespace: str, name: str, phase: str) -> PodGroup:
        """
        Record a pod group's new phase.

        Raises:
            PodGroupNotFoundError: If the pod group doesn't exist
        """
        old = self.store.get_pod_group(namespace, name)
        new = self.store.update_pod_group_phase(namespace, name, phase)
        self.controller.update_pod_group(old, new)
        return new

    def remove_pod_group(self, namespace: str, name: str) -> PodGroup:
        """
        Delete a pod group and unbind it from its queue.

        Raises:
            PodGroupNotFoundError: If the pod group doesn't exist
        """
        pod_group = self.store.delete_pod_group(namespace, name)
        self.controller.delete_pod_group(pod_group)
        return pod_group
