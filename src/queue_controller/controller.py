"""
Queue Controller reconcile actions.

Three entry points keep a queue's status consistent with its spec and with
the pod groups bound to it:
- sync_queue: recompute counts, apply the policy, write status on change
- open_queue: set spec.state=Open, then apply the policy to the fresh copy
- close_queue: set spec.state=Closed, then apply the policy with the bound
  pod groups so draining work is accounted for

Every action either returns None or raises. Nothing is retried here; the
worker requeues the queue name on error.
"""

import logging
from dataclasses import replace
from typing import Callable, Optional

from .aggregator import aggregate_queue
from .entities import (
    EventType,
    PodGroup,
    Queue,
    QueueAction,
    QueueRequest,
    QueueState,
)
from .errors import MissingStateFunctionError, QueueNotFoundError, StoreError
from .events import EventRecorder
from .group_index import PodGroupIndex
from .persistence import QueueStore
from .state import UpdateQueueStatusFn, new_state


logger = logging.getLogger(__name__)


class QueueController:
    """
    Reconciles queues against their spec and bound pod groups.

    Holds no per-queue state between calls: every action starts from the
    queue it is given and from fresh store reads.
    """

    def __init__(
        self,
        store: QueueStore,
        group_index: PodGroupIndex,
        recorder: EventRecorder,
    ):
        """
        Initialize QueueController.

        Args:
            store: Durable store for queue reads and writes
            group_index: Read-through index of pod groups per queue
            recorder: Sink for open/close outcome events
        """
        self.store = store
        self.group_index = group_index
        self.recorder = recorder

        self._enqueue: Optional[Callable[[QueueRequest], None]] = None

    def set_enqueue(self, callback: Callable[[QueueRequest], None]) -> None:
        """Set the callback used to hand follow-up requests to the worker."""
        self._enqueue = callback

    def _request(self, queue_name: str, action: QueueAction = QueueAction.SYNC) -> None:
        if self._enqueue is not None:
            self._enqueue(QueueRequest(queue_name=queue_name, action=action))

    # =========================================================================
    # Request Handling
    # =========================================================================

    def handle_request(self, request: QueueRequest) -> None:
        """
        Reconcile one queue for one action.

        The policy is chosen from the queue's current lifecycle state.
        A queue that no longer exists is treated as done.
        """
        try:
            queue = self.store.get_queue(request.queue_name)
        except QueueNotFoundError:
            logger.info(f"Queue {request.queue_name} has been deleted, skipping {request.action.value}")
            return

        logger.debug(
            f"Handling {request.action.value} for queue {queue.name} "
            f"(status {queue.status.state or '<none>'})"
        )
        new_state(queue, self).execute(request.action)

    # =========================================================================
    # Reconcile Actions
    # =========================================================================

    def sync_queue(
        self,
        queue: Queue,
        update_state_fn: Optional[UpdateQueueStatusFn],
    ) -> None:
        """
        Recompute a queue's status and persist it if it changed.

        Without a policy the stored lifecycle state is carried forward and
        only the counts are refreshed.

        Raises:
            StoreError: If a bound pod group can't be read or the status
                write fails
        """
        logger.debug(f"Begin to sync queue {queue.name}.")

        counts, pod_groups = aggregate_queue(self.group_index, queue.name)
        queue_status = replace(counts, state=queue.status.state)

        if update_state_fn is not None:
            queue_status = update_state_fn(queue_status, pod_groups)

        # ignore update when status does not change
        if queue_status == queue.status:
            return

        new_queue = queue.deep_copy()
        new_queue.status = queue_status
        try:
            self.store.update_queue_status(new_queue)
        except StoreError as e:
            logger.error(f"Failed to update status of Queue {new_queue.name}: {e}.")
            raise

    def open_queue(
        self,
        queue: Queue,
        update_state_fn: Optional[UpdateQueueStatusFn],
    ) -> None:
        """
        Set a queue's desired state to Open.

        Raises:
            StoreError: If the spec update, refetch or status update fails
            MissingStateFunctionError: If no policy was given
        """
        logger.debug(f"Begin to open queue {queue.name}.")
        self._transition(queue, QueueState.OPEN, QueueAction.OPEN, update_state_fn)

    def close_queue(
        self,
        queue: Queue,
        update_state_fn: Optional[UpdateQueueStatusFn],
    ) -> None:
        """
        Set a queue's desired state to Closed.

        Raises:
            StoreError: If the spec update, refetch, aggregation or status
                update fails
            MissingStateFunctionError: If no policy was given
        """
        logger.debug(f"Begin to close queue {queue.name}.")
        self._transition(queue, QueueState.CLOSED, QueueAction.CLOSE, update_state_fn)

    def _transition(
        self,
        queue: Queue,
        target: QueueState,
        action: QueueAction,
        update_state_fn: Optional[UpdateQueueStatusFn],
    ) -> None:
        """Shared body of open_queue and close_queue."""
        verb = "Open" if action == QueueAction.OPEN else "Close"
        reason = action.value

        new_queue = queue.deep_copy()
        new_queue.spec.state = target.value

        if queue.spec.state == new_queue.spec.state:
            return

        try:
            self.store.update_queue(new_queue)
        except StoreError as e:
            self.recorder.record(
                new_queue, EventType.WARNING, reason, f"{verb} queue failed for {e}"
            )
            raise

        self.recorder.record(new_queue, EventType.NORMAL, reason, f"{verb} queue succeed")

        fresh = self.store.get_queue(new_queue.name)

        if update_state_fn is None:
            raise MissingStateFunctionError()

        new_queue = fresh.deep_copy()
        if action == QueueAction.CLOSE:
            counts, pod_groups = aggregate_queue(self.group_index, new_queue.name)
            current = replace(counts, state=fresh.status.state)
            new_queue.status = update_state_fn(current, pod_groups)
        else:
            new_queue.status = update_state_fn(fresh.status, None)

        if queue.status.state == new_queue.status.state:
            return

        try:
            self.store.update_queue_status(new_queue)
        except StoreError as e:
            self.recorder.record(
                new_queue,
                EventType.WARNING,
                reason,
                f"Update queue status from {queue.status.state} to "
                f"{new_queue.status.state} failed for {e}",
            )
            raise

    # =========================================================================
    # Pod Group Handlers
    # =========================================================================

    def add_pod_group(self, pod_group: PodGroup) -> None:
        """Index a new pod group and resync its queue."""
        self.group_index.add(pod_group)
        self._request(pod_group.queue)

    def update_pod_group(self, old: PodGroup, new: PodGroup) -> None:
        """Reindex a changed pod group and resync the affected queues."""
        if old.queue != new.queue:
            self.group_index.move(old, new)
            self._request(old.queue)
        self._request(new.queue)

    def delete_pod_group(self, pod_group: PodGroup) -> None:
        """Drop a pod group from the index and resync its queue."""
        self.group_index.delete(pod_group)
        self._request(pod_group.queue)

    def resync_all(self) -> int:
        """
        Request a sync for every stored queue.

        Returns:
            Number of queues requested
        """
        queues = self.store.list_queues()
        for queue in queues:
            self._request(queue.name)
        return len(queues)
