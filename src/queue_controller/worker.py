"""
Reconcile worker for the Queue Controller.

- Pulls queue requests and hands them to QueueController.handle_request
- At most one request per queue name in flight (serialization key = name)
- Coalesces waiting requests for the same queue
- Requeues failed requests with exponential backoff, up to max_requeue

What the worker MUST NOT do:
- Read or write queues itself
- Decide lifecycle states
"""

import logging
import threading
import time
from collections import OrderedDict
from enum import Enum
from typing import Optional

from .controller import QueueController
from .entities import QueueAction, QueueRequest


logger = logging.getLogger(__name__)


# Requeue limit before a failing queue is dropped
DEFAULT_MAX_REQUEUE = 15

# Backoff bounds for failed requests (seconds)
DEFAULT_BASE_DELAY = 0.005
DEFAULT_MAX_DELAY = 1000.0


class WorkerState(str, Enum):
    """Worker lifecycle states."""

    STOPPED = "STOPPED"
    RUNNING = "RUNNING"
    STOPPING = "STOPPING"


def _merge(existing: Optional[QueueAction], incoming: QueueAction) -> QueueAction:
    """An Open/Close request is never replaced by a Sync."""
    if existing is None or incoming != QueueAction.SYNC:
        return incoming
    return existing


class QueueWorker:
    """
    Work queue plus worker threads driving the controller.

    Key behaviors:
    1. enqueue() coalesces by queue name
    2. A name being processed is held; new requests for it wait until done
    3. Failure → requeue with backoff; after max_requeue failures → drop
    4. Success → failure counter reset
    """

    def __init__(
        self,
        controller: QueueController,
        workers: int = 1,
        poll_interval: float = 1.0,
        max_requeue: int = DEFAULT_MAX_REQUEUE,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
    ):
        """
        Initialize QueueWorker.

        Args:
            controller: QueueController that reconciles each request
            workers: Number of worker threads started by start()
            poll_interval: Seconds to wait when nothing is ready
            max_requeue: Failures tolerated per queue before dropping
            base_delay: First retry delay; doubles on each failure
            max_delay: Upper bound for the retry delay
        """
        self.controller = controller
        self.workers = workers
        self.poll_interval = poll_interval
        self.max_requeue = max_requeue
        self.base_delay = base_delay
        self.max_delay = max_delay

        self._state = WorkerState.STOPPED
        self._cond = threading.Condition()
        self._pending: "OrderedDict[str, QueueAction]" = OrderedDict()
        self._held: dict[str, QueueAction] = {}
        self._processing: set[str] = set()
        self._not_before: dict[str, float] = {}
        self._failures: dict[str, int] = {}
        self._threads: list[threading.Thread] = []
        self._stop_event = threading.Event()

        controller.set_enqueue(self.enqueue)

    @property
    def state(self) -> WorkerState:
        return self._state

    def is_running(self) -> bool:
        return self._state == WorkerState.RUNNING

    # =========================================================================
    # Queueing
    # =========================================================================

    def enqueue(self, request: QueueRequest) -> None:
        """Add a request, coalescing with any request already waiting."""
        name = request.queue_name
        with self._cond:
            if name in self._processing:
                self._held[name] = _merge(self._held.get(name), request.action)
            else:
                self._pending[name] = _merge(self._pending.get(name), request.action)
            self._cond.notify()

    def pending_count(self) -> int:
        with self._cond:
            return len(self._pending) + len(self._held)

    def failure_count(self, queue_name: str) -> int:
        with self._cond:
            return self._failures.get(queue_name, 0)

    def _pop_ready(self) -> Optional[QueueRequest]:
        """Pop the first waiting request whose backoff has elapsed. Caller holds the lock."""
        now = time.monotonic()
        for name in self._pending:
            if self._not_before.get(name, 0.0) <= now:
                action = self._pending.pop(name)
                self._not_before.pop(name, None)
                self._processing.add(name)
                return QueueRequest(queue_name=name, action=action)
        return None

    def _backoff(self, failures: int) -> float:
        return min(self.base_delay * (2 ** (failures - 1)), self.max_delay)

    # =========================================================================
    # Processing
    # =========================================================================

    def process_next(self, timeout: float = 0.0) -> Optional[QueueRequest]:
        """
        Process a single ready request.

        Args:
            timeout: Seconds to wait for a ready request

        Returns:
            The request that was handled (successfully or not), or None if
            nothing was ready
        """
        deadline = time.monotonic() + timeout
        with self._cond:
            request = self._pop_ready()
            while request is None:
                remaining = deadline - time.monotonic()
                if remaining <= 0 or self._stop_event.is_set():
                    return None
                self._cond.wait(min(remaining, self.poll_interval))
                request = self._pop_ready()

        name = request.queue_name
        error: Optional[Exception] = None
        try:
            self.controller.handle_request(request)
        except Exception as e:
            error = e

        with self._cond:
            self._processing.discard(name)

            if error is None:
                self._failures.pop(name, None)
            else:
                failures = self._failures.get(name, 0) + 1
                if failures <= self.max_requeue:
                    self._failures[name] = failures
                    delay = self._backoff(failures)
                    logger.warning(
                        f"Failed to handle {request.action.value} for queue {name} "
                        f"(attempt {failures}), retrying in {delay:.3f}s: {error}"
                    )
                    self._pending[name] = _merge(self._pending.get(name), request.action)
                    self._not_before[name] = time.monotonic() + delay
                else:
                    self._failures.pop(name, None)
                    logger.error(
                        f"Dropping {request.action.value} for queue {name} "
                        f"after {self.max_requeue} retries: {error}"
                    )

            held = self._held.pop(name, None)
            if held is not None:
                self._pending[name] = _merge(self._pending.get(name), held)

            self._cond.notify_all()

        return request

    def drain(self, max_iterations: int = 1000) -> int:
        """
        Process ready requests until none are left.

        Returns:
            Number of requests handled
        """
        handled = 0
        while handled < max_iterations and self.process_next() is not None:
            handled += 1
        return handled

    # =========================================================================
    # Worker Loop
    # =========================================================================

    def start(self, blocking: bool = False) -> None:
        """
        Start the worker loop.

        Args:
            blocking: If True, run one loop in the current thread. If False,
                start `workers` background threads.
        """
        if self._state != WorkerState.STOPPED:
            raise RuntimeError(f"Cannot start worker in {self._state.value} state")

        self._stop_event.clear()
        self._state = WorkerState.RUNNING

        if blocking:
            self._worker_loop()
            return

        for i in range(self.workers):
            thread = threading.Thread(
                target=self._worker_loop,
                name=f"queue-worker-{i}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)

    def stop(self, timeout: float = 30.0) -> None:
        """
        Stop the worker loop gracefully.

        Requests in flight finish; waiting requests stay queued.
        """
        if self._state == WorkerState.STOPPED:
            return

        logger.info("Stopping queue worker...")
        self._state = WorkerState.STOPPING
        self._stop_event.set()
        with self._cond:
            self._cond.notify_all()

        for thread in self._threads:
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"{thread.name} did not stop within timeout")
        self._threads = []

        self._state = WorkerState.STOPPED
        logger.info("Queue worker stopped")

    def _worker_loop(self) -> None:
        """Main worker loop."""
        logger.info("Queue worker loop started")

        while not self._stop_event.is_set():
            try:
                self.process_next(timeout=self.poll_interval)
            except Exception as e:
                logger.error(f"Error in queue worker loop: {e}", exc_info=True)
                self._stop_event.wait(self.poll_interval)

        logger.info("Queue worker loop ended")
