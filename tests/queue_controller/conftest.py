"""
Queue Controller Test Fixtures.

Base fixtures:
  - Empty temp-file database
  - Pod group index over that database
  - In-memory event recorder

Factory fixtures:
  - create_queue: store a queue with a given spec/status
  - create_pod_group: store and index a pod group
"""

import pytest
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Callable, Generator, Optional

from src.queue_controller import (
    EventType,
    PodGroup,
    PodGroupIndex,
    Queue,
    QueueController,
    QueueStatus,
    QueueStore,
    QueueWorker,
)


class RecordingEventRecorder:
    """Event recorder that keeps events in memory for assertions."""

    def __init__(self):
        self.events: list[tuple[str, EventType, str, str]] = []

    def record(self, queue: Queue, event_type: EventType, reason: str, message: str) -> None:
        self.events.append((queue.name, event_type, reason, message))

    def of_type(self, event_type: EventType) -> list[tuple[str, EventType, str, str]]:
        return [e for e in self.events if e[1] == event_type]


def pass_through(status: QueueStatus, pod_groups: Optional[list[str]]) -> QueueStatus:
    """Policy that returns the status it was given."""
    return replace(status)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def temp_db_path() -> Generator[str, None, None]:
    """Create a temporary database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    yield db_path

    Path(db_path).unlink(missing_ok=True)
    Path(f"{db_path}-wal").unlink(missing_ok=True)
    Path(f"{db_path}-shm").unlink(missing_ok=True)


@pytest.fixture
def store(temp_db_path: str) -> QueueStore:
    """Create a fresh QueueStore with empty database."""
    return QueueStore(temp_db_path)


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def group_index(store: QueueStore) -> PodGroupIndex:
    return PodGroupIndex(store)


@pytest.fixture
def recorder() -> RecordingEventRecorder:
    return RecordingEventRecorder()


@pytest.fixture
def controller(
    store: QueueStore,
    group_index: PodGroupIndex,
    recorder: RecordingEventRecorder,
) -> QueueController:
    return QueueController(store=store, group_index=group_index, recorder=recorder)


@pytest.fixture
def worker(controller: QueueController) -> QueueWorker:
    """Worker with no retry delay so requeued requests are ready at once."""
    return QueueWorker(controller, poll_interval=0.05, max_requeue=3, base_delay=0.0)


# =============================================================================
# Factory Fixtures
# =============================================================================


@pytest.fixture
def create_queue(store: QueueStore) -> Callable:
    """
    Factory fixture for creating queues.

    Status fields are written with a follow-up status update, the same way
    the controller would have written them.
    """

    def _create(
        name: str = "q1",
        spec_state: str = "Open",
        status_state: str = "",
        **counts,
    ) -> Queue:
        queue = store.create_queue(Queue.create(name=name, state=spec_state))
        if status_state or counts:
            queue.status = QueueStatus(state=status_state, **counts)
            queue = store.update_queue_status(queue)
        return queue

    return _create


@pytest.fixture
def create_pod_group(store: QueueStore, group_index: PodGroupIndex) -> Callable:
    """Factory fixture for creating and indexing pod groups."""
    counter = {"n": 0}

    def _create(
        queue: str,
        phase: str = "Pending",
        name: Optional[str] = None,
        namespace: str = "default",
    ) -> PodGroup:
        counter["n"] += 1
        pod_group = PodGroup(
            namespace=namespace,
            name=name or f"pg-{counter['n']}",
            queue=queue,
            phase=phase,
        )
        store.create_pod_group(pod_group)
        group_index.add(pod_group)
        return pod_group

    return _create
