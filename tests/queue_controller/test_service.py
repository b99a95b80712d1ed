"""
End-to-End Tests for the Queue Controller Service.

The full stack (store, index, controller, worker, event recorder) is wired
by QueueControllerService.create(); requests are drained synchronously so
each step is deterministic.
"""

import pytest

from src.queue_controller import (
    ControllerConfig,
    EventType,
    PodGroup,
    PodGroupNotFoundError,
    QueueAction,
    QueueControllerService,
    QueueNotFoundError,
    QueueStatus,
)


@pytest.fixture
def service(temp_db_path: str) -> QueueControllerService:
    config = ControllerConfig(db_path=temp_db_path, resync_on_start=True)
    return QueueControllerService.create(config)


class TestQueueLifecycle:

    def test_open_close_drain_reopen(self, service: QueueControllerService):
        """Open → Closing while groups run → Closed once drained → Open again."""
        service.create_queue("q1", state="Open")
        service.submit_pod_group(PodGroup("team-a", "train", "q1", "Running"))
        service.submit_pod_group(PodGroup("team-a", "eval", "q1", "Pending"))
        service.worker.drain()

        queue = service.get_queue("q1")
        assert queue.status == QueueStatus(state="Open", pending=1, running=1)

        service.request_action("q1", QueueAction.CLOSE)
        service.worker.drain()

        queue = service.get_queue("q1")
        assert queue.spec.state == "Closed"
        assert queue.status.state == "Closing"

        service.set_pod_group_phase("team-a", "eval", "Running")
        service.worker.drain()
        assert service.get_queue("q1").status.running == 2

        service.remove_pod_group("team-a", "train")
        service.remove_pod_group("team-a", "eval")
        service.worker.drain()

        queue = service.get_queue("q1")
        assert queue.status == QueueStatus(state="Closed")

        service.request_action("q1", QueueAction.OPEN)
        service.worker.drain()

        queue = service.get_queue("q1")
        assert queue.spec.state == "Open"
        assert queue.status.state == "Open"

        events = service.list_events("q1")
        assert [(e.event_type, e.reason, e.message) for e in events] == [
            (EventType.NORMAL, "CloseQueue", "Close queue succeed"),
            (EventType.NORMAL, "OpenQueue", "Open queue succeed"),
        ]

    def test_created_closed_queue(self, service: QueueControllerService):
        service.create_queue("q1", state="Closed")
        service.worker.drain()

        assert service.get_queue("q1").status.state == "Closed"
        assert service.list_events("q1") == []

    def test_repeated_close_is_quiet(self, service: QueueControllerService):
        service.create_queue("q1", state="Open")
        service.worker.drain()

        service.request_action("q1", QueueAction.CLOSE)
        service.worker.drain()
        service.request_action("q1", QueueAction.CLOSE)
        service.worker.drain()

        assert len(service.list_events("q1")) == 1

    def test_group_moved_between_queues(self, service: QueueControllerService):
        service.create_queue("q1")
        service.create_queue("q2")
        service.submit_pod_group(PodGroup("ns", "pg", "q1", "Running"))
        service.worker.drain()

        old = service.store.get_pod_group("ns", "pg")
        new = PodGroup("ns", "pg", "q2", "Running")
        service.store.create_pod_group(new)
        service.controller.update_pod_group(old, new)
        service.worker.drain()

        assert service.get_queue("q1").status.running == 0
        assert service.get_queue("q2").status.running == 1

    def test_resubmitted_group_moves_to_new_queue(self, service: QueueControllerService):
        service.create_queue("q1")
        service.create_queue("q2")
        service.submit_pod_group(PodGroup("ns", "pg", "q1", "Running"))
        service.worker.drain()

        service.submit_pod_group(PodGroup("ns", "pg", "q2", "Running"))
        service.worker.drain()

        assert (service.get_queue("q1").status.running, service.get_queue("q2").status.running) == (0, 1)
        assert service.group_index.list_bound_group_keys("q1") == []

    def test_resubmitted_group_same_queue_counts_once(self, service: QueueControllerService):
        service.create_queue("q1")
        service.submit_pod_group(PodGroup("ns", "pg", "q1", "Pending"))
        service.submit_pod_group(PodGroup("ns", "pg", "q1", "Running"))
        service.worker.drain()

        assert service.get_queue("q1").status == QueueStatus(state="Open", running=1)

    def test_close_request_settles_half_closed_queue(self, service: QueueControllerService):
        """Spec already Closed but status left Open: a Close request finishes the job."""
        service.create_queue("q1")
        service.worker.drain()
        queue = service.get_queue("q1")
        queue.spec.state = "Closed"
        service.store.update_queue(queue)

        service.request_action("q1", QueueAction.CLOSE)
        service.worker.drain()

        assert service.get_queue("q1").status.state == "Closed"

    def test_create_queue_defaults_to_open(self, service: QueueControllerService):
        assert service.create_queue("q1").spec.state == "Open"

    def test_action_on_missing_queue(self, service: QueueControllerService):
        with pytest.raises(QueueNotFoundError):
            service.request_action("nope", QueueAction.OPEN)

    def test_phase_of_missing_group(self, service: QueueControllerService):
        with pytest.raises(PodGroupNotFoundError):
            service.set_pod_group_phase("ns", "nope", "Running")

    def test_deleted_queue_requests_are_dropped_quietly(self, service: QueueControllerService):
        service.create_queue("q1")
        service.delete_queue("q1")

        assert service.worker.drain() == 1
        assert service.worker.failure_count("q1") == 0


class TestStartup:

    def test_start_rebuilds_index_and_resyncs(self, temp_db_path: str):
        first = QueueControllerService.create(ControllerConfig(db_path=temp_db_path))
        first.create_queue("q1")
        first.submit_pod_group(PodGroup("ns", "a", "q1", "Inqueue"))
        # Never drained: status is still empty on disk

        second = QueueControllerService.create(ControllerConfig(db_path=temp_db_path))
        requested = second.start()
        try:
            assert requested == 1
            assert second.is_running
        finally:
            second.stop(timeout=5.0)

        second.worker.drain()
        assert second.get_queue("q1").status == QueueStatus(state="Open", inqueue=1)

    def test_start_without_resync(self, temp_db_path: str):
        service = QueueControllerService.create(
            ControllerConfig(db_path=temp_db_path, resync_on_start=False)
        )
        service.store.create_pod_group(PodGroup("ns", "a", "q1"))

        requested = service.start()
        service.stop(timeout=5.0)

        assert requested == 0
        assert service.group_index.list_bound_group_keys("q1") == ["ns/a"]
