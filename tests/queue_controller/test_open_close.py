"""
Open/Close Action Tests.

open_queue / close_queue write the spec, record one event for the spec
change, re-read the queue, apply the policy and write status only when the
lifecycle state moved.
"""

import pytest
from dataclasses import replace
from unittest.mock import patch

from src.queue_controller import (
    ConflictError,
    EventType,
    MissingStateFunctionError,
    QueueController,
    QueueStore,
    StoreError,
)
from src.queue_controller.state import draining_status, open_status

from .conftest import pass_through


def closing_while_running(status, pod_groups):
    """Closed desired: Closing while anything runs, Closed otherwise."""
    if status.running > 0:
        return replace(status, state="Closing")
    return replace(status, state="Closed")


# =============================================================================
# Open
# =============================================================================


class TestOpenQueue:

    def test_already_open_is_noop(self, store: QueueStore, controller: QueueController, recorder, create_queue):
        queue = create_queue("q1", spec_state="Open", status_state="Open")

        with patch.object(store, "update_queue") as spec_spy, \
                patch.object(store, "update_queue_status") as status_spy:
            controller.open_queue(queue, open_status)

        spec_spy.assert_not_called()
        status_spy.assert_not_called()
        assert recorder.events == []

    def test_opens_closed_queue(self, store: QueueStore, controller: QueueController, recorder, create_queue):
        queue = create_queue("q1", spec_state="Closed", status_state="Closed")

        controller.open_queue(queue, open_status)

        stored = store.get_queue("q1")
        assert stored.spec.state == "Open"
        assert stored.status.state == "Open"
        assert recorder.events == [("q1", EventType.NORMAL, "OpenQueue", "Open queue succeed")]

    def test_policy_gets_refetched_status_and_no_groups(
        self, store: QueueStore, controller: QueueController, create_queue, create_pod_group
    ):
        queue = create_queue("q1", spec_state="Closed", status_state="Closed", running=4)
        create_pod_group("q1", "Running")
        seen = {}

        def policy(status, pod_groups):
            seen["status"] = status
            seen["pod_groups"] = pod_groups
            return replace(status, state="Open")

        controller.open_queue(queue, policy)

        assert seen["pod_groups"] is None
        assert seen["status"].running == 4
        assert seen["status"].state == "Closed"

    def test_unchanged_state_skips_status_write(
        self, store: QueueStore, controller: QueueController, recorder, create_queue
    ):
        queue = create_queue("q1", spec_state="Closed", status_state="Closed")

        with patch.object(store, "update_queue_status") as status_spy:
            controller.open_queue(queue, pass_through)

        status_spy.assert_not_called()
        assert store.get_queue("q1").spec.state == "Open"
        assert len(recorder.of_type(EventType.NORMAL)) == 1

    def test_spec_failure_records_warning_and_skips_status(
        self, store: QueueStore, controller: QueueController, recorder, create_queue
    ):
        queue = create_queue("q1", spec_state="Closed", status_state="Closed")

        with patch.object(store, "update_queue", side_effect=StoreError("store unavailable")), \
                patch.object(store, "update_queue_status") as status_spy:
            with pytest.raises(StoreError):
                controller.open_queue(queue, open_status)

        status_spy.assert_not_called()
        assert recorder.events == [
            ("q1", EventType.WARNING, "OpenQueue", "Open queue failed for store unavailable")
        ]

    def test_missing_policy_is_internal_error(
        self, store: QueueStore, controller: QueueController, create_queue
    ):
        queue = create_queue("q1", spec_state="Closed", status_state="Closed")

        with patch.object(store, "update_queue_status") as status_spy:
            with pytest.raises(MissingStateFunctionError, match="internal error"):
                controller.open_queue(queue, None)

        status_spy.assert_not_called()

    def test_missing_policy_is_not_a_store_error(self):
        assert not issubclass(MissingStateFunctionError, StoreError)

    def test_status_failure_records_transition_warning(
        self, store: QueueStore, controller: QueueController, recorder, create_queue
    ):
        queue = create_queue("q1", spec_state="Closed", status_state="Closed")

        with patch.object(store, "update_queue_status", side_effect=StoreError("timeout")):
            with pytest.raises(StoreError):
                controller.open_queue(queue, open_status)

        assert recorder.events == [
            ("q1", EventType.NORMAL, "OpenQueue", "Open queue succeed"),
            ("q1", EventType.WARNING, "OpenQueue",
             "Update queue status from Closed to Open failed for timeout"),
        ]
        # Spec change stays; the next sync converges status
        stored = store.get_queue("q1")
        assert stored.spec.state == "Open"
        assert stored.status.state == "Closed"

    def test_stale_queue_conflicts(
        self, store: QueueStore, controller: QueueController, recorder, create_queue
    ):
        stale = create_queue("q1", spec_state="Closed", status_state="Closed")
        fresh = store.get_queue("q1")
        fresh.spec.weight = 5
        store.update_queue(fresh)

        with pytest.raises(ConflictError):
            controller.open_queue(stale, open_status)

        assert [e[1] for e in recorder.events] == [EventType.WARNING]
        assert store.get_queue("q1").spec.state == "Closed"

    def test_deleted_before_refetch(
        self, store: QueueStore, controller: QueueController, create_queue
    ):
        queue = create_queue("q1", spec_state="Closed")
        real_update = store.update_queue

        def update_then_delete(q):
            result = real_update(q)
            store.delete_queue(q.name)
            return result

        with patch.object(store, "update_queue", side_effect=update_then_delete):
            with pytest.raises(StoreError):
                controller.open_queue(queue, open_status)


# =============================================================================
# Close
# =============================================================================


class TestCloseQueue:

    def test_already_closed_is_noop(self, store: QueueStore, controller: QueueController, recorder, create_queue):
        queue = create_queue("q1", spec_state="Closed", status_state="Closed")

        with patch.object(store, "update_queue") as spec_spy:
            controller.close_queue(queue, draining_status)

        spec_spy.assert_not_called()
        assert recorder.events == []

    def test_close_with_draining_groups(
        self, store: QueueStore, controller: QueueController, recorder, create_queue, create_pod_group
    ):
        """Two Running groups: spec goes Closed, status goes Closing with running=2."""
        queue = create_queue("q2", spec_state="Open", status_state="Open")
        create_pod_group("q2", "Running")
        create_pod_group("q2", "Running")

        with patch.object(store, "update_queue", wraps=store.update_queue) as spec_spy, \
                patch.object(store, "update_queue_status", wraps=store.update_queue_status) as status_spy:
            controller.close_queue(queue, closing_while_running)

        assert spec_spy.call_count == 1
        assert spec_spy.call_args[0][0].spec.state == "Closed"
        assert status_spy.call_count == 1

        stored = store.get_queue("q2")
        assert stored.spec.state == "Closed"
        assert stored.status.state == "Closing"
        assert stored.status.running == 2
        assert recorder.events == [("q2", EventType.NORMAL, "CloseQueue", "Close queue succeed")]

    def test_close_empty_queue(self, store: QueueStore, controller: QueueController, create_queue):
        queue = create_queue("q1", spec_state="Open", status_state="Open")

        controller.close_queue(queue, draining_status)

        assert store.get_queue("q1").status.state == "Closed"

    def test_policy_gets_group_keys(
        self, controller: QueueController, create_queue, create_pod_group
    ):
        queue = create_queue("q1", spec_state="Open", status_state="Open")
        pg = create_pod_group("q1", "Completed")
        seen = {}

        def policy(status, pod_groups):
            seen["pod_groups"] = pod_groups
            return replace(status, state="Closing")

        controller.close_queue(queue, policy)

        assert seen["pod_groups"] == [pg.key]

    def test_spec_failure(self, store: QueueStore, controller: QueueController, recorder, create_queue):
        queue = create_queue("q1", spec_state="Open", status_state="Open")

        with patch.object(store, "update_queue", side_effect=StoreError("conflict")), \
                patch.object(store, "update_queue_status") as status_spy:
            with pytest.raises(StoreError):
                controller.close_queue(queue, draining_status)

        status_spy.assert_not_called()
        assert recorder.events == [
            ("q1", EventType.WARNING, "CloseQueue", "Close queue failed for conflict")
        ]

    def test_missing_policy(self, store: QueueStore, controller: QueueController, create_queue):
        queue = create_queue("q1", spec_state="Open", status_state="Open")

        with patch.object(store, "update_queue_status") as status_spy:
            with pytest.raises(MissingStateFunctionError):
                controller.close_queue(queue, None)

        status_spy.assert_not_called()

    def test_status_failure(
        self, store: QueueStore, controller: QueueController, recorder, create_queue, create_pod_group
    ):
        queue = create_queue("q1", spec_state="Open", status_state="Open")
        create_pod_group("q1", "Running")

        with patch.object(store, "update_queue_status", side_effect=StoreError("boom")):
            with pytest.raises(StoreError):
                controller.close_queue(queue, draining_status)

        assert recorder.of_type(EventType.WARNING) == [
            ("q1", EventType.WARNING, "CloseQueue",
             "Update queue status from Open to Closing failed for boom"),
        ]
