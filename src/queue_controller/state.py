"""
Queue lifecycle policies.

A lifecycle policy (UpdateQueueStatusFn) takes the queue's current status and
either the keys of its bound pod groups or None, and returns a complete
replacement status. It is the only code allowed to choose `status.state`.

Which policy runs is decided by the queue's *current* lifecycle state:
new_state(queue) returns one state object per lifecycle state, and its
execute(action) routes the action to a reconcile action with the policy
that applies from that state.
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Callable, Optional, Protocol

from .entities import Queue, QueueAction, QueueState, QueueStatus


UpdateQueueStatusFn = Callable[[QueueStatus, Optional[list[str]]], QueueStatus]


class QueueActions(Protocol):
    """Reconcile actions a lifecycle state delegates to."""

    def sync_queue(self, queue: Queue, update_state_fn: Optional[UpdateQueueStatusFn]) -> None:
        ...

    def open_queue(self, queue: Queue, update_state_fn: Optional[UpdateQueueStatusFn]) -> None:
        ...

    def close_queue(self, queue: Queue, update_state_fn: Optional[UpdateQueueStatusFn]) -> None:
        ...


# =============================================================================
# Policies
# =============================================================================


def _with_state(status: QueueStatus, state: QueueState) -> QueueStatus:
    return replace(status, state=state.value)


def open_status(status: QueueStatus, pod_groups: Optional[list[str]]) -> QueueStatus:
    """Always Open."""
    return _with_state(status, QueueState.OPEN)


def closed_status(status: QueueStatus, pod_groups: Optional[list[str]]) -> QueueStatus:
    """Always Closed."""
    return _with_state(status, QueueState.CLOSED)


def draining_status(status: QueueStatus, pod_groups: Optional[list[str]]) -> QueueStatus:
    """Closed once no pod groups are bound, Closing while any remain."""
    if not pod_groups:
        return _with_state(status, QueueState.CLOSED)
    return _with_state(status, QueueState.CLOSING)


def spec_driven_status(spec_state: str) -> UpdateQueueStatusFn:
    """
    Build the steady-state policy for a queue whose spec says `spec_state`.

    Empty or Open spec gives Open, Closed spec drains to Closed, anything
    else is Unknown.
    """

    def _apply(status: QueueStatus, pod_groups: Optional[list[str]]) -> QueueStatus:
        if not spec_state or spec_state == QueueState.OPEN:
            return _with_state(status, QueueState.OPEN)
        if spec_state == QueueState.CLOSED:
            return draining_status(status, pod_groups)
        return _with_state(status, QueueState.UNKNOWN)

    return _apply


def closed_spec_status(spec_state: str) -> UpdateQueueStatusFn:
    """Steady-state policy for a queue that is already fully Closed."""

    def _apply(status: QueueStatus, pod_groups: Optional[list[str]]) -> QueueStatus:
        if not spec_state or spec_state == QueueState.OPEN:
            return _with_state(status, QueueState.OPEN)
        if spec_state == QueueState.CLOSED:
            return _with_state(status, QueueState.CLOSED)
        return _with_state(status, QueueState.UNKNOWN)

    return _apply


# =============================================================================
# Lifecycle States
# =============================================================================


class QueueLifecycleState(ABC):
    """A queue's current lifecycle state, able to execute an action."""

    def __init__(self, queue: Queue, actions: QueueActions):
        self.queue = queue
        self.actions = actions

    @abstractmethod
    def execute(self, action: QueueAction) -> None:
        """Run `action` against the queue with this state's policy."""


class OpenState(QueueLifecycleState):

    def execute(self, action: QueueAction) -> None:
        if action == QueueAction.OPEN:
            # Status already Open; only the spec may lag behind.
            if self.queue.spec.state == QueueState.OPEN:
                return self.actions.sync_queue(self.queue, open_status)
            return self.actions.open_queue(self.queue, open_status)
        if action == QueueAction.CLOSE:
            if self.queue.spec.state == QueueState.CLOSED:
                return self.actions.sync_queue(self.queue, draining_status)
            return self.actions.close_queue(self.queue, draining_status)
        return self.actions.sync_queue(self.queue, spec_driven_status(self.queue.spec.state))


class ClosingState(QueueLifecycleState):

    def execute(self, action: QueueAction) -> None:
        if action == QueueAction.OPEN:
            if self.queue.spec.state == QueueState.OPEN:
                return self.actions.sync_queue(self.queue, open_status)
            return self.actions.open_queue(self.queue, open_status)
        if action == QueueAction.CLOSE:
            if self.queue.spec.state == QueueState.CLOSED:
                return self.actions.sync_queue(self.queue, draining_status)
            return self.actions.close_queue(self.queue, draining_status)
        return self.actions.sync_queue(self.queue, spec_driven_status(self.queue.spec.state))


class ClosedState(QueueLifecycleState):

    def execute(self, action: QueueAction) -> None:
        if action == QueueAction.OPEN:
            if self.queue.spec.state == QueueState.OPEN:
                return self.actions.sync_queue(self.queue, open_status)
            return self.actions.open_queue(self.queue, open_status)
        if action == QueueAction.CLOSE:
            if self.queue.spec.state == QueueState.CLOSED:
                return self.actions.sync_queue(self.queue, closed_status)
            return self.actions.close_queue(self.queue, draining_status)
        return self.actions.sync_queue(self.queue, closed_spec_status(self.queue.spec.state))


class UnknownState(QueueLifecycleState):

    def execute(self, action: QueueAction) -> None:
        if action == QueueAction.OPEN:
            if self.queue.spec.state == QueueState.OPEN:
                return self.actions.sync_queue(self.queue, open_status)
            return self.actions.open_queue(self.queue, open_status)
        if action == QueueAction.CLOSE:
            if self.queue.spec.state == QueueState.CLOSED:
                return self.actions.sync_queue(self.queue, draining_status)
            return self.actions.close_queue(self.queue, draining_status)
        return self.actions.sync_queue(self.queue, spec_driven_status(self.queue.spec.state))


def new_state(queue: Queue, actions: QueueActions) -> QueueLifecycleState:
    """Select the lifecycle state object for the queue's current status."""
    state = queue.status.state
    if not state or state == QueueState.OPEN:
        return OpenState(queue, actions)
    if state == QueueState.CLOSED:
        return ClosedState(queue, actions)
    if state == QueueState.CLOSING:
        return ClosingState(queue, actions)
    return UnknownState(queue, actions)
