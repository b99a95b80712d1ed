"""
Queue event recording.

Events are the operator-facing outcome of open/close transitions. Recording
is fire-and-forget: a failure to persist an event is logged and never
changes the outcome of the reconcile that produced it.
"""

import logging
from typing import Protocol

from .entities import EventType, Queue, QueueEvent
from .errors import StoreError
from .persistence import QueueStore


logger = logging.getLogger(__name__)


class EventRecorder(Protocol):
    """Sink for queue events."""

    def record(self, queue: Queue, event_type: EventType, reason: str, message: str) -> None:
        ...


class StoreEventRecorder:
    """Persists events to the queue store and mirrors them to the log."""

    def __init__(self, store: QueueStore):
        self.store = store

    def record(self, queue: Queue, event_type: EventType, reason: str, message: str) -> None:
        if event_type == EventType.WARNING:
            logger.warning(f"[{reason}] queue {queue.name}: {message}")
        else:
            logger.info(f"[{reason}] queue {queue.name}: {message}")

        try:
            self.store.record_event(
                QueueEvent(
                    queue_name=queue.name,
                    event_type=event_type,
                    reason=reason,
                    message=message,
                )
            )
        except StoreError as e:
            logger.error(f"Failed to record {reason} event for queue {queue.name}: {e}")
