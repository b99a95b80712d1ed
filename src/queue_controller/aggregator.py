"""
Pod group aggregation per queue.

Counts the pod groups bound to a queue by observed phase. Only Pending,
Running, Unknown and Inqueue are counted; every other phase is ignored.
"""

import logging
from typing import Protocol, Tuple

from .entities import PodGroup, PodGroupPhase, QueueStatus


logger = logging.getLogger(__name__)


class GroupIndexProtocol(Protocol):
    """Read-through index the aggregator reads from."""

    def list_bound_group_keys(self, queue_name: str) -> list[str]:
        ...

    def resolve_group(self, key: str) -> PodGroup:
        ...


def count_phases(pod_groups: list[PodGroup]) -> QueueStatus:
    """Tally pod group phases into a counts-only QueueStatus."""
    status = QueueStatus()
    for pg in pod_groups:
        if pg.phase == PodGroupPhase.PENDING:
            status.pending += 1
        elif pg.phase == PodGroupPhase.RUNNING:
            status.running += 1
        elif pg.phase == PodGroupPhase.UNKNOWN:
            status.unknown += 1
        elif pg.phase == PodGroupPhase.INQUEUE:
            status.inqueue += 1
    return status


def aggregate_queue(
    index: GroupIndexProtocol,
    queue_name: str,
) -> Tuple[QueueStatus, list[str]]:
    """
    Count the pod groups bound to a queue.

    Args:
        index: Read-through pod group index
        queue_name: Queue to aggregate

    Returns:
        (counts-only QueueStatus with an empty state, bound pod group keys)

    Raises:
        StoreError: If a bound pod group cannot be read. Nothing is
            counted partially; the caller must not write.
    """
    keys = []
    pod_groups = []

    for key in index.list_bound_group_keys(queue_name):
        try:
            pg = index.resolve_group(key)
        except ValueError:
            logger.debug(f"Skipping malformed pod group key {key!r} in queue {queue_name}")
            keys.append(key)
            continue
        if pg.queue != queue_name:
            # Index entry outlived a rebind; the store is authoritative
            logger.debug(f"Pod group {key} is bound to {pg.queue}, not counting it for {queue_name}")
            continue
        keys.append(key)
        pod_groups.append(pg)

    return count_phases(pod_groups), keys
