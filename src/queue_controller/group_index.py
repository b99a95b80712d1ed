"""
Read-through index of pod groups per queue.

Keeps `queue name -> {pod group key}` in memory, fed by the controller's
pod group handlers, and resolves keys against the store on demand so phase
reads are always fresh.
"""

import logging
import threading

from .entities import PodGroup
from .persistence import QueueStore


logger = logging.getLogger(__name__)


class PodGroupIndex:
    """Maps queue names to the keys of the pod groups bound to them."""

    def __init__(self, store: QueueStore):
        self.store = store
        self._lock = threading.Lock()
        self._groups: dict[str, set[str]] = {}

    def rebuild(self) -> int:
        """
        Reload the index from the store.

        Returns:
            Number of pod groups indexed
        """
        groups: dict[str, set[str]] = {}
        pod_groups = self.store.list_pod_groups()
        for pg in pod_groups:
            groups.setdefault(pg.queue, set()).add(pg.key)

        with self._lock:
            self._groups = groups

        logger.info(f"Indexed {len(pod_groups)} pod groups across {len(groups)} queues")
        return len(pod_groups)

    def add(self, pod_group: PodGroup) -> None:
        with self._lock:
            self._groups.setdefault(pod_group.queue, set()).add(pod_group.key)

    def delete(self, pod_group: PodGroup) -> None:
        with self._lock:
            keys = self._groups.get(pod_group.queue)
            if keys is None:
                return
            keys.discard(pod_group.key)
            if not keys:
                del self._groups[pod_group.queue]

    def move(self, old: PodGroup, new: PodGroup) -> None:
        """Rebind a pod group whose queue changed."""
        self.delete(old)
        self.add(new)

    def list_bound_group_keys(self, queue_name: str) -> list[str]:
        """Return a sorted snapshot of the keys bound to a queue."""
        with self._lock:
            return sorted(self._groups.get(queue_name, ()))

    def resolve_group(self, key: str) -> PodGroup:
        """
        Read a pod group through to the store.

        Raises:
            ValueError: If the key is malformed
            PodGroupNotFoundError: If the group was removed from the store
        """
        return self.store.resolve_pod_group(key)
