"""
Persistence Adapter for the Queue Controller.

SQLite-backed durable store for queues, pod groups and queue events:
- WAL mode for concurrent readers while the worker writes
- Whole-object replace semantics for spec and status updates
- Optimistic concurrency on queues via resource_version
- sqlite3 failures surface as StoreError

Provides no reconcile logic; the controller decides what to write.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .entities import (
    EventType,
    PodGroup,
    Queue,
    QueueEvent,
    QueueSpec,
    QueueStatus,
    group_key,
    now_iso,
    split_group_key,
)
from .errors import (
    ConflictError,
    PodGroupNotFoundError,
    QueueAlreadyExistsError,
    QueueNotFoundError,
    StoreError,
)


logger = logging.getLogger(__name__)


def _value(state) -> str:
    """Normalize a state that may be an Enum member to its plain string."""
    return getattr(state, "value", state)


class QueueStore:
    """
    SQLite-based persistence for queues, pod groups and events.

    Every queue write checks the caller's resource_version against the stored
    one and bumps it; a mismatch raises ConflictError so the caller can
    re-read and retry through the worker.
    """

    def __init__(self, db_path: str | Path):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file

        Raises:
            ValueError: If db_path is ":memory:"
        """
        self.db_path = str(db_path)
        if self.db_path == ":memory:":
            # Every call opens its own connection, so the schema would not survive
            raise ValueError("QueueStore needs a database file, not :memory:")
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with WAL mode enabled."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for read-only database connections."""
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to open store {self.db_path}: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to open store {self.db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            raise
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS queues (
                    name TEXT PRIMARY KEY,
                    spec_state TEXT NOT NULL DEFAULT 'Open',
                    weight INTEGER NOT NULL DEFAULT 1,
                    status_state TEXT NOT NULL DEFAULT '',
                    pending INTEGER NOT NULL DEFAULT 0,
                    running INTEGER NOT NULL DEFAULT 0,
                    unknown INTEGER NOT NULL DEFAULT 0,
                    inqueue INTEGER NOT NULL DEFAULT 0,
                    resource_version INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS pod_groups (
                    namespace TEXT NOT NULL,
                    name TEXT NOT NULL,
                    queue TEXT NOT NULL,
                    phase TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    PRIMARY KEY (namespace, name)
                )
            """)

            # Index for queue -> pod groups lookup
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_pod_groups_queue
                ON pod_groups (queue)
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS queue_events (
                    event_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    queue_name TEXT NOT NULL,
                    event_type TEXT NOT NULL,
                    reason TEXT NOT NULL,
                    message TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_queue_events_queue
                ON queue_events (queue_name, event_id)
            """)

    # =========================================================================
    # Row Mapping
    # =========================================================================

    @staticmethod
    def _row_to_queue(row: sqlite3.Row) -> Queue:
        return Queue(
            name=row["name"],
            spec=QueueSpec(state=row["spec_state"], weight=row["weight"]),
            status=QueueStatus(
                state=row["status_state"],
                pending=row["pending"],
                running=row["running"],
                unknown=row["unknown"],
                inqueue=row["inqueue"],
            ),
            resource_version=row["resource_version"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_pod_group(row: sqlite3.Row) -> PodGroup:
        return PodGroup(
            namespace=row["namespace"],
            name=row["name"],
            queue=row["queue"],
            phase=row["phase"],
            created_at=row["created_at"],
        )

    # =========================================================================
    # Queue Operations
    # =========================================================================

    def create_queue(self, queue: Queue) -> Queue:
        """
        Create a new queue.

        Raises:
            QueueAlreadyExistsError: If a queue with that name exists
        """
        try:
            with self._transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO queues
                    (name, spec_state, weight, status_state, pending, running,
                     unknown, inqueue, resource_version, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, ?)
                    """,
                    (
                        queue.name,
                        _value(queue.spec.state),
                        queue.spec.weight,
                        _value(queue.status.state),
                        queue.status.pending,
                        queue.status.running,
                        queue.status.unknown,
                        queue.status.inqueue,
                        queue.created_at,
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise QueueAlreadyExistsError(queue.name) from e

        return self.get_queue(queue.name)

    def get_queue(self, name: str) -> Queue:
        """
        Get a queue by name.

        Raises:
            QueueNotFoundError: If the queue doesn't exist
        """
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM queues WHERE name = ?",
                (name,),
            ).fetchone()

        if row is None:
            raise QueueNotFoundError(name)

        return self._row_to_queue(row)

    def list_queues(self) -> list[Queue]:
        """List all queues ordered by name."""
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM queues ORDER BY name").fetchall()

        return [self._row_to_queue(row) for row in rows]

    def delete_queue(self, name: str) -> None:
        """
        Delete a queue. Bound pod groups are left in place.

        Raises:
            QueueNotFoundError: If the queue doesn't exist
        """
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM queues WHERE name = ?", (name,))
            if cursor.rowcount == 0:
                raise QueueNotFoundError(name)

    def _versioned_update(self, queue: Queue, assignments: str, values: tuple) -> Queue:
        """
        Run an UPDATE guarded by the queue's resource_version.

        Raises:
            QueueNotFoundError: If the queue doesn't exist
            ConflictError: If the stored resource_version differs
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                f"""
                UPDATE queues
                SET {assignments}, resource_version = resource_version + 1
                WHERE name = ? AND resource_version = ?
                """,
                (*values, queue.name, queue.resource_version),
            )

            if cursor.rowcount == 0:
                row = conn.execute(
                    "SELECT resource_version FROM queues WHERE name = ?",
                    (queue.name,),
                ).fetchone()

                if row is None:
                    raise QueueNotFoundError(queue.name)

                raise ConflictError(
                    queue.name,
                    expected_version=queue.resource_version,
                    actual_version=row["resource_version"],
                )

            row = conn.execute(
                "SELECT * FROM queues WHERE name = ?",
                (queue.name,),
            ).fetchone()

        return self._row_to_queue(row)

    def update_queue(self, queue: Queue) -> Queue:
        """
        Replace a queue's spec. Status is left untouched.

        Returns:
            The stored queue with its new resource_version
        """
        return self._versioned_update(
            queue,
            "spec_state = ?, weight = ?",
            (_value(queue.spec.state), queue.spec.weight),
        )

    def update_queue_status(self, queue: Queue) -> Queue:
        """
        Replace a queue's status. Spec is left untouched.

        Returns:
            The stored queue with its new resource_version
        """
        status = queue.status
        return self._versioned_update(
            queue,
            "status_state = ?, pending = ?, running = ?, unknown = ?, inqueue = ?",
            (
                _value(status.state),
                status.pending,
                status.running,
                status.unknown,
                status.inqueue,
            ),
        )

    # =========================================================================
    # PodGroup Operations
    # =========================================================================

    def create_pod_group(self, pod_group: PodGroup) -> PodGroup:
        """Create or replace a pod group record."""
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO pod_groups
                (namespace, name, queue, phase, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    pod_group.namespace,
                    pod_group.name,
                    pod_group.queue,
                    _value(pod_group.phase),
                    pod_group.created_at,
                ),
            )
        return pod_group

    def get_pod_group(self, namespace: str, name: str) -> PodGroup:
        """
        Get a pod group by namespace and name.

        Raises:
            PodGroupNotFoundError: If the pod group doesn't exist
        """
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM pod_groups WHERE namespace = ? AND name = ?",
                (namespace, name),
            ).fetchone()

        if row is None:
            raise PodGroupNotFoundError(group_key(namespace, name))

        return self._row_to_pod_group(row)

    def update_pod_group_phase(self, namespace: str, name: str, phase: str) -> PodGroup:
        """
        Update the observed phase of a pod group.

        Raises:
            PodGroupNotFoundError: If the pod group doesn't exist
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE pod_groups SET phase = ? WHERE namespace = ? AND name = ?",
                (_value(phase), namespace, name),
            )
            if cursor.rowcount == 0:
                raise PodGroupNotFoundError(group_key(namespace, name))

        return self.get_pod_group(namespace, name)

    def delete_pod_group(self, namespace: str, name: str) -> PodGroup:
        """
        Delete a pod group and return the removed record.

        Raises:
            PodGroupNotFoundError: If the pod group doesn't exist
        """
        pod_group = self.get_pod_group(namespace, name)
        with self._transaction() as conn:
            conn.execute(
                "DELETE FROM pod_groups WHERE namespace = ? AND name = ?",
                (namespace, name),
            )
        return pod_group

    def list_pod_groups(self, queue: Optional[str] = None) -> list[PodGroup]:
        """List pod groups, optionally only those bound to one queue."""
        with self._connection() as conn:
            if queue is None:
                rows = conn.execute(
                    "SELECT * FROM pod_groups ORDER BY namespace, name"
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM pod_groups WHERE queue = ? ORDER BY namespace, name",
                    (queue,),
                ).fetchall()

        return [self._row_to_pod_group(row) for row in rows]

    def resolve_pod_group(self, key: str) -> PodGroup:
        """Get a pod group by its `namespace/name` key."""
        namespace, name = split_group_key(key)
        return self.get_pod_group(namespace, name)

    # =========================================================================
    # Event Operations
    # =========================================================================

    def record_event(self, event: QueueEvent) -> QueueEvent:
        """Append a queue event."""
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO queue_events
                (queue_name, event_type, reason, message, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    event.queue_name,
                    _value(event.event_type),
                    event.reason,
                    event.message,
                    event.created_at or now_iso(),
                ),
            )
            event.event_id = cursor.lastrowid
        return event

    def list_events(self, queue_name: str, limit: int = 100) -> list[QueueEvent]:
        """List a queue's events, oldest first."""
        with self._connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM queue_events
                WHERE queue_name = ?
                ORDER BY event_id ASC
                LIMIT ?
                """,
                (queue_name, limit),
            ).fetchall()

        return [
            QueueEvent(
                queue_name=row["queue_name"],
                event_type=EventType(row["event_type"]),
                reason=row["reason"],
                message=row["message"],
                event_id=row["event_id"],
                created_at=row["created_at"],
            )
            for row in rows
        ]
