"""
Queue controller exceptions.

Store errors (not found, conflict, generic failure) are transient from the
controller's point of view: they propagate unchanged and the worker requeues.
MissingStateFunctionError signals a wiring defect instead.
"""


class QueueControllerError(Exception):
    """Base exception for all queue controller errors."""
    pass


class StoreError(QueueControllerError):
    """Raised when the durable store fails a read or write."""
    pass


class QueueNotFoundError(StoreError):
    """Raised when a requested queue does not exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Queue not found: {name}")


class QueueAlreadyExistsError(StoreError):
    """Raised when creating a queue whose name is taken."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Queue already exists: {name}")


class PodGroupNotFoundError(StoreError):
    """Raised when a requested pod group does not exist."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"PodGroup not found: {key}")


class ConflictError(StoreError):
    """
    Raised when a write carries a stale resource version.

    Another agent updated the queue between our read and our write.
    """

    def __init__(self, name: str, expected_version: int, actual_version: int):
        self.name = name
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Operation cannot be fulfilled on queue {name}: "
            f"resource version {expected_version} is stale (current {actual_version})"
        )


class MissingStateFunctionError(QueueControllerError):
    """
    Raised when open/close is invoked without a lifecycle policy.

    This is an internal consistency error, not a store failure.
    """

    def __init__(self):
        super().__init__("internal error, update state function should be provided")
