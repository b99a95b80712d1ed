"""
Controller state management for API integration.

Provides singleton access to the QueueControllerService instance.
Initialized and started during FastAPI lifespan.

Usage:
    from ._controller_state import get_controller_service, init_controller_service

    # In lifespan:
    init_controller_service(config)

    # In routers:
    service = get_controller_service()
"""

from pathlib import Path
from typing import Optional

from src.queue_controller.config import ControllerConfig
from src.queue_controller.service import QueueControllerService


# Global controller service instance
_controller_service: Optional[QueueControllerService] = None


def init_controller_service(
    config: Optional[ControllerConfig] = None,
    db_path: Optional[str | Path] = None,
) -> QueueControllerService:
    """
    Initialize the controller service singleton.

    Does NOT start the worker; the lifespan calls start() explicitly.

    Args:
        config: Controller settings (default: read from environment)
        db_path: Overrides the configured store path
    """
    global _controller_service

    if _controller_service is not None:
        return _controller_service

    _controller_service = QueueControllerService.create(config=config, db_path=db_path)
    return _controller_service


def set_controller_service(service: Optional[QueueControllerService]) -> None:
    """Install a pre-built service (tests) or clear it."""
    global _controller_service
    _controller_service = service


def get_controller_service() -> QueueControllerService:
    """
    Get the controller service singleton.

    Raises:
        RuntimeError: If controller service not initialized
    """
    if _controller_service is None:
        raise RuntimeError(
            "Controller service not initialized. "
            "Ensure init_controller_service() is called during startup."
        )

    return _controller_service


def shutdown_controller_service() -> None:
    """
    Shutdown the controller service.

    Called during FastAPI lifespan shutdown.
    """
    global _controller_service

    if _controller_service is not None:
        if _controller_service.is_running:
            _controller_service.stop()

        _controller_service = None
