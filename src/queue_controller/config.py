"""
Configuration for the Queue Controller.

Environment Variables:
- QUEUE_CONTROLLER_DB_PATH: SQLite store path (default: data/queue_controller.db)
- QUEUE_CONTROLLER_WORKERS: Worker threads (default: 1)
- QUEUE_CONTROLLER_MAX_REQUEUE: Failures tolerated per queue (default: 15)
- QUEUE_CONTROLLER_POLL_INTERVAL: Idle wait in seconds (default: 1.0)
- QUEUE_CONTROLLER_RESYNC_ON_START: Sync every queue on start (default: true)
- LOG_LEVEL: Logging level (default: INFO)

Values are read when from_env() is called, so load_dotenv() must run first.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .worker import DEFAULT_MAX_REQUEUE


logger = logging.getLogger(__name__)


def get_project_root() -> Path:
    """Project root; this file lives at src/queue_controller/config.py."""
    return Path(__file__).parent.parent.parent.resolve()


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean value from environment variable."""
    val = os.getenv(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    elif val in ("false", "0", "no", "off"):
        return False
    return default


def _get_env_int(key: str, default: int) -> int:
    """Get integer value from environment variable."""
    val = os.getenv(key)
    if val is not None:
        try:
            return int(val)
        except ValueError:
            logger.warning(f"[Config] Invalid integer for {key}: {val}, using default: {default}")
    return default


def _get_env_float(key: str, default: float) -> float:
    """Get float value from environment variable."""
    val = os.getenv(key)
    if val is not None:
        try:
            return float(val)
        except ValueError:
            logger.warning(f"[Config] Invalid number for {key}: {val}, using default: {default}")
    return default


@dataclass
class ControllerConfig:
    """Runtime settings for the controller process."""

    db_path: Path
    workers: int = 1
    max_requeue: int = DEFAULT_MAX_REQUEUE
    poll_interval: float = 1.0
    resync_on_start: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ControllerConfig":
        db_path = os.getenv("QUEUE_CONTROLLER_DB_PATH")
        return cls(
            db_path=Path(db_path) if db_path else get_project_root() / "data" / "queue_controller.db",
            workers=max(1, _get_env_int("QUEUE_CONTROLLER_WORKERS", 1)),
            max_requeue=max(0, _get_env_int("QUEUE_CONTROLLER_MAX_REQUEUE", DEFAULT_MAX_REQUEUE)),
            poll_interval=_get_env_float("QUEUE_CONTROLLER_POLL_INTERVAL", 1.0),
            resync_on_start=_get_env_bool("QUEUE_CONTROLLER_RESYNC_ON_START", True),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
