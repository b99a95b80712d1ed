"""
Infrastructure module - logging setup shared by the controller and the API.
"""

from .logging_config import setup_logging

__all__ = [
    "setup_logging",
]
