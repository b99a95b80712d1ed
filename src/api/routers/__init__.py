"""
API Routers package.
"""

from . import queues, podgroups

__all__ = ["queues", "podgroups"]
