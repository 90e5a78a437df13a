"""API Routers package

Routers are organized by feature domain.
"""

from . import queue_router

__all__ = [
    "queue_router",
]
