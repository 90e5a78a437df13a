"""Services layer - Business logic

Services are initialized with their dependencies and accessed through
dependency injection (see api.core.dependencies).
"""

from .queue_service import ClipQueueService, QueueView

__all__ = [
    "ClipQueueService",
    "QueueView",
]
