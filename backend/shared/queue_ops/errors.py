"""Queue error taxonomy.

Persistence failures are never wrapped: whatever the port raised is
re-raised after rollback, so callers can tell store problems apart from
these logic errors.
"""

from __future__ import annotations


class QueueOperationError(Exception):
    """Base class for queue logic errors."""


class ClipNotInHistoryError(QueueOperationError, LookupError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Clip not found in history: {key}")
        self.key = key


class ClipNotInQueueError(QueueOperationError, LookupError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Clip not found in queue: {key}")
        self.key = key


class QueueClosedError(QueueOperationError):
    def __init__(self) -> None:
        super().__init__("Queue is closed")


class QueueFullError(QueueOperationError):
    def __init__(self, limit: int) -> None:
        super().__init__(f"Queue is full ({limit})")
        self.limit = limit


class ClipAlreadyPlayingError(QueueOperationError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Clip is already playing: {key}")
        self.key = key


class PlatformNotAllowedError(QueueOperationError):
    def __init__(self, platform: str) -> None:
        super().__init__(f"Platform not accepted: {platform}")
        self.platform = platform
