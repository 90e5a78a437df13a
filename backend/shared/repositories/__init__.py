"""Shared repository layer for the clip queue services."""

from .clip_queue import (
    ClipQueuePersistence,
    ClipQueueSettingsRepository,
    ClipRepository,
    PlayLogRepository,
)

__all__ = [
    "ClipQueuePersistence",
    "ClipQueueSettingsRepository",
    "ClipRepository",
    "PlayLogRepository",
]
