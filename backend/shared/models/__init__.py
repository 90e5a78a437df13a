"""Shared data models for the clip queue services."""

from .clip import Clip, ClipStatus, ContentType, Platform, to_clip_key
from .clip_queue_settings import ClipQueueSettings
from .play_log import PlayLogEntry

__all__ = [
    "Clip",
    "ClipQueueSettings",
    "ClipStatus",
    "ContentType",
    "Platform",
    "PlayLogEntry",
    "to_clip_key",
]
