"""Data model for the play_log table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .clip import Clip


@dataclass(frozen=True)
class PlayLogEntry:
    """One play event. `id` is assigned by the durable store."""

    id: int
    clip: Clip
    played_at: datetime
    played_for: int | None = None  # seconds watched
    completed_at: datetime | None = None
