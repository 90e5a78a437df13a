"""Data model for the clip_queue_settings table."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class ClipQueueSettings:
    """Clip queue settings record (single row)."""

    is_open: bool = True
    max_queue_size: int | None = None  # None = unlimited
    allowed_platforms: list[str] = field(default_factory=list)  # empty = all
    updated_at: datetime | None = None
