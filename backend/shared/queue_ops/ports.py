"""Collaborator contracts the navigation engine depends on."""

from __future__ import annotations

from collections.abc import Callable, Collection
from datetime import datetime
from typing import Protocol

from shared.models.clip import Clip, ClipStatus

ClipKeyFunc = Callable[[Clip], str]


class QueuePersistence(Protocol):
    """Durable writes issued by the engine.

    Every method must raise on failure rather than silently no-op, and each
    call is atomic: its records either all change or none do.
    """

    async def update_clip_status(self, key: str, status: ClipStatus) -> None: ...

    async def delete_clips_by_status(
        self, status: ClipStatus, keep: Collection[str] = ()
    ) -> None:
        """Drop clips with `status` except `keep`.

        Clips that already have play history are moved to `played` instead of
        being deleted, so clearing the queue never erases logged plays.
        """
        ...

    async def append_history_record(self, key: str, played_at: datetime) -> int:
        """Mark the clip played and log the play event. Returns the log id."""
        ...

    async def delete_history_by_status(
        self, status: ClipStatus, keep: Collection[str] = ()
    ) -> None:
        """Delete every play event, then clips with `status` except `keep`."""
        ...
