"""Clip queue service: one queue session backed by PostgreSQL.

Owns the in-memory QueueState and serialises every operation on it behind
a single asyncio.Lock. Engine calls are shielded from request cancellation
so a started persistence call always ends in commit or rollback.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import TypeVar

from shared.models.clip import Clip, ClipStatus, Platform, to_clip_key
from shared.models.clip_queue_settings import ClipQueueSettings
from shared.models.play_log import PlayLogEntry
from shared.queue_ops import (
    ClipAlreadyPlayingError,
    ClipKeyFunc,
    ClipList,
    ClipNotInHistoryError,
    ClipNotInQueueError,
    PlatformNotAllowedError,
    PlayHistory,
    QueueClosedError,
    QueueFullError,
    QueueState,
    advance,
    clear_history,
    clear_queue,
    jump_to_history_entry,
    play_specific,
    retreat,
)
from shared.repositories import ClipQueuePersistence, ClipQueueSettingsRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class QueueView:
    """Point-in-time copy of the queue session for rendering."""

    current: Clip | None
    upcoming: list[Clip]
    play_history: list[PlayLogEntry]
    history_position: int
    is_open: bool
    settings: ClipQueueSettings


class ClipQueueService:
    """Serialised queue commands for one queue session."""

    def __init__(
        self,
        store: ClipQueuePersistence,
        settings_repo: ClipQueueSettingsRepository,
        *,
        default_queue_limit: int | None = None,
        to_key: ClipKeyFunc = to_clip_key,
    ) -> None:
        self.store = store
        self.settings_repo = settings_repo
        self.default_queue_limit = default_queue_limit
        self.to_key = to_key
        self.state = QueueState()
        self.is_loaded = False
        self._lock = asyncio.Lock()
        self._orphaned: set[asyncio.Future] = set()

    async def _locked(self, fn: Callable[[], Awaitable[T]]) -> T:
        async def run() -> T:
            async with self._lock:
                return await fn()

        task = asyncio.ensure_future(run())
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            # the operation keeps running; its outcome is only visible here
            self._orphaned.add(task)
            task.add_done_callback(self._orphan_done)
            raise

    def _orphan_done(self, task: asyncio.Future) -> None:
        self._orphaned.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Queue operation failed after its caller was cancelled: {exc!r}",
                exc_info=exc,
            )

    # ------------------------------------------------------------------
    # Lifecycle / read
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Rebuild the session from the store: approved clips and the play log."""

        async def _load() -> None:
            queued = await self.store.clips.get_by_status(ClipStatus.APPROVED)
            history = await self.store.play_log.get_all()
            self.state = QueueState(queue=ClipList(queued), history=PlayHistory(history))
            self.is_loaded = True
            logger.info(f"Queue loaded: {len(queued)} queued, {len(history)} played")

        await self._locked(_load)

    async def view(self) -> QueueView:
        settings = await self.settings_repo.get_or_create()
        state = self.state
        return QueueView(
            current=state.current,
            upcoming=state.queue.to_list(),
            play_history=state.history.get_all(),
            history_position=state.history_position,
            is_open=settings.is_open,
            settings=settings,
        )

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def advance(self) -> None:
        await self._locked(lambda: advance(self.state, self.store, self.to_key))
        logger.info(f"Advanced (current={self._current_key()})")

    async def previous(self) -> None:
        async def _previous() -> None:
            retreat(self.state)

        await self._locked(_previous)
        logger.info(f"Went back (history_position={self.state.history_position})")

    async def play(self, key: str) -> None:
        """Play a queued clip out of order."""

        async def _play() -> None:
            clip = self.state.queue.find(key, self.to_key)
            if clip is None:
                raise ClipNotInQueueError(key)
            await play_specific(self.state, self.store, clip, self.to_key)

        await self._locked(_play)
        logger.info(f"Playing {key}")

    async def replay_from_history(self, key: str) -> None:
        """Jump to a past clip without touching the play log."""

        async def _replay() -> None:
            index = self.state.history.index_of(key, self.to_key)
            if index < 0:
                raise ClipNotInHistoryError(key)
            jump_to_history_entry(self.state, self.state.history[index].clip, self.to_key)

        await self._locked(_replay)
        logger.info(f"Replaying {key} (history_position={self.state.history_position})")

    async def clear(self) -> None:
        await self._locked(lambda: clear_queue(self.state, self.store, self.to_key))
        logger.info("Queue cleared")

    async def clear_history(self) -> None:
        await self._locked(lambda: clear_history(self.state, self.store, self.to_key))
        logger.info("History cleared")

    # ------------------------------------------------------------------
    # Submission / removal
    # ------------------------------------------------------------------

    async def submit(self, clip: Clip, submitter: str, *, auto_approve: bool = False) -> Clip:
        """Add a clip on behalf of `submitter`.

        A clip already queued gets the submitter merged in place instead of
        a second entry. `auto_approve` bypasses a closed queue (operator
        submissions).
        """
        settings = await self.settings_repo.get_or_create()
        if not settings.is_open and not auto_approve:
            raise QueueClosedError()
        if settings.allowed_platforms and clip.platform.value not in settings.allowed_platforms:
            raise PlatformNotAllowedError(clip.platform.value)
        limit = settings.max_queue_size or self.default_queue_limit
        key = self.to_key(clip)
        submission = replace(clip, submitters=(submitter,))

        async def _submit() -> Clip:
            current = self.state.current
            if current is not None and self.to_key(current) == key:
                raise ClipAlreadyPlayingError(key)
            existing = self.state.queue.find(key, self.to_key)
            if existing is None and limit is not None and len(self.state.queue) >= limit:
                raise QueueFullError(limit)
            saved = await self.store.clips.upsert(key, submission, ClipStatus.APPROVED)
            if existing is not None:
                self.state.queue.replace(existing, saved)
            else:
                self.state.queue.add(saved)
            return saved

        saved = await self._locked(_submit)
        logger.info(f"Queued {key} '{saved.title}' (submitted by {submitter})")
        return saved

    async def remove(self, key: str) -> None:
        """Take a clip off the queue and mark it rejected."""

        async def _remove() -> None:
            clip = self.state.queue.find(key, self.to_key)
            if clip is None:
                raise ClipNotInQueueError(key)
            await self.store.update_clip_status(key, ClipStatus.REJECTED)
            self.state.queue.remove(clip)

        await self._locked(_remove)
        logger.info(f"Removed {key}")

    async def batch_remove(self, keys: list[str]) -> int:
        """Remove every listed clip that is queued. Returns how many were removed."""

        async def _batch_remove() -> int:
            unique = dict.fromkeys(keys)
            found = [c for c in (self.state.queue.find(k, self.to_key) for k in unique) if c]
            if not found:
                return 0
            await self.store.clips.update_status_many(
                [self.to_key(c) for c in found], ClipStatus.REJECTED
            )
            for clip in found:
                self.state.queue.remove(clip)
            return len(found)

        removed = await self._locked(_batch_remove)
        logger.info(f"Removed {removed} of {len(keys)} requested clip(s)")
        return removed

    # ------------------------------------------------------------------
    # Open / close / settings
    # ------------------------------------------------------------------

    async def open(self) -> None:
        await self.settings_repo.update_settings(is_open=True)
        logger.info("Queue opened")

    async def close(self) -> None:
        await self.settings_repo.update_settings(is_open=False)
        logger.info("Queue closed")

    async def update_settings(self, **changes: object) -> ClipQueueSettings:
        """Apply the given settings fields.

        `max_queue_size=None` removes the limit. None for any other field
        leaves it unchanged.
        """
        fields = {
            k: v for k, v in changes.items() if v is not None or k == "max_queue_size"
        }
        limit = fields.get("max_queue_size")
        if limit is not None and limit < 1:
            raise ValueError("max_queue_size must be positive")
        if fields.get("allowed_platforms") is not None:
            fields["allowed_platforms"] = [Platform(p).value for p in fields["allowed_platforms"]]
        if not fields:
            return await self.settings_repo.get_or_create()
        settings = await self.settings_repo.update_settings(**fields)
        logger.info(f"Queue settings updated: {', '.join(sorted(fields))}")
        return settings

    def _current_key(self) -> str | None:
        return self.to_key(self.state.current) if self.state.current else None
