"""Navigation engine: transitions between current, queued and played clips.

Every operation mutates a QueueState in place. At most one persistence
call is awaited per operation; if it raises, the state is restored to the
snapshot taken before the call and the exception propagates
unchanged. The engine never retries and performs no locking: callers must
serialise operations on the same state.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from shared.models.clip import Clip, ClipStatus
from shared.models.play_log import PlayLogEntry

from .errors import ClipNotInHistoryError
from .ports import ClipKeyFunc, QueuePersistence
from .state import QUEUE_MODE, HistoryMode, QueueState

logger = logging.getLogger(__name__)


async def _archive_current(state: QueueState, db: QueuePersistence, to_key: ClipKeyFunc) -> None:
    """Persist a play event for `state.current` and append it to history."""
    assert state.current is not None
    key = to_key(state.current)
    played_at = datetime.now(UTC)
    log_id = await db.append_history_record(key, played_at)
    state.history.add(PlayLogEntry(id=log_id, clip=state.current, played_at=played_at))
    logger.debug(f"Archived {key} as play_log #{log_id}")


async def advance(state: QueueState, db: QueuePersistence, to_key: ClipKeyFunc) -> None:
    """Move forward one step.

    In history mode this walks toward the newest entry and, past it, pulls
    the next queued clip. Only queue mode writes: the current clip is
    logged as played before the next one is dequeued.
    """
    if isinstance(state.mode, HistoryMode):
        next_index = state.mode.index + 1
        if next_index < len(state.history):
            state.enter_history(next_index)
            return
        next_clip = state.queue.shift()
        if next_clip is None:
            logger.debug("At end of history with empty queue, nothing to advance to")
            return
        state.mode = QUEUE_MODE
        state.current = next_clip
        return

    snapshot = state.snapshot()
    try:
        if state.current is not None:
            await _archive_current(state, db, to_key)
        state.current = state.queue.shift()
    except Exception:
        state.restore(snapshot)
        logger.warning("advance failed, queue state rolled back")
        raise


def retreat(state: QueueState) -> None:
    """Move back one step through history. Never writes."""
    if isinstance(state.mode, HistoryMode):
        if state.mode.index > 0:
            state.enter_history(state.mode.index - 1)
        return
    if len(state.history) > 0:
        state.enter_history(len(state.history) - 1)


async def play_specific(
    state: QueueState,
    db: QueuePersistence,
    clip: Clip,
    to_key: ClipKeyFunc,
) -> None:
    """Play `clip` out of order, always landing back in queue mode.

    A clip that is not queued is still made current; removal is idempotent.
    """
    snapshot = state.snapshot()
    try:
        if not state.is_navigating_history and state.current is not None:
            await _archive_current(state, db, to_key)
        state.queue.remove(clip)
        state.current = clip
        state.mode = QUEUE_MODE
    except Exception:
        state.restore(snapshot)
        logger.warning(f"play_specific({to_key(clip)}) failed, queue state rolled back")
        raise


def jump_to_history_entry(state: QueueState, clip: Clip, to_key: ClipKeyFunc) -> None:
    """Pin `current` to the history entry matching `clip`.

    A displaced current clip is put back at the head of the queue unless it
    is the target itself or already queued. Raises ClipNotInHistoryError
    without touching state when the key is not in history.
    """
    target_key = to_key(clip)
    index = state.history.index_of(target_key, to_key)
    if index < 0:
        raise ClipNotInHistoryError(target_key)

    current = state.current
    if current is not None:
        current_key = to_key(current)
        if current_key != target_key and state.queue.find(current_key, to_key) is None:
            state.queue.unshift(current)
    state.enter_history(index)


def _live_key(state: QueueState, to_key: ClipKeyFunc) -> list[str]:
    """Key of a current clip that came from the queue, whose row must survive clears."""
    if state.current is None or state.is_navigating_history:
        return []
    return [to_key(state.current)]


async def clear_queue(state: QueueState, db: QueuePersistence, to_key: ClipKeyFunc) -> None:
    """Drop every queued clip, in memory and in the store.

    The clip playing in queue mode is not queued and keeps its record.
    """
    previous = state.queue.to_list()
    keep = _live_key(state, to_key)
    state.queue.clear()
    try:
        await db.delete_clips_by_status(ClipStatus.APPROVED, keep=keep)
    except Exception:
        for clip in previous:
            state.queue.add(clip)
        logger.warning(f"clear_queue failed, restored {len(previous)} clip(s)")
        raise


async def clear_history(state: QueueState, db: QueuePersistence, to_key: ClipKeyFunc) -> None:
    """Delete every play log entry.

    The store is cleared first, so a failure leaves memory untouched. Clips
    still reachable from the queue or the playing slot keep their records. A
    cursor pointing into the cleared history returns to queue mode with no
    current clip.
    """
    keep = [to_key(c) for c in state.queue] + _live_key(state, to_key)
    await db.delete_history_by_status(ClipStatus.PLAYED, keep=keep)
    state.history.clear()
    if state.is_navigating_history:
        state.mode = QUEUE_MODE
        state.current = None
