"""Queue/history navigation engine."""

from .clip_list import ClipList
from .errors import (
    ClipAlreadyPlayingError,
    ClipNotInHistoryError,
    ClipNotInQueueError,
    PlatformNotAllowedError,
    QueueClosedError,
    QueueFullError,
    QueueOperationError,
)
from .operations import (
    advance,
    clear_history,
    clear_queue,
    jump_to_history_entry,
    play_specific,
    retreat,
)
from .play_history import PlayHistory
from .ports import ClipKeyFunc, QueuePersistence
from .state import QUEUE_MODE, HistoryMode, Mode, QueueMode, QueueSnapshot, QueueState

__all__ = [
    "QUEUE_MODE",
    "ClipAlreadyPlayingError",
    "ClipKeyFunc",
    "ClipList",
    "ClipNotInHistoryError",
    "ClipNotInQueueError",
    "HistoryMode",
    "Mode",
    "PlatformNotAllowedError",
    "PlayHistory",
    "QueueClosedError",
    "QueueFullError",
    "QueueMode",
    "QueueOperationError",
    "QueuePersistence",
    "QueueSnapshot",
    "QueueState",
    "advance",
    "clear_history",
    "clear_queue",
    "jump_to_history_entry",
    "play_specific",
    "retreat",
]
