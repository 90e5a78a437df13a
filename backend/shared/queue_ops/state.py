"""Queue state aggregate and its navigation mode."""

from __future__ import annotations

from dataclasses import dataclass, field

from shared.models.clip import Clip
from shared.models.play_log import PlayLogEntry

from .clip_list import ClipList
from .play_history import PlayHistory
from .ports import ClipKeyFunc


@dataclass(frozen=True)
class QueueMode:
    """`current` comes from the queue (or explicit selection)."""


@dataclass(frozen=True)
class HistoryMode:
    """`current` is pinned to ``history[index]``."""

    index: int

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"history index must be >= 0, got {self.index}")


Mode = QueueMode | HistoryMode

QUEUE_MODE = QueueMode()


@dataclass(frozen=True)
class QueueSnapshot:
    """Value copy of a QueueState, used to undo a failed transition."""

    current: Clip | None
    mode: Mode
    queue: tuple[Clip, ...]
    history: tuple[PlayLogEntry, ...]


@dataclass
class QueueState:
    current: Clip | None = None
    queue: ClipList = field(default_factory=ClipList)
    history: PlayHistory = field(default_factory=PlayHistory)
    mode: Mode = QUEUE_MODE

    @property
    def history_position(self) -> int:
        """-1 in queue mode, otherwise the pinned history index."""
        return self.mode.index if isinstance(self.mode, HistoryMode) else -1

    @property
    def is_navigating_history(self) -> bool:
        return isinstance(self.mode, HistoryMode)

    def enter_history(self, index: int) -> None:
        self.mode = HistoryMode(index)
        self.current = self.history[index].clip

    def snapshot(self) -> QueueSnapshot:
        return QueueSnapshot(
            current=self.current,
            mode=self.mode,
            queue=tuple(self.queue.to_list()),
            history=tuple(self.history.get_all()),
        )

    def restore(self, snapshot: QueueSnapshot) -> None:
        """Put every field back to the captured values, in place."""
        self.current = snapshot.current
        self.mode = snapshot.mode
        self.queue.clear()
        for clip in snapshot.queue:
            self.queue.add(clip)
        self.history.clear()
        for entry in snapshot.history:
            self.history.add(entry)

    def violations(self, to_key: ClipKeyFunc) -> list[str]:
        """Describe every broken state invariant (empty when consistent)."""
        problems: list[str] = []
        if isinstance(self.mode, HistoryMode):
            index = self.mode.index
            if not 0 <= index < len(self.history):
                problems.append(f"history index {index} out of range (len={len(self.history)})")
            elif self.current != self.history[index].clip:
                problems.append(f"current does not match history[{index}]")
        elif self.current is not None:
            key = to_key(self.current)
            if self.queue.find(key, to_key) is not None:
                problems.append(f"current clip {key} is also queued")
        return problems
