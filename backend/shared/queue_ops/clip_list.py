"""Insertion-ordered container for upcoming clips."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable, Iterator

from shared.models.clip import Clip


class ClipList:
    """FIFO of clips.

    Nothing here raises: absence is reported as ``None`` / ``False``.
    Not safe for concurrent mutation; the owning session serialises access.
    """

    def __init__(self, clips: Iterable[Clip] = ()) -> None:
        self._clips: deque[Clip] = deque(clips)

    def add(self, clip: Clip) -> None:
        self._clips.append(clip)

    def shift(self) -> Clip | None:
        """Remove and return the head, or None when empty."""
        return self._clips.popleft() if self._clips else None

    def unshift(self, clip: Clip) -> None:
        self._clips.appendleft(clip)

    def remove(self, clip: Clip) -> bool:
        """Delete the first occurrence equal to `clip`. Returns True if removed."""
        try:
            self._clips.remove(clip)
        except ValueError:
            return False
        return True

    def replace(self, old: Clip, new: Clip) -> bool:
        """Swap the first occurrence of `old` for `new`, keeping its position."""
        for i, clip in enumerate(self._clips):
            if clip == old:
                self._clips[i] = new
                return True
        return False

    def find(self, key: str, to_key: Callable[[Clip], str]) -> Clip | None:
        return next((c for c in self._clips if to_key(c) == key), None)

    def to_list(self) -> list[Clip]:
        """Snapshot copy, not a live view."""
        return list(self._clips)

    def clear(self) -> None:
        self._clips.clear()

    def __len__(self) -> int:
        return len(self._clips)

    def __iter__(self) -> Iterator[Clip]:
        return iter(self.to_list())

    def __contains__(self, clip: object) -> bool:
        return clip in self._clips

    def __repr__(self) -> str:
        return f"ClipList({self.to_list()!r})"
