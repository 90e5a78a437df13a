"""Append-only log of played clips."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from shared.models.clip import Clip
from shared.models.play_log import PlayLogEntry


class PlayHistory:
    """Oldest-first log of play events.

    Entries are only ever appended or bulk-cleared, never reordered or
    removed one by one. The entry id is assigned before `add` by the
    persistence layer.
    """

    def __init__(self, entries: Iterable[PlayLogEntry] = ()) -> None:
        self._entries: list[PlayLogEntry] = list(entries)

    def add(self, entry: PlayLogEntry) -> None:
        self._entries.append(entry)

    def get_all(self) -> list[PlayLogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def index_of(self, key: str, to_key: Callable[[Clip], str]) -> int:
        """Index of the first entry whose clip has `key`, or -1."""
        for i, entry in enumerate(self._entries):
            if to_key(entry.clip) == key:
                return i
        return -1

    def __getitem__(self, index: int) -> PlayLogEntry:
        return self._entries[index]

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"PlayHistory({len(self._entries)} entries)"
