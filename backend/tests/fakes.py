"""Clip factory and in-memory stand-ins for the PostgreSQL layer."""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import replace
from datetime import UTC, datetime

from shared.models.clip import Clip, ClipStatus, ContentType, Platform, to_clip_key
from shared.models.clip_queue_settings import ClipQueueSettings
from shared.models.play_log import PlayLogEntry


def make_clip(
    clip_id: str,
    title: str = "",
    *,
    platform: Platform = Platform.TWITCH,
    content_type: ContentType = ContentType.CLIP,
    timestamp: int | None = None,
    submitters: tuple[str, ...] = ("user1",),
) -> Clip:
    return Clip(
        platform=platform,
        content_type=content_type,
        id=clip_id,
        url=f"https://twitch.tv/clip/{clip_id}",
        embed_url=f"https://clips.twitch.tv/embed?clip={clip_id}",
        thumbnail_url=f"https://clips-media-assets2.twitch.tv/{clip_id}.jpg",
        title=title or clip_id,
        channel="testchannel",
        creator="testcreator",
        submitters=submitters,
        timestamp=timestamp,
    )


def make_entry(entry_id: int, clip: Clip) -> PlayLogEntry:
    return PlayLogEntry(id=entry_id, clip=clip, played_at=datetime(2025, 1, 1, tzinfo=UTC))


class FakePersistence:
    """Persistence port that records calls and can fail the next call to a method."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self._failures: dict[str, BaseException] = {}
        self._next_log_id = 1

    def fail_next(self, method: str, exc: BaseException | None = None) -> None:
        self._failures[method] = exc or RuntimeError("DB Error")

    def reset_failures(self) -> None:
        self._failures.clear()

    def _record(self, method: str, *args: object) -> None:
        self.calls.append((method, *args))
        exc = self._failures.pop(method, None)
        if exc is not None:
            raise exc

    def called(self, method: str) -> list[tuple]:
        return [c[1:] for c in self.calls if c[0] == method]

    async def update_clip_status(self, key: str, status: ClipStatus) -> None:
        self._record("update_clip_status", key, status)

    async def delete_clips_by_status(
        self, status: ClipStatus, keep: Collection[str] = ()
    ) -> None:
        self._record("delete_clips_by_status", status, list(keep))

    async def append_history_record(self, key: str, played_at: datetime) -> int:
        self._record("append_history_record", key, played_at)
        log_id = self._next_log_id
        self._next_log_id += 1
        return log_id

    async def delete_history_by_status(
        self, status: ClipStatus, keep: Collection[str] = ()
    ) -> None:
        self._record("delete_history_by_status", status, list(keep))


class FakeClipRepository:
    def __init__(self, store: FakeStore) -> None:
        self._store = store
        self.rows: dict[str, tuple[Clip, ClipStatus]] = {}

    def status_of(self, key: str) -> ClipStatus | None:
        row = self.rows.get(key)
        return row[1] if row else None

    async def upsert(self, key: str, clip: Clip, status: ClipStatus) -> Clip:
        self._store._record("upsert", key, status)
        existing = self.rows.get(key)
        submitters = existing[0].submitters if existing else ()
        for s in clip.submitters:
            if s not in submitters:
                submitters = (*submitters, s)
        saved = replace(clip, submitters=submitters)
        self.rows[key] = (saved, status)
        return saved

    async def get_by_status(self, status: ClipStatus) -> list[Clip]:
        return [clip for clip, s in self.rows.values() if s == status]

    async def update_status_many(self, keys: list[str], status: ClipStatus) -> int:
        self._store._record("update_status_many", list(keys), status)
        found = [k for k in keys if k in self.rows]
        for key in found:
            self.rows[key] = (self.rows[key][0], status)
        return len(found)


class FakePlayLogRepository:
    def __init__(self) -> None:
        self.entries: list[PlayLogEntry] = []

    async def get_all(self) -> list[PlayLogEntry]:
        return list(self.entries)


class FakeStore(FakePersistence):
    """In-memory ClipQueuePersistence: port methods plus `clips` / `play_log` repos.

    Behaves like the PostgreSQL adapter: updates to a missing clip raise
    LookupError, a play log row keeps its clip row alive, and every port call
    either applies in full or not at all.
    """

    def __init__(self) -> None:
        super().__init__()
        self.clips = FakeClipRepository(self)
        self.play_log = FakePlayLogRepository()

    def _require(self, key: str) -> Clip:
        if key not in self.clips.rows:
            raise LookupError(f"Clip {key} not found")
        return self.clips.rows[key][0]

    def _logged_keys(self) -> set[str]:
        return {to_clip_key(e.clip) for e in self.play_log.entries}

    async def update_clip_status(self, key: str, status: ClipStatus) -> None:
        await super().update_clip_status(key, status)
        clip = self._require(key)
        self.clips.rows[key] = (clip, status)

    async def append_history_record(self, key: str, played_at: datetime) -> int:
        self._require(key)
        log_id = await super().append_history_record(key, played_at)
        clip = self.clips.rows[key][0]
        self.clips.rows[key] = (clip, ClipStatus.PLAYED)
        self.play_log.entries.append(PlayLogEntry(id=log_id, clip=clip, played_at=played_at))
        return log_id

    async def delete_clips_by_status(
        self, status: ClipStatus, keep: Collection[str] = ()
    ) -> None:
        await super().delete_clips_by_status(status, keep)
        logged = self._logged_keys()
        for key, (clip, s) in list(self.clips.rows.items()):
            if s != status or key in keep:
                continue
            if key in logged:
                self.clips.rows[key] = (clip, ClipStatus.PLAYED)
            else:
                del self.clips.rows[key]

    async def delete_history_by_status(
        self, status: ClipStatus, keep: Collection[str] = ()
    ) -> None:
        await super().delete_history_by_status(status, keep)
        self.play_log.entries = []
        for key in [k for k, (_, s) in self.clips.rows.items() if s == status and k not in keep]:
            del self.clips.rows[key]


class FakeSettingsRepository:
    def __init__(self, settings: ClipQueueSettings | None = None) -> None:
        self.settings = settings or ClipQueueSettings()

    async def get_or_create(self) -> ClipQueueSettings:
        return self.settings

    async def update_settings(self, **changes: object) -> ClipQueueSettings:
        self.settings = replace(self.settings, **changes)
        return self.settings
