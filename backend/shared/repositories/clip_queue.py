"""Repository for clips, clip_submitters, play_log and clip_queue_settings.

Also provides ClipQueuePersistence, the asyncpg-backed persistence port
used by the navigation engine.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from datetime import datetime
from typing import Any

import asyncpg

from shared.cache import AsyncTTLCache, cached
from shared.models.clip import Clip, ClipStatus, ContentType, Platform
from shared.models.clip_queue_settings import ClipQueueSettings
from shared.models.play_log import PlayLogEntry

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Column constants
# ---------------------------------------------------------------------------

_CLIP_COLUMNS = (
    "c.id, c.platform, c.content_type, c.clip_id, c.url, c.embed_url, c.video_url, "
    "c.thumbnail_url, c.title, c.channel, c.creator, c.category, c.created_at, "
    "c.duration, c.start_timestamp, c.cameos, "
    "COALESCE((SELECT array_agg(s.submitter ORDER BY s.submitted_at, s.id) "
    "FROM clip_submitters s WHERE s.clip_id = c.id), '{}') AS submitters"
)

_SETTINGS_FIELDS = ("is_open", "max_queue_size", "allowed_platforms")
_SETTINGS_COLUMNS = "is_open, max_queue_size, allowed_platforms, updated_at"

_settings_cache = AsyncTTLCache(maxsize=4, ttl=300)
_SETTINGS_KEY = "clip_queue_settings"


def _row_to_settings(row: asyncpg.Record) -> ClipQueueSettings:
    return ClipQueueSettings(
        is_open=row["is_open"],
        max_queue_size=row["max_queue_size"],
        allowed_platforms=list(row["allowed_platforms"] or ()),
        updated_at=row["updated_at"],
    )


def _row_to_clip(row: asyncpg.Record | dict[str, Any]) -> Clip:
    cameos = row["cameos"]
    return Clip(
        platform=Platform(row["platform"]),
        content_type=ContentType(row["content_type"]),
        id=row["clip_id"],
        url=row["url"],
        embed_url=row["embed_url"],
        title=row["title"],
        channel=row["channel"],
        creator=row["creator"],
        submitters=tuple(row["submitters"] or ()),
        video_url=row["video_url"],
        thumbnail_url=row["thumbnail_url"],
        category=row["category"],
        created_at=row["created_at"],
        duration=row["duration"],
        timestamp=row["start_timestamp"],
        cameos=tuple(cameos) if cameos is not None else None,
    )


# ---------------------------------------------------------------------------
# ClipRepository
# ---------------------------------------------------------------------------


class ClipRepository:
    """Pure SQL operations for clips and clip_submitters."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def upsert(self, key: str, clip: Clip, status: ClipStatus) -> Clip:
        """Insert or refresh a clip and record its submitters.

        Existing submitters are kept; the returned clip carries the merged,
        submission-ordered list.
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(
                    """
                    INSERT INTO clips
                        (id, platform, content_type, clip_id, url, embed_url, video_url,
                         thumbnail_url, title, channel, creator, category, created_at,
                         duration, start_timestamp, cameos, status)
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13,
                            $14, $15, $16, $17)
                    ON CONFLICT (id) DO UPDATE SET
                        title         = EXCLUDED.title,
                        thumbnail_url = EXCLUDED.thumbnail_url,
                        video_url     = EXCLUDED.video_url,
                        status        = EXCLUDED.status
                    """,
                    key,
                    clip.platform.value,
                    clip.content_type.value,
                    clip.id,
                    clip.url,
                    clip.embed_url,
                    clip.video_url,
                    clip.thumbnail_url,
                    clip.title,
                    clip.channel,
                    clip.creator,
                    clip.category,
                    clip.created_at,
                    clip.duration,
                    clip.timestamp,
                    list(clip.cameos) if clip.cameos is not None else None,
                    status.value,
                )
                if clip.submitters:
                    await conn.executemany(
                        "INSERT INTO clip_submitters (clip_id, submitter) VALUES ($1, $2) "
                        "ON CONFLICT (clip_id, submitter) DO NOTHING",
                        [(key, s) for s in clip.submitters],
                    )
                row = await conn.fetchrow(
                    f"SELECT {_CLIP_COLUMNS} FROM clips c WHERE c.id = $1",
                    key,
                )
            return _row_to_clip(row)

    async def get(self, key: str) -> Clip | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_CLIP_COLUMNS} FROM clips c WHERE c.id = $1",
                key,
            )
            return _row_to_clip(row) if row else None

    async def get_by_status(self, status: ClipStatus) -> list[Clip]:
        """Return clips with `status` ordered by submitted_at ASC."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_CLIP_COLUMNS} FROM clips c "
                "WHERE c.status = $1 ORDER BY c.submitted_at ASC, c.id ASC",
                status.value,
            )
            return [_row_to_clip(row) for row in rows]

    async def update_status(self, key: str, status: ClipStatus) -> None:
        """Set a clip's status. Raises LookupError when the clip does not exist."""
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                "UPDATE clips SET status = $2 WHERE id = $1",
                key,
                status.value,
            )
            if result == "UPDATE 0":
                raise LookupError(f"Clip {key} not found")

    async def update_status_many(self, keys: list[str], status: ClipStatus) -> int:
        """Set the status of every clip in `keys`. Returns count of updated rows."""
        if not keys:
            return 0
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                "UPDATE clips SET status = $2 WHERE id = ANY($1)",
                keys,
                status.value,
            )
            return int(result.split()[-1])

    async def delete_by_status(self, status: ClipStatus, keep: list[str]) -> int:
        """Delete clips with `status` except `keep`. Returns count of deleted rows.

        Clips referenced by play_log are marked played instead, in the same
        transaction.
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(
                    """
                    UPDATE clips SET status = 'played'
                    WHERE status = $1
                      AND NOT (id = ANY($2))
                      AND EXISTS (SELECT 1 FROM play_log p WHERE p.clip_id = clips.id)
                    """,
                    status.value,
                    keep,
                )
                result = await conn.execute(
                    "DELETE FROM clips WHERE status = $1 AND NOT (id = ANY($2))",
                    status.value,
                    keep,
                )
            return int(result.split()[-1])


# ---------------------------------------------------------------------------
# PlayLogRepository
# ---------------------------------------------------------------------------


class PlayLogRepository:
    """Pure SQL operations for play_log."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def append(self, key: str, played_at: datetime) -> int:
        """Mark a clip played and record the play event. Returns the log id.

        Both writes share one transaction. Raises LookupError when the clip
        does not exist.
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                result = await conn.execute(
                    "UPDATE clips SET status = 'played' WHERE id = $1",
                    key,
                )
                if result == "UPDATE 0":
                    raise LookupError(f"Clip {key} not found")
                return await conn.fetchval(
                    "INSERT INTO play_log (clip_id, played_at) VALUES ($1, $2) RETURNING id",
                    key,
                    played_at,
                )

    async def get_all(self) -> list[PlayLogEntry]:
        """Return the full play log oldest-first, joined with its clips."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT p.id AS log_id, p.played_at, p.played_for, p.completed_at, "
                f"{_CLIP_COLUMNS} "
                "FROM play_log p JOIN clips c ON c.id = p.clip_id "
                "ORDER BY p.played_at ASC, p.id ASC"
            )
            return [
                PlayLogEntry(
                    id=row["log_id"],
                    clip=_row_to_clip(row),
                    played_at=row["played_at"],
                    played_for=row["played_for"],
                    completed_at=row["completed_at"],
                )
                for row in rows
            ]

    async def delete_all(self, clip_status: ClipStatus, keep: list[str]) -> tuple[int, int]:
        """Delete every play event, then clips with `clip_status` except `keep`.

        Returns (log rows, clip rows) deleted.
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                logs = await conn.execute("DELETE FROM play_log")
                clips = await conn.execute(
                    "DELETE FROM clips WHERE status = $1 AND NOT (id = ANY($2))",
                    clip_status.value,
                    keep,
                )
            return int(logs.split()[-1]), int(clips.split()[-1])


# ---------------------------------------------------------------------------
# ClipQueuePersistence
# ---------------------------------------------------------------------------


class ClipQueuePersistence:
    """Persistence port for the navigation engine, backed by PostgreSQL."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.clips = ClipRepository(pool)
        self.play_log = PlayLogRepository(pool)

    async def update_clip_status(self, key: str, status: ClipStatus) -> None:
        await self.clips.update_status(key, status)

    async def delete_clips_by_status(
        self, status: ClipStatus, keep: Collection[str] = ()
    ) -> None:
        count = await self.clips.delete_by_status(status, list(keep))
        logger.info(f"Deleted {count} {status.value} clip(s)")

    async def append_history_record(self, key: str, played_at: datetime) -> int:
        return await self.play_log.append(key, played_at)

    async def delete_history_by_status(
        self, status: ClipStatus, keep: Collection[str] = ()
    ) -> None:
        logs, clips = await self.play_log.delete_all(status, list(keep))
        logger.info(f"Deleted {logs} play log entr(ies) and {clips} {status.value} clip(s)")


# ---------------------------------------------------------------------------
# ClipQueueSettingsRepository
# ---------------------------------------------------------------------------


class ClipQueueSettingsRepository:
    """Pure SQL operations for the single-row clip_queue_settings table."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    @cached(cache=_settings_cache, key_func=lambda self: _SETTINGS_KEY)
    async def get_or_create(self) -> ClipQueueSettings:
        """Get settings, creating defaults if the row does not exist."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO clip_queue_settings (id)
                VALUES (1)
                ON CONFLICT (id) DO UPDATE SET id = EXCLUDED.id
                RETURNING {_SETTINGS_COLUMNS}
                """
            )
            return _row_to_settings(row)

    async def update_settings(self, **changes: Any) -> ClipQueueSettings:
        """Update the given columns. A None value is written as NULL."""
        unknown = set(changes) - set(_SETTINGS_FIELDS)
        if unknown:
            raise ValueError(f"Unknown settings field(s): {', '.join(sorted(unknown))}")
        updates: list[str] = []
        params: list[Any] = []
        for column in _SETTINGS_FIELDS:
            if column in changes:
                params.append(changes[column])
                updates.append(f"{column} = ${len(params)}")
        updates.append("updated_at = NOW()")

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(
                    "INSERT INTO clip_queue_settings (id) VALUES (1) ON CONFLICT (id) DO NOTHING"
                )
                row = await conn.fetchrow(
                    f"UPDATE clip_queue_settings SET {', '.join(updates)} "
                    f"WHERE id = 1 RETURNING {_SETTINGS_COLUMNS}",
                    *params,
                )
            result = _row_to_settings(row)
            _settings_cache.invalidate(_SETTINGS_KEY)
            return result
