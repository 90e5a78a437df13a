"""Data models for the clips table and the clip key used across the queue."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum


class Platform(StrEnum):
    KICK = "kick"
    SORA = "sora"
    STREAMABLE = "streamable"
    TWITCH = "twitch"


class ContentType(StrEnum):
    CLIP = "clip"  # short highlight, 15-60s
    VOD = "vod"  # full stream recording
    HIGHLIGHT = "highlight"  # curated segment of a VOD
    CAMEO = "cameo"  # Sora video with persona appearances
    VIDEO = "video"  # anything else (e.g. Streamable)


class ClipStatus(StrEnum):
    APPROVED = "approved"
    REJECTED = "rejected"
    PLAYED = "played"


# Content types whose start offset changes what the viewer sees
_LONG_FORM = frozenset({ContentType.VOD, ContentType.HIGHLIGHT})


@dataclass(frozen=True)
class Clip:
    """One piece of submitted content.

    Compared by value; the queue engine addresses clips by `to_clip_key`.
    """

    platform: Platform
    content_type: ContentType
    id: str
    url: str
    embed_url: str
    title: str
    channel: str
    creator: str
    submitters: tuple[str, ...] = ()
    video_url: str | None = None
    thumbnail_url: str | None = None
    category: str | None = None
    created_at: str | None = None
    duration: int | None = None
    timestamp: int | None = None  # start offset in seconds (long-form only)
    cameos: tuple[str, ...] | None = field(default=None)

    def with_submitter(self, submitter: str) -> Clip:
        """Return a copy with `submitter` appended (no-op if already present)."""
        if submitter in self.submitters:
            return self
        return replace(self, submitters=(*self.submitters, submitter))


def to_clip_key(clip: Clip) -> str:
    """Return the deterministic key of a clip.

    Format: ``platform:content_type:id``, plus ``:timestamp`` for VODs and
    highlights with a positive start offset so two submissions of the same
    recording at different start points stay distinct.

    >>> to_clip_key(vod)  # vod.id == "12345", vod.timestamp == 630
    'twitch:vod:12345:630'
    """
    base = f"{clip.platform.value}:{clip.content_type.value}:{clip.id}".lower()
    if clip.content_type in _LONG_FORM and clip.timestamp is not None and clip.timestamp > 0:
        return f"{base}:{clip.timestamp}"
    return base
