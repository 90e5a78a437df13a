"""Clip queue API routes."""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Awaitable
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from api.core.dependencies import get_queue_service
from api.services.queue_service import ClipQueueService, QueueView
from shared.models.clip import Clip, ContentType, Platform, to_clip_key
from shared.models.play_log import PlayLogEntry
from shared.queue_ops import (
    ClipAlreadyPlayingError,
    ClipNotInHistoryError,
    ClipNotInQueueError,
    PlatformNotAllowedError,
    QueueClosedError,
    QueueFullError,
    QueueOperationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/queue", tags=["queue"])


# ============================================
# Response / Request Models
# ============================================


class ClipModel(BaseModel):
    platform: Platform
    content_type: ContentType
    id: str
    url: str
    embed_url: str
    video_url: str | None = None
    thumbnail_url: str | None = None
    title: str
    channel: str
    creator: str
    submitters: list[str] = Field(default_factory=list)
    category: str | None = None
    created_at: str | None = None
    duration: int | None = Field(default=None, gt=0)
    timestamp: int | None = Field(default=None, ge=0)
    cameos: list[str] | None = None

    @classmethod
    def from_clip(cls, clip: Clip) -> ClipModel:
        return cls(
            platform=clip.platform,
            content_type=clip.content_type,
            id=clip.id,
            url=clip.url,
            embed_url=clip.embed_url,
            video_url=clip.video_url,
            thumbnail_url=clip.thumbnail_url,
            title=clip.title,
            channel=clip.channel,
            creator=clip.creator,
            submitters=list(clip.submitters),
            category=clip.category,
            created_at=clip.created_at,
            duration=clip.duration,
            timestamp=clip.timestamp,
            cameos=list(clip.cameos) if clip.cameos is not None else None,
        )

    def to_clip(self) -> Clip:
        return Clip(
            platform=self.platform,
            content_type=self.content_type,
            id=self.id,
            url=self.url,
            embed_url=self.embed_url,
            video_url=self.video_url,
            thumbnail_url=self.thumbnail_url,
            title=self.title,
            channel=self.channel,
            creator=self.creator,
            submitters=tuple(self.submitters),
            category=self.category,
            created_at=self.created_at,
            duration=self.duration,
            timestamp=self.timestamp,
            cameos=tuple(self.cameos) if self.cameos is not None else None,
        )


class QueuedClipResponse(ClipModel):
    key: str


class PlayLogEntryResponse(BaseModel):
    id: int
    clip: QueuedClipResponse
    played_at: datetime
    played_for: int | None
    completed_at: datetime | None


class QueueSettingsResponse(BaseModel):
    is_open: bool
    max_queue_size: int | None
    allowed_platforms: list[str]


class QueueSettingsUpdate(BaseModel):
    is_open: bool | None = None
    max_queue_size: int | None = Field(default=None, ge=1)  # null removes the limit
    allowed_platforms: list[Platform] | None = None


class QueueStateResponse(BaseModel):
    current: QueuedClipResponse | None
    upcoming: list[QueuedClipResponse]
    play_history: list[PlayLogEntryResponse]
    history_position: int  # -1 = queue mode, >= 0 = navigating history
    is_open: bool
    settings: QueueSettingsResponse


class SubmitRequest(BaseModel):
    clip: ClipModel
    submitter: str = Field(..., min_length=1)
    auto_approve: bool = False


class ClipKeyRequest(BaseModel):
    clip_key: str = Field(..., min_length=1)


class BatchClipKeysRequest(BaseModel):
    clip_keys: list[str] = Field(..., min_length=1)


# ============================================
# Helpers
# ============================================


_ERROR_STATUS: dict[type[QueueOperationError], int] = {
    ClipNotInHistoryError: 404,
    ClipNotInQueueError: 404,
    QueueClosedError: 403,
    PlatformNotAllowedError: 400,
    QueueFullError: 409,
    ClipAlreadyPlayingError: 409,
}


def _clip_response(clip: Clip) -> QueuedClipResponse:
    return QueuedClipResponse(key=to_clip_key(clip), **ClipModel.from_clip(clip).model_dump())


def _entry_response(entry: PlayLogEntry) -> PlayLogEntryResponse:
    return PlayLogEntryResponse(
        id=entry.id,
        clip=_clip_response(entry.clip),
        played_at=entry.played_at,
        played_for=entry.played_for,
        completed_at=entry.completed_at,
    )


def build_state_response(view: QueueView) -> QueueStateResponse:
    return QueueStateResponse(
        current=_clip_response(view.current) if view.current else None,
        upcoming=[_clip_response(c) for c in view.upcoming],
        play_history=[_entry_response(e) for e in view.play_history],
        history_position=view.history_position,
        is_open=view.is_open,
        settings=QueueSettingsResponse(
            is_open=view.settings.is_open,
            max_queue_size=view.settings.max_queue_size,
            allowed_platforms=view.settings.allowed_platforms,
        ),
    )


def compute_etag(payload: dict) -> str:
    digest = hashlib.sha256(json.dumps(payload, sort_keys=True).encode("utf-8")).hexdigest()
    return f'"{digest[:32]}"'


async def _run_command(
    action: Awaitable[object], service: ClipQueueService, failure: str
) -> QueueStateResponse:
    """Await a queue command, map queue errors to HTTP, return the new state."""
    try:
        await action
        return build_state_response(await service.view())
    except QueueOperationError as e:
        status = _ERROR_STATUS.get(type(e), 400)
        raise HTTPException(status_code=status, detail=str(e)) from None
    except Exception as e:
        logger.exception(f"{failure}: {e}")
        raise HTTPException(status_code=500, detail=failure) from None


# ============================================
# Read
# ============================================


@router.get("", response_model=QueueStateResponse)
async def get_queue(
    request: Request,
    service: ClipQueueService = Depends(get_queue_service),
) -> Response:
    """Polling endpoint. Honours If-None-Match with 304 when unchanged."""
    try:
        payload = build_state_response(await service.view()).model_dump(mode="json")
    except Exception as e:
        logger.exception(f"Failed to get queue state: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch queue state") from None

    etag = compute_etag(payload)
    if request.headers.get("if-none-match") == etag:
        return Response(status_code=304, headers={"ETag": etag})
    return JSONResponse(payload, headers={"ETag": etag})


# ============================================
# Navigation
# ============================================


@router.post("/advance", response_model=QueueStateResponse)
async def advance_queue(
    service: ClipQueueService = Depends(get_queue_service),
) -> QueueStateResponse:
    return await _run_command(service.advance(), service, "Failed to advance queue")


@router.post("/previous", response_model=QueueStateResponse)
async def previous_clip(
    service: ClipQueueService = Depends(get_queue_service),
) -> QueueStateResponse:
    return await _run_command(service.previous(), service, "Failed to go to previous clip")


@router.post("/play", response_model=QueueStateResponse)
async def play_clip(
    body: ClipKeyRequest,
    service: ClipQueueService = Depends(get_queue_service),
) -> QueueStateResponse:
    return await _run_command(service.play(body.clip_key), service, "Failed to play clip")


@router.post("/history/{clip_key}/replay", response_model=QueueStateResponse)
async def replay_from_history(
    clip_key: str,
    service: ClipQueueService = Depends(get_queue_service),
) -> QueueStateResponse:
    return await _run_command(
        service.replay_from_history(clip_key), service, "Failed to replay clip"
    )


@router.delete("", response_model=QueueStateResponse)
async def clear_queue(
    service: ClipQueueService = Depends(get_queue_service),
) -> QueueStateResponse:
    return await _run_command(service.clear(), service, "Failed to clear queue")


@router.delete("/history", response_model=QueueStateResponse)
async def clear_history(
    service: ClipQueueService = Depends(get_queue_service),
) -> QueueStateResponse:
    return await _run_command(service.clear_history(), service, "Failed to clear history")


# ============================================
# Submission / removal
# ============================================


@router.post("/submit", response_model=QueueStateResponse)
async def submit_clip(
    body: SubmitRequest,
    service: ClipQueueService = Depends(get_queue_service),
) -> QueueStateResponse:
    return await _run_command(
        service.submit(body.clip.to_clip(), body.submitter, auto_approve=body.auto_approve),
        service,
        "Failed to submit clip",
    )


@router.post("/remove", response_model=QueueStateResponse)
async def remove_clip(
    body: ClipKeyRequest,
    service: ClipQueueService = Depends(get_queue_service),
) -> QueueStateResponse:
    return await _run_command(service.remove(body.clip_key), service, "Failed to remove clip")


@router.post("/batch/remove", response_model=QueueStateResponse)
async def batch_remove_clips(
    body: BatchClipKeysRequest,
    service: ClipQueueService = Depends(get_queue_service),
) -> QueueStateResponse:
    return await _run_command(
        service.batch_remove(body.clip_keys), service, "Failed to remove clips"
    )


# ============================================
# Open / close / settings
# ============================================


@router.post("/open", response_model=QueueStateResponse)
async def open_queue(
    service: ClipQueueService = Depends(get_queue_service),
) -> QueueStateResponse:
    return await _run_command(service.open(), service, "Failed to open queue")


@router.post("/close", response_model=QueueStateResponse)
async def close_queue(
    service: ClipQueueService = Depends(get_queue_service),
) -> QueueStateResponse:
    return await _run_command(service.close(), service, "Failed to close queue")


@router.put("/settings", response_model=QueueStateResponse)
async def update_settings(
    body: QueueSettingsUpdate,
    service: ClipQueueService = Depends(get_queue_service),
) -> QueueStateResponse:
    """Update is_open, max_queue_size or allowed_platforms. Omitted fields are kept."""
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    return await _run_command(
        service.update_settings(**changes), service, "Failed to update queue settings"
    )
