"""Dependency injection utilities for FastAPI"""

import logging

import asyncpg
from fastapi import HTTPException

from api.core.config import get_settings
from api.services.queue_service import ClipQueueService
from shared.repositories import ClipQueuePersistence, ClipQueueSettingsRepository

logger = logging.getLogger(__name__)

# One queue session per process; every engine call goes through its lock
_queue_service: ClipQueueService | None = None


def init_queue_service(pool: asyncpg.Pool) -> ClipQueueService:
    """Create the process-wide queue session bound to `pool`"""
    global _queue_service
    settings = get_settings()
    _queue_service = ClipQueueService(
        store=ClipQueuePersistence(pool),
        settings_repo=ClipQueueSettingsRepository(pool),
        default_queue_limit=settings.default_queue_limit,
    )
    return _queue_service


def reset_queue_service() -> None:
    global _queue_service
    _queue_service = None


def get_queue_service() -> ClipQueueService:
    """Return the loaded queue session, or 503 while the database is not ready"""
    if _queue_service is None or not _queue_service.is_loaded:
        raise HTTPException(status_code=503, detail="Queue not ready")
    return _queue_service


def peek_queue_service() -> ClipQueueService | None:
    """The queue session if one was created, loaded or not (for health output)"""
    return _queue_service
