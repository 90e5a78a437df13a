"""FastAPI application factory"""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from api.core.config import Settings, get_settings
from api.core.database import get_database_manager, init_database_manager
from api.core.dependencies import init_queue_service, peek_queue_service, reset_queue_service
from api.core.logging import setup_logging
from api.routers import queue_router
from shared.database import DatabaseManager
from shared.migrations.runner import MigrationRunner

logger = logging.getLogger(__name__)

_start_time: float = 0.0
_heartbeat_task: asyncio.Task | None = None
_db_retry_task: asyncio.Task | None = None


def _queue_summary() -> dict[str, int | bool]:
    service = peek_queue_service()
    if service is None or not service.is_loaded:
        return {"loaded": False}
    state = service.state
    return {
        "loaded": True,
        "queued": len(state.queue),
        "played": len(state.history),
        "history_position": state.history_position,
    }


async def _heartbeat(interval: int = 300) -> None:
    """Log uptime, store health and queue size every `interval` seconds"""
    while True:
        await asyncio.sleep(interval)
        uptime = int(time.time() - _start_time)
        db_ok = await get_database_manager().check_health()
        logger.info(f"Heartbeat: uptime={uptime}s, db={db_ok}, queue={_queue_summary()}")


async def _start_queue(db_manager: DatabaseManager, settings: Settings) -> None:
    """Connect, migrate and rebuild the queue session from the store"""
    await db_manager.connect()
    if settings.run_migrations:
        await MigrationRunner(db_manager.pool).run_pending()
    service = init_queue_service(db_manager.pool)
    await service.load()


async def _db_retry_loop(db_manager: DatabaseManager, settings: Settings) -> None:
    """Keep retrying startup after the initial attempt failed"""
    delay = 5
    max_delay = 60
    while True:
        await asyncio.sleep(delay)
        try:
            await _start_queue(db_manager, settings)
            logger.info("Queue ready (background retry)")
            return
        except asyncio.CancelledError:
            return
        except Exception as e:
            delay = min(delay * 2, max_delay)
            logger.warning(
                f"Background startup retry failed: {type(e).__name__}: {e}, next in {delay}s"
            )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle startup and shutdown"""
    global _start_time, _heartbeat_task, _db_retry_task
    _start_time = time.time()
    settings = get_settings()

    logger.info("Starting clip queue API server")
    logger.info(f"Environment: {settings.environment} | Channel: {settings.channel_name or '-'}")

    db_manager = init_database_manager(settings.database_url, ssl=settings.ssl_mode)
    try:
        await asyncio.wait_for(_start_queue(db_manager, settings), timeout=30)
        logger.info("Queue ready")
    except Exception as e:
        logger.error(f"Startup failed: {type(e).__name__}: {e}, retrying in background")
        _db_retry_task = asyncio.create_task(_db_retry_loop(db_manager, settings))

    if settings.enable_keep_alive:
        _heartbeat_task = asyncio.create_task(_heartbeat(settings.keep_alive_interval))

    yield

    logger.info("Shutting down clip queue API server")
    for task in (_db_retry_task, _heartbeat_task):
        if task:
            task.cancel()
    reset_queue_service()
    await db_manager.disconnect()


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    settings = get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="Clip Queue API",
        description="Now playing, queue and play history for a live clip queue",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["ETag"],
    )

    app.include_router(queue_router.router)

    @app.get("/health")
    async def health():
        """Liveness check (no DB dependency)"""
        return {"status": "healthy", "uptime_seconds": int(time.time() - _start_time)}

    @app.get("/status")
    async def status():
        """Readiness: includes actual DB health check"""
        db_manager = get_database_manager()
        return {
            "service": "clip-queue-api",
            "uptime_seconds": int(time.time() - _start_time),
            "db_connected": await db_manager.check_health(),
            "queue": _queue_summary(),
            "environment": settings.environment,
        }

    @app.api_route("/ping", methods=["GET", "HEAD"], response_class=PlainTextResponse)
    async def ping():
        return "pong"

    logger.info("FastAPI application configured")
    return app
