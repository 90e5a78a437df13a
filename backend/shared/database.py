"""asyncpg pool for the clip queue store.

A DSN on port 6543 is treated as a PgBouncer transaction pooler, which
cannot hold prepared statements across transactions; any other port is
assumed to be a direct or session-pooled connection.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import asyncpg

logger = logging.getLogger(__name__)


@dataclass
class PoolConfig:
    """Pool sizing, timeouts and connect retry policy."""

    min_size: int = 1
    max_size: int = 5
    timeout: float = 5.0
    command_timeout: float = 15.0
    max_inactive_connection_lifetime: float = 30.0
    max_retries: int = 3
    retry_delay: float = 3.0
    ssl: str | None = "require"


class DatabaseManager:
    """Owns the asyncpg pool: connect with retry, health check, close."""

    TRANSACTION_POOLER_PORT = ":6543"

    def __init__(self, dsn: str, config: PoolConfig | None = None):
        self.dsn = dsn
        self.config = config or PoolConfig()
        self._pool: asyncpg.Pool | None = None
        self.pooler_mode = "transaction" if self.TRANSACTION_POOLER_PORT in dsn else "session"

    def _pool_kwargs(self) -> dict[str, Any]:
        """Build asyncpg.create_pool kwargs for the detected pooler mode.

        PgBouncer in transaction mode cannot keep prepared statements or idle
        connections, so both are disabled there.
        """
        kwargs: dict[str, Any] = dict(
            dsn=self.dsn,
            min_size=self.config.min_size,
            max_size=self.config.max_size,
            timeout=self.config.timeout,
            command_timeout=self.config.command_timeout,
            statement_cache_size=100,
            max_inactive_connection_lifetime=self.config.max_inactive_connection_lifetime,
        )
        if self.config.ssl:
            kwargs["ssl"] = self.config.ssl
        if self.pooler_mode == "transaction":
            kwargs.update(min_size=0, statement_cache_size=0, max_inactive_connection_lifetime=0)
        return kwargs

    async def connect(self) -> None:
        """Create and verify the pool, retrying with exponential backoff."""
        if self._pool is not None:
            logger.warning("connect() called on an open pool, ignoring")
            return

        pool_kwargs = self._pool_kwargs()
        cfg = self.config
        for attempt in range(1, cfg.max_retries + 1):
            try:
                self._pool = await asyncpg.create_pool(**pool_kwargs)
                async with self._pool.acquire() as conn:
                    await conn.fetchval("SELECT 1")
                logger.info(
                    f"Database pool ready (mode={self.pooler_mode}, "
                    f"size={pool_kwargs['min_size']}-{cfg.max_size})"
                )
                return
            except Exception as e:
                if self._pool is not None:
                    await self._pool.close()
                    self._pool = None
                if attempt == cfg.max_retries:
                    logger.exception(
                        f"Database connection failed after {cfg.max_retries} attempts: "
                        f"{type(e).__name__}: {e}"
                    )
                    raise
                delay = cfg.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"Database connection attempt {attempt}/{cfg.max_retries} failed: "
                    f"{type(e).__name__}: {e}, retrying in {delay}s..."
                )
                await asyncio.sleep(delay)

    async def disconnect(self) -> None:
        if self._pool is None:
            return
        try:
            await self._pool.close()
            logger.info("Database pool closed")
        except Exception as e:
            logger.exception(f"Failed to close pool cleanly: {e}")
        finally:
            self._pool = None

    async def check_health(self) -> bool:
        """Round-trip `SELECT 1` through the pool."""
        if self._pool is None:
            return False
        try:
            async with self._pool.acquire(timeout=2.0) as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception:
            return False

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    @property
    def pool(self) -> asyncpg.Pool:
        """Get the connection pool. Raises if not initialized."""
        if self._pool is None:
            raise RuntimeError("Clip store is not connected")
        return self._pool
