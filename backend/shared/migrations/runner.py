"""Migration runner for the clip queue schema."""

from __future__ import annotations

import logging
from pathlib import Path

import asyncpg

logger = logging.getLogger(__name__)

VERSIONS_DIR = Path(__file__).resolve().parent / "versions"


class MigrationRunner:
    """Apply ``versions/NNN_name.sql`` files once each, in filename order.

    Applied versions are recorded in ``schema_migrations``; every file runs
    in its own transaction together with its tracking row.
    """

    TRACKING_TABLE = "schema_migrations"

    def __init__(self, pool: asyncpg.Pool, versions_dir: Path | None = None) -> None:
        self.pool = pool
        self.versions_dir = versions_dir or VERSIONS_DIR

    async def ensure_table(self) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.TRACKING_TABLE} (
                    version    TEXT PRIMARY KEY,
                    applied_at TIMESTAMPTZ DEFAULT NOW()
                )
                """
            )

    async def get_applied(self) -> set[str]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(f"SELECT version FROM {self.TRACKING_TABLE}")  # noqa: S608
            return {row["version"] for row in rows}

    def pending(self, applied: set[str]) -> list[Path]:
        return [p for p in sorted(self.versions_dir.glob("*.sql")) if p.stem not in applied]

    async def run_pending(self) -> list[str]:
        """Apply every pending migration. Returns the newly applied versions."""
        await self.ensure_table()
        to_apply = self.pending(await self.get_applied())
        for sql_path in to_apply:
            logger.info("Applying migration: %s", sql_path.stem)
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(sql_path.read_text(encoding="utf-8"))
                    await conn.execute(
                        f"INSERT INTO {self.TRACKING_TABLE} (version) VALUES ($1)",
                        sql_path.stem,
                    )

        versions = [p.stem for p in to_apply]
        if versions:
            logger.info("Applied %d migration(s): %s", len(versions), ", ".join(versions))
        else:
            logger.info("Database is up to date, no pending migrations")
        return versions
