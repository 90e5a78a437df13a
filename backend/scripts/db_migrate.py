"""Apply clip queue migrations.

Usage:
    python backend/scripts/db_migrate.py          # Run all pending migrations
    python backend/scripts/db_migrate.py --dry    # List pending migrations only
"""

import asyncio
import logging
import sys

import asyncpg

from api.core.config import get_settings
from shared.migrations.runner import MigrationRunner

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


async def main() -> None:
    settings = get_settings()
    pool = await asyncpg.create_pool(
        settings.database_url,
        min_size=1,
        max_size=2,
        statement_cache_size=0,
        ssl=settings.ssl_mode,
    )
    try:
        runner = MigrationRunner(pool)
        if "--dry" in sys.argv:
            await runner.ensure_table()
            pending = runner.pending(await runner.get_applied())
            print(f"Pending: {len(pending)}")
            for path in pending:
                print(f"  -> {path.stem}")
        else:
            applied = await runner.run_pending()
            print(f"Applied {len(applied)} migration(s).")
    finally:
        await pool.close()


if __name__ == "__main__":
    asyncio.run(main())
