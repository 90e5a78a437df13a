"""Logging configuration"""

import logging

from api.core.config import Settings

try:
    from rich.console import Console
    from rich.logging import RichHandler

    RICH_AVAILABLE = True
except ImportError:
    RICH_AVAILABLE = False

_PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(settings: Settings) -> None:
    """Configure root logging, with a Rich handler when available"""
    level = getattr(logging, settings.log_level, logging.INFO)

    if RICH_AVAILABLE:
        rich_handler = RichHandler(
            console=Console(force_terminal=True, width=120),
            show_time=True,
            show_level=True,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
        )
        rich_handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))
        # force=True: uvicorn configures the root logger first
        logging.basicConfig(level=level, handlers=[rich_handler], force=True)
    else:
        logging.basicConfig(
            level=level, format=_PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S", force=True
        )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    if level != logging.DEBUG:
        logging.getLogger("shared.queue_ops").setLevel(logging.INFO)

    logging.getLogger(__name__).info(
        f"Logging: {settings.log_level} | Env: {settings.environment}"
    )
