"""
Centralized logging configuration for VistaQuest.

Call setup_logging() once at application startup (from the FastAPI
lifespan handler or from run_server.py).  Every source module then
gets its own logger via:

    import logging
    logger = logging.getLogger(__name__)

Level mapping:
  DEBUG   – payload sizes, per-step timings
  INFO    – turn and refinement lifecycle
  WARNING – retry attempts, theme/style fallbacks
  ERROR   – failed turns and refinements
"""

import logging
import sys

from .config import config

BRIEF_FORMAT = "[%(name)s] %(message)s"
DEBUG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

# Chatty at INFO: HTTP client internals, the SDK, access logs, image plugins
QUIET_LOGGERS = ("httpx", "httpcore", "google_genai", "uvicorn.access", "PIL")


def resolve_level(level: str | None = None) -> int:
    """Numeric level for *level*, or from config when omitted.

    ``DEBUG=true`` wins over ``LOG_LEVEL``.  Unknown names map to INFO.
    """
    if level is None:
        level = "DEBUG" if config.is_debug() else config.LOG_LEVEL
    numeric = logging.getLevelName(level.strip().upper())
    return numeric if isinstance(numeric, int) else logging.INFO


def setup_logging(level: str | None = None) -> str:
    """Configure the root logger and quiet third-party loggers.

    Timestamps and level names are only added at DEBUG.

    Returns:
        The level name actually applied (e.g. ``"INFO"``), for handing on
        to uvicorn.
    """
    numeric = resolve_level(level)
    logging.basicConfig(
        level=numeric,
        format=DEBUG_FORMAT if numeric <= logging.DEBUG else BRIEF_FORMAT,
        stream=sys.stdout,
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric, logging.WARNING))
    return logging.getLevelName(numeric)
