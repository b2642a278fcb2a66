"""loguru setup for the orchestrator process.

Everything the orchestrator itself logs, plus uvicorn / sqlalchemy / httpx
records routed in from stdlib ``logging``, goes to one stderr sink.  Dev
server output never reaches this sink; it stays in the supervisor's
``LogBuffer``.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

from loguru import logger

from vibeconsole.sandbox.commands import redact

if TYPE_CHECKING:
    from loguru import Record

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "aiosqlite", "sse_starlette")


class _StdlibToLoguru(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so the record points at the real caller.
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _scrub_credentials(record: Record) -> None:
    # Clone URLs carry the hosting token in their userinfo part.
    record["message"] = redact(record["message"])


def setup_logging(level: str = "INFO") -> None:
    """Make loguru the only sink; call once before the server starts."""
    level = level.upper()

    logger.remove()
    logger.configure(patcher=_scrub_credentials)
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)

    logging.basicConfig(handlers=[_StdlibToLoguru()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging initialised (level={})", level)
