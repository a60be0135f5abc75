import logging
import sys
from typing import Any

from loguru import logger

from knowscroll.config import get_settings

# Stdlib loggers routed into loguru
INTERCEPTED_LOGGERS = [
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "httpx",
    "aiohttp",
    "aiohttp.client",
]

# Libraries whose INFO chatter drowns provider events
QUIET_LOGGERS = {"httpx": "WARNING", "aiohttp": "WARNING"}

PLAIN_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message} | {extra}"
)
COLOR_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level> | {extra}"
)


class InterceptHandler(logging.Handler):
    """Route stdlib log records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk back past the logging module so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore[assignment]
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _access_log_filter(record: dict[str, Any]) -> bool:
    """Keep health probes out of the log unless running at DEBUG."""
    if "/health" in record.get("message", ""):
        return bool(record["level"].no <= 10)
    return True


def setup_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Configure loguru for the API server and the CLI.

    Args:
        level: Minimum level; defaults to DEBUG in debug mode, else ``settings.log_level``
        json_logs: Emit one JSON object per line; defaults to ``settings.log_json``
    """
    settings = get_settings()
    level = (level or ("DEBUG" if settings.debug else settings.log_level)).upper()
    json_logs = settings.log_json if json_logs is None else json_logs

    logger.remove()

    if json_logs:
        logger.add(sys.stderr, level=level, serialize=True, filter=_access_log_filter)
    elif settings.debug:
        logger.add(sys.stderr, level=level, format=COLOR_FORMAT, backtrace=True, diagnose=True)
    else:
        logger.add(
            sys.stderr,
            level=level,
            format=PLAIN_FORMAT,
            filter=_access_log_filter,
            backtrace=True,
            diagnose=False,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in INTERCEPTED_LOGGERS:
        logging.getLogger(name).handlers = [InterceptHandler()]
    if level != "DEBUG":
        for name, quiet_level in QUIET_LOGGERS.items():
            logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str) -> Any:
    """Get a logger bound to a module name."""
    return logger.bind(name=name)
