"""Process logging for the API and the scheduler loop."""

import logging
import sys

from fieldflow.core.config import get_settings

# Request-level chatter from provider HTTP calls and the DB driver.
_NOISY_LOGGERS = ("httpx", "httpcore", "asyncpg")


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once per process, writing to stdout.

    Level comes from ``level`` when given (e.g. "WARNING" for scripts),
    otherwise DEBUG when settings.debug is set and INFO when not.
    """
    settings = get_settings()
    if level is not None:
        log_level = logging.getLevelName(level.upper())
    else:
        log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    if not settings.debug:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
