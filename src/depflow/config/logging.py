"""Logging setup for the depflow CLI and the reminder worker."""

from __future__ import annotations

import logging
import os
from typing import Final

from .errors import ConfigurationError

LOG_LEVEL_ENV: Final[str] = "DEPFLOW_LOG_LEVEL"
LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
# HTTP clients log every GitHub request at INFO.
HTTP_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore", "hishel")


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger for CLI and worker output.

    ``level`` defaults to the ``DEPFLOW_LOG_LEVEL`` level name and falls back to INFO.
    The HTTP client loggers stay at WARNING unless DEBUG output was asked for. Pass
    ``force=True`` to reconfigure an already configured root logger.
    """

    resolved = level if level is not None else level_from_env()
    logging.basicConfig(level=resolved, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    http_level = logging.DEBUG if resolved <= logging.DEBUG else logging.WARNING
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)


def level_from_env() -> int:
    raw = os.getenv(LOG_LEVEL_ENV, "").strip().upper()
    if not raw:
        return logging.INFO
    level = logging.getLevelNamesMapping().get(raw)
    if level is None:
        raise ConfigurationError(
            f"{LOG_LEVEL_ENV} must be a logging level name, got {raw!r}",
            variables=[LOG_LEVEL_ENV],
        )
    return level
