"""Logging setup for processes that run swarm update fetches."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from swarmupdate.config import get_runtime_env

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL_ENV = "SWARM_UPDATE_LOG_LEVEL"
LOG_FILE_ENV = "SWARM_UPDATE_LOG_FILE"


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Install stdout (and optional file) handlers on the root logger.

    Arguments left as ``None`` are taken from ``SWARM_UPDATE_LOG_LEVEL`` and
    ``SWARM_UPDATE_LOG_FILE``. Unknown level names fall back to ``INFO``.
    """

    env = get_runtime_env()
    level_name = (level or env.get(LOG_LEVEL_ENV) or "INFO").upper()
    log_file = log_file or env.get(LOG_FILE_ENV) or None

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    resolved = logging.getLevelName(level_name)
    logging.basicConfig(
        level=resolved if isinstance(resolved, int) else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
