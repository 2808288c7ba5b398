from __future__ import annotations

import logging
import os
from typing import Optional

ENV_LOG_LEVEL = "REALDREAM_LOG_LEVEL"

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def level_for_verbosity(verbosity: int) -> int:
    """Map a -v count to a level: none -> WARNING, -v -> INFO, -vv -> DEBUG."""
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def resolve_level(verbosity: int = 0, env_level: Optional[str] = None) -> int:
    """REALDREAM_LOG_LEVEL, when it names a real level, wins over the -v count."""
    fallback = level_for_verbosity(verbosity)
    if not env_level:
        return fallback
    level = logging.getLevelName(env_level.strip().upper())
    return level if isinstance(level, int) else fallback


def configure_logging(verbosity: int = 0) -> int:
    """Configure the root logger for command-line use and return the level applied."""
    level = resolve_level(verbosity, os.getenv(ENV_LOG_LEVEL))
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
    return level
