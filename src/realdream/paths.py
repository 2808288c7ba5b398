from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from platformdirs import PlatformDirs

LOGGER = logging.getLogger("realdream.paths")
LOGGER.addHandler(logging.NullHandler())

APP_NAME = "Real Dream"

# Environment variable override (useful for tests and power users)
ENV_DATA_DIR = "REALDREAM_DATA_DIR"


def default_data_dir(app_name: str = APP_NAME) -> Path:
    """Return the directory holding persisted entitlement keys.

    Uses platformdirs for the per-user data location; REALDREAM_DATA_DIR wins
    when set.
    """
    override = os.getenv(ENV_DATA_DIR)
    if override:
        return Path(override).expanduser().resolve()
    dirs = PlatformDirs(appname=app_name, appauthor=False)
    return (Path(dirs.user_data_dir) / "storage").expanduser().resolve()


def resolve_data_dir(explicit: Optional[Path] = None) -> Path:
    path = Path(explicit).expanduser().resolve() if explicit else default_data_dir()
    path.mkdir(parents=True, exist_ok=True)
    LOGGER.debug("Using data directory %s", path)
    return path
