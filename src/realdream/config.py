from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .catalog import Catalog
from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeedConfig:
    """Seed values used when persisted entitlement data is absent or corrupt.

    You can override by providing a YAML file with keys:
      - starting_balance: int (default 2450)
      - default_item_id: str (default "light")
      - dark_default_item_id: str (default "dark")
      - key_prefix: str (default "@real_dream_")
    """

    starting_balance: int = 2450
    default_item_id: str = "light"
    dark_default_item_id: str = "dark"
    key_prefix: str = "@real_dream_"

    def default_active(self, prefers_dark: bool = False) -> str:
        return self.dark_default_item_id if prefers_dark else self.default_item_id

    def validate(self, catalog: Catalog) -> None:
        """Check the seed against a catalog. Raises ConfigError on mismatch."""
        if self.starting_balance < 0:
            raise ConfigError("starting_balance cannot be negative")
        for name in ("default_item_id", "dark_default_item_id"):
            item_id = getattr(self, name)
            item = catalog.get(item_id)
            if item is None:
                raise ConfigError(f"{name} '{item_id}' is not in the catalog")
            if not item.default_owned:
                raise ConfigError(f"{name} '{item_id}' must be a free, default-owned item")


def load_seed_config(path: Optional[Path]) -> SeedConfig:
    if path is None:
        return SeedConfig()
    path = Path(path)
    if not path.exists():
        logger.warning("Seed config not found at %s; using defaults", path)
        return SeedConfig()
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load seed config from %s: %s", path, e)
        return SeedConfig()
    if not isinstance(raw, dict):
        logger.warning("Seed config at %s is not a mapping; using defaults", path)
        return SeedConfig()

    known = {f.name for f in fields(SeedConfig)}
    data: Dict[str, Any] = {}
    for key, value in raw.items():
        if key not in known:
            logger.debug("Ignoring unknown seed config key %r", key)
            continue
        data[key] = value
    try:
        if "starting_balance" in data:
            data["starting_balance"] = int(data["starting_balance"])
        for key in ("default_item_id", "dark_default_item_id", "key_prefix"):
            if key in data:
                data[key] = str(data[key])
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid seed config in {path}: {exc}") from exc
    if data.get("starting_balance", 0) < 0:
        raise ConfigError("starting_balance cannot be negative")

    cfg = SeedConfig(**data)
    logger.info("Loaded seed config from %s", path)
    return cfg
