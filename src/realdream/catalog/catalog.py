from __future__ import annotations

import logging
from importlib.resources import files as resource_files
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional

import yaml
from pydantic import ValidationError

from realdream.errors import ConfigError, UnknownItemError
from .models import CatalogEntry, Item, Tier

logger = logging.getLogger(__name__)

DEFAULT_RESOURCE = "themes.yaml"


class Catalog:
    """Immutable lookup table of Items, in declaration order."""

    def __init__(self, items: Iterable[Item]) -> None:
        by_id: Dict[str, Item] = {}
        for item in items:
            if item.id in by_id:
                raise ConfigError(f"Duplicate item id in catalog: {item.id}")
            by_id[item.id] = item
        if not by_id:
            raise ConfigError("Catalog must define at least one item")
        self._items = by_id
        self._defaults = frozenset(i.id for i in by_id.values() if i.default_owned)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Item]:
        return iter(self._items.values())

    def items(self) -> List[Item]:
        return list(self._items.values())

    def get(self, item_id: str) -> Optional[Item]:
        return self._items.get(item_id)

    def require(self, item_id: str) -> Item:
        try:
            return self._items[item_id]
        except KeyError as exc:
            raise UnknownItemError(f"Item not found: {item_id}") from exc

    def free_items(self) -> List[Item]:
        return [i for i in self._items.values() if i.tier is Tier.FREE]

    def premium_items(self) -> List[Item]:
        return [i for i in self._items.values() if i.tier is Tier.PREMIUM]

    def default_owned_ids(self) -> FrozenSet[str]:
        return self._defaults


def parse_catalog(raw: object) -> Catalog:
    """Validate a decoded catalog document ({"items": [...]}) into a Catalog."""
    if not isinstance(raw, dict) or not isinstance(raw.get("items"), list):
        raise ConfigError("Invalid catalog: missing 'items' list")
    items: List[Item] = []
    for idx, row in enumerate(raw["items"]):
        try:
            entry = CatalogEntry.model_validate(row)
        except ValidationError as exc:
            raise ConfigError(f"Invalid catalog item at index {idx}: {exc}") from exc
        items.append(entry.to_item())
    return Catalog(items)


def load_catalog(path: Optional[Path] = None) -> Catalog:
    """Load the theme catalog from YAML.

    If path is None, loads the bundled realdream/catalog/themes.yaml resource.
    """
    if path is None:
        data = resource_files("realdream.catalog").joinpath(DEFAULT_RESOURCE).read_text(encoding="utf-8")
        logger.debug("Loaded embedded catalog resource")
    else:
        try:
            data = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Catalog file not readable: {path}") from exc
        logger.debug("Loaded catalog from path: %s", path)

    try:
        raw = yaml.safe_load(data) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Catalog is not valid YAML: {exc}") from exc
    catalog = parse_catalog(raw)
    logger.info(
        "Catalog loaded: %d items (%d free, %d premium)",
        len(catalog),
        len(catalog.free_items()),
        len(catalog.premium_items()),
    )
    return catalog
