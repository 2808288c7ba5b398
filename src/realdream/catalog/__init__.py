from .models import CatalogEntry, Item, Tier
from .catalog import Catalog, load_catalog, parse_catalog

__all__ = [
    "Catalog",
    "CatalogEntry",
    "Item",
    "Tier",
    "load_catalog",
    "parse_catalog",
]
