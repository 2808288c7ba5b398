"""
Real Dream entitlement core.

Headless domain logic for the appearance shop:
- Static catalog of themes (free and premium)
- Key-value persistence with a write-behind flush queue
- EntitlementStore guarding ownership, coin balance and the active theme

Presentation layers should obtain a store handle via ``open_store`` and render
from ``EntitlementStore.snapshot()``.
"""
from .catalog import Catalog, Item, Tier, load_catalog
from .config import SeedConfig, load_seed_config
from .entitlements import (
    EntitlementState,
    EntitlementStore,
    OperationResult,
    Rejection,
    open_store,
)
from .errors import ConfigError, RealDreamError, StoreClosedError, UnknownItemError

__version__ = "1.0.0"

__all__ = [
    "Catalog",
    "Item",
    "Tier",
    "load_catalog",
    "SeedConfig",
    "load_seed_config",
    "EntitlementState",
    "EntitlementStore",
    "OperationResult",
    "Rejection",
    "open_store",
    "ConfigError",
    "RealDreamError",
    "StoreClosedError",
    "UnknownItemError",
    "__version__",
]
