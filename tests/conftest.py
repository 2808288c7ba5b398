import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from realdream.catalog import load_catalog  # noqa: E402
from realdream.config import SeedConfig  # noqa: E402
from realdream.entitlements import EntitlementStore, EventBus  # noqa: E402
from realdream.persistence import MemoryStorage, StorageKeys  # noqa: E402


@pytest.fixture()
def catalog():
    return load_catalog()


@pytest.fixture()
def keys() -> StorageKeys:
    return StorageKeys()


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def store(storage, catalog, bus):
    s = EntitlementStore(storage, catalog=catalog, seed=SeedConfig(), event_bus=bus)
    s.hydrate()
    yield s
    s.close(timeout=5)
