import logging

import pytest

from realdream.entitlements import EntitlementStore, StorageFailed
from realdream.persistence import MemoryStorage, StorageKeys

KEYS = StorageKeys()


def make_store(catalog, bus, data=None):
    storage = MemoryStorage(data)
    return storage, EntitlementStore(storage, catalog=catalog, event_bus=bus)


def test_full_valid_state_is_restored(catalog, bus):
    _, store = make_store(catalog, bus, {
        KEYS.active: "sunset",
        KEYS.owned: '["sunset", "ocean"]',
        KEYS.balance: "120",
    })
    state = store.hydrate()
    assert state.active_item_id == "sunset"
    assert state.owned_item_ids == frozenset({"light", "dark", "sunset", "ocean"})
    assert state.balance == 120
    assert store.snapshot() == state
    store.close()


def test_corrupt_balance_falls_back_only_for_that_key(catalog, bus, caplog):
    failures = []
    bus.subscribe(StorageFailed, failures.append)
    _, store = make_store(catalog, bus, {
        KEYS.active: "ocean",
        KEYS.owned: '["ocean"]',
        KEYS.balance: "lots of coins",
    })
    with caplog.at_level(logging.WARNING):
        state = store.hydrate()

    assert state.balance == 2450
    assert state.active_item_id == "ocean"
    assert "ocean" in state.owned_item_ids
    assert any("corrupt" in r.getMessage() for r in caplog.records)
    assert [(f.operation, f.key) for f in failures] == [("decode", KEYS.balance)]
    assert "not a non-negative integer" in failures[0].error
    store.close()


def test_corrupt_owned_set_repairs_active_selection(catalog, bus):
    _, store = make_store(catalog, bus, {
        KEYS.active: "midnight",
        KEYS.owned: "{not json",
        KEYS.balance: "1999",
    })
    state = store.hydrate()
    assert state.owned_item_ids == frozenset({"light", "dark"})
    assert state.active_item_id == "light"
    assert state.balance == 1999
    store.close()


def test_lost_ownership_entry_reverts_active(catalog, bus):
    # Crash after debit landed but before the grant: coins gone, theme not owned
    _, store = make_store(catalog, bus, {
        KEYS.active: "forest",
        KEYS.balance: "2301",
    })
    state = store.hydrate()
    assert state.active_item_id == "light"
    assert state.owned_item_ids == frozenset({"light", "dark"})
    assert state.balance == 2301
    store.close()


def test_repair_uses_dark_default_when_device_prefers_dark(catalog, bus):
    _, store = make_store(catalog, bus, {KEYS.active: "rainbow"})
    assert store.hydrate(prefers_dark=True).active_item_id == "dark"
    store.close()


def test_unknown_and_free_ids_in_owned_set_are_dropped(catalog, bus):
    _, store = make_store(catalog, bus, {KEYS.owned: '["light", "retired_theme", "ocean"]'})
    state = store.hydrate()
    assert state.owned_item_ids == frozenset({"light", "dark", "ocean"})
    store.close()


def test_unreadable_key_falls_back_without_aborting(catalog, bus):
    failures = []
    bus.subscribe(StorageFailed, failures.append)
    storage, store = make_store(catalog, bus, {
        KEYS.active: "dark",
        KEYS.owned: '["ocean"]',
        KEYS.balance: "5",
    })
    storage.fail_reads.add(KEYS.owned)
    state = store.hydrate()
    assert state.active_item_id == "dark"
    assert state.owned_item_ids == frozenset({"light", "dark"})
    assert state.balance == 5
    assert failures[0].operation == "read"
    assert failures[0].key == KEYS.owned
    store.close()


@pytest.mark.parametrize("present", [
    (),
    ("active",),
    ("owned",),
    ("balance",),
    ("active", "owned"),
    ("active", "balance"),
    ("owned", "balance"),
])
def test_any_subset_of_keys_hydrates_to_valid_state(catalog, bus, present):
    full = {KEYS.active: "ocean", KEYS.owned: '["ocean"]', KEYS.balance: "42"}
    data = {getattr(KEYS, name): full[getattr(KEYS, name)] for name in present}
    _, store = make_store(catalog, bus, data)
    state = store.hydrate()

    assert state.active_item_id in state.owned_item_ids
    assert catalog.default_owned_ids() <= state.owned_item_ids
    assert state.balance >= 0
    assert state.balance == (42 if "balance" in present else 2450)
    assert ("ocean" in state.owned_item_ids) == ("owned" in present)
    store.close()


def test_hydrate_does_not_write(catalog, bus):
    storage, store = make_store(catalog, bus, {KEYS.active: "midnight"})
    store.hydrate()
    store.flush(timeout=5)
    assert storage.write_log == []
    store.close()
