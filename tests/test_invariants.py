import random

import pytest

from realdream.entitlements import EntitlementStore, Rejection, open_store
from realdream.persistence import MemoryStorage

IDS = ["light", "dark", "ocean", "sunset", "forest", "midnight", "rainbow"]


def assert_invariants(store: EntitlementStore) -> None:
    state = store.snapshot()
    assert state.active_item_id in state.owned_item_ids
    assert store.catalog.default_owned_ids() <= state.owned_item_ids
    assert state.balance >= 0


def random_step(store: EntitlementStore, rng: random.Random) -> None:
    before = store.snapshot()
    op = rng.choice(["select", "purchase", "adjust", "set"])
    if op == "select":
        result = store.select_item(rng.choice(IDS))
    elif op == "purchase":
        item_id = rng.choice(IDS)
        result = store.purchase_item(item_id)
        item = store.catalog.get(item_id)
        if result.ok:
            assert item_id not in before.owned_item_ids
            assert result.snapshot.balance == before.balance - item.price
        else:
            assert store.snapshot() == before
    elif op == "adjust":
        result = store.adjust_balance(rng.randint(-300, 300))
    else:
        result = store.set_balance(rng.randint(-10, 400))
    if not result.ok:
        assert isinstance(result.reason, Rejection)
        assert store.snapshot() == before


@pytest.mark.parametrize("seed", range(25))
def test_random_operation_sequences_keep_invariants(catalog, seed):
    rng = random.Random(seed)
    storage = MemoryStorage()
    store = open_store(storage, catalog=catalog)
    for _ in range(60):
        random_step(store, rng)
        assert_invariants(store)

    expected = store.snapshot()
    store.close(timeout=5)

    # Durable image reproduces the final session state
    with open_store(storage, catalog=catalog) as reopened:
        assert reopened.snapshot() == expected


@pytest.mark.parametrize("seed", range(10))
def test_each_purchase_is_charged_once(catalog, seed):
    rng = random.Random(seed)
    store = open_store(MemoryStorage(), catalog=catalog)
    store.set_balance(10_000)
    spent = 0
    for _ in range(40):
        item_id = rng.choice(IDS)
        if store.purchase_item(item_id).ok:
            spent += store.catalog.require(item_id).price
    owned_premium = store.snapshot().owned_item_ids - store.catalog.default_owned_ids()
    assert spent == sum(store.catalog.require(i).price for i in owned_premium)
    assert store.snapshot().balance == 10_000 - spent
    store.close(timeout=5)
