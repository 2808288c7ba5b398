from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Any, Callable, FrozenSet, Iterable, List, Optional, Tuple, TypeVar

from realdream.catalog import Catalog, Item, load_catalog
from realdream.config import SeedConfig
from realdream.errors import StoreClosedError
from realdream.persistence import (
    Decoded,
    KeyValueStorage,
    StorageCorrupt,
    StorageError,
    StorageKeys,
    WriteBehindQueue,
    WriteFailure,
    decode_active,
    decode_balance,
    decode_owned,
    encode_active,
    encode_balance,
    encode_owned,
)
from .events import EventBus, PurchaseCompleted, PurchaseRejected, StateChanged, StorageFailed
from .state import EntitlementState, OperationResult, Rejection

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntitlementStore:
    """Owns the user's theme entitlements, coin balance and active theme.

    Behavior:
    - hydrate() rebuilds state from three independently stored keys, falling
      back to seed values per key and repairing an active theme that is no
      longer owned.
    - Every operation validates against in-memory state before mutating it.
      Rejections come back as OperationResult values, never as exceptions.
    - Accepted changes replace the snapshot in one assignment, then queue a
      durable write. The write happens in the background; a failed write is
      reported on the event bus and does not undo the in-memory change.
    - hydrate() first waits for queued writes so it never reads stale keys.
    - After close(), changes raise StoreClosedError and leave state untouched.
    - A purchase writes the debited balance before the new ownership, so an
      interrupted flush can lose coins but never grant a theme for free.

    Usage:
        store = open_store(FileStorage(data_dir))
        result = store.purchase_item("ocean")
        if not result:
            show_message(result.message)
        store.close()
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        catalog: Optional[Catalog] = None,
        seed: Optional[SeedConfig] = None,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self.catalog = catalog or load_catalog()
        self.seed = seed or SeedConfig()
        self.seed.validate(self.catalog)
        self.keys = StorageKeys.with_prefix(self.seed.key_prefix)
        self.events = event_bus or EventBus()

        self._storage = storage
        self._writer = WriteBehindQueue(storage, on_error=self._on_write_failed)
        self._lock = threading.RLock()
        self._state = self.seed_state()

    # ---------------------- Hydration ----------------------
    def seed_state(self, prefers_dark: bool = False) -> EntitlementState:
        return EntitlementState(
            active_item_id=self.seed.default_active(prefers_dark),
            owned_item_ids=self.catalog.default_owned_ids(),
            balance=self.seed.starting_balance,
        )

    def hydrate(self, prefers_dark: bool = False) -> EntitlementState:
        """Load state from storage, replacing the current in-memory state.

        Each key is read and decoded on its own; a missing, unreadable or
        corrupt key falls back to its seed value without affecting the others.
        """
        # Queued writes must land first or the reads below would see stale keys.
        self._writer.flush()
        seed = self.seed_state(prefers_dark)
        active = self._read(self.keys.active, decode_active, seed.active_item_id)
        purchased = self._read(self.keys.owned, decode_owned, frozenset())
        balance = self._read(self.keys.balance, decode_balance, seed.balance)

        owned = seed.owned_item_ids | self._known_premium(purchased)
        if active not in owned:
            logger.warning(
                "Stored active theme %r is not owned; reverting to %r", active, seed.active_item_id
            )
            active = seed.active_item_id

        new = EntitlementState(active_item_id=active, owned_item_ids=owned, balance=balance)
        with self._lock:
            old = self._state
            self._state = new
        logger.info(
            "Hydrated entitlements: active=%s owned=%d balance=%d", active, len(owned), balance
        )
        self.events.emit(StateChanged(old=old, new=new, reason="hydrate"))
        return new

    def _read(self, key: str, decoder: Callable[[str], Decoded[T]], fallback: T) -> T:
        try:
            text = self._storage.get(key)
        except StorageError as exc:
            logger.warning("Could not read %s (%s); using seed default", key, exc)
            self._report_failure("read", key, str(exc), fallback)
            return fallback
        except Exception as exc:  # storage backends are external code
            logger.exception("Unexpected error reading %s; using seed default", key)
            self._report_failure("read", key, repr(exc), fallback)
            return fallback

        if text is None:
            logger.debug("No stored value for %s; using seed default", key)
            return fallback

        try:
            return decoder(text).unwrap()
        except StorageCorrupt as exc:
            logger.warning("Stored value for %s is corrupt (%s); using seed default", key, exc)
            self._report_failure("decode", key, str(exc), fallback)
            return fallback

    def _known_premium(self, ids: Iterable[str]) -> FrozenSet[str]:
        kept = set()
        for item_id in ids:
            item = self.catalog.get(item_id)
            if item is None:
                logger.warning("Dropping stored ownership of unknown theme %r", item_id)
            elif not item.default_owned:
                kept.add(item_id)
        return frozenset(kept)

    # ---------------------- Queries ----------------------
    def snapshot(self) -> EntitlementState:
        with self._lock:
            return self._state

    def is_owned(self, item_id: str) -> bool:
        return self.snapshot().owns(item_id)

    def can_afford(self, item_id: str) -> bool:
        """True when item_id is a premium theme not yet owned and within budget."""
        item = self.catalog.get(item_id)
        state = self.snapshot()
        if item is None or not item.purchasable or state.owns(item_id):
            return False
        return state.balance >= item.price

    @property
    def active_item(self) -> Item:
        return self.catalog.require(self.snapshot().active_item_id)

    @property
    def is_dark(self) -> bool:
        return self.active_item.dark

    # ---------------------- Operations ----------------------
    def select_item(self, item_id: str) -> OperationResult:
        with self._lock:
            state = self._state
            item = self.catalog.get(item_id)
            if item is None:
                return self._reject(state, Rejection.UNKNOWN_ITEM, f"Unknown theme: {item_id}")
            if not state.owns(item_id):
                return self._reject(
                    state, Rejection.NOT_OWNED, f"Unlock '{item.name}' before using it."
                )
            if state.active_item_id == item_id:
                return OperationResult(snapshot=state)

            new = replace(state, active_item_id=item_id)
            self._commit(new, [(self.keys.active, encode_active(item_id))], "select")
        self.events.emit(StateChanged(old=state, new=new, reason="select"))
        return OperationResult(snapshot=new)

    def purchase_item(self, item_id: str) -> OperationResult:
        rejected: Optional[OperationResult] = None
        with self._lock:
            state = self._state
            item = self.catalog.get(item_id)
            if item is None:
                rejected = self._reject(state, Rejection.UNKNOWN_ITEM, f"Unknown theme: {item_id}")
            elif not item.purchasable or state.owns(item_id):
                rejected = self._reject(
                    state, Rejection.ALREADY_OWNED, f"You already own '{item.name}'."
                )
            elif state.balance < item.price:
                shortfall = item.price - state.balance
                rejected = self._reject(
                    state,
                    Rejection.INSUFFICIENT_BALANCE,
                    f"You need {shortfall} more coins to unlock '{item.name}'.",
                    shortfall=shortfall,
                )
            else:
                new = EntitlementState(
                    active_item_id=state.active_item_id,
                    owned_item_ids=state.owned_item_ids | {item_id},
                    balance=state.balance - item.price,
                )
                # Debit lands before the grant.
                self._commit(
                    new,
                    [
                        (self.keys.balance, encode_balance(new.balance)),
                        (self.keys.owned, encode_owned(self._premium_ids(new))),
                    ],
                    f"purchase:{item_id}",
                )
        if rejected is not None:
            self.events.emit(
                PurchaseRejected(item_id=item_id, reason=rejected.reason, balance=state.balance)
            )
            return rejected
        logger.info(
            "Purchase complete: %s for %d coins (remaining: %d)", item.name, item.price, new.balance
        )
        self.events.emit(StateChanged(old=state, new=new, reason="purchase"))
        self.events.emit(
            PurchaseCompleted(item_id=item_id, cost=item.price, remaining_balance=new.balance)
        )
        return OperationResult(snapshot=new, details={"cost": item.price})

    def adjust_balance(self, delta: int) -> OperationResult:
        """Add delta coins (negative to deduct). Underflow is rejected."""
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise TypeError(f"delta must be an int, got {type(delta).__name__}")
        with self._lock:
            state = self._state
            target = state.balance + delta
            if target < 0:
                return self._reject(
                    state,
                    Rejection.INSUFFICIENT_BALANCE,
                    f"Cannot deduct {-delta} coins; only {state.balance} available.",
                    shortfall=-target,
                )
            if delta == 0:
                return OperationResult(snapshot=state)
            new = replace(state, balance=target)
            self._commit(new, [(self.keys.balance, encode_balance(target))], "adjust")
        logger.debug("Balance adjusted by %+d: %d -> %d", delta, state.balance, target)
        self.events.emit(StateChanged(old=state, new=new, reason="adjust"))
        return OperationResult(snapshot=new)

    def set_balance(self, value: int) -> OperationResult:
        """Overwrite the balance with an absolute, non-negative value."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"balance must be an int, got {type(value).__name__}")
        with self._lock:
            state = self._state
            if value < 0:
                return self._reject(
                    state, Rejection.INSUFFICIENT_BALANCE, "Balance cannot be negative."
                )
            if value == state.balance:
                return OperationResult(snapshot=state)
            new = replace(state, balance=value)
            self._commit(new, [(self.keys.balance, encode_balance(value))], "set_balance")
        logger.debug("Balance set: %d -> %d", state.balance, value)
        self.events.emit(StateChanged(old=state, new=new, reason="set_balance"))
        return OperationResult(snapshot=new)

    # ---------------------- Durability ----------------------
    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued writes to be attempted. Returns False on timeout."""
        return self._writer.flush(timeout)

    def close(self, timeout: Optional[float] = None) -> bool:
        return self._writer.close(timeout)

    def __enter__(self) -> "EntitlementStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------------------- Internal ----------------------
    def _commit(self, new: EntitlementState, writes: List[Tuple[str, str]], label: str) -> None:
        # Caller holds the lock, so queue order follows commit order.
        if self._writer.closed:
            raise StoreClosedError("EntitlementStore is closed; no further changes are accepted")
        self._writer.submit(writes, label=label)
        self._state = new

    def _premium_ids(self, state: EntitlementState) -> FrozenSet[str]:
        return state.owned_item_ids - self.catalog.default_owned_ids()

    def _reject(
        self, state: EntitlementState, reason: Rejection, message: str, **details: Any
    ) -> OperationResult:
        logger.info("Rejected (%s): %s", reason.value, message)
        return OperationResult(snapshot=state, reason=reason, message=message, details=details)

    def _report_failure(self, operation: str, key: str, error: str, fallback: Any = None) -> None:
        self.events.emit(
            StorageFailed(
                operation=operation,
                key=key,
                error=error,
                fallback=None if fallback is None else str(fallback),
            )
        )

    def _on_write_failed(self, failure: WriteFailure) -> None:
        logger.warning(
            "Change to %s kept for this session only: %s", failure.key, failure.error
        )
        self.events.emit(
            StorageFailed(
                operation="write",
                key=failure.key,
                error=str(failure.error),
                skipped_keys=failure.skipped_keys,
            )
        )


def open_store(
    storage: KeyValueStorage,
    catalog: Optional[Catalog] = None,
    seed: Optional[SeedConfig] = None,
    event_bus: Optional[EventBus] = None,
    prefers_dark: bool = False,
) -> EntitlementStore:
    """Create a store and hydrate it from storage. Call once at startup."""
    store = EntitlementStore(storage, catalog=catalog, seed=seed, event_bus=event_bus)
    store.hydrate(prefers_dark=prefers_dark)
    return store
